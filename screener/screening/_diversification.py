"""Sector diversification: per-sector caps or target allocation."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from screener.config import (
    DiversificationConfig,
    DiversificationType,
    OrderDirection,
    OrderField,
)
from screener.domain.models import Candidate
from screener.screening._ordering import sort_candidates

logger = logging.getLogger(__name__)


@dataclass
class DiversificationOutcome:
    """Diversified basket and the tickers removed to build it."""

    selected: list[Candidate]
    removed: list[str] = field(default_factory=list)
    sector_counts: dict[str, int] = field(default_factory=dict)


def sector_counts(candidates: Sequence[Candidate]) -> dict[str, int]:
    """Number of candidates per sector, unknown sectors grouped."""
    counts: dict[str, int] = defaultdict(int)
    for candidate in candidates:
        counts[candidate.sector_name] += 1
    return dict(counts)


def normalize_allocation(allocation: dict[str, float]) -> dict[str, float]:
    """Scale allocation fractions down proportionally when they exceed 1."""
    total = sum(allocation.values())
    if total <= 1.0:
        return dict(allocation)
    logger.warning(
        "Sector allocation sums to %.1f%%, normalizing to 100%%", total * 100
    )
    return {sector: value / total for sector, value in allocation.items()}


def apply_max_count(
    candidates: Sequence[Candidate], config: DiversificationConfig
) -> list[Candidate]:
    """Admit candidates in order while their sector is under its cap."""
    admitted: list[Candidate] = []
    counts: dict[str, int] = defaultdict(int)
    for candidate in candidates:
        sector = candidate.sector_name
        limit = config.limit_for(sector)
        if limit is None or counts[sector] < limit:
            admitted.append(candidate)
            counts[sector] += 1
    return admitted


def apply_allocation(
    candidates: Sequence[Candidate],
    config: DiversificationConfig,
    top_n: int,
) -> list[Candidate]:
    """Fill per-sector targets, then backfill to *top_n* regardless of sector.

    A sector's target is ``ceil(top_n * fraction)`` capped by the
    candidates available in it.  Every targeted pick is kept, so rounded
    up targets may take the basket past *top_n*; backfill only runs while
    the basket is short.  The result keeps the input ranking order.
    """
    allocation = normalize_allocation(config.sector_allocation)
    by_sector: dict[str, list[Candidate]] = defaultdict(list)
    for candidate in candidates:
        by_sector[candidate.sector_name].append(candidate)

    chosen: set[str] = set()
    for sector, members in by_sector.items():
        fraction = allocation.get(sector, 0.0)
        if fraction <= 0:
            continue
        # round() absorbs float noise such as 10 * 0.3 == 3.0000000000000004
        target = min(math.ceil(round(top_n * fraction, 9)), len(members))
        chosen.update(c.ticker for c in members[:target])

    for candidate in candidates:
        if len(chosen) >= top_n:
            break
        chosen.add(candidate.ticker)

    return [c for c in candidates if c.ticker in chosen]


def diversify(
    candidates: Sequence[Candidate],
    config: DiversificationConfig,
    top_n: int,
    order_by: OrderField = OrderField.UPSIDE,
    direction: OrderDirection = OrderDirection.DESC,
    preserve_order: bool = False,
) -> DiversificationOutcome:
    """Apply sector diversification to the selected basket.

    Parameters
    ----------
    candidates : Sequence[Candidate]
        Selected candidates.
    config : DiversificationConfig
        Sector policy.
    top_n : int
        Basket size used by allocation targets.
    order_by, direction
        Ordering applied before admission unless *preserve_order*.
    preserve_order : bool
        Keep the incoming (strategy) order.

    Returns
    -------
    DiversificationOutcome
    """
    ordered = (
        list(candidates)
        if preserve_order
        else sort_candidates(candidates, order_by, direction)
    )
    if config.type == DiversificationType.ALLOCATION:
        selected = apply_allocation(ordered, config, top_n)
    else:
        selected = apply_max_count(ordered, config)

    kept = {c.ticker for c in selected}
    removed = [c.ticker for c in candidates if c.ticker not in kept]
    counts = sector_counts(selected)
    logger.info(
        "Diversification kept %d of %d candidates (removed %d)",
        len(selected),
        len(candidates),
        len(removed),
    )
    if config.type == DiversificationType.MAX_COUNT:
        for sector, count in sorted(counts.items()):
            limit = config.limit_for(sector)
            logger.debug(
                "Sector %s: %d/%s",
                sector,
                count,
                limit if limit is not None else "unlimited",
            )
    return DiversificationOutcome(selected=selected, removed=removed, sector_counts=counts)
