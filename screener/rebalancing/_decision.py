"""Rebalance decision: compare the proposed basket with the held one."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from enum import Enum

from screener.config import DEFAULT_REBALANCE_THRESHOLD, UpsideType
from screener.domain.models import Candidate

logger = logging.getLogger(__name__)


class RebalanceDecision(str, Enum):
    """Outcome of the rebalance decision."""

    HOLD = "HOLD"
    REBALANCE = "REBALANCE"


def upside_for_rebalance(
    candidate: Candidate,
    upside_type: UpsideType = UpsideType.BEST,
) -> float | None:
    """Upside compared by the rebalance decision.

    ``BEST`` takes the maximum non-null per-model upside; a named model
    takes that model's upside.  Both fall back to the candidate's
    headline upside when no per-model value is available.

    Parameters
    ----------
    candidate : Candidate
        Enriched candidate.
    upside_type : UpsideType
        Upside variant.

    Returns
    -------
    float or None
        Upside in percent.
    """
    if upside_type == UpsideType.BEST:
        values = [u for u in candidate.upsides.values() if u is not None]
        return max(values) if values else candidate.upside
    value = candidate.upsides.get(upside_type.value)
    return value if value is not None else candidate.upside


def upside_gap(
    current_tickers: Iterable[str],
    ideal: Sequence[Candidate],
    upside_type: UpsideType = UpsideType.BEST,
) -> float | None:
    """Upside advantage of the best new candidate over the worst held one.

    Both sides are taken from *ideal*: new candidates are those not
    currently held, held candidates are those still in the proposal.

    Returns
    -------
    float or None
        Gap in percentage points, or ``None`` when either side has no
        upside to compare.
    """
    held = set(current_tickers)
    held_upsides: list[float] = []
    new_upsides: list[float] = []
    for candidate in ideal:
        upside = upside_for_rebalance(candidate, upside_type)
        if upside is None:
            continue
        if candidate.ticker in held:
            held_upsides.append(upside)
        else:
            new_upsides.append(upside)
    if not held_upsides or not new_upsides:
        return None
    return max(new_upsides) - min(held_upsides)


def should_rebalance(
    current_tickers: Iterable[str],
    ideal: Sequence[Candidate],
    threshold: float = DEFAULT_REBALANCE_THRESHOLD,
    upside_type: UpsideType = UpsideType.BEST,
) -> bool:
    """Decide whether the proposed basket should replace the held one.

    Parameters
    ----------
    current_tickers : Iterable[str]
        Tickers currently held.
    ideal : Sequence[Candidate]
        Proposed basket.
    threshold : float
        Minimum upside advantage as a fraction; compared against the
        gap in percentage points, so ``0.05`` means 5 points.
    upside_type : UpsideType
        Upside variant used for the comparison.

    Returns
    -------
    bool
        ``True`` if membership differs or a new candidate beats the
        worst held one by more than *threshold*.
    """
    held = set(current_tickers)
    proposed = {c.ticker for c in ideal}
    if len(held) != len(proposed) or held - proposed:
        return True
    if not ideal or not held:
        return False
    if not any(c.ticker in held for c in ideal):
        return True

    gap = upside_gap(held, ideal, upside_type)
    return gap is not None and gap > threshold * 100


def decide(
    current_tickers: Iterable[str],
    ideal: Sequence[Candidate],
    threshold: float = DEFAULT_REBALANCE_THRESHOLD,
    upside_type: UpsideType = UpsideType.BEST,
) -> RebalanceDecision:
    """``should_rebalance`` as a ``RebalanceDecision``."""
    held = list(current_tickers)
    decision = (
        RebalanceDecision.REBALANCE
        if should_rebalance(held, ideal, threshold, upside_type)
        else RebalanceDecision.HOLD
    )
    logger.info(
        "Rebalance decision: %s (%d held, %d proposed)",
        decision.value,
        len(held),
        len(ideal),
    )
    return decision
