"""Top-N and score-band selection."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from screener.config import ScoreBand, SelectionConfig
from screener.domain.models import Candidate
from screener.screening._ordering import sort_candidates

logger = logging.getLogger(__name__)


def band_for(score: float | None, bands: Sequence[ScoreBand]) -> ScoreBand | None:
    """First configured band containing *score*, highest ``min`` first."""
    for band in sorted(bands, key=lambda b: b.min, reverse=True):
        if band.contains(score):
            return band
    return None


def select_top_n(candidates: Sequence[Candidate], top_n: int) -> list[Candidate]:
    """First *top_n* candidates of an already ordered list."""
    return list(candidates[:top_n])


def select_by_score_bands(
    candidates: Sequence[Candidate],
    config: SelectionConfig,
    preserve_order: bool = False,
) -> list[Candidate]:
    """Tiered selection by score band.

    Bands are processed from the highest ``min`` down.  Each band takes
    up to ``max_count`` unclaimed candidates whose score it contains,
    sorted by the configured field unless *preserve_order* is set.  When
    ``config.top_n`` is set and capacity remains, the basket is
    backfilled with the best remaining candidates whose score falls in
    no band; candidates without a score are never selected.

    Parameters
    ----------
    candidates : Sequence[Candidate]
        Deduplicated, ordered candidates.
    config : SelectionConfig
        Selection policy with at least one band.
    preserve_order : bool
        Keep the input order inside each band and in the backfill.

    Returns
    -------
    list[Candidate]
        Selected candidates, band by band, backfill last.
    """
    claimed: set[str] = set()
    selected: list[Candidate] = []
    for band in sorted(config.score_bands, key=lambda b: b.min, reverse=True):
        in_band = [
            c for c in candidates
            if c.ticker not in claimed and band.contains(c.overall_score)
        ]
        if not preserve_order:
            in_band = sort_candidates(in_band, config.order_by, config.direction)
        taken = in_band[: band.max_count]
        selected.extend(taken)
        claimed.update(c.ticker for c in taken)
        logger.debug(
            "Score band %s: selected %d/%d", band.label, len(taken), band.max_count
        )

    top_n = config.top_n
    if top_n is not None and len(selected) < top_n:
        remaining = [
            c for c in candidates
            if c.ticker not in claimed
            and c.overall_score is not None
            and band_for(c.overall_score, config.score_bands) is None
        ]
        if not preserve_order:
            remaining = sort_candidates(remaining, config.order_by, config.direction)
        selected.extend(remaining[: top_n - len(selected)])
    return selected


def select_candidates(
    candidates: Sequence[Candidate],
    config: SelectionConfig,
    preserve_order: bool = False,
) -> list[Candidate]:
    """Apply the configured selection policy."""
    if config.uses_score_bands:
        selected = select_by_score_bands(candidates, config, preserve_order)
    else:
        selected = select_top_n(candidates, config.effective_top_n)
    logger.info(
        "Selected %d of %d candidates%s",
        len(selected),
        len(candidates),
        " using score bands" if config.uses_score_bands else "",
    )
    return selected
