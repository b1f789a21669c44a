"""Quality revalidation of the proposed basket before a rebalance."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from screener.config import IndexConfig
from screener.domain.models import Candidate, Fundamentals
from screener.domain.protocols import FundamentalsSource
from screener.exceptions import DataError
from screener.filters import check_fundamentals, check_score

logger = logging.getLogger(__name__)

QualityRejection = tuple[Candidate, str]


def validate_candidate_quality(
    candidate: Candidate,
    config: IndexConfig,
    fundamentals: Fundamentals | None,
) -> str | None:
    """Re-check one candidate against the configured quality ranges.

    Parameters
    ----------
    candidate : Candidate
        Proposed basket member.
    config : IndexConfig
        Index configuration; only ``quality`` is consulted.
    fundamentals : Fundamentals or None
        Latest fundamentals on file for the candidate.

    Returns
    -------
    str or None
        Human-readable rejection reason, or ``None`` if the candidate
        still qualifies.
    """
    quality = config.quality
    reason = check_fundamentals(fundamentals, quality.ranges)
    if reason is not None:
        return reason
    return check_score(candidate.overall_score, quality.overall_score)


def filter_by_quality(
    candidates: Sequence[Candidate],
    config: IndexConfig,
    source: FundamentalsSource | None = None,
    fundamentals: Mapping[str, Fundamentals] | None = None,
) -> tuple[list[Candidate], list[QualityRejection]]:
    """Split the basket into candidates that still qualify and rejects.

    A no-op unless ``config.rebalance.check_quality`` is set.

    Parameters
    ----------
    candidates : Sequence[Candidate]
        Proposed basket.
    config : IndexConfig
        Index configuration.
    source : FundamentalsSource, optional
        Looked up when *fundamentals* is not given.
    fundamentals : Mapping[str, Fundamentals], optional
        Pre-fetched fundamentals by ticker.

    Returns
    -------
    tuple[list[Candidate], list[tuple[Candidate, str]]]
        Valid candidates in input order and ``(candidate, reason)``
        rejections.

    Raises
    ------
    DataError
        If the fundamentals lookup fails.
    """
    if not config.rebalance.check_quality or not candidates:
        return list(candidates), []

    if fundamentals is None:
        if source is None:
            msg = "quality revalidation needs a fundamentals source"
            raise DataError(msg)
        tickers = [c.ticker for c in candidates]
        try:
            fundamentals = source.get_fundamentals(tickers)
        except Exception as exc:
            msg = f"fundamentals lookup failed: {exc}"
            logger.error(msg)
            raise DataError(msg) from exc

    valid: list[Candidate] = []
    rejected: list[QualityRejection] = []
    for candidate in candidates:
        reason = validate_candidate_quality(
            candidate, config, fundamentals.get(candidate.ticker)
        )
        if reason is None:
            valid.append(candidate)
        else:
            rejected.append((candidate, reason))
            logger.info("%s failed quality revalidation: %s", candidate.ticker, reason)

    logger.info(
        "Quality revalidation: %d valid, %d rejected", len(valid), len(rejected)
    )
    return valid, rejected
