"""Liquidity filter with partial-data relaxation."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from screener.config import LiquidityConfig
from screener.domain.models import Candidate

logger = logging.getLogger(__name__)

DEFAULT_MIN_VOLUME_COVERAGE = 0.30


def volume_coverage(volumes: Mapping[str, float], tickers: Sequence[str]) -> float:
    """Fraction of *tickers* with traded-value data.

    Parameters
    ----------
    volumes : Mapping[str, float]
        Average daily traded value by ticker.
    tickers : Sequence[str]
        Tickers under evaluation.

    Returns
    -------
    float
        Coverage in ``[0, 1]``; ``0.0`` for an empty ticker list.
    """
    if not tickers:
        return 0.0
    covered = sum(1 for t in tickers if volumes.get(t) is not None)
    return covered / len(tickers)


@dataclass(frozen=True)
class LiquidityFilter:
    """Rejects candidates whose traded value is below the minimum.

    Candidates without traded-value data pass; the coverage check in
    ``build_liquidity_filter`` guards the batch as a whole.
    """

    min_average_daily_volume: float

    @property
    def name(self) -> str:
        return "Liquidity"

    def filter(self, item: Candidate) -> tuple[bool, str]:
        volume = item.average_daily_volume
        if volume is None or volume >= self.min_average_daily_volume:
            return True, ""
        return False, (
            f"average daily volume {volume:,.0f} below minimum "
            f"{self.min_average_daily_volume:,.0f}"
        )


def build_liquidity_filter(
    config: LiquidityConfig,
    volumes: Mapping[str, float],
    tickers: Sequence[str],
    min_coverage: float = DEFAULT_MIN_VOLUME_COVERAGE,
) -> LiquidityFilter | None:
    """Return the liquidity filter for this run, or ``None`` to skip it.

    The filter is skipped when liquidity is not configured, or when
    traded-value data covers fewer than *min_coverage* of the tickers,
    so a data outage cannot empty the universe.

    Parameters
    ----------
    config : LiquidityConfig
        Liquidity requirement.
    volumes : Mapping[str, float]
        Fetched traded values.
    tickers : Sequence[str]
        Tickers about to be filtered.
    min_coverage : float
        Minimum data coverage needed to apply the filter.

    Returns
    -------
    LiquidityFilter or None
    """
    if config.min_average_daily_volume is None:
        return None
    coverage = volume_coverage(volumes, tickers)
    if coverage < min_coverage:
        logger.warning(
            "Skipping liquidity filter: traded-value data for %.0f%% of %d "
            "candidates (minimum coverage %.0f%%)",
            coverage * 100,
            len(tickers),
            min_coverage * 100,
        )
        return None
    return LiquidityFilter(min_average_daily_volume=config.min_average_daily_volume)
