"""Index job: screening, revalidation, weighting, decision and persistence."""

from screener.pipeline._runner import (
    ALL_REJECTED_REASON,
    NO_CANDIDATES_REASON,
    NO_CHANGE_REASON,
    IndexJobRunner,
    IndexRunResult,
    RunStatus,
    is_trading_day,
)

__all__ = [
    "ALL_REJECTED_REASON",
    "NO_CANDIDATES_REASON",
    "NO_CHANGE_REASON",
    "IndexJobRunner",
    "IndexRunResult",
    "RunStatus",
    "is_trading_day",
]
