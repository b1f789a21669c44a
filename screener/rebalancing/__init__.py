"""Rebalance decision, quality revalidation and composition diff."""

from screener.rebalancing._decision import (
    RebalanceDecision,
    decide,
    should_rebalance,
    upside_for_rebalance,
    upside_gap,
)
from screener.rebalancing._diff import (
    DEFAULT_REASON,
    compare_composition,
    entry_reason,
    exit_reason,
    generate_rebalance_reason,
)
from screener.rebalancing._quality import (
    QualityRejection,
    filter_by_quality,
    validate_candidate_quality,
)

__all__ = [
    "DEFAULT_REASON",
    "QualityRejection",
    "RebalanceDecision",
    "compare_composition",
    "decide",
    "entry_reason",
    "exit_reason",
    "filter_by_quality",
    "generate_rebalance_reason",
    "should_rebalance",
    "upside_for_rebalance",
    "upside_gap",
    "validate_candidate_quality",
]
