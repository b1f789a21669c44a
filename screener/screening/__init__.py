"""Screening stages and the engine that chains them."""

from screener.screening._dedup import deduplicate
from screener.screening._diversification import (
    DiversificationOutcome,
    apply_allocation,
    apply_max_count,
    diversify,
    normalize_allocation,
    sector_counts,
)
from screener.screening._engine import ScreeningEngine, ScreeningResult
from screener.screening._enrichment import (
    EnrichmentResult,
    MarketEnricher,
    ScoreComputed,
    ScoreFailed,
    ScoreOutcome,
    needs_recompute,
    technical_margin,
)
from screener.screening._ordering import (
    is_better,
    order_value,
    ranking_position,
    sort_candidates,
)
from screener.screening._ranking import RankingOutcome, apply_strategy_ranking
from screener.screening._selection import (
    band_for,
    select_by_score_bands,
    select_candidates,
    select_top_n,
)

__all__ = [
    "DiversificationOutcome",
    "EnrichmentResult",
    "MarketEnricher",
    "RankingOutcome",
    "ScoreComputed",
    "ScoreFailed",
    "ScoreOutcome",
    "ScreeningEngine",
    "ScreeningResult",
    "apply_allocation",
    "apply_max_count",
    "apply_strategy_ranking",
    "band_for",
    "deduplicate",
    "diversify",
    "is_better",
    "needs_recompute",
    "normalize_allocation",
    "order_value",
    "ranking_position",
    "sector_counts",
    "select_by_score_bands",
    "select_candidates",
    "select_top_n",
    "sort_candidates",
    "technical_margin",
]
