"""Domain models and collaborator protocols."""

from screener.domain.models import (
    Candidate,
    ChangeAction,
    CompositionChange,
    CompositionRow,
    Fundamentals,
    Instrument,
    IndexDefinitionInfo,
    NO_CHANGE_ACTION,
    REBALANCE_ACTION,
    ScoreDiagnostics,
    StrategyResult,
    Valuation,
    issuer_key,
)
from screener.domain.protocols import (
    CompositionStore,
    FundamentalsSource,
    IndexDefinitionSource,
    MarketDataProvider,
    RankingStrategy,
    ScoreProvider,
    ScreeningFilter,
    UniverseProvider,
    ValuationProvider,
)

__all__ = [
    "NO_CHANGE_ACTION",
    "REBALANCE_ACTION",
    "Candidate",
    "ChangeAction",
    "CompositionChange",
    "CompositionRow",
    "CompositionStore",
    "Fundamentals",
    "FundamentalsSource",
    "IndexDefinitionSource",
    "Instrument",
    "MarketDataProvider",
    "IndexDefinitionInfo",
    "RankingStrategy",
    "ScoreDiagnostics",
    "ScoreProvider",
    "ScreeningFilter",
    "StrategyResult",
    "UniverseProvider",
    "Valuation",
    "ValuationProvider",
    "issuer_key",
]
