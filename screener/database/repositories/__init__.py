"""Repository implementations of the screening collaborator protocols."""

from screener.database.repositories.base import BaseRepository
from screener.database.repositories.index_repository import (
    NO_CHANGE_ACTION,
    REBALANCE_ACTION,
    IndexRepository,
)
from screener.database.repositories.score_repository import ScoreCalculator, ScoreRepository
from screener.database.repositories.universe_repository import UniverseRepository
from screener.database.repositories.valuation_repository import (
    ValuationRepository,
    upside_percent,
)

__all__ = [
    "NO_CHANGE_ACTION",
    "REBALANCE_ACTION",
    "BaseRepository",
    "IndexRepository",
    "ScoreCalculator",
    "ScoreRepository",
    "UniverseRepository",
    "ValuationRepository",
    "upside_percent",
]
