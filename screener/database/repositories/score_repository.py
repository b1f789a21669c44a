"""
Score Repository - Cached overall scores with on-demand recomputation.

Implements the ``ScoreProvider`` protocol.  Scores are computed by an
external scoring module injected as ``calculator``; this repository only
caches its results on the ``companies`` table.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

from sqlalchemy import select

from screener.database.database import DatabaseManager
from screener.database.models.company import Company
from screener.database.repositories.base import BaseRepository
from screener.domain.models import Instrument

logger = logging.getLogger(__name__)

ScoreCalculator = Callable[[Instrument, Optional[float]], Optional[float]]


class ScoreRepository(BaseRepository[Company]):
    """
    Cached score lookup backed by an optional scoring module.
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        calculator: Optional[ScoreCalculator] = None,
    ):
        super().__init__(db_manager, Company)
        self._calculator = calculator

    def get_cached_scores(self, tickers: Sequence[str]) -> Dict[str, float]:
        """Cached score by ticker; tickers without a score are omitted."""
        if not tickers:
            return {}
        query = select(Company.ticker, Company.overall_score).where(
            Company.ticker.in_(list(tickers)),
            Company.overall_score.is_not(None),
        )
        with self._get_session() as session:
            return {ticker: score for ticker, score in session.execute(query)}

    def recompute_score(
        self, instrument: Instrument, price: Optional[float]
    ) -> Optional[float]:
        """
        Recompute and cache one instrument's score.

        Raises:
            LookupError: If no scoring module is configured
        """
        if self._calculator is None:
            raise LookupError("no scoring module configured")

        score = self._calculator(instrument, price)
        if score is None:
            return None

        with self._write(f"cache score of {instrument.ticker}") as session:
            company = self._company(session, instrument.ticker)
            if company is not None:
                company.overall_score = score
                company.score_updated_at = datetime.now(timezone.utc)
        return score
