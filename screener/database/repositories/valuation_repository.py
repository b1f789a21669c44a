"""
Valuation Repository - Fair-value upsides from stored estimates.

Implements the ``ValuationProvider`` protocol: upsides are derived from
the latest fair price per model and the prices of the current run.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence

from sqlalchemy import select

from screener.database.database import DatabaseManager
from screener.database.models.company import Company, FairValueEstimate
from screener.database.repositories.base import BaseRepository
from screener.domain.models import Valuation
from screener.exceptions import DataError

logger = logging.getLogger(__name__)

TECHNICAL_MODEL = "technical"


def upside_percent(fair_price: Optional[float], price: Optional[float]) -> Optional[float]:
    """``(fair - price) / price * 100``, or ``None`` without both prices."""
    if fair_price is None or not price:
        return None
    return (fair_price - price) / price * 100


class ValuationRepository(BaseRepository[FairValueEstimate]):
    """
    Repository for stored fair-value estimates.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        super().__init__(db_manager, FairValueEstimate)

    def get_valuations(
        self, tickers: Sequence[str], prices: Mapping[str, float]
    ) -> Dict[str, Valuation]:
        """
        Valuation per ticker with at least one stored estimate.

        The headline upside is the best fundamental-model upside; the
        technical model only contributes to ``upsides`` and the technical
        prices.
        """
        if not tickers:
            return {}

        query = (
            select(Company.ticker, FairValueEstimate)
            .join(FairValueEstimate, FairValueEstimate.company_id == Company.id)
            .where(Company.ticker.in_(list(tickers)))
        )
        estimates: Dict[str, List[FairValueEstimate]] = defaultdict(list)
        with self._get_session() as session:
            for ticker, estimate in session.execute(query):
                estimates[ticker].append(estimate)

        valuations = {
            ticker: self._to_valuation(ticker, rows, prices.get(ticker))
            for ticker, rows in estimates.items()
        }
        logger.debug("Loaded valuations for %d of %d tickers", len(valuations), len(tickers))
        return valuations

    def save_estimate(
        self,
        ticker: str,
        model: str,
        fair_price: Optional[float],
        min_price: Optional[float] = None,
    ) -> None:
        """Insert or update the estimate of *model* for *ticker*."""
        with self._write(f"save {model} estimate of {ticker}") as session:
            company = self._company(session, ticker)
            if company is None:
                msg = f"company {ticker!r} not found"
                raise DataError(msg)
            estimate = session.execute(
                select(FairValueEstimate).where(
                    FairValueEstimate.company_id == company.id,
                    FairValueEstimate.model == model.lower(),
                )
            ).scalar_one_or_none()
            if estimate is None:
                estimate = FairValueEstimate(company_id=company.id, model=model.lower())
                session.add(estimate)
            estimate.fair_price = fair_price
            estimate.min_price = min_price

    def _to_valuation(
        self,
        ticker: str,
        rows: List[FairValueEstimate],
        price: Optional[float],
    ) -> Valuation:
        upsides: Dict[str, Optional[float]] = {}
        technical_fair = None
        technical_min = None
        for row in rows:
            upsides[row.model] = upside_percent(row.fair_price, price)
            if row.model == TECHNICAL_MODEL:
                technical_fair = row.fair_price
                technical_min = row.min_price

        fundamental = {
            model: value
            for model, value in upsides.items()
            if model != TECHNICAL_MODEL and value is not None
        }
        best_model = max(fundamental, key=fundamental.__getitem__) if fundamental else None
        return Valuation(
            ticker=ticker,
            upside=fundamental[best_model] if best_model else None,
            fair_value_model=best_model.upper() if best_model else None,
            upsides=upsides,
            technical_fair_price=technical_fair,
            technical_min_price=technical_min,
        )
