"""
Universe Repository - Instruments and fundamentals for screening.

Implements the ``UniverseProvider`` and ``FundamentalsSource`` protocols
on top of the ``companies`` and ``financial_data`` tables.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select

from screener.database.database import DatabaseManager
from screener.database.models.company import Company, FinancialData
from screener.database.repositories.base import BaseRepository
from screener.domain.models import Fundamentals, Instrument

logger = logging.getLogger(__name__)

_FUNDAMENTAL_COLUMNS = (
    "roe",
    "net_margin",
    "net_debt_to_ebitda",
    "payout",
    "market_cap",
    "pe",
    "pb",
    "dividend_yield",
)


class UniverseRepository(BaseRepository[Company]):
    """
    Repository for the screening universe.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        super().__init__(db_manager, Company)

    def list_instruments(
        self, asset_types: Optional[Sequence[str]] = None
    ) -> List[Instrument]:
        """
        List active instruments with their latest fundamentals.

        Args:
            asset_types: Restrict to these asset types (case-insensitive)

        Returns:
            Instruments ordered by ticker
        """
        query = select(Company).where(Company.is_active.is_(True))
        if asset_types:
            query = query.where(Company.asset_type.in_([t.upper() for t in asset_types]))
        query = query.order_by(Company.ticker)

        with self._get_session() as session:
            companies = session.execute(query).scalars().all()
            instruments = [self._instrument_to_dto(c) for c in companies]

        logger.debug("Loaded %d instruments", len(instruments))
        return instruments

    def get_fundamentals(self, tickers: Sequence[str]) -> Dict[str, Fundamentals]:
        """
        Latest fundamentals by ticker; tickers without data are omitted.
        """
        if not tickers:
            return {}
        query = select(Company).where(Company.ticker.in_(list(tickers)))
        with self._get_session() as session:
            result: Dict[str, Fundamentals] = {}
            for company in session.execute(query).scalars():
                fundamentals = self._fundamentals_to_dto(company.latest_financials)
                if fundamentals is not None:
                    result[company.ticker] = fundamentals
            return result

    def save_company(self, company_data: Dict[str, Any]) -> Instrument:
        """
        Save or update a company and, optionally, one year of fundamentals.

        Args:
            company_data: ``ticker``, ``name``, optional ``sector``,
                ``asset_type``, ``overall_score`` and ``financials``
                (a dict with ``year`` plus fundamental columns)
        """
        ticker = company_data["ticker"]

        with self._write(f"save company {ticker}") as session:
            company = self._company(session, ticker)
            if company is None:
                company = Company(ticker=ticker, name=company_data.get("name") or ticker)
                session.add(company)

            company.name = company_data.get("name") or company.name
            company.sector = company_data.get("sector", company.sector)
            company.asset_type = company_data.get("asset_type", "STOCK").upper()
            company.is_active = company_data.get("is_active", True)
            if "overall_score" in company_data:
                company.overall_score = company_data["overall_score"]

            financials = company_data.get("financials")
            if financials:
                year = financials["year"]
                row = next((f for f in company.financial_data if f.year == year), None)
                if row is None:
                    row = FinancialData(year=year)
                    company.financial_data.append(row)
                for column in _FUNDAMENTAL_COLUMNS:
                    if column in financials:
                        setattr(row, column, financials[column])

            session.flush()
            instrument = self._instrument_to_dto(company)
        return instrument

    def _instrument_to_dto(self, company: Company) -> Instrument:
        """Convert Company ORM model to Instrument."""
        return Instrument(
            ticker=company.ticker,
            name=company.name,
            sector=company.sector,
            asset_type=company.asset_type,
            fundamentals=self._fundamentals_to_dto(company.latest_financials),
            company_id=str(company.id),
        )

    def _fundamentals_to_dto(
        self, financials: Optional[FinancialData]
    ) -> Optional[Fundamentals]:
        """Convert FinancialData ORM model to Fundamentals."""
        if financials is None:
            return None
        return Fundamentals(
            **{column: getattr(financials, column) for column in _FUNDAMENTAL_COLUMNS}
        )
