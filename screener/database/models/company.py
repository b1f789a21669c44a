"""
Company Models - Listed companies, fundamentals and valuation inputs
====================================================================
SQLAlchemy models read by the universe, score and valuation repositories.

Tables:
- Company: Listed instrument with sector, asset type and cached overall score
- FinancialData: Yearly fundamentals (ratios stored as fractions)
- FairValueEstimate: Latest fair price per valuation model

Features:
- UUID primary keys for all tables
- Cascade delete from company to its fundamentals and estimates
- Indexed columns for query performance
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from screener.database.models.base import ScreenerRecord


class Company(ScreenerRecord):
    """
    Listed company or instrument.

    ``overall_score`` caches the external scoring module's latest 0-100
    composite score; ``score_updated_at`` records when it was computed.
    """

    __tablename__ = "companies"

    ticker: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Exchange ticker (e.g., 'PETR4')",
    )

    name: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Company name"
    )

    sector: Mapped[Optional[str]] = mapped_column(
        String(120), nullable=True, comment="Sector classification"
    )

    asset_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="STOCK",
        comment="Asset type (STOCK, BDR, ETF, FII, INDEX, OTHER)",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Whether the instrument is still listed",
    )

    overall_score: Mapped[Optional[float]] = mapped_column(
        Float, nullable=True, comment="Cached overall score (0-100)"
    )

    score_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the cached score was computed",
    )

    # Relationships
    financial_data: Mapped[list["FinancialData"]] = relationship(
        "FinancialData",
        back_populates="company",
        cascade="all, delete-orphan",
        order_by="FinancialData.year.desc()",
        lazy="selectin",
    )

    fair_values: Mapped[list["FairValueEstimate"]] = relationship(
        "FairValueEstimate",
        back_populates="company",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("ticker", name="uq_companies_ticker"),
        Index("idx_companies_asset_type", "asset_type"),
        {"extend_existing": True},
    )

    @property
    def latest_financials(self) -> Optional["FinancialData"]:
        return self.financial_data[0] if self.financial_data else None

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, ticker='{self.ticker}')>"


class FinancialData(ScreenerRecord):
    """
    Yearly fundamentals for one company.

    Ratios (``roe``, ``net_margin``, ``payout``, ``dividend_yield``) are
    fractions; ``market_cap`` is in currency units.
    """

    __tablename__ = "financial_data"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False, comment="Fiscal year")

    roe: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    net_margin: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    net_debt_to_ebitda: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    payout: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    market_cap: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pe: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="P/E")
    pb: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="P/B")
    dividend_yield: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    company: Mapped["Company"] = relationship("Company", back_populates="financial_data")

    __table_args__ = (
        UniqueConstraint("company_id", "year", name="uq_financial_data_company_year"),
        {"extend_existing": True},
    )

    def __repr__(self) -> str:
        return f"<FinancialData(company_id={self.company_id}, year={self.year})>"


class FairValueEstimate(ScreenerRecord):
    """
    Latest fair price for one company under one valuation model.

    ``model`` is one of ``graham``, ``fcd``, ``gordon``, ``barsi`` or
    ``technical``; technical rows also carry ``min_price``.
    """

    __tablename__ = "fair_value_estimates"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    model: Mapped[str] = mapped_column(String(20), nullable=False)

    fair_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    min_price: Mapped[Optional[float]] = mapped_column(
        Float, nullable=True, comment="Technical floor price"
    )

    company: Mapped["Company"] = relationship("Company", back_populates="fair_values")

    __table_args__ = (
        UniqueConstraint("company_id", "model", name="uq_fair_value_company_model"),
        {"extend_existing": True},
    )

    def __repr__(self) -> str:
        return f"<FairValueEstimate(company_id={self.company_id}, model='{self.model}')>"
