"""
Index Models - Index definitions, compositions and rebalance history
====================================================================

Tables:
- IndexDefinition: Named index with its JSON screening configuration
- IndexComposition: Current target basket (replaced wholesale per rebalance)
- IndexHistoryLog: Append-only log of rebalances, entries, exits and no-ops
"""

import uuid
from datetime import date
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from screener.database.models.base import ScreenerRecord

# Ticker recorded on run-level summary logs
SYSTEM_TICKER = "SYSTEM"


class IndexDefinition(ScreenerRecord):
    """Named index and the JSON document that configures its screening."""

    __tablename__ = "index_definitions"

    ticker: Mapped[str] = mapped_column(
        String(30), nullable=False, comment="Index code (e.g., 'IPJ-VALUE')"
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    config: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, comment="Screening configuration document"
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    compositions: Mapped[list["IndexComposition"]] = relationship(
        "IndexComposition",
        back_populates="index",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("ticker", name="uq_index_definitions_ticker"),
        {"extend_existing": True},
    )


class IndexComposition(ScreenerRecord):
    """One instrument of an index's current target basket."""

    __tablename__ = "index_compositions"

    index_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("index_definitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    asset_ticker: Mapped[str] = mapped_column(String(20), nullable=False)

    target_weight: Mapped[float] = mapped_column(Float, nullable=False)

    entry_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    entry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    index: Mapped["IndexDefinition"] = relationship(
        "IndexDefinition", back_populates="compositions"
    )

    __table_args__ = (
        UniqueConstraint("index_id", "asset_ticker", name="uq_index_composition_asset"),
        {"extend_existing": True},
    )


class IndexHistoryLog(ScreenerRecord):
    """
    Rebalance history entry.

    ``action`` is ``ENTRY`` or ``EXIT`` for composition changes,
    ``REBALANCE`` for the run summary and ``NO_CHANGE`` for runs that
    kept the basket; run-level rows use ``SYSTEM_TICKER``.
    """

    __tablename__ = "index_history_logs"

    index_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("index_definitions.id", ondelete="CASCADE"),
        nullable=False,
    )

    log_date: Mapped[date] = mapped_column("date", Date, nullable=False)

    action: Mapped[str] = mapped_column(String(20), nullable=False)

    ticker: Mapped[str] = mapped_column(String(20), nullable=False)

    reason: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_index_history_index_date", "index_id", "date"),
        {"extend_existing": True},
    )
