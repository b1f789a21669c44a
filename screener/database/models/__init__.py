"""SQLAlchemy models for companies, valuations and index compositions."""

from screener.database.models.base import Base, ScreenerRecord, TimestampMixin
from screener.database.models.company import Company, FairValueEstimate, FinancialData
from screener.database.models.index import (
    SYSTEM_TICKER,
    IndexComposition,
    IndexDefinition,
    IndexHistoryLog,
)

__all__ = [
    "SYSTEM_TICKER",
    "Base",
    "Company",
    "FairValueEstimate",
    "FinancialData",
    "IndexComposition",
    "IndexDefinition",
    "IndexHistoryLog",
    "ScreenerRecord",
    "TimestampMixin",
]
