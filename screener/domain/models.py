"""
Screening Domain Models - Pure Python representation of instruments,
candidates and index compositions.

Absence of data is a first-class state: every market or valuation
field on a candidate is optional, and stages treat ``None`` explicitly.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from screener.config import UNKNOWN_SECTOR, FundamentalField

_CLASS_DIGITS = re.compile(r"\d+$")


def issuer_key(ticker: str) -> str:
    """
    Identify the issuer behind a ticker.

    Share classes of one company differ only by the trailing digits
    (``PETR3`` / ``PETR4``), so the key strips them and upper-cases.
    """
    return _CLASS_DIGITS.sub("", ticker).upper()


@dataclass(frozen=True)
class Fundamentals:
    """
    Latest reported fundamentals for one instrument.

    Ratios are fractions (``roe=0.15`` is 15%); ``dividend_yield`` is a
    fraction as reported; ``market_cap`` is in currency units.
    """

    roe: Optional[float] = None
    net_margin: Optional[float] = None
    net_debt_to_ebitda: Optional[float] = None
    payout: Optional[float] = None
    market_cap: Optional[float] = None
    pe: Optional[float] = None
    pb: Optional[float] = None
    dividend_yield: Optional[float] = None

    def get(self, field_name: FundamentalField) -> Optional[float]:
        """Value of a range-checked fundamental field."""
        return getattr(self, field_name.value)


@dataclass(frozen=True)
class Instrument:
    """
    Instrument as returned by the universe provider.

    ``fundamentals`` is ``None`` when no financial statement is on file.
    """

    ticker: str
    name: str
    sector: Optional[str] = None
    asset_type: str = "STOCK"
    fundamentals: Optional[Fundamentals] = None
    company_id: Optional[str] = None


@dataclass(frozen=True)
class IndexDefinitionInfo:
    """
    Stored index definition.

    ``config`` is the raw JSON document; parse it with
    ``screener.config.parse_index_config``.
    """

    id: str
    ticker: str
    name: str
    config: Dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class Valuation:
    """
    Fair-value view for one ticker from the valuation collaborator.

    Upsides are percentages: ``(fair - price) / price * 100``.
    ``upsides`` maps model name (``graham``, ``fcd``, ``gordon``,
    ``barsi``, ``technical``) to that model's upside.
    """

    ticker: str
    upside: Optional[float] = None
    fair_value_model: Optional[str] = None
    upsides: Dict[str, Optional[float]] = field(default_factory=dict)
    technical_fair_price: Optional[float] = None
    technical_min_price: Optional[float] = None


@dataclass(frozen=True)
class ScoreDiagnostics:
    """Why a candidate's overall score could not be computed."""

    calculation_failed: bool
    error: Optional[str] = None
    has_financial_data: bool = False
    has_price_data: bool = False
    company_id: Optional[str] = None
    available_strategies: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StrategyResult:
    """One ranked row returned by an external ranking strategy."""

    ticker: str
    upside: Optional[float] = None
    fair_value_model: Optional[str] = None
    key_metrics: Dict[str, float] = field(default_factory=dict)


@dataclass
class Candidate:
    """
    Scored, enriched instrument under evaluation.

    Note: Not frozen because the ranking stage overrides upside, model
    and score; stages copy with ``dataclasses.replace`` before editing.
    """

    ticker: str
    name: str
    sector: Optional[str] = None
    price: Optional[float] = None
    dividend_yield: Optional[float] = None  # percent
    market_cap: Optional[float] = None
    average_daily_volume: Optional[float] = None
    overall_score: Optional[float] = None
    upside: Optional[float] = None  # percent
    fair_value_model: Optional[str] = None
    upsides: Dict[str, Optional[float]] = field(default_factory=dict)
    technical_fair_price: Optional[float] = None
    technical_min_price: Optional[float] = None
    technical_margin: Optional[float] = None  # percent
    diagnostics: Optional[ScoreDiagnostics] = None

    @property
    def issuer_key(self) -> str:
        return issuer_key(self.ticker)

    @property
    def sector_name(self) -> str:
        """Sector, with missing values grouped under ``UNKNOWN_SECTOR``."""
        return self.sector or UNKNOWN_SECTOR


@dataclass(frozen=True)
class CompositionRow:
    """One persisted row of an index composition."""

    ticker: str
    target_weight: float
    entry_price: Optional[float] = None
    entry_date: Optional[date] = None


# Run-level history log actions
REBALANCE_ACTION = "REBALANCE"
NO_CHANGE_ACTION = "NO_CHANGE"


class ChangeAction(str, Enum):
    """Direction of a composition change."""

    ENTRY = "ENTRY"
    EXIT = "EXIT"


@dataclass(frozen=True)
class CompositionChange:
    """Audit record of one ticker entering or leaving the index."""

    action: ChangeAction
    ticker: str
    reason: str
