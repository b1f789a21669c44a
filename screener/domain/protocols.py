"""
Collaborator Protocols - interfaces of the systems the engine consumes.

The engine never computes scores or fair values itself and never talks
to a data store directly; it depends on these protocols so that the
database, market-data and valuation implementations stay swappable.
"""

from datetime import date
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    TypeVar,
    runtime_checkable,
)

from screener.domain.models import (
    CompositionChange,
    CompositionRow,
    Fundamentals,
    IndexDefinitionInfo,
    Instrument,
    StrategyResult,
    Valuation,
)

T_contra = TypeVar("T_contra", contravariant=True)


@runtime_checkable
class ScreeningFilter(Protocol[T_contra]):
    """
    Protocol for a single screening predicate.

    Implementations are stateless after construction and return a
    ``(passed, reason)`` tuple; ``reason`` explains a rejection.
    """

    @property
    def name(self) -> str:
        """Human-readable filter name for logs and statistics."""
        ...

    def filter(self, item: T_contra) -> Tuple[bool, str]:
        ...


@runtime_checkable
class UniverseProvider(Protocol):
    """Source of candidate instruments with their fundamentals."""

    def list_instruments(
        self, asset_types: Optional[Sequence[str]] = None
    ) -> List[Instrument]:
        """
        List instruments, restricted to *asset_types* when given.

        Raises:
            Any exception on query failure; the engine treats it as fatal.
        """
        ...


@runtime_checkable
class FundamentalsSource(Protocol):
    """Latest fundamentals by ticker, used for quality revalidation."""

    def get_fundamentals(self, tickers: Sequence[str]) -> Dict[str, Fundamentals]:
        ...


@runtime_checkable
class MarketDataProvider(Protocol):
    """Batch price and traded-value lookups."""

    def get_prices(self, tickers: Sequence[str]) -> Dict[str, float]:
        """Latest price per ticker; tickers without a price are omitted."""
        ...

    def get_average_daily_volumes(
        self, tickers: Sequence[str], days: int = 30
    ) -> Dict[str, float]:
        """Average daily traded value in currency units over *days*."""
        ...


@runtime_checkable
class ValuationProvider(Protocol):
    """Batch fair-value upside lookups."""

    def get_valuations(
        self, tickers: Sequence[str], prices: Mapping[str, float]
    ) -> Dict[str, Valuation]:
        ...


@runtime_checkable
class ScoreProvider(Protocol):
    """Cached overall scores plus on-demand recomputation."""

    def get_cached_scores(self, tickers: Sequence[str]) -> Dict[str, float]:
        ...

    def recompute_score(
        self, instrument: Instrument, price: Optional[float]
    ) -> Optional[float]:
        """
        Recompute one instrument's overall score.

        Raises:
            Any exception when the calculation fails; the caller records
            it on the candidate instead of aborting the run.
        """
        ...


@runtime_checkable
class RankingStrategy(Protocol):
    """External valuation strategy that ranks candidates."""

    def rank(
        self,
        strategy_type: str,
        params: Mapping[str, Any],
        tickers: Sequence[str],
        limit: int,
    ) -> List[StrategyResult]:
        """Return ranked results, best first, restricted to *tickers*."""
        ...


@runtime_checkable
class CompositionStore(Protocol):
    """Persistent store of index compositions and their change log."""

    def get_current(self, index_id: str) -> List[CompositionRow]:
        ...

    def replace_composition(
        self,
        index_id: str,
        rows: Sequence[CompositionRow],
        changes: Sequence[CompositionChange],
        summary: Optional[str],
        run_date: date,
    ) -> None:
        """Replace all rows and append the change log in one transaction."""
        ...

    def has_log_on(self, index_id: str, run_date: date, action: str) -> bool:
        ...

    def append_log(
        self, index_id: str, action: str, reason: str, run_date: date
    ) -> None:
        ...


@runtime_checkable
class IndexDefinitionSource(Protocol):
    """Lookup of stored index definitions."""

    def get_definition(self, key: str) -> Optional[IndexDefinitionInfo]:
        """Resolve an index by id or ticker; ``None`` if unknown."""
        ...
