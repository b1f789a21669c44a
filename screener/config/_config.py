"""Configuration for index screening, selection, weighting and rebalancing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from screener.exceptions import ConfigurationError

DEFAULT_TOP_N = 10
DEFAULT_SECTOR_LIMIT = 4
DEFAULT_REBALANCE_THRESHOLD = 0.05
DEFAULT_MIN_WEIGHT = 0.02
DEFAULT_MAX_WEIGHT = 0.15
UNKNOWN_SECTOR = "Unknown"


class AssetType(str, Enum):
    """Listed instrument type used by the universe allowlist."""

    STOCK = "STOCK"
    BDR = "BDR"
    ETF = "ETF"
    FII = "FII"
    INDEX = "INDEX"
    OTHER = "OTHER"


class FundamentalField(str, Enum):
    """Fundamental fields that accept a quality range."""

    ROE = "roe"
    NET_MARGIN = "net_margin"
    NET_DEBT_TO_EBITDA = "net_debt_to_ebitda"
    PAYOUT = "payout"
    MARKET_CAP = "market_cap"
    PE = "pe"
    PB = "pb"


class OrderField(str, Enum):
    """Candidate field used to order, deduplicate and select."""

    UPSIDE = "upside"
    DIVIDEND_YIELD = "dividend_yield"
    OVERALL_SCORE = "overall_score"
    MARKET_CAP = "market_cap"
    TECHNICAL_MARGIN = "technical_margin"


class OrderDirection(str, Enum):
    """Sort direction; nulls sort last in both directions."""

    ASC = "asc"
    DESC = "desc"


class WeightType(str, Enum):
    """Weighting scheme for the selected basket."""

    EQUAL = "equal"
    MARKET_CAP = "market_cap"
    OVERALL_SCORE = "overall_score"
    CUSTOM = "custom"


class UpsideType(str, Enum):
    """Upside variant compared by the rebalance decision."""

    BEST = "best"
    GRAHAM = "graham"
    FCD = "fcd"
    GORDON = "gordon"
    BARSI = "barsi"
    TECHNICAL = "technical"


class DiversificationType(str, Enum):
    """Sector diversification mode."""

    MAX_COUNT = "max_count"
    ALLOCATION = "allocation"


# Strategy types that double as fair-value model names
VALUATION_MODELS: frozenset[str] = frozenset({"graham", "fcd", "gordon", "barsi"})


@dataclass(frozen=True)
class Range:
    """Closed numeric range with optional bounds.

    Parameters
    ----------
    gte : float or None
        Inclusive lower bound.
    lte : float or None
        Inclusive upper bound.
    """

    gte: float | None = None
    lte: float | None = None

    def __post_init__(self) -> None:
        if self.gte is not None and self.lte is not None and self.gte > self.lte:
            msg = f"range lower bound ({self.gte}) must be <= upper bound ({self.lte})"
            raise ConfigurationError(msg)

    def contains(self, value: float | None) -> bool:
        """Return ``True`` when *value* is present and inside the range.

        A missing value never satisfies a configured range.
        """
        if value is None:
            return False
        if self.gte is not None and value < self.gte:
            return False
        if self.lte is not None and value > self.lte:
            return False
        return True


@dataclass(frozen=True)
class UniverseConfig:
    """Universe scope: asset-type allowlist and ticker exclusions.

    Parameters
    ----------
    asset_types : tuple[AssetType, ...] or None
        Allowed asset types.  ``None`` admits every type.
    excluded_tickers : tuple[str, ...]
        Tickers removed by exact, case-insensitive match.
    excluded_patterns : tuple[str, ...]
        Wildcard patterns: ``*X`` removes tickers ending in ``X``,
        ``X*`` removes tickers starting with ``X``, anything else is
        an exact match.
    """

    asset_types: tuple[AssetType, ...] | None = None
    excluded_tickers: tuple[str, ...] = ()
    excluded_patterns: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for pattern in self.excluded_patterns:
            if not pattern.strip("*"):
                msg = f"exclusion pattern {pattern!r} matches every ticker"
                raise ConfigurationError(msg)

    @classmethod
    def for_stocks(cls) -> UniverseConfig:
        """Common stocks only."""
        return cls(asset_types=(AssetType.STOCK,))


@dataclass(frozen=True)
class LiquidityConfig:
    """Minimum average daily traded value, in currency units."""

    min_average_daily_volume: float | None = None

    def __post_init__(self) -> None:
        if (
            self.min_average_daily_volume is not None
            and self.min_average_daily_volume < 0
        ):
            msg = (
                f"min_average_daily_volume must be >= 0, "
                f"got {self.min_average_daily_volume}"
            )
            raise ConfigurationError(msg)

    @property
    def enabled(self) -> bool:
        return self.min_average_daily_volume is not None


@dataclass(frozen=True)
class StrategyRef:
    """Reference to an external ranking strategy.

    Parameters
    ----------
    type : str
        Strategy identifier understood by the ranking collaborator.
    params : dict[str, object]
        Parameters forwarded unchanged to the strategy.
    """

    type: str
    params: dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.type:
            msg = "strategy type must be a non-empty string"
            raise ConfigurationError(msg)

    @property
    def valuation_model(self) -> str | None:
        """Fair-value model implied by the strategy type, if any."""
        kind = self.type.lower()
        return kind.upper() if kind in VALUATION_MODELS else None


@dataclass(frozen=True)
class QualityConfig:
    """Quality predicates on fundamentals and on the overall score.

    Parameters
    ----------
    ranges : dict[FundamentalField, Range]
        Range per fundamental field.  A missing value fails its range.
    overall_score : Range or None
        Range on the candidate's overall score, checked after
        enrichment.
    strategy : StrategyRef or None
        Optional external ranking strategy that replaces the default
        ordering.
    """

    ranges: dict[FundamentalField, Range] = field(default_factory=dict)
    overall_score: Range | None = None
    strategy: StrategyRef | None = None


@dataclass(frozen=True)
class UpsideFilterConfig:
    """Fair-value upside filters, in percent."""

    require_positive: bool = False
    min_upside: float | None = None

    @property
    def enabled(self) -> bool:
        return self.require_positive or self.min_upside is not None


@dataclass(frozen=True)
class TechnicalFilterConfig:
    """Technical fair-price filter.

    Parameters
    ----------
    enabled : bool
        Attach technical prices and margins to candidates.
    require_below_fair_price : bool
        Admit only candidates priced at or below the technical fair price.
    require_above_min_price : bool
        Admit only candidates priced at or above the technical minimum.
    """

    enabled: bool = False
    require_below_fair_price: bool = False
    require_above_min_price: bool = False

    @property
    def requires_analysis(self) -> bool:
        return self.enabled and (
            self.require_below_fair_price or self.require_above_min_price
        )


@dataclass(frozen=True)
class ScoreBand:
    """Score range with a capacity limit.

    Parameters
    ----------
    min : float
        Inclusive minimum overall score.
    max : float
        Inclusive maximum overall score.
    max_count : int
        Maximum number of instruments taken from this band.
    """

    min: float
    max: float
    max_count: int

    def __post_init__(self) -> None:
        if self.min > self.max:
            msg = f"score band min ({self.min}) must be <= max ({self.max})"
            raise ConfigurationError(msg)
        if self.max_count < 0:
            msg = f"score band max_count must be >= 0, got {self.max_count}"
            raise ConfigurationError(msg)

    def contains(self, score: float | None) -> bool:
        if score is None:
            return False
        return self.min <= score <= self.max

    @property
    def label(self) -> str:
        return f"[{self.min:g}-{self.max:g}]"


@dataclass(frozen=True)
class SelectionConfig:
    """Selection policy.

    Score bands, when given, drive selection; ``top_n`` then acts as a
    backfill ceiling.  Without bands the first ``top_n`` ordered
    candidates are taken.

    Parameters
    ----------
    top_n : int or None
        Basket size.  Defaults to ``DEFAULT_TOP_N`` where a size is
        needed.
    score_bands : tuple[ScoreBand, ...]
        Tiered score bands.
    order_by : OrderField
        Ordering field for ranking, deduplication and band sorting.
    direction : OrderDirection
        Ordering direction.
    """

    top_n: int | None = None
    score_bands: tuple[ScoreBand, ...] = ()
    order_by: OrderField = OrderField.UPSIDE
    direction: OrderDirection = OrderDirection.DESC

    def __post_init__(self) -> None:
        if self.top_n is not None and self.top_n < 1:
            msg = f"top_n must be >= 1, got {self.top_n}"
            raise ConfigurationError(msg)

    @property
    def uses_score_bands(self) -> bool:
        return len(self.score_bands) > 0

    @property
    def effective_top_n(self) -> int:
        return self.top_n if self.top_n is not None else DEFAULT_TOP_N

    @classmethod
    def for_top_n(
        cls,
        top_n: int,
        order_by: OrderField = OrderField.UPSIDE,
    ) -> SelectionConfig:
        """Top-N selection ordered by *order_by*, descending."""
        return cls(top_n=top_n, order_by=order_by)

    @classmethod
    def for_score_bands(
        cls,
        bands: tuple[ScoreBand, ...],
        top_n: int | None = None,
    ) -> SelectionConfig:
        """Score-band selection with an optional backfill ceiling."""
        return cls(top_n=top_n, score_bands=bands)


@dataclass(frozen=True)
class WeightingConfig:
    """Weighting policy.

    Parameters
    ----------
    type : WeightType
        Weighting scheme.
    min_weight : float
        Lower clamp for score-proportional weights.
    max_weight : float
        Upper clamp for score-proportional weights.
    custom_weights : dict[str, float]
        Explicit ticker weights for ``WeightType.CUSTOM``.
    """

    type: WeightType = WeightType.EQUAL
    min_weight: float = DEFAULT_MIN_WEIGHT
    max_weight: float = DEFAULT_MAX_WEIGHT
    custom_weights: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not (0.0 <= self.min_weight <= self.max_weight <= 1.0):
            msg = (
                f"min_weight ({self.min_weight}) must be <= max_weight "
                f"({self.max_weight}) and both must be in [0, 1]"
            )
            raise ConfigurationError(msg)
        negative = {t: w for t, w in self.custom_weights.items() if w < 0}
        if negative:
            msg = f"custom weights must be non-negative, got {negative}"
            raise ConfigurationError(msg)

    @classmethod
    def for_equal(cls) -> WeightingConfig:
        return cls(type=WeightType.EQUAL)

    @classmethod
    def for_score(
        cls,
        min_weight: float = DEFAULT_MIN_WEIGHT,
        max_weight: float = DEFAULT_MAX_WEIGHT,
    ) -> WeightingConfig:
        """Score-proportional weights clamped to ``[min_weight, max_weight]``."""
        return cls(
            type=WeightType.OVERALL_SCORE,
            min_weight=min_weight,
            max_weight=max_weight,
        )

    @classmethod
    def for_market_cap(cls) -> WeightingConfig:
        return cls(type=WeightType.MARKET_CAP)

    @classmethod
    def for_custom(cls, weights: dict[str, float]) -> WeightingConfig:
        return cls(type=WeightType.CUSTOM, custom_weights=dict(weights))


@dataclass(frozen=True)
class RebalanceConfig:
    """Rebalance trigger policy.

    Parameters
    ----------
    threshold : float
        Minimum upside advantage, as a fraction (0.05 = 5 percentage
        points of upside), that a new candidate needs over the worst
        held instrument.
    check_quality : bool
        Revalidate the screened candidates against the quality ranges
        before comparing baskets.
    upside_type : UpsideType
        Upside variant compared by the decision.
    """

    threshold: float = DEFAULT_REBALANCE_THRESHOLD
    check_quality: bool = False
    upside_type: UpsideType = UpsideType.BEST

    def __post_init__(self) -> None:
        if self.threshold < 0:
            msg = f"threshold must be >= 0, got {self.threshold}"
            raise ConfigurationError(msg)

    @classmethod
    def for_threshold(
        cls,
        threshold: float,
        upside_type: UpsideType = UpsideType.BEST,
    ) -> RebalanceConfig:
        return cls(threshold=threshold, upside_type=upside_type)


@dataclass(frozen=True)
class DiversificationConfig:
    """Sector diversification policy.

    Parameters
    ----------
    type : DiversificationType
        ``MAX_COUNT`` caps instruments per sector; ``ALLOCATION``
        targets a fraction of the basket per sector.
    max_count_per_sector : dict[str, int]
        Explicit per-sector caps.  Empty means ``DEFAULT_SECTOR_LIMIT``
        for every sector; otherwise unlisted sectors are unlimited.
    sector_allocation : dict[str, float]
        Target fraction of the basket per sector.
    """

    type: DiversificationType = DiversificationType.MAX_COUNT
    max_count_per_sector: dict[str, int] = field(default_factory=dict)
    sector_allocation: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_count_per_sector and self.sector_allocation:
            msg = "max_count_per_sector and sector_allocation are mutually exclusive"
            raise ConfigurationError(msg)
        if self.type == DiversificationType.ALLOCATION and not self.sector_allocation:
            msg = "allocation diversification requires sector_allocation"
            raise ConfigurationError(msg)
        if self.type == DiversificationType.MAX_COUNT and self.sector_allocation:
            msg = "sector_allocation requires type 'allocation'"
            raise ConfigurationError(msg)
        if any(v < 0 for v in self.max_count_per_sector.values()):
            msg = "max_count_per_sector limits must be >= 0"
            raise ConfigurationError(msg)
        if any(v < 0 for v in self.sector_allocation.values()):
            msg = "sector_allocation fractions must be >= 0"
            raise ConfigurationError(msg)

    def limit_for(self, sector: str) -> int | None:
        """Instrument cap for *sector*; ``None`` means unlimited."""
        if not self.max_count_per_sector:
            return DEFAULT_SECTOR_LIMIT
        return self.max_count_per_sector.get(sector)

    @classmethod
    def for_max_count(
        cls, limits: dict[str, int] | None = None
    ) -> DiversificationConfig:
        return cls(max_count_per_sector=dict(limits or {}))

    @classmethod
    def for_allocation(cls, allocation: dict[str, float]) -> DiversificationConfig:
        return cls(
            type=DiversificationType.ALLOCATION,
            sector_allocation=dict(allocation),
        )


@dataclass(frozen=True)
class IndexConfig:
    """Immutable configuration for one index.

    Parameters
    ----------
    universe : UniverseConfig
        Asset-type allowlist and exclusions.
    liquidity : LiquidityConfig
        Minimum average daily traded value.
    quality : QualityConfig
        Fundamental and score ranges plus the optional strategy.
    upside : UpsideFilterConfig
        Upside filters.
    technical : TechnicalFilterConfig
        Technical fair-price filter.
    selection : SelectionConfig
        Top-N or score-band selection.
    weighting : WeightingConfig
        Weighting scheme.
    rebalance : RebalanceConfig
        Rebalance trigger.
    diversification : DiversificationConfig or None
        Sector limits; ``None`` disables diversification.
    """

    universe: UniverseConfig = field(default_factory=UniverseConfig)
    liquidity: LiquidityConfig = field(default_factory=LiquidityConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)
    upside: UpsideFilterConfig = field(default_factory=UpsideFilterConfig)
    technical: TechnicalFilterConfig = field(default_factory=TechnicalFilterConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    weighting: WeightingConfig = field(default_factory=WeightingConfig)
    rebalance: RebalanceConfig = field(default_factory=RebalanceConfig)
    diversification: DiversificationConfig | None = None

    @property
    def uses_strategy(self) -> bool:
        return self.quality.strategy is not None
