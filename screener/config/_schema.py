"""Pydantic v2 schema for the stored JSON index configuration document."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from screener.config._config import (
    AssetType,
    DiversificationConfig,
    FundamentalField,
    IndexConfig,
    LiquidityConfig,
    OrderDirection,
    OrderField,
    QualityConfig,
    Range,
    RebalanceConfig,
    ScoreBand,
    SelectionConfig,
    StrategyRef,
    TechnicalFilterConfig,
    UniverseConfig,
    UpsideFilterConfig,
    UpsideType,
    WeightingConfig,
    WeightType,
)
from screener.exceptions import ConfigurationError

# Document keys for fundamental ranges, including the legacy Portuguese names
_FUNDAMENTAL_KEYS: dict[str, FundamentalField] = {
    "roe": FundamentalField.ROE,
    "netMargin": FundamentalField.NET_MARGIN,
    "margemLiquida": FundamentalField.NET_MARGIN,
    "netDebtToEbitda": FundamentalField.NET_DEBT_TO_EBITDA,
    "dividaLiquidaEbitda": FundamentalField.NET_DEBT_TO_EBITDA,
    "payout": FundamentalField.PAYOUT,
    "marketCap": FundamentalField.MARKET_CAP,
    "pe": FundamentalField.PE,
    "pl": FundamentalField.PE,
    "pb": FundamentalField.PB,
    "pvp": FundamentalField.PB,
}

_ORDER_KEYS: dict[str, OrderField] = {
    "upside": OrderField.UPSIDE,
    "dy": OrderField.DIVIDEND_YIELD,
    "dividendYield": OrderField.DIVIDEND_YIELD,
    "overallScore": OrderField.OVERALL_SCORE,
    "marketCap": OrderField.MARKET_CAP,
    "technicalMargin": OrderField.TECHNICAL_MARGIN,
}

_WEIGHT_KEYS: dict[str, WeightType] = {
    "equal": WeightType.EQUAL,
    "marketCap": WeightType.MARKET_CAP,
    "overallScore": WeightType.OVERALL_SCORE,
    "custom": WeightType.CUSTOM,
}


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RangeSchema(_Document):
    gte: float | None = None
    lte: float | None = None


class StrategySchema(_Document):
    type: str
    params: dict[str, Any] = Field(default_factory=dict)


class LiquiditySchema(_Document):
    min_average_daily_volume: float | None = Field(
        default=None, alias="minAverageDailyVolume"
    )


class TechnicalFairValueSchema(_Document):
    enabled: bool = False
    require_below_fair_price: bool = Field(default=False, alias="requireBelowFairPrice")
    require_above_min_price: bool = Field(default=False, alias="requireAboveMinPrice")


class FiltersSchema(_Document):
    min_upside: float | None = Field(default=None, alias="minUpside")
    require_positive_upside: bool = Field(default=False, alias="requirePositiveUpside")
    technical_fair_value: TechnicalFairValueSchema | None = Field(
        default=None, alias="technicalFairValue"
    )


class ScoreBandSchema(_Document):
    min: float
    max: float
    max_count: int = Field(alias="maxCount")


class SelectionSchema(_Document):
    top_n: int | None = Field(default=None, alias="topN")
    order_by: str = Field(default="upside", alias="orderBy")
    order_direction: Literal["asc", "desc"] = Field(default="desc", alias="orderDirection")
    score_bands: list[ScoreBandSchema] = Field(default_factory=list, alias="scoreBands")


class WeightsSchema(_Document):
    type: str = "equal"
    min_weight: float | None = Field(default=None, alias="minWeight")
    max_weight: float | None = Field(default=None, alias="maxWeight")
    custom_weights: dict[str, float] = Field(default_factory=dict, alias="customWeights")


class RebalanceSchema(_Document):
    threshold: float | None = None
    check_quality: bool = Field(default=False, alias="checkQuality")
    upside_type: UpsideType = Field(default=UpsideType.BEST, alias="upsideType")


class DiversificationSchema(_Document):
    type: Literal["maxCount", "allocation"] = "maxCount"
    max_count_per_sector: dict[str, int] = Field(
        default_factory=dict, alias="maxCountPerSector"
    )
    sector_allocation: dict[str, float] = Field(
        default_factory=dict, alias="sectorAllocation"
    )


class IndexConfigSchema(_Document):
    """Camel-case JSON document stored alongside each index definition."""

    universe: str | None = None
    asset_types: list[AssetType] | None = Field(default=None, alias="assetTypes")
    excluded_tickers: list[str] = Field(default_factory=list, alias="excludedTickers")
    excluded_ticker_patterns: list[str] = Field(
        default_factory=list, alias="excludedTickerPatterns"
    )
    liquidity: LiquiditySchema | None = None
    quality: dict[str, Any] = Field(default_factory=dict)
    filters: FiltersSchema | None = None
    selection: SelectionSchema | None = None
    weights: WeightsSchema | None = None
    rebalance: RebalanceSchema | None = None
    diversification: DiversificationSchema | None = None

    def to_config(self) -> IndexConfig:
        """Convert the validated document into an immutable ``IndexConfig``."""
        return IndexConfig(
            universe=self._universe(),
            liquidity=LiquidityConfig(
                min_average_daily_volume=(
                    self.liquidity.min_average_daily_volume if self.liquidity else None
                )
            ),
            quality=self._quality(),
            upside=self._upside(),
            technical=self._technical(),
            selection=self._selection(),
            weighting=self._weighting(),
            rebalance=self._rebalance(),
            diversification=self._diversification(),
        )

    def _universe(self) -> UniverseConfig:
        asset_types: tuple[AssetType, ...] | None = None
        if self.asset_types:
            asset_types = tuple(self.asset_types)
        elif self.universe and self.universe.upper() == "B3":
            asset_types = (AssetType.STOCK,)
        return UniverseConfig(
            asset_types=asset_types,
            excluded_tickers=tuple(self.excluded_tickers),
            excluded_patterns=tuple(self.excluded_ticker_patterns),
        )

    def _quality(self) -> QualityConfig:
        ranges: dict[FundamentalField, Range] = {}
        overall_score: Range | None = None
        strategy: StrategyRef | None = None
        for key, value in self.quality.items():
            if value is None:
                continue
            if key == "strategy":
                parsed = StrategySchema.model_validate(value)
                strategy = StrategyRef(type=parsed.type, params=dict(parsed.params))
            elif key == "overallScore":
                parsed_range = RangeSchema.model_validate(value)
                overall_score = Range(gte=parsed_range.gte, lte=parsed_range.lte)
            elif key in _FUNDAMENTAL_KEYS:
                parsed_range = RangeSchema.model_validate(value)
                ranges[_FUNDAMENTAL_KEYS[key]] = Range(
                    gte=parsed_range.gte, lte=parsed_range.lte
                )
            else:
                msg = f"unknown quality field {key!r}"
                raise ConfigurationError(msg)
        return QualityConfig(ranges=ranges, overall_score=overall_score, strategy=strategy)

    def _upside(self) -> UpsideFilterConfig:
        if self.filters is None:
            return UpsideFilterConfig()
        return UpsideFilterConfig(
            require_positive=self.filters.require_positive_upside,
            min_upside=self.filters.min_upside,
        )

    def _technical(self) -> TechnicalFilterConfig:
        if self.filters is None or self.filters.technical_fair_value is None:
            return TechnicalFilterConfig()
        tech = self.filters.technical_fair_value
        return TechnicalFilterConfig(
            enabled=tech.enabled,
            require_below_fair_price=tech.require_below_fair_price,
            require_above_min_price=tech.require_above_min_price,
        )

    def _selection(self) -> SelectionConfig:
        if self.selection is None:
            return SelectionConfig()
        if self.selection.order_by not in _ORDER_KEYS:
            msg = f"unknown orderBy field {self.selection.order_by!r}"
            raise ConfigurationError(msg)
        return SelectionConfig(
            top_n=self.selection.top_n,
            score_bands=tuple(
                ScoreBand(min=b.min, max=b.max, max_count=b.max_count)
                for b in self.selection.score_bands
            ),
            order_by=_ORDER_KEYS[self.selection.order_by],
            direction=OrderDirection(self.selection.order_direction),
        )

    def _weighting(self) -> WeightingConfig:
        if self.weights is None:
            return WeightingConfig()
        if self.weights.type not in _WEIGHT_KEYS:
            msg = f"unknown weights type {self.weights.type!r}"
            raise ConfigurationError(msg)
        kwargs: dict[str, Any] = {
            "type": _WEIGHT_KEYS[self.weights.type],
            "custom_weights": dict(self.weights.custom_weights),
        }
        if self.weights.min_weight is not None:
            kwargs["min_weight"] = self.weights.min_weight
        if self.weights.max_weight is not None:
            kwargs["max_weight"] = self.weights.max_weight
        return WeightingConfig(**kwargs)

    def _rebalance(self) -> RebalanceConfig:
        if self.rebalance is None:
            return RebalanceConfig()
        kwargs: dict[str, Any] = {
            "check_quality": self.rebalance.check_quality,
            "upside_type": self.rebalance.upside_type,
        }
        if self.rebalance.threshold is not None:
            kwargs["threshold"] = self.rebalance.threshold
        return RebalanceConfig(**kwargs)

    def _diversification(self) -> DiversificationConfig | None:
        if self.diversification is None:
            return None
        div = self.diversification
        # Only the option matching the declared type drives diversification
        if div.type == "allocation":
            return DiversificationConfig.for_allocation(div.sector_allocation)
        return DiversificationConfig.for_max_count(div.max_count_per_sector)


def parse_index_config(document: dict[str, Any]) -> IndexConfig:
    """Validate a stored JSON document and build an ``IndexConfig``.

    Parameters
    ----------
    document : dict
        Decoded JSON configuration with camel-case keys.

    Returns
    -------
    IndexConfig
        Immutable configuration.

    Raises
    ------
    ConfigurationError
        If the document fails validation or holds conflicting options.
    """
    try:
        return IndexConfigSchema.model_validate(document).to_config()
    except PydanticValidationError as exc:
        msg = f"invalid index configuration: {exc}"
        raise ConfigurationError(msg) from exc
