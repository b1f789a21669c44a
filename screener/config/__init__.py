"""Index configuration: immutable policies and the JSON document parser."""

from screener.config._config import (
    DEFAULT_MAX_WEIGHT,
    DEFAULT_MIN_WEIGHT,
    DEFAULT_REBALANCE_THRESHOLD,
    DEFAULT_SECTOR_LIMIT,
    DEFAULT_TOP_N,
    UNKNOWN_SECTOR,
    VALUATION_MODELS,
    AssetType,
    DiversificationConfig,
    DiversificationType,
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
from screener.config._schema import IndexConfigSchema, parse_index_config

__all__ = [
    "DEFAULT_MAX_WEIGHT",
    "DEFAULT_MIN_WEIGHT",
    "DEFAULT_REBALANCE_THRESHOLD",
    "DEFAULT_SECTOR_LIMIT",
    "DEFAULT_TOP_N",
    "UNKNOWN_SECTOR",
    "VALUATION_MODELS",
    "AssetType",
    "DiversificationConfig",
    "DiversificationType",
    "FundamentalField",
    "IndexConfig",
    "IndexConfigSchema",
    "LiquidityConfig",
    "OrderDirection",
    "OrderField",
    "QualityConfig",
    "Range",
    "RebalanceConfig",
    "ScoreBand",
    "SelectionConfig",
    "StrategyRef",
    "TechnicalFilterConfig",
    "UniverseConfig",
    "UpsideFilterConfig",
    "UpsideType",
    "WeightingConfig",
    "WeightType",
    "parse_index_config",
]
