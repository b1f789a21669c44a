"""Screening filters composed in a filter pipeline."""

from screener.filters._exclusion import AssetTypeFilter, ExclusionFilter, compile_pattern
from screener.filters._liquidity import (
    DEFAULT_MIN_VOLUME_COVERAGE,
    LiquidityFilter,
    build_liquidity_filter,
    volume_coverage,
)
from screener.filters._pipeline import FilterPipeline
from screener.filters._quality import (
    FIELD_FORMATS,
    FinancialDataFilter,
    QualityFilter,
    ScoreRangeFilter,
    check_fundamentals,
    check_range,
    check_score,
)
from screener.filters._valuation import TechnicalFilter, UpsideFilter

__all__ = [
    "DEFAULT_MIN_VOLUME_COVERAGE",
    "FIELD_FORMATS",
    "AssetTypeFilter",
    "ExclusionFilter",
    "FilterPipeline",
    "FinancialDataFilter",
    "LiquidityFilter",
    "QualityFilter",
    "ScoreRangeFilter",
    "TechnicalFilter",
    "UpsideFilter",
    "build_liquidity_filter",
    "check_fundamentals",
    "check_range",
    "check_score",
    "compile_pattern",
    "volume_coverage",
]
