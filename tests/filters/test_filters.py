"""Tests for range predicates and screening filters."""

from __future__ import annotations

import logging

import pytest

from screener.config import (
    FundamentalField,
    LiquidityConfig,
    QualityConfig,
    Range,
    TechnicalFilterConfig,
    UniverseConfig,
    UpsideFilterConfig,
)
from screener.filters import (
    AssetTypeFilter,
    ExclusionFilter,
    FilterPipeline,
    FinancialDataFilter,
    LiquidityFilter,
    QualityFilter,
    ScoreRangeFilter,
    TechnicalFilter,
    UpsideFilter,
    build_liquidity_filter,
    check_fundamentals,
    check_range,
    check_score,
    compile_pattern,
    volume_coverage,
)


class TestCheckRange:
    def test_inside(self) -> None:
        assert check_range("ROE", 0.15, Range(gte=0.10)) is None

    def test_missing_value(self) -> None:
        assert check_range("ROE", None, Range(gte=0.10)) == "ROE not available"

    def test_below_and_above(self) -> None:
        assert "below minimum" in check_range("P/E", 2.0, Range(gte=3.0))
        assert "above maximum" in check_range("P/E", 31.2, Range(lte=25.0))


class TestCheckFundamentals:
    def test_no_ranges_always_passes(self) -> None:
        assert check_fundamentals(None, {}) is None

    def test_no_data(self) -> None:
        ranges = {FundamentalField.ROE: Range(gte=0.1)}
        assert check_fundamentals(None, ranges) == "no financial data available"

    def test_formatted_reasons(self, make_instrument) -> None:
        low_roe = make_instrument("AAAA3", roe=0.08).fundamentals
        reason = check_fundamentals(low_roe, {FundamentalField.ROE: Range(gte=0.10)})
        assert reason == "ROE 8.0% below minimum 10.0%"

        pricey = make_instrument("BBBB3", pe=31.2).fundamentals
        reason = check_fundamentals(pricey, {FundamentalField.PE: Range(lte=25)})
        assert reason == "P/E 31.20 above maximum 25.00"

        small = make_instrument("CCCC3", market_cap=1.2e9).fundamentals
        reason = check_fundamentals(small, {FundamentalField.MARKET_CAP: Range(gte=2e9)})
        assert reason == "Market cap 1.20bn below minimum 2.00bn"

    def test_null_field_fails(self, make_instrument) -> None:
        fundamentals = make_instrument("AAAA3", payout=None).fundamentals
        reason = check_fundamentals(fundamentals, {FundamentalField.PAYOUT: Range(lte=0.9)})
        assert reason == "Payout not available"

    def test_check_score(self) -> None:
        assert check_score(None, None) is None
        assert check_score(None, Range(gte=50)) == "Overall score not available"
        assert check_score(42.0, Range(gte=50)) == "Overall score 42 below minimum 50"


class TestUniverseFilters:
    def test_compile_pattern(self) -> None:
        assert compile_pattern("*11")("TAEE11")
        assert not compile_pattern("*11")("PETR4")
        assert compile_pattern("itub*")("ITUB4")
        assert compile_pattern("vale3")("VALE3")
        assert not compile_pattern("VALE3")("VALE")

    def test_exclusion_by_list_is_case_insensitive(self, make_instrument) -> None:
        f = ExclusionFilter(UniverseConfig(excluded_tickers=("petr4",)))
        passed, reason = f.filter(make_instrument("PETR4"))
        assert not passed
        assert reason == "excluded by ticker list"
        assert f.filter(make_instrument("PETR3"))[0]

    def test_exclusion_by_pattern(self, make_instrument) -> None:
        f = ExclusionFilter(UniverseConfig(excluded_patterns=("*11",)))
        passed, reason = f.filter(make_instrument("KNRI11"))
        assert not passed
        assert "'*11'" in reason
        assert f.active

    def test_inactive_exclusion(self) -> None:
        assert not ExclusionFilter(UniverseConfig()).active

    def test_asset_type(self, make_instrument) -> None:
        f = AssetTypeFilter(("STOCK",))
        assert f.filter(make_instrument("PETR4"))[0]
        passed, reason = f.filter(make_instrument("AAPL34", asset_type="BDR"))
        assert not passed
        assert "BDR" in reason


class TestQualityFilters:
    def test_financial_data_filter(self, make_instrument) -> None:
        f = FinancialDataFilter()
        assert f.filter(make_instrument("AAAA3"))[0]
        assert f.filter(make_instrument("BBBB3", with_fundamentals=False)) == (
            False,
            "no financial data available",
        )

    def test_quality_filter(self, make_instrument) -> None:
        f = QualityFilter(QualityConfig(ranges={FundamentalField.ROE: Range(gte=0.10)}))
        assert f.filter(make_instrument("AAAA3", roe=0.12))[0]
        assert not f.filter(make_instrument("BBBB3", roe=None))[0]

    def test_score_range_filter(self, make_candidate) -> None:
        f = ScoreRangeFilter(Range(gte=60))
        assert f.filter(make_candidate("AAAA3", overall_score=75))[0]
        assert not f.filter(make_candidate("BBBB3", overall_score=None))[0]


class TestLiquidity:
    def test_volume_coverage(self) -> None:
        assert volume_coverage({"A": 1.0, "B": 2.0}, ["A", "B", "C", "D"]) == 0.5
        assert volume_coverage({}, []) == 0.0

    def test_filter_rejects_illiquid(self, make_candidate) -> None:
        f = LiquidityFilter(min_average_daily_volume=1_000_000)
        assert f.filter(make_candidate("A", average_daily_volume=2_000_000))[0]
        passed, reason = f.filter(make_candidate("B", average_daily_volume=10_000))
        assert not passed
        assert "below minimum" in reason

    def test_missing_volume_passes(self, make_candidate) -> None:
        f = LiquidityFilter(min_average_daily_volume=1_000_000)
        assert f.filter(make_candidate("A", average_daily_volume=None))[0]

    def test_built_when_coverage_sufficient(self) -> None:
        cfg = LiquidityConfig(min_average_daily_volume=1_000)
        f = build_liquidity_filter(cfg, {"A": 1.0, "B": 1.0}, ["A", "B", "C"])
        assert isinstance(f, LiquidityFilter)

    def test_skipped_when_coverage_low(self, caplog: pytest.LogCaptureFixture) -> None:
        cfg = LiquidityConfig(min_average_daily_volume=1_000)
        tickers = [f"T{i}" for i in range(10)]
        with caplog.at_level(logging.WARNING, logger="screener.filters._liquidity"):
            f = build_liquidity_filter(cfg, {"T0": 5.0, "T1": 5.0}, tickers)
        assert f is None
        assert len([r for r in caplog.records if "Skipping liquidity" in r.message]) == 1

    def test_custom_coverage_cutoff(self) -> None:
        cfg = LiquidityConfig(min_average_daily_volume=1_000)
        tickers = [f"T{i}" for i in range(10)]
        volumes = {"T0": 5.0, "T1": 5.0}
        assert build_liquidity_filter(cfg, volumes, tickers, min_coverage=0.2) is not None

    def test_not_configured(self) -> None:
        assert build_liquidity_filter(LiquidityConfig(), {"A": 1.0}, ["A"]) is None


class TestUpsideFilter:
    def test_require_positive(self, make_candidate) -> None:
        f = UpsideFilter(UpsideFilterConfig(require_positive=True))
        assert f.filter(make_candidate("A", upside=5.0))[0]
        assert not f.filter(make_candidate("B", upside=0.0))[0]
        assert f.filter(make_candidate("C", upside=None)) == (False, "upside not available")

    def test_min_upside(self, make_candidate) -> None:
        f = UpsideFilter(UpsideFilterConfig(min_upside=15.0))
        assert f.filter(make_candidate("A", upside=15.0))[0]
        passed, reason = f.filter(make_candidate("B", upside=14.9))
        assert not passed
        assert reason == "upside 14.9% below minimum 15.0%"


class TestTechnicalFilter:
    def test_below_fair_price(self, make_candidate) -> None:
        f = TechnicalFilter(TechnicalFilterConfig(enabled=True, require_below_fair_price=True))
        assert f.filter(make_candidate("A", price=9.0, technical_fair_price=10.0))[0]
        assert not f.filter(make_candidate("B", price=11.0, technical_fair_price=10.0))[0]

    def test_above_min_price(self, make_candidate) -> None:
        f = TechnicalFilter(TechnicalFilterConfig(enabled=True, require_above_min_price=True))
        assert f.filter(make_candidate("A", price=9.0, technical_min_price=8.0))[0]
        assert not f.filter(make_candidate("B", price=7.0, technical_min_price=8.0))[0]

    def test_missing_analysis(self, make_candidate) -> None:
        informative = TechnicalFilter(TechnicalFilterConfig(enabled=True))
        assert informative.filter(make_candidate("A"))[0]

        strict = TechnicalFilter(
            TechnicalFilterConfig(enabled=True, require_below_fair_price=True)
        )
        assert strict.filter(make_candidate("A")) == (
            False,
            "technical analysis not available",
        )


class TestFilterPipeline:
    def test_first_failure_wins_and_stats(self, make_instrument) -> None:
        pipeline: FilterPipeline = FilterPipeline()
        pipeline.add_filter(ExclusionFilter(UniverseConfig(excluded_tickers=("BBBB3",))))
        pipeline.add_filter(FinancialDataFilter())

        instruments = [
            make_instrument("AAAA3"),
            make_instrument("BBBB3"),
            make_instrument("CCCC3", with_fundamentals=False),
        ]
        passed, rejected = pipeline.run(instruments, lambda i: i.ticker)

        assert [i.ticker for i in passed] == ["AAAA3"]
        assert rejected["BBBB3"] == "[Exclusion] excluded by ticker list"
        assert rejected["CCCC3"] == "[FinancialData] no financial data available"
        summary = pipeline.get_summary()
        assert summary["Exclusion"] == {"passed": 2, "failed": 1}
        assert summary["FinancialData"] == {"passed": 1, "failed": 1}
        assert len(pipeline) == 2

    def test_reset_stats(self, make_instrument) -> None:
        pipeline: FilterPipeline = FilterPipeline()
        pipeline.add_filter(FinancialDataFilter())
        pipeline.run([make_instrument("AAAA3")], lambda i: i.ticker)
        pipeline.reset_stats()
        assert pipeline.get_summary()["FinancialData"] == {"passed": 0, "failed": 0}
