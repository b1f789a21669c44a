"""End-to-end screening engine scenarios."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from screener.config import (
    AssetType,
    DiversificationConfig,
    FundamentalField,
    IndexConfig,
    LiquidityConfig,
    QualityConfig,
    Range,
    SelectionConfig,
    StrategyRef,
    UniverseConfig,
    UpsideFilterConfig,
)
from screener.domain.models import StrategyResult
from screener.exceptions import EnrichmentError, UniverseError


class TestQualityScenario:
    def test_null_roe_excluded_before_enrichment(self, make_instrument, build_engine) -> None:
        instruments = [
            make_instrument("AAAA3", roe=0.12),
            make_instrument("BBBB3", roe=0.20),
            make_instrument("CCCC3", roe=0.15),
            make_instrument("DDDD3", roe=None),
            make_instrument("EEEE3", roe=None),
        ]
        cfg = IndexConfig(
            quality=QualityConfig(ranges={FundamentalField.ROE: Range(gte=0.10)})
        )
        engine = build_engine(instruments)

        result = engine.run(cfg)

        assert result.stage_counts["universe"] == 5
        assert result.stage_counts["after_quality"] == 3
        assert result.stage_counts["enriched"] == 3
        assert result.rejections["DDDD3"] == "[Quality] ROE not available"
        assert result.rejections["EEEE3"] == "[Quality] ROE not available"
        assert sorted(c.ticker for c in result.selected) == ["AAAA3", "BBBB3", "CCCC3"]

    def test_instruments_without_fundamentals_skipped(
        self, make_instrument, build_engine
    ) -> None:
        instruments = [
            make_instrument("AAAA3"),
            make_instrument("BBBB3", with_fundamentals=False),
        ]
        result = build_engine(instruments).run(IndexConfig())
        assert [c.ticker for c in result.selected] == ["AAAA3"]
        assert result.rejections["BBBB3"] == "[FinancialData] no financial data available"


class TestDiversificationScenario:
    def test_six_financials_limited_to_four(
        self, make_instrument, build_engine, upside_valuations
    ) -> None:
        tickers = [f"BNK{c}3" for c in "ABCDEF"]
        instruments = [make_instrument(t, sector="Financials") for t in tickers]
        valuations = upside_valuations({t: float(60 - i) for i, t in enumerate(tickers)})
        cfg = IndexConfig(diversification=DiversificationConfig.for_max_count())

        result = build_engine(instruments, valuations=valuations).run(cfg)

        assert len(result.selected) == 4
        assert [c.ticker for c in result.selected] == tickers[:4]
        assert result.removed_by_diversification == tickers[4:]
        assert result.stage_counts["diversified"] == 4
        assert result.diversified_sector_counts == {"Financials": 4}


class TestUniverseScope:
    def test_asset_types_and_exclusions(self, make_instrument, build_engine) -> None:
        instruments = [
            make_instrument("PETR4"),
            make_instrument("AAPL34", asset_type="BDR"),
            make_instrument("KNRI11"),
            make_instrument("BBAS3"),
        ]
        cfg = IndexConfig(
            universe=UniverseConfig(
                asset_types=(AssetType.STOCK,),
                excluded_tickers=("bbas3",),
                excluded_patterns=("*11",),
            )
        )
        result = build_engine(instruments).run(cfg)

        assert [c.ticker for c in result.selected] == ["PETR4"]
        assert result.stage_counts["universe"] == 3
        assert result.stage_counts["after_exclusions"] == 1
        assert "excluded by pattern" in result.rejections["KNRI11"]

    def test_universe_failure_is_fatal(self, make_instrument, build_engine) -> None:
        engine = build_engine([make_instrument("AAAA3")], universe_fails=True)
        with pytest.raises(UniverseError, match="connection refused"):
            engine.run(IndexConfig())

    def test_price_outage_is_fatal(self, make_instrument, build_engine) -> None:
        engine = build_engine([make_instrument("AAAA3")], prices={})
        with pytest.raises(EnrichmentError):
            engine.run(IndexConfig())

    def test_empty_universe(self, build_engine) -> None:
        result = build_engine([]).run(IndexConfig())
        assert result.is_empty
        assert result.stage_counts["universe"] == 0


class TestCandidateFilters:
    def test_upside_and_score_filters(
        self, make_instrument, build_engine, upside_valuations
    ) -> None:
        instruments = [make_instrument(t) for t in ("AAAA3", "BBBB3", "CCCC3", "DDDD3")]
        valuations = upside_valuations({"AAAA3": 30.0, "BBBB3": -5.0, "CCCC3": 20.0})
        cfg = IndexConfig(
            quality=QualityConfig(overall_score=Range(gte=60)),
            upside=UpsideFilterConfig(require_positive=True),
        )
        engine = build_engine(
            instruments,
            valuations=valuations,
            cached_scores={"AAAA3": 80.0, "BBBB3": 90.0, "DDDD3": 75.0},
            failing_scores=["CCCC3"],
        )

        result = engine.run(cfg)

        assert [c.ticker for c in result.selected] == ["AAAA3"]
        assert "not positive" in result.rejections["BBBB3"]
        assert result.rejections["CCCC3"] == "[OverallScore] Overall score not available"
        assert result.rejections["DDDD3"] == "[Upside] upside not available"
        assert [f.ticker for f in result.score_failures] == ["CCCC3"]

    def test_liquidity_relaxed_without_data(self, make_instrument, build_engine) -> None:
        instruments = [make_instrument(f"T{c}3") for c in "ABCDEFGHIJ"]
        cfg = IndexConfig(liquidity=LiquidityConfig(min_average_daily_volume=1e6))
        engine = build_engine(instruments, volumes={"TA3": 10.0})

        result = engine.run(cfg)

        assert result.liquidity_skipped
        assert len(result.selected) == 10

    def test_liquidity_applied_with_data(self, make_instrument, build_engine) -> None:
        instruments = [make_instrument(t) for t in ("AAAA3", "BBBB3")]
        cfg = IndexConfig(liquidity=LiquidityConfig(min_average_daily_volume=1e6))
        engine = build_engine(instruments, volumes={"AAAA3": 5e6, "BBBB3": 1e3})

        result = engine.run(cfg)

        assert not result.liquidity_skipped
        assert [c.ticker for c in result.selected] == ["AAAA3"]
        assert result.rejections["BBBB3"].startswith("[Liquidity]")


class TestRankingAndDedup:
    def test_dedup_after_default_ordering(
        self, make_instrument, build_engine, upside_valuations
    ) -> None:
        instruments = [make_instrument(t) for t in ("PETR3", "PETR4", "VALE3")]
        valuations = upside_valuations({"PETR3": 10.0, "PETR4": 20.0, "VALE3": 15.0})

        result = build_engine(instruments, valuations=valuations).run(IndexConfig())

        assert [c.ticker for c in result.selected] == ["PETR4", "VALE3"]
        assert result.rejections["PETR3"] == "[Dedup] duplicate share class of PETR4"
        assert [c.ticker for c in result.candidates_before_selection] == ["PETR4", "VALE3"]

    def test_strategy_order_preserved(
        self, make_instrument, build_engine, upside_valuations
    ) -> None:
        instruments = [make_instrument(t) for t in ("AAAA3", "BBBB3", "CCCC3")]
        ranking = MagicMock()
        ranking.rank.return_value = [
            StrategyResult("CCCC3", upside=5.0),
            StrategyResult("AAAA3", upside=50.0),
        ]
        cfg = IndexConfig(
            quality=QualityConfig(strategy=StrategyRef(type="graham")),
            selection=SelectionConfig(top_n=2),
        )
        engine = build_engine(
            instruments,
            valuations=upside_valuations({"AAAA3": 1.0, "BBBB3": 2.0, "CCCC3": 3.0}),
            ranking=ranking,
        )

        result = engine.run(cfg)

        assert result.strategy_applied
        assert [c.ticker for c in result.selected] == ["CCCC3", "AAAA3"]
        assert result.rejections["BBBB3"] == "[Strategy] not ranked by strategy 'graham'"
        assert ranking.rank.call_args.args[3] == 4

    def test_strategy_without_collaborator_uses_default_order(
        self, make_instrument, build_engine, upside_valuations
    ) -> None:
        instruments = [make_instrument(t) for t in ("AAAA3", "BBBB3")]
        cfg = IndexConfig(quality=QualityConfig(strategy=StrategyRef(type="graham")))
        engine = build_engine(
            instruments, valuations=upside_valuations({"AAAA3": 1.0, "BBBB3": 2.0})
        )

        result = engine.run(cfg)

        assert not result.strategy_applied
        assert [c.ticker for c in result.selected] == ["BBBB3", "AAAA3"]
