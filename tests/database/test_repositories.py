"""Repository tests against an in-memory SQLite database."""

from __future__ import annotations

from datetime import date

import pytest

from screener.config import IndexConfig
from screener.database.database import DatabaseManager
from screener.database.repositories import (
    NO_CHANGE_ACTION,
    REBALANCE_ACTION,
    IndexRepository,
    ScoreRepository,
    UniverseRepository,
    ValuationRepository,
    upside_percent,
)
from screener.domain.models import ChangeAction, CompositionChange, CompositionRow
from screener.exceptions import ConfigurationError, DataError, PersistenceError
from screener.pipeline import IndexJobRunner, RunStatus
from screener.screening import MarketEnricher, ScreeningEngine

RUN_DATE = date(2024, 3, 4)


@pytest.fixture()
def db_manager():
    manager = DatabaseManager(database_url="sqlite://")
    manager.initialize()
    manager.create_all_tables()
    yield manager
    manager.close()


@pytest.fixture()
def universe(db_manager) -> UniverseRepository:
    repository = UniverseRepository(db_manager)
    repository.save_company(
        {
            "ticker": "PETR4",
            "name": "Petrobras",
            "sector": "Energy",
            "financials": {"year": 2022, "roe": 0.30, "pe": 4.0},
        }
    )
    repository.save_company(
        {
            "ticker": "PETR4",
            "name": "Petrobras",
            "sector": "Energy",
            "overall_score": 71.0,
            "financials": {"year": 2023, "roe": 0.25, "pe": 5.0, "market_cap": 4e11},
        }
    )
    repository.save_company(
        {
            "ticker": "VALE3",
            "name": "Vale",
            "sector": "Materials",
            "financials": {"year": 2023, "roe": 0.18},
        }
    )
    repository.save_company({"ticker": "AAPL34", "name": "Apple BDR", "asset_type": "bdr"})
    repository.save_company({"ticker": "OIBR3", "name": "Oi", "is_active": False})
    return repository


@pytest.fixture()
def index_repository(db_manager) -> IndexRepository:
    return IndexRepository(db_manager)


class TestDatabaseManager:
    def test_sqlite_flags(self, db_manager) -> None:
        assert db_manager.is_initialized
        assert db_manager.is_sqlite

    def test_existing_tables(self, db_manager) -> None:
        tables = db_manager.existing_tables()
        assert "index_definitions" in tables
        assert "companies" in tables
        assert DatabaseManager(database_url="sqlite://").existing_tables() == []

    def test_session_requires_initialize(self) -> None:
        manager = DatabaseManager(database_url="sqlite://")
        with pytest.raises(RuntimeError, match="not initialized"):
            with manager.get_session():
                pass

    def test_close_is_idempotent(self) -> None:
        manager = DatabaseManager(database_url="sqlite://")
        manager.initialize()
        manager.close()
        manager.close()
        assert not manager.is_initialized


class TestUniverseRepository:
    def test_lists_active_instruments(self, universe) -> None:
        tickers = [i.ticker for i in universe.list_instruments()]
        assert tickers == ["AAPL34", "PETR4", "VALE3"]

    def test_asset_type_filter(self, universe) -> None:
        instruments = universe.list_instruments(["bdr"])
        assert [i.ticker for i in instruments] == ["AAPL34"]
        assert instruments[0].fundamentals is None

    def test_latest_fundamentals(self, universe) -> None:
        fundamentals = universe.get_fundamentals(["PETR4", "AAPL34", "XXXX3"])
        assert list(fundamentals) == ["PETR4"]
        assert fundamentals["PETR4"].roe == pytest.approx(0.25)
        assert fundamentals["PETR4"].market_cap == pytest.approx(4e11)
        assert fundamentals["PETR4"].payout is None

    def test_empty_lookup(self, universe) -> None:
        assert universe.get_fundamentals([]) == {}


class TestValuationRepository:
    def test_upside_percent(self) -> None:
        assert upside_percent(15.0, 10.0) == pytest.approx(50.0)
        assert upside_percent(None, 10.0) is None
        assert upside_percent(15.0, 0.0) is None

    def test_best_fundamental_model(self, db_manager, universe) -> None:
        repository = ValuationRepository(db_manager)
        repository.save_estimate("PETR4", "graham", 15.0)
        repository.save_estimate("PETR4", "FCD", 12.0)
        repository.save_estimate("PETR4", "technical", 20.0, min_price=9.0)

        valuations = repository.get_valuations(["PETR4", "VALE3"], {"PETR4": 10.0})

        assert list(valuations) == ["PETR4"]
        valuation = valuations["PETR4"]
        assert valuation.upside == pytest.approx(50.0)
        assert valuation.fair_value_model == "GRAHAM"
        assert valuation.upsides["fcd"] == pytest.approx(20.0)
        assert valuation.upsides["technical"] == pytest.approx(100.0)
        assert valuation.technical_fair_price == pytest.approx(20.0)
        assert valuation.technical_min_price == pytest.approx(9.0)

    def test_without_price(self, db_manager, universe) -> None:
        repository = ValuationRepository(db_manager)
        repository.save_estimate("VALE3", "graham", 80.0)
        valuation = repository.get_valuations(["VALE3"], {})["VALE3"]
        assert valuation.upside is None
        assert valuation.fair_value_model is None

    def test_estimate_updated_in_place(self, db_manager, universe) -> None:
        repository = ValuationRepository(db_manager)
        repository.save_estimate("VALE3", "graham", 80.0)
        repository.save_estimate("VALE3", "graham", 60.0)
        valuation = repository.get_valuations(["VALE3"], {"VALE3": 50.0})["VALE3"]
        assert valuation.upside == pytest.approx(20.0)

    def test_unknown_company_rejected(self, db_manager, universe) -> None:
        with pytest.raises(DataError, match="not found"):
            ValuationRepository(db_manager).save_estimate("ZZZZ3", "graham", 1.0)


class TestScoreRepository:
    def test_cached_scores(self, db_manager, universe) -> None:
        scores = ScoreRepository(db_manager)
        assert scores.get_cached_scores(["PETR4", "VALE3"]) == {"PETR4": 71.0}

    def test_recompute_without_calculator(self, db_manager, universe) -> None:
        instrument = universe.list_instruments()[1]
        with pytest.raises(LookupError):
            ScoreRepository(db_manager).recompute_score(instrument, 10.0)

    def test_recompute_caches_result(self, db_manager, universe) -> None:
        scores = ScoreRepository(db_manager, calculator=lambda instrument, price: 64.0)
        vale = next(i for i in universe.list_instruments() if i.ticker == "VALE3")

        assert scores.recompute_score(vale, 50.0) == pytest.approx(64.0)
        assert scores.get_cached_scores(["VALE3"]) == {"VALE3": 64.0}


class TestIndexRepository:
    def test_save_and_resolve(self, index_repository) -> None:
        saved = index_repository.save_definition(
            "DIV10", "Dividend 10", {"selection": {"topN": 10}}, "High yield"
        )
        by_ticker = index_repository.get_definition("div10")
        by_id = index_repository.get_definition(saved.id)

        assert by_ticker == by_id == saved
        assert saved.description == "High yield"
        assert index_repository.get_definition("NOPE") is None
        assert index_repository.load_config("DIV10").selection.top_n == 10

    def test_update_existing(self, index_repository) -> None:
        first = index_repository.save_definition("DIV10", "Dividend 10", {})
        second = index_repository.save_definition(
            "DIV10", "Dividend Ten", {"weights": {"type": "marketCap"}}
        )
        assert first.id == second.id
        assert second.name == "Dividend Ten"
        assert [d.ticker for d in index_repository.list_definitions()] == ["DIV10"]

    def test_invalid_definition_rejected(self, index_repository) -> None:
        with pytest.raises(ConfigurationError):
            index_repository.save_definition("BAD", "Bad", {"weights": {"type": "magic"}})
        assert index_repository.list_definitions(active_only=False) == []

    def test_load_unknown(self, index_repository) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            index_repository.load_config("NOPE")

    def test_replace_composition(self, index_repository) -> None:
        index_id = index_repository.save_definition("DIV10", "Dividend 10", {}).id
        first = [CompositionRow("AAAA3", 0.4, 10.0), CompositionRow("BBBB3", 0.6, 20.0)]
        index_repository.replace_composition(
            index_id,
            first,
            [CompositionChange(ChangeAction.ENTRY, t, "Added") for t in ("AAAA3", "BBBB3")],
            "Rebalance required: 2 added to the composition",
            RUN_DATE,
        )
        second = [CompositionRow("BBBB3", 1.0, 21.0, RUN_DATE)]
        index_repository.replace_composition(
            index_id,
            second,
            [CompositionChange(ChangeAction.EXIT, "AAAA3", "Removed")],
            "Rebalance required: 1 removed from the composition",
            RUN_DATE,
        )

        current = index_repository.get_current(index_id)
        assert current == [CompositionRow("BBBB3", 1.0, 21.0, RUN_DATE)]

        history = index_repository.get_history(index_id)
        actions = sorted(entry["action"] for entry in history)
        assert actions == sorted(
            [REBALANCE_ACTION, "ENTRY", "ENTRY", REBALANCE_ACTION, "EXIT"]
        )
        assert index_repository.has_log_on(index_id, RUN_DATE, REBALANCE_ACTION)

    def test_failed_replace_keeps_previous(self, index_repository) -> None:
        index_id = index_repository.save_definition("DIV10", "Dividend 10", {}).id
        index_repository.replace_composition(
            index_id, [CompositionRow("AAAA3", 1.0)], [], None, RUN_DATE
        )
        duplicated = [CompositionRow("BBBB3", 0.5), CompositionRow("BBBB3", 0.5)]
        with pytest.raises(PersistenceError, match="replace composition"):
            index_repository.replace_composition(
                index_id,
                duplicated,
                [CompositionChange(ChangeAction.EXIT, "AAAA3", "Removed")],
                "Rebalance required: 1 removed from the composition",
                RUN_DATE,
            )

        assert [r.ticker for r in index_repository.get_current(index_id)] == ["AAAA3"]
        assert index_repository.get_history(index_id) == []

    def test_entry_date_defaults_to_run_date(self, index_repository) -> None:
        index_id = index_repository.save_definition("DIV10", "Dividend 10", {}).id
        index_repository.replace_composition(
            index_id, [CompositionRow("AAAA3", 1.0)], [], None, RUN_DATE
        )
        (row,) = index_repository.get_current(index_id)
        assert row.entry_date == RUN_DATE
        assert index_repository.get_history(index_id) == []

    def test_no_change_log(self, index_repository) -> None:
        index_id = index_repository.save_definition("DIV10", "Dividend 10", {}).id
        assert not index_repository.has_log_on(index_id, RUN_DATE, NO_CHANGE_ACTION)
        index_repository.append_log(index_id, NO_CHANGE_ACTION, "nothing to do", RUN_DATE)
        assert index_repository.has_log_on(index_id, RUN_DATE, NO_CHANGE_ACTION)
        assert not index_repository.has_log_on(
            index_id, date(2024, 3, 5), NO_CHANGE_ACTION
        )
        (entry,) = index_repository.get_history(index_id)
        assert entry["ticker"] == "SYSTEM"
        assert entry["reason"] == "nothing to do"


class TestSqlRunner:
    def test_runs_against_repositories(
        self, db_manager, universe, index_repository, fake_market_data_cls
    ) -> None:
        valuations = ValuationRepository(db_manager)
        valuations.save_estimate("PETR4", "graham", 45.0)
        valuations.save_estimate("VALE3", "graham", 66.0)
        index_repository.save_definition(
            "DIV2",
            "Top two",
            {"assetTypes": ["STOCK"], "selection": {"topN": 2}},
        )
        market_data = fake_market_data_cls({"PETR4": 36.0, "VALE3": 60.0})
        engine = ScreeningEngine(
            universe=universe,
            enricher=MarketEnricher(
                market_data=market_data,
                valuations=valuations,
                scores=ScoreRepository(db_manager, calculator=lambda i, p: 55.0),
                max_workers=1,
                timeout=5.0,
            ),
        )
        runner = IndexJobRunner(
            definitions=index_repository,
            store=index_repository,
            engine=engine,
            fundamentals=universe,
            market_data=market_data,
        )

        first = runner.run("DIV2", run_date=RUN_DATE)
        second = runner.run("DIV2", run_date=RUN_DATE)

        assert first.status == RunStatus.REBALANCED
        assert [r.ticker for r in first.composition] == ["PETR4", "VALE3"]
        current = index_repository.get_current(first.index_id)
        assert sorted(r.ticker for r in current) == ["PETR4", "VALE3"]
        assert {r.entry_price for r in current} == {36.0, 60.0}
        assert second.status == RunStatus.UNCHANGED
        assert index_repository.has_log_on(first.index_id, RUN_DATE, NO_CHANGE_ACTION)
        assert isinstance(index_repository.load_config("DIV2"), IndexConfig)
