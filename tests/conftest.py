"""Shared test fixtures for the screener test suite."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import date
from typing import Any

import pytest

from screener.domain.models import (
    Candidate,
    CompositionChange,
    CompositionRow,
    Fundamentals,
    IndexDefinitionInfo,
    Instrument,
    Valuation,
)
from screener.screening import MarketEnricher, ScreeningEngine

# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeUniverse:
    """Universe and fundamentals source over a fixed instrument list."""

    def __init__(self, instruments: Sequence[Instrument], fail: bool = False) -> None:
        self.instruments = list(instruments)
        self.fail = fail

    def list_instruments(self, asset_types: Sequence[str] | None = None) -> list[Instrument]:
        if self.fail:
            raise RuntimeError("connection refused")
        if not asset_types:
            return list(self.instruments)
        allowed = {t.upper() for t in asset_types}
        return [i for i in self.instruments if i.asset_type.upper() in allowed]

    def get_fundamentals(self, tickers: Sequence[str]) -> dict[str, Fundamentals]:
        wanted = set(tickers)
        return {
            i.ticker: i.fundamentals
            for i in self.instruments
            if i.ticker in wanted and i.fundamentals is not None
        }


class FakeMarketData:
    """Prices and traded values from dicts."""

    def __init__(
        self,
        prices: Mapping[str, float],
        volumes: Mapping[str, float] | None = None,
        fail_prices: bool = False,
        fail_volumes: bool = False,
    ) -> None:
        self.prices = dict(prices)
        self.volumes = dict(volumes or {})
        self.fail_prices = fail_prices
        self.fail_volumes = fail_volumes
        self.volume_calls = 0

    def get_prices(self, tickers: Sequence[str]) -> dict[str, float]:
        if self.fail_prices:
            raise RuntimeError("quote service unavailable")
        return {t: self.prices[t] for t in tickers if t in self.prices}

    def get_average_daily_volumes(
        self, tickers: Sequence[str], days: int = 30
    ) -> dict[str, float]:
        self.volume_calls += 1
        if self.fail_volumes:
            raise RuntimeError("volume service unavailable")
        return {t: self.volumes[t] for t in tickers if t in self.volumes}


class FakeValuations:
    """Valuations from a dict keyed by ticker."""

    def __init__(self, valuations: Mapping[str, Valuation] | None = None) -> None:
        self.valuations = dict(valuations or {})

    def get_valuations(
        self, tickers: Sequence[str], prices: Mapping[str, float]
    ) -> dict[str, Valuation]:
        return {t: self.valuations[t] for t in tickers if t in self.valuations}


class FakeScores:
    """Cached scores plus a recompute table; listed tickers raise."""

    def __init__(
        self,
        cached: Mapping[str, float] | None = None,
        computed: Mapping[str, float | None] | None = None,
        failing: Sequence[str] = (),
    ) -> None:
        self.cached = dict(cached or {})
        self.computed = dict(computed or {})
        self.failing = set(failing)
        self.recomputed: list[str] = []

    def get_cached_scores(self, tickers: Sequence[str]) -> dict[str, float]:
        return {t: self.cached[t] for t in tickers if t in self.cached}

    def recompute_score(self, instrument: Instrument, price: float | None) -> float | None:
        self.recomputed.append(instrument.ticker)
        if instrument.ticker in self.failing:
            raise RuntimeError("scoring service unavailable")
        return self.computed.get(instrument.ticker)


class FakeStore:
    """Composition store and definition source held in memory."""

    def __init__(
        self,
        definitions: Sequence[IndexDefinitionInfo] = (),
        rows: Mapping[str, Sequence[CompositionRow]] | None = None,
    ) -> None:
        self.definitions = {d.id: d for d in definitions}
        self.rows = {k: list(v) for k, v in (rows or {}).items()}
        self.logs: list[tuple[str, date, str, str, str]] = []
        self.replacements: list[tuple[str, list[CompositionChange], str | None]] = []

    def get_definition(self, key: str) -> IndexDefinitionInfo | None:
        if key in self.definitions:
            return self.definitions[key]
        for definition in self.definitions.values():
            if definition.ticker.upper() == key.upper():
                return definition
        return None

    def get_current(self, index_id: str) -> list[CompositionRow]:
        return list(self.rows.get(index_id, []))

    def replace_composition(
        self,
        index_id: str,
        rows: Sequence[CompositionRow],
        changes: Sequence[CompositionChange],
        summary: str | None,
        run_date: date,
    ) -> None:
        self.rows[index_id] = list(rows)
        self.replacements.append((index_id, list(changes), summary))
        if changes and summary:
            self.logs.append((index_id, run_date, "REBALANCE", "SYSTEM", summary))
        for change in changes:
            self.logs.append(
                (index_id, run_date, change.action.value, change.ticker, change.reason)
            )

    def has_log_on(self, index_id: str, run_date: date, action: str) -> bool:
        return any(
            log[0] == index_id and log[1] == run_date and log[2] == action
            for log in self.logs
        )

    def append_log(self, index_id: str, action: str, reason: str, run_date: date) -> None:
        self.logs.append((index_id, run_date, action, "SYSTEM", reason))


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_instrument() -> Callable[..., Instrument]:
    """Factory for instruments with healthy default fundamentals."""

    def _make(
        ticker: str,
        sector: str | None = "Energy",
        asset_type: str = "STOCK",
        with_fundamentals: bool = True,
        **fundamentals: Any,
    ) -> Instrument:
        values: dict[str, Any] = {
            "roe": 0.15,
            "net_margin": 0.12,
            "net_debt_to_ebitda": 1.5,
            "payout": 0.40,
            "market_cap": 10_000_000_000.0,
            "pe": 9.0,
            "pb": 1.4,
            "dividend_yield": 0.06,
        }
        values.update(fundamentals)
        return Instrument(
            ticker=ticker,
            name=f"{ticker} S.A.",
            sector=sector,
            asset_type=asset_type,
            fundamentals=Fundamentals(**values) if with_fundamentals else None,
            company_id=f"id-{ticker}",
        )

    return _make


@pytest.fixture()
def make_candidate() -> Callable[..., Candidate]:
    """Factory for enriched candidates."""

    def _make(ticker: str, **kwargs: Any) -> Candidate:
        values: dict[str, Any] = {
            "name": f"{ticker} S.A.",
            "sector": "Energy",
            "price": 10.0,
        }
        values.update(kwargs)
        return Candidate(ticker=ticker, **values)

    return _make


@pytest.fixture()
def build_engine() -> Callable[..., ScreeningEngine]:
    """Factory wiring a screening engine to in-memory collaborators.

    Every instrument gets a price of 10.0 unless *prices* is given.
    """

    def _build(
        instruments: Sequence[Instrument],
        prices: Mapping[str, float] | None = None,
        volumes: Mapping[str, float] | None = None,
        valuations: Mapping[str, Valuation] | None = None,
        cached_scores: Mapping[str, float] | None = None,
        computed_scores: Mapping[str, float | None] | None = None,
        failing_scores: Sequence[str] = (),
        ranking: Any = None,
        universe_fails: bool = False,
    ) -> ScreeningEngine:
        if prices is None:
            prices = {i.ticker: 10.0 for i in instruments}
        enricher = MarketEnricher(
            market_data=FakeMarketData(prices, volumes),
            valuations=FakeValuations(valuations),
            scores=FakeScores(cached_scores, computed_scores, failing_scores),
            max_workers=4,
            timeout=5.0,
        )
        return ScreeningEngine(
            universe=FakeUniverse(instruments, fail=universe_fails),
            enricher=enricher,
            ranking=ranking,
        )

    return _build


@pytest.fixture()
def upside_valuations() -> Callable[[Mapping[str, float]], dict[str, Valuation]]:
    """Build graham-model valuations from a ticker → upside mapping."""

    def _make(upsides: Mapping[str, float]) -> dict[str, Valuation]:
        return {
            ticker: Valuation(
                ticker=ticker,
                upside=value,
                fair_value_model="GRAHAM",
                upsides={"graham": value},
            )
            for ticker, value in upsides.items()
        }

    return _make


@pytest.fixture()
def fake_universe_cls() -> type[FakeUniverse]:
    return FakeUniverse


@pytest.fixture()
def fake_market_data_cls() -> type[FakeMarketData]:
    return FakeMarketData


@pytest.fixture()
def fake_valuations_cls() -> type[FakeValuations]:
    return FakeValuations


@pytest.fixture()
def fake_scores_cls() -> type[FakeScores]:
    return FakeScores


@pytest.fixture()
def fake_store_cls() -> type[FakeStore]:
    return FakeStore
