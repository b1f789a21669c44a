"""Market enrichment: batch price, traded value, valuation and score lookups.

Each phase fans out independent batch calls on a thread pool and joins
them before the next phase starts:

1. prices, traded values (only when liquidity is configured) and cached
   scores;
2. valuations (which need prices) and per-candidate score recomputation.

Per-candidate score failures are isolated into ``ScoreFailed`` outcomes.
A failed or timed-out price or valuation phase raises ``EnrichmentError``.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Any, Union

from screener.config import IndexConfig
from screener.domain.models import Candidate, Instrument, ScoreDiagnostics, Valuation
from screener.domain.protocols import MarketDataProvider, ScoreProvider, ValuationProvider
from screener.exceptions import EnrichmentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreComputed:
    """Successful score recomputation."""

    ticker: str
    score: float | None


@dataclass(frozen=True)
class ScoreFailed:
    """Failed score recomputation with the error message."""

    ticker: str
    error: str


ScoreOutcome = Union[ScoreComputed, ScoreFailed]


@dataclass
class EnrichmentResult:
    """Candidates built from enriched instruments.

    Attributes
    ----------
    candidates : list[Candidate]
        Instruments with a resolvable price, in input order.
    volumes : dict[str, float]
        Traded values fetched for the liquidity filter.
    missing_price : list[str]
        Tickers dropped for lack of a price.
    score_failures : list[ScoreFailed]
        Per-candidate score recomputation failures.
    degraded_phases : list[str]
        Optional phases that failed and were skipped.
    """

    candidates: list[Candidate] = field(default_factory=list)
    volumes: dict[str, float] = field(default_factory=dict)
    missing_price: list[str] = field(default_factory=list)
    score_failures: list[ScoreFailed] = field(default_factory=list)
    degraded_phases: list[str] = field(default_factory=list)


def technical_margin(price: float | None, fair_price: float | None) -> float | None:
    """Percent distance of *price* from the technical fair price."""
    if price is None or fair_price is None or fair_price == 0:
        return None
    return (price - fair_price) / fair_price * 100


def needs_recompute(score: float | None, config: IndexConfig) -> bool:
    """Whether a cached score must be recomputed.

    Missing scores are always recomputed; a cached score that fails the
    configured overall-score range gets one fresh calculation before the
    candidate is rejected.
    """
    if score is None:
        return True
    bounds = config.quality.overall_score
    return bounds is not None and not bounds.contains(score)


@dataclass
class MarketEnricher:
    """Fan-out/fan-in enrichment over the external collaborators.

    Attributes:
        market_data: Batch price and traded-value provider
        valuations: Batch fair-value provider
        scores: Cached score lookup and recomputation
        max_workers: Thread pool size for concurrent calls
        timeout: Per-phase timeout in seconds, ``None`` to wait forever
        volume_lookback_days: Window for average daily traded value
    """

    market_data: MarketDataProvider
    valuations: ValuationProvider
    scores: ScoreProvider
    max_workers: int = 8
    timeout: float | None = 120.0
    volume_lookback_days: int = 30

    def enrich(self, instruments: list[Instrument], config: IndexConfig) -> EnrichmentResult:
        """Build candidates for *instruments*.

        Raises
        ------
        EnrichmentError
            If the price or valuation phase fails or times out, or if no
            instrument receives a price.
        """
        result = EnrichmentResult()
        if not instruments:
            return result

        tickers = [i.ticker for i in instruments]
        by_ticker = {i.ticker: i for i in instruments}
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            # Phase 1: prices, traded values, cached scores
            price_future = executor.submit(self.market_data.get_prices, tickers)
            volume_future = None
            if config.liquidity.enabled:
                volume_future = executor.submit(
                    self.market_data.get_average_daily_volumes,
                    tickers,
                    self.volume_lookback_days,
                )
            score_future = executor.submit(self.scores.get_cached_scores, tickers)

            prices: dict[str, float] = self._join(price_future, "price", result, fatal=True)
            if volume_future is not None:
                result.volumes = self._join(volume_future, "volume", result, fatal=False)
            cached: dict[str, float] = self._join(
                score_future, "cached score", result, fatal=False
            )

            priced = [t for t in tickers if prices.get(t) is not None]
            result.missing_price = [t for t in tickers if prices.get(t) is None]
            if not priced:
                msg = f"price phase returned no prices for {len(tickers)} instruments"
                logger.error(msg)
                raise EnrichmentError(msg)
            for ticker in result.missing_price:
                logger.debug("%s dropped: no price available", ticker)

            # Phase 2: valuations and score recomputation
            valuation_future = executor.submit(
                self.valuations.get_valuations,
                priced,
                {t: prices[t] for t in priced},
            )
            recompute = [t for t in priced if needs_recompute(cached.get(t), config)]
            score_futures = {
                executor.submit(self._recompute, by_ticker[t], prices[t]): t
                for t in recompute
            }
            valuations: dict[str, Valuation] = self._join(
                valuation_future, "valuation", result, fatal=True
            )
            outcomes = self._collect_scores(score_futures)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        computed = {o.ticker: o.score for o in outcomes if isinstance(o, ScoreComputed)}
        result.score_failures = [o for o in outcomes if isinstance(o, ScoreFailed)]
        failures = {f.ticker: f.error for f in result.score_failures}

        for ticker in priced:
            instrument = by_ticker[ticker]
            score = computed[ticker] if ticker in computed else cached.get(ticker)
            if ticker in failures:
                score = None
            diagnostics = None
            if ticker in failures or (ticker in computed and computed[ticker] is None):
                diagnostics = ScoreDiagnostics(
                    calculation_failed=True,
                    error=failures.get(ticker, "score calculation returned no value"),
                    has_financial_data=instrument.fundamentals is not None,
                    has_price_data=True,
                    company_id=instrument.company_id,
                )
            result.candidates.append(
                self._build_candidate(
                    instrument,
                    prices[ticker],
                    result.volumes.get(ticker),
                    valuations.get(ticker),
                    score,
                    diagnostics,
                )
            )

        logger.info(
            "Enriched %d of %d instruments (%d without price, %d score failures)",
            len(result.candidates),
            len(tickers),
            len(result.missing_price),
            len(result.score_failures),
        )
        return result

    def _join(
        self,
        future: Future,
        phase: str,
        result: EnrichmentResult,
        fatal: bool,
    ) -> Any:
        try:
            return future.result(timeout=self.timeout) or {}
        except FuturesTimeoutError as exc:
            msg = f"{phase} phase timed out after {self.timeout}s"
            if fatal:
                logger.error(msg)
                raise EnrichmentError(msg) from exc
            logger.warning("%s, continuing without it", msg)
            result.degraded_phases.append(phase)
            return {}
        except Exception as exc:
            if fatal:
                msg = f"{phase} phase failed: {exc}"
                logger.error(msg)
                raise EnrichmentError(msg) from exc
            logger.warning("%s phase failed, continuing without it: %s", phase, exc)
            result.degraded_phases.append(phase)
            return {}

    def _recompute(self, instrument: Instrument, price: float) -> ScoreOutcome:
        try:
            score = self.scores.recompute_score(instrument, price)
            return ScoreComputed(instrument.ticker, score)
        except Exception as exc:
            logger.warning("Score recomputation failed for %s: %s", instrument.ticker, exc)
            return ScoreFailed(instrument.ticker, str(exc) or type(exc).__name__)

    def _collect_scores(self, futures: dict[Future, str]) -> list[ScoreOutcome]:
        if not futures:
            return []
        done, pending = wait(futures, timeout=self.timeout)
        outcomes: list[ScoreOutcome] = [f.result() for f in done]
        for future in pending:
            ticker = futures[future]
            logger.warning("Score recomputation timed out for %s", ticker)
            outcomes.append(ScoreFailed(ticker, "score recomputation timed out"))
        return outcomes

    def _build_candidate(
        self,
        instrument: Instrument,
        price: float,
        volume: float | None,
        valuation: Valuation | None,
        score: float | None,
        diagnostics: ScoreDiagnostics | None,
    ) -> Candidate:
        fundamentals = instrument.fundamentals
        dividend_yield = None
        market_cap = None
        if fundamentals is not None:
            if fundamentals.dividend_yield is not None:
                dividend_yield = fundamentals.dividend_yield * 100
            market_cap = fundamentals.market_cap

        candidate = Candidate(
            ticker=instrument.ticker,
            name=instrument.name,
            sector=instrument.sector,
            price=price,
            dividend_yield=dividend_yield,
            market_cap=market_cap,
            average_daily_volume=volume,
            overall_score=score,
            diagnostics=diagnostics,
        )
        if valuation is not None:
            candidate.upside = valuation.upside
            candidate.fair_value_model = valuation.fair_value_model
            candidate.upsides = dict(valuation.upsides)
            candidate.technical_fair_price = valuation.technical_fair_price
            candidate.technical_min_price = valuation.technical_min_price
            candidate.technical_margin = technical_margin(
                price, valuation.technical_fair_price
            )
        return candidate
