"""End-to-end index job: screening → revalidation → weights → decision → persistence."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from screener.config import IndexConfig, parse_index_config
from screener.domain.models import (
    NO_CHANGE_ACTION,
    Candidate,
    CompositionChange,
    CompositionRow,
)
from screener.domain.protocols import (
    CompositionStore,
    FundamentalsSource,
    IndexDefinitionSource,
    MarketDataProvider,
)
from screener.exceptions import ConfigurationError, ScreenerError
from screener.rebalancing import (
    RebalanceDecision,
    compare_composition,
    decide,
    filter_by_quality,
    generate_rebalance_reason,
)
from screener.screening import ScreeningEngine
from screener.weighting import calculate_weights

if TYPE_CHECKING:
    from screener.database.config import Settings
    from screener.database.database import DatabaseManager
    from screener.database.repositories.score_repository import ScoreCalculator
    from screener.domain.protocols import RankingStrategy

logger = logging.getLogger(__name__)

NO_CANDIDATES_REASON = "Screening returned no candidates, composition unchanged"
ALL_REJECTED_REASON = "Every candidate failed quality revalidation, composition unchanged"
NO_CHANGE_REASON = "No change needed, composition already matches screening"


class RunStatus(str, Enum):
    """Outcome of one index job run."""

    REBALANCED = "rebalanced"
    UNCHANGED = "unchanged"
    EMPTY = "empty"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class IndexRunResult:
    """Structured outcome of one index job run.

    Attributes
    ----------
    index_key : str
        Index id or ticker the run was requested for.
    status : RunStatus
        ``rebalanced`` when the composition was replaced (or would have
        been, on a dry run), ``unchanged`` when the basket already
        matches, ``empty`` when screening or revalidation left nothing,
        ``skipped`` outside trading days and ``failed`` on a fatal error.
    run_date : date
        Date the run was evaluated for.
    index_id : str or None
        Resolved index id.
    decision : RebalanceDecision or None
        ``None`` when the run stopped before the decision.
    stage_counts : dict[str, int]
        Surviving candidates after each screening stage.
    composition : list[CompositionRow]
        Proposed composition with target weights.
    changes : list[CompositionChange]
        ``EXIT`` then ``ENTRY`` records.
    reason : str or None
        Summary log line of the run.
    rejections : dict[str, str]
        Screening and revalidation rejection reason per ticker.
    errors : list[str]
        Fatal error messages and degraded-phase notes.
    dry_run : bool
        Whether persistence was skipped.
    """

    index_key: str
    status: RunStatus
    run_date: date
    index_id: str | None = None
    decision: RebalanceDecision | None = None
    stage_counts: dict[str, int] = field(default_factory=dict)
    composition: list[CompositionRow] = field(default_factory=list)
    changes: list[CompositionChange] = field(default_factory=list)
    reason: str | None = None
    rejections: dict[str, str] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status is not RunStatus.FAILED


def is_trading_day(day: date) -> bool:
    """Monday to Friday; exchange holidays are not modelled."""
    return day.weekday() < 5


@dataclass
class IndexJobRunner:
    """
    Runs the screening and rebalancing job for one index.

    Attributes:
        definitions: Stored index definitions
        store: Composition rows and history log
        engine: Screening engine
        fundamentals: Fundamentals source for quality revalidation
        market_data: Latest quotes for entry prices; falls back to the
            screening price when omitted or when a quote is missing
    """

    definitions: IndexDefinitionSource
    store: CompositionStore
    engine: ScreeningEngine
    fundamentals: FundamentalsSource
    market_data: MarketDataProvider | None = None

    @classmethod
    def from_database(
        cls,
        db_manager: DatabaseManager | None = None,
        settings: Settings | None = None,
        ranking: RankingStrategy | None = None,
        calculator: ScoreCalculator | None = None,
    ) -> IndexJobRunner:
        """Wire the runner to the SQL repositories and yfinance quotes.

        Args:
            db_manager: Initialized database manager (global one if omitted)
            settings: Runtime settings (global ones if omitted)
            ranking: Optional external ranking strategy
            calculator: Optional scoring module used to recompute scores

        Returns:
            Runner ready to execute jobs
        """
        from screener.database.config import settings as global_settings
        from screener.database.repositories import (
            IndexRepository,
            ScoreRepository,
            UniverseRepository,
            ValuationRepository,
        )
        from screener.market import YFinanceMarketDataProvider
        from screener.screening import MarketEnricher

        settings = settings or global_settings
        universe = UniverseRepository(db_manager)
        index_repository = IndexRepository(db_manager)
        market_data = YFinanceMarketDataProvider(
            ticker_suffix=settings.yfinance_ticker_suffix
        )
        enricher = MarketEnricher(
            market_data=market_data,
            valuations=ValuationRepository(db_manager),
            scores=ScoreRepository(db_manager, calculator=calculator),
            max_workers=settings.enrichment_max_workers,
            timeout=settings.enrichment_timeout_seconds,
            volume_lookback_days=settings.volume_lookback_days,
        )
        engine = ScreeningEngine(
            universe=universe,
            enricher=enricher,
            ranking=ranking,
            min_volume_coverage=settings.min_volume_coverage,
        )
        return cls(
            definitions=index_repository,
            store=index_repository,
            engine=engine,
            fundamentals=universe,
            market_data=market_data,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(
        self,
        index_key: str,
        force: bool = False,
        dry_run: bool = False,
        run_date: date | None = None,
    ) -> IndexRunResult:
        """Screen, revalidate, weigh, decide and persist one index.

        Parameters
        ----------
        index_key : str
            Index id or ticker.
        force : bool
            Run outside trading days.
        dry_run : bool
            Compute everything but write nothing.
        run_date : date, optional
            Evaluation date; defaults to today.

        Returns
        -------
        IndexRunResult
            Never raises for screener errors; a fatal error yields
            ``status == RunStatus.FAILED`` with the message in ``errors``.
        """
        run_date = run_date or date.today()
        result = IndexRunResult(
            index_key=index_key,
            status=RunStatus.SKIPPED,
            run_date=run_date,
            dry_run=dry_run,
        )

        if not force and not is_trading_day(run_date):
            result.reason = f"{run_date.isoformat()} is not a trading day"
            logger.info("Skipping index %s: %s", index_key, result.reason)
            return result

        try:
            self._execute(index_key, run_date, dry_run, result)
        except ScreenerError as exc:
            logger.error("Index job for %s failed: %s", index_key, exc)
            result.status = RunStatus.FAILED
            result.errors.append(str(exc))
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _execute(
        self,
        index_key: str,
        run_date: date,
        dry_run: bool,
        result: IndexRunResult,
    ) -> None:
        index_id, config = self._load(index_key)
        result.index_id = index_id
        logger.info("Running index job for %s (%s)", index_key, index_id)

        screening = self.engine.run(config)
        result.stage_counts = dict(screening.stage_counts)
        result.rejections = dict(screening.rejections)
        result.errors.extend(
            f"score recomputation failed for {f.ticker}: {f.error}"
            for f in screening.score_failures
        )

        current = self.store.get_current(index_id)
        current_tickers = [row.ticker for row in current]

        if screening.is_empty:
            result.status = RunStatus.EMPTY
            result.reason = NO_CANDIDATES_REASON
            self._log_once(index_id, NO_CANDIDATES_REASON, run_date, dry_run)
            return

        valid, rejected = filter_by_quality(
            screening.selected, config, source=self.fundamentals
        )
        for candidate, reason in rejected:
            result.rejections[candidate.ticker] = f"[Quality] {reason}"
        if not valid:
            result.status = RunStatus.EMPTY
            result.reason = ALL_REJECTED_REASON
            self._log_once(index_id, ALL_REJECTED_REASON, run_date, dry_run)
            return

        weights = calculate_weights(valid, config.weighting)
        changes = compare_composition(
            current_tickers,
            valid,
            config,
            quality_rejected=rejected,
            screening_rejected=screening.rejections,
            candidates_before_selection=screening.candidates_before_selection,
            removed_by_diversification=screening.removed_by_diversification,
            preserve_order=screening.strategy_applied,
            diversified_sector_counts=screening.diversified_sector_counts,
        )
        decision = decide(
            current_tickers,
            valid,
            config.rebalance.threshold,
            config.rebalance.upside_type,
        )
        result.decision = decision
        result.composition = self._build_rows(valid, weights, run_date)

        if decision is RebalanceDecision.REBALANCE and changes:
            reason = generate_rebalance_reason(current_tickers, valid, config, rejected)
            result.status = RunStatus.REBALANCED
            result.changes = changes
            result.reason = reason
            if dry_run:
                logger.info("Dry run: %d changes for %s not persisted", len(changes), index_id)
                return
            self.store.replace_composition(
                index_id, result.composition, changes, reason, run_date
            )
            return

        result.status = RunStatus.UNCHANGED
        result.reason = NO_CHANGE_REASON
        self._log_once(index_id, NO_CHANGE_REASON, run_date, dry_run)

    def _load(self, index_key: str) -> tuple[str, IndexConfig]:
        definition = self.definitions.get_definition(index_key)
        if definition is None:
            msg = f"index {index_key!r} not found"
            raise ConfigurationError(msg)
        if not definition.is_active:
            msg = f"index {definition.ticker!r} is inactive"
            raise ConfigurationError(msg)
        return definition.id, parse_index_config(definition.config)

    def _log_once(self, index_id: str, reason: str, run_date: date, dry_run: bool) -> None:
        """Append a ``NO_CHANGE`` log unless one already exists for the day."""
        logger.info("Index %s: %s", index_id, reason)
        if dry_run:
            return
        if self.store.has_log_on(index_id, run_date, NO_CHANGE_ACTION):
            logger.debug("NO_CHANGE already logged for %s on %s", index_id, run_date)
            return
        self.store.append_log(index_id, NO_CHANGE_ACTION, reason, run_date)

    def _build_rows(
        self,
        candidates: Sequence[Candidate],
        weights: Mapping[str, float],
        run_date: date,
    ) -> list[CompositionRow]:
        quotes = self._latest_quotes([c.ticker for c in candidates])
        rows: list[CompositionRow] = []
        for candidate in candidates:
            price = quotes.get(candidate.ticker)
            if price is None:
                if self.market_data is not None:
                    logger.warning(
                        "No latest quote for %s, using screening price as entry price",
                        candidate.ticker,
                    )
                price = candidate.price
            rows.append(
                CompositionRow(
                    ticker=candidate.ticker,
                    target_weight=weights[candidate.ticker],
                    entry_price=price,
                    entry_date=run_date,
                )
            )
        return rows

    def _latest_quotes(self, tickers: list[str]) -> dict[str, float]:
        if self.market_data is None:
            return {}
        try:
            return self.market_data.get_prices(tickers)
        except Exception as exc:
            logger.warning("Latest quote lookup failed, using screening prices: %s", exc)
            return {}

