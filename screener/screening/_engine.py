"""Screening engine: universe → filters → enrichment → ranking → basket."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from screener.config import IndexConfig
from screener.domain.models import Candidate, Instrument, issuer_key
from screener.domain.protocols import RankingStrategy, UniverseProvider
from screener.exceptions import UniverseError
from screener.filters import (
    DEFAULT_MIN_VOLUME_COVERAGE,
    AssetTypeFilter,
    ExclusionFilter,
    FilterPipeline,
    FinancialDataFilter,
    QualityFilter,
    ScoreRangeFilter,
    TechnicalFilter,
    UpsideFilter,
    build_liquidity_filter,
)
from screener.screening._dedup import deduplicate
from screener.screening._diversification import diversify
from screener.screening._enrichment import MarketEnricher, ScoreFailed
from screener.screening._ordering import sort_candidates
from screener.screening._ranking import apply_strategy_ranking
from screener.screening._selection import select_candidates

logger = logging.getLogger(__name__)


@dataclass
class ScreeningResult:
    """Everything one screening run produced.

    Attributes
    ----------
    selected : list[Candidate]
        Final basket, in ranking order.
    candidates_before_selection : list[Candidate]
        Deduplicated candidates that passed every filter, before top-N
        or score-band selection.
    removed_by_diversification : list[str]
        Selected tickers dropped by sector rules.
    diversified_sector_counts : dict[str, int]
        Candidates per sector right after diversification.
    rejections : dict[str, str]
        Reason per ticker rejected by a screening stage.
    stage_counts : dict[str, int]
        Surviving candidates after each stage, in pipeline order.
    filter_stats : dict[str, dict[str, int]]
        Passed/failed counts per filter.
    score_failures : list[ScoreFailed]
        Per-candidate score recomputation failures.
    strategy_applied : bool
        Whether a ranking strategy ordered the candidates.
    liquidity_skipped : bool
        Whether the liquidity filter was relaxed for lack of data.
    """

    selected: list[Candidate] = field(default_factory=list)
    candidates_before_selection: list[Candidate] = field(default_factory=list)
    removed_by_diversification: list[str] = field(default_factory=list)
    diversified_sector_counts: dict[str, int] = field(default_factory=dict)
    rejections: dict[str, str] = field(default_factory=dict)
    stage_counts: dict[str, int] = field(default_factory=dict)
    filter_stats: dict[str, dict[str, int]] = field(default_factory=dict)
    score_failures: list[ScoreFailed] = field(default_factory=list)
    strategy_applied: bool = False
    liquidity_skipped: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.selected


@dataclass
class ScreeningEngine:
    """
    Runs the screening pipeline for one index configuration.

    Depends on protocols only; every stage after the universe query is
    a pure function of the previous stage's output, so a run holds no
    state between invocations.

    Attributes:
        universe: Instrument source
        enricher: Market, valuation and score enrichment
        ranking: Optional external ranking strategy collaborator
        min_volume_coverage: Traded-value coverage needed to apply the
            liquidity filter
    """

    universe: UniverseProvider
    enricher: MarketEnricher
    ranking: RankingStrategy | None = None
    min_volume_coverage: float = DEFAULT_MIN_VOLUME_COVERAGE

    def run(self, config: IndexConfig) -> ScreeningResult:
        """Screen the universe and build the proposed basket.

        Raises
        ------
        UniverseError
            If the universe query fails.
        EnrichmentError
            If a mandatory enrichment phase fails.
        """
        result = ScreeningResult()
        instruments = self._load_universe(config)
        result.stage_counts["universe"] = len(instruments)

        survivors = self._screen_instruments(instruments, config, result)
        enriched = self.enricher.enrich(survivors, config)
        result.score_failures = enriched.score_failures
        for ticker in enriched.missing_price:
            result.rejections[ticker] = "[Price] no price available"
        result.stage_counts["enriched"] = len(enriched.candidates)

        candidates = self._screen_candidates(
            enriched.candidates, enriched.volumes, config, result
        )
        candidates = self._rank(candidates, config, result)

        selection = config.selection
        deduped, duplicates = deduplicate(
            candidates,
            selection.order_by,
            selection.direction,
            preserve_order=result.strategy_applied,
        )
        kept_by_issuer = {c.issuer_key: c.ticker for c in deduped}
        for ticker in duplicates:
            kept = kept_by_issuer[issuer_key(ticker)]
            result.rejections[ticker] = f"[Dedup] duplicate share class of {kept}"
        result.stage_counts["deduplicated"] = len(deduped)
        result.candidates_before_selection = list(deduped)

        selected = select_candidates(
            deduped, selection, preserve_order=result.strategy_applied
        )
        result.stage_counts["selected"] = len(selected)

        if config.diversification is not None:
            outcome = diversify(
                selected,
                config.diversification,
                selection.effective_top_n,
                selection.order_by,
                selection.direction,
                preserve_order=result.strategy_applied,
            )
            selected = outcome.selected
            result.removed_by_diversification = outcome.removed
            result.diversified_sector_counts = outcome.sector_counts
            result.stage_counts["diversified"] = len(selected)

        result.selected = selected
        logger.info(
            "Screening finished: %s",
            ", ".join(f"{k}={v}" for k, v in result.stage_counts.items()),
        )
        return result

    def _load_universe(self, config: IndexConfig) -> list[Instrument]:
        asset_types = config.universe.asset_types
        try:
            instruments = self.universe.list_instruments(
                [t.value for t in asset_types] if asset_types else None
            )
        except Exception as exc:
            msg = f"universe query failed: {exc}"
            logger.error(msg)
            raise UniverseError(msg) from exc
        logger.info("Found %d instruments in universe", len(instruments))
        return list(instruments)

    def _screen_instruments(
        self,
        instruments: list[Instrument],
        config: IndexConfig,
        result: ScreeningResult,
    ) -> list[Instrument]:
        scope: FilterPipeline[Instrument] = FilterPipeline()
        if config.universe.asset_types:
            scope.add_filter(AssetTypeFilter(tuple(config.universe.asset_types)))
        scope.add_filter(ExclusionFilter(config.universe))
        in_scope, rejected = scope.run(instruments, lambda i: i.ticker)
        result.rejections.update(rejected)
        result.stage_counts["after_exclusions"] = len(in_scope)

        quality: FilterPipeline[Instrument] = FilterPipeline()
        quality.add_filter(FinancialDataFilter())
        if config.quality.ranges:
            quality.add_filter(QualityFilter(config.quality))
        passed, rejected = quality.run(in_scope, lambda i: i.ticker)
        result.rejections.update(rejected)
        result.stage_counts["after_quality"] = len(passed)

        result.filter_stats.update(scope.get_summary())
        result.filter_stats.update(quality.get_summary())
        return passed

    def _screen_candidates(
        self,
        candidates: list[Candidate],
        volumes: dict[str, float],
        config: IndexConfig,
        result: ScreeningResult,
    ) -> list[Candidate]:
        pipeline: FilterPipeline[Candidate] = FilterPipeline()
        if config.liquidity.enabled:
            liquidity = build_liquidity_filter(
                config.liquidity,
                volumes,
                [c.ticker for c in candidates],
                self.min_volume_coverage,
            )
            if liquidity is None:
                result.liquidity_skipped = True
            else:
                pipeline.add_filter(liquidity)
        if config.upside.enabled:
            pipeline.add_filter(UpsideFilter(config.upside))
        if config.technical.enabled:
            pipeline.add_filter(TechnicalFilter(config.technical))
        if config.quality.overall_score is not None:
            pipeline.add_filter(ScoreRangeFilter(config.quality.overall_score))

        passed, rejected = pipeline.run(candidates, lambda c: c.ticker)
        result.rejections.update(rejected)
        result.filter_stats.update(pipeline.get_summary())
        result.stage_counts["after_filters"] = len(passed)
        return passed

    def _rank(
        self,
        candidates: list[Candidate],
        config: IndexConfig,
        result: ScreeningResult,
    ) -> list[Candidate]:
        strategy = config.quality.strategy
        selection = config.selection
        if strategy is not None and self.ranking is not None:
            outcome = apply_strategy_ranking(
                candidates, strategy, self.ranking, selection.effective_top_n
            )
            if outcome.applied:
                result.strategy_applied = True
                for ticker in outcome.dropped:
                    result.rejections[ticker] = (
                        f"[Strategy] not ranked by strategy {strategy.type!r}"
                    )
                result.stage_counts["ranked"] = len(outcome.candidates)
                return outcome.candidates
        elif strategy is not None:
            logger.warning(
                "Strategy %r configured but no ranking collaborator available, "
                "using default ordering",
                strategy.type,
            )
        ordered = sort_candidates(candidates, selection.order_by, selection.direction)
        result.stage_counts["ranked"] = len(ordered)
        return ordered
