"""Composition diff with per-ticker reasons and the rebalance summary."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from screener.config import UNKNOWN_SECTOR, DiversificationType, IndexConfig, UpsideType
from screener.domain.models import Candidate, ChangeAction, CompositionChange
from screener.rebalancing._decision import upside_for_rebalance
from screener.rebalancing._quality import QualityRejection
from screener.screening import band_for, ranking_position, sector_counts

DEFAULT_REASON = "Rebalance executed after screening"

_UPSIDE_LABELS = {
    UpsideType.GRAHAM: "Graham",
    UpsideType.FCD: "FCD",
    UpsideType.GORDON: "Gordon",
    UpsideType.BARSI: "Barsi",
    UpsideType.TECHNICAL: "Technical analysis",
}


def _fmt_score(score: float | None) -> str:
    return f"{score:.0f}" if score is not None else "N/A"


def _worst_held_upside(
    held: set[str], ideal: Sequence[Candidate], upside_type: UpsideType
) -> float | None:
    upsides = [
        u for u in (upside_for_rebalance(c, upside_type) for c in ideal if c.ticker in held)
        if u is not None
    ]
    return min(upsides) if upsides else None


def _diversification_reason(
    ticker: str,
    config: IndexConfig,
    ideal: Sequence[Candidate],
    before_selection: Mapping[str, Candidate],
    diversified_counts: Mapping[str, int] | None = None,
) -> str:
    candidate = before_selection.get(ticker)
    sector = candidate.sector_name if candidate is not None else UNKNOWN_SECTOR
    diversification = config.diversification
    if diversification is None or diversification.type == DiversificationType.ALLOCATION:
        return f'removed by sector allocation rules (sector "{sector}")'
    limit = diversification.limit_for(sector)
    if limit is None:
        return f'removed by diversification rules (sector "{sector}")'
    counts = diversified_counts if diversified_counts else sector_counts(ideal)
    count = counts.get(sector, 0)
    return (
        f'removed by diversification (sector "{sector}" has {count} selected, '
        f"limit {limit} per sector)"
    )


def _selection_reason(
    candidate: Candidate,
    config: IndexConfig,
    ideal: Sequence[Candidate],
    before_selection: Sequence[Candidate],
    preserve_order: bool,
) -> str:
    selection = config.selection
    if selection.uses_score_bands:
        band = band_for(candidate.overall_score, selection.score_bands)
        if band is None:
            return (
                "outside the configured score bands "
                f"(score {_fmt_score(candidate.overall_score)})"
            )
        in_band = sum(1 for c in ideal if band.contains(c.overall_score))
        return (
            f"score band {band.label} full (score "
            f"{_fmt_score(candidate.overall_score)}, {in_band}/{band.max_count} "
            "already selected in band)"
        )

    top_n = selection.effective_top_n
    if preserve_order:
        tickers = [c.ticker for c in before_selection]
        position = tickers.index(candidate.ticker) + 1
        ranked_by = "strategy"
    else:
        position = ranking_position(
            candidate.ticker, before_selection, selection.order_by, selection.direction
        )
        ranked_by = selection.order_by.value
    if position is not None and position > top_n:
        return f"not among top {top_n} (position {position} in ranking by {ranked_by})"
    return f"not among top {top_n} (position {position}/{top_n})"


def _inferred_reason(config: IndexConfig) -> str:
    selection = config.selection
    if selection.uses_score_bands:
        return "outside the configured score bands or failed screening"
    if selection.top_n is not None:
        return f"not among top {selection.top_n} or failed screening"
    if config.diversification is not None:
        return "failed screening or removed by diversification"
    return "failed screening criteria"


def exit_reason(
    ticker: str,
    config: IndexConfig,
    ideal: Sequence[Candidate],
    quality_rejected: Mapping[str, str],
    screening_rejected: Mapping[str, str],
    before_selection: Sequence[Candidate],
    removed_by_diversification: set[str],
    preserve_order: bool = False,
    diversified_counts: Mapping[str, int] | None = None,
) -> str:
    """Explain why a held ticker leaves the basket.

    The first matching stage wins: quality revalidation, screening
    filters, diversification, selection capacity, then an inferred
    reason when no stage recorded the ticker.  Sector counts quoted for
    diversification removals come from *diversified_counts* when given,
    else from *ideal*.
    """
    before = {c.ticker: c for c in before_selection}
    if ticker in quality_rejected:
        detail = f"failed quality check ({quality_rejected[ticker]})"
    elif ticker in screening_rejected:
        detail = f"failed screening {screening_rejected[ticker]}"
    elif ticker in removed_by_diversification:
        detail = _diversification_reason(
            ticker, config, ideal, before, diversified_counts
        )
    elif ticker in before:
        detail = _selection_reason(
            before[ticker], config, ideal, before_selection, preserve_order
        )
    else:
        detail = _inferred_reason(config)
    return f"Removed: {detail}"


def entry_reason(
    candidate: Candidate,
    position: int,
    held: set[str],
    config: IndexConfig,
    ideal: Sequence[Candidate],
) -> str:
    """Explain why a ticker enters the basket."""
    details = [f"position {position}/{len(ideal)}"]
    if candidate.fair_value_model:
        details.append(f"model {candidate.fair_value_model}")
    if candidate.upside is not None:
        details.append(f"upside {candidate.upside:.1f}%")
    if candidate.overall_score is not None:
        details.append(f"score {candidate.overall_score:.0f}")
    if candidate.technical_margin is not None:
        details.append(f"technical margin {candidate.technical_margin:.1f}%")
    reason = f"Added: selected by screening ({', '.join(details)})"

    rebalance = config.rebalance
    if held:
        worst = _worst_held_upside(held, ideal, rebalance.upside_type)
        upside = upside_for_rebalance(candidate, rebalance.upside_type)
        if worst is not None and upside is not None:
            gap = upside - worst
            if gap > rebalance.threshold * 100:
                reason += f" - admitted by threshold ({gap:.1f}% above the worst held)"

    band = band_for(candidate.overall_score, config.selection.score_bands)
    if band is not None:
        reason += f" - within score band {band.label}"
    return reason


def compare_composition(
    current_tickers: Sequence[str],
    ideal: Sequence[Candidate],
    config: IndexConfig,
    quality_rejected: Sequence[QualityRejection] = (),
    screening_rejected: Mapping[str, str] | None = None,
    candidates_before_selection: Sequence[Candidate] = (),
    removed_by_diversification: Sequence[str] = (),
    preserve_order: bool = False,
    diversified_sector_counts: Mapping[str, int] | None = None,
) -> list[CompositionChange]:
    """Diff the held basket against the proposal.

    Parameters
    ----------
    current_tickers : Sequence[str]
        Tickers currently held, in stored order.
    ideal : Sequence[Candidate]
        Proposed basket, in ranking order.
    config : IndexConfig
        Index configuration.
    quality_rejected : Sequence[tuple[Candidate, str]]
        Rejections from quality revalidation.
    screening_rejected : Mapping[str, str], optional
        Screening rejection reason by ticker.
    candidates_before_selection : Sequence[Candidate]
        Candidates that passed every filter, before selection.
    removed_by_diversification : Sequence[str]
        Tickers removed by sector rules.
    preserve_order : bool
        Candidates before selection are in strategy order.
    diversified_sector_counts : Mapping[str, int], optional
        Candidates per sector right after diversification.

    Returns
    -------
    list[CompositionChange]
        One ``EXIT`` per held ticker missing from the proposal, in held
        order, then one ``ENTRY`` per new ticker, in ranking order.
    """
    held = set(current_tickers)
    proposed = {c.ticker for c in ideal}
    quality_map = {c.ticker: reason for c, reason in quality_rejected}
    screening_map = dict(screening_rejected or {})
    diversified = set(removed_by_diversification)

    changes: list[CompositionChange] = []
    for ticker in current_tickers:
        if ticker in proposed:
            continue
        changes.append(
            CompositionChange(
                action=ChangeAction.EXIT,
                ticker=ticker,
                reason=exit_reason(
                    ticker,
                    config,
                    ideal,
                    quality_map,
                    screening_map,
                    candidates_before_selection,
                    diversified,
                    preserve_order,
                    diversified_sector_counts,
                ),
            )
        )

    for position, candidate in enumerate(ideal, start=1):
        if candidate.ticker in held:
            continue
        changes.append(
            CompositionChange(
                action=ChangeAction.ENTRY,
                ticker=candidate.ticker,
                reason=entry_reason(candidate, position, held, config, ideal),
            )
        )
    return changes


def generate_rebalance_reason(
    current_tickers: Sequence[str],
    ideal: Sequence[Candidate],
    config: IndexConfig,
    quality_rejected: Sequence[QualityRejection] = (),
) -> str:
    """Summarise why a rebalance happens, for the run's summary log."""
    held = set(current_tickers)
    proposed = {c.ticker for c in ideal}
    exits = [t for t in current_tickers if t not in proposed]
    entries = [c for c in ideal if c.ticker not in held]
    rebalance = config.rebalance

    reasons: list[str] = []
    if exits and entries:
        reasons.append(f"{len(exits)} removed and {len(entries)} added")
    elif exits:
        reasons.append(f"{len(exits)} removed from the composition")
    elif entries:
        reasons.append(f"{len(entries)} added to the composition")

    if entries and held:
        worst = _worst_held_upside(held, ideal, rebalance.upside_type)
        best = max(
            (
                u for u in (upside_for_rebalance(c, rebalance.upside_type) for c in entries)
                if u is not None
            ),
            default=None,
        )
        if worst is not None and best is not None and best - worst > rebalance.threshold * 100:
            label = _UPSIDE_LABELS.get(rebalance.upside_type)
            variant = f" ({label})" if label else ""
            reasons.append(
                f"new candidate upside{variant} {best - worst:.1f}% above the worst "
                f"held (threshold: {rebalance.threshold * 100:.0f}%)"
            )

    if rebalance.check_quality and exits:
        rejected_held = [c for c, _ in quality_rejected if c.ticker in held]
        if rejected_held:
            reasons.append(f"{len(rejected_held)} held failed quality revalidation")

    if exits:
        selection = config.selection
        if selection.uses_score_bands:
            reasons.append("some removed for falling outside the score bands")
        elif selection.top_n is not None:
            reasons.append(f"some removed for not being among the top {selection.top_n}")
        if config.diversification is not None:
            reasons.append("some removed by diversification rules")

    if not reasons:
        return DEFAULT_REASON
    return f"Rebalance required: {', '.join(reasons)}"
