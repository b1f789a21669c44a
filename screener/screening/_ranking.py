"""Delegated ranking through an external valuation strategy."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from screener.config import StrategyRef
from screener.domain.models import Candidate
from screener.domain.protocols import RankingStrategy

logger = logging.getLogger(__name__)

SCORE_METRIC = "overallScore"


@dataclass
class RankingOutcome:
    """Result of the ranking stage.

    Attributes
    ----------
    candidates : list[Candidate]
        Ranked candidates in strategy order, or the input unchanged when
        the strategy failed.
    applied : bool
        ``True`` when the strategy order is authoritative downstream.
    dropped : list[str]
        Tickers the strategy did not return.
    error : str or None
        Strategy failure message, if any.
    """

    candidates: list[Candidate]
    applied: bool
    dropped: list[str] = field(default_factory=list)
    error: str | None = None


def apply_strategy_ranking(
    candidates: Sequence[Candidate],
    strategy: StrategyRef,
    ranking: RankingStrategy,
    top_n: int,
) -> RankingOutcome:
    """Re-rank candidates with an external strategy.

    The strategy receives the configured parameters and a ``limit`` of
    twice the basket size, leaving headroom for deduplication.  Each
    returned candidate takes the strategy's upside, fair-value model
    (falling back to the model named by the strategy type) and, when
    reported, its ``overallScore`` metric.  Candidates the strategy does
    not return are dropped.

    Parameters
    ----------
    candidates : Sequence[Candidate]
        Filtered candidates.
    strategy : StrategyRef
        Configured strategy and parameters.
    ranking : RankingStrategy
        Strategy collaborator.
    top_n : int
        Basket size.

    Returns
    -------
    RankingOutcome
    """
    tickers = [c.ticker for c in candidates]
    limit = top_n * 2
    try:
        results = ranking.rank(strategy.type, dict(strategy.params), tickers, limit)
    except Exception as exc:
        logger.warning(
            "Ranking strategy %r failed, using default ordering: %s", strategy.type, exc
        )
        return RankingOutcome(list(candidates), applied=False, error=str(exc))

    by_ticker = {c.ticker: c for c in candidates}
    ranked: list[Candidate] = []
    seen: set[str] = set()
    for row in results:
        original = by_ticker.get(row.ticker)
        if original is None or row.ticker in seen:
            continue
        seen.add(row.ticker)
        model = row.fair_value_model or strategy.valuation_model
        score = row.key_metrics.get(SCORE_METRIC)
        ranked.append(
            replace(
                original,
                upside=row.upside,
                fair_value_model=model,
                overall_score=score if score is not None else original.overall_score,
                upsides=dict(original.upsides),
            )
        )

    dropped = [t for t in tickers if t not in seen]
    logger.info(
        "Strategy %r ranked %d of %d candidates", strategy.type, len(ranked), len(tickers)
    )
    return RankingOutcome(ranked, applied=True, dropped=dropped)
