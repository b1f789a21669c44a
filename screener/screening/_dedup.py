"""Collapse share classes of one issuer into a single candidate."""

from __future__ import annotations

from collections.abc import Sequence

from screener.config import OrderDirection, OrderField
from screener.domain.models import Candidate
from screener.screening._ordering import is_better, sort_candidates


def deduplicate(
    candidates: Sequence[Candidate],
    order_by: OrderField = OrderField.UPSIDE,
    direction: OrderDirection = OrderDirection.DESC,
    preserve_order: bool = False,
) -> tuple[list[Candidate], list[str]]:
    """Keep exactly one candidate per issuer key.

    Parameters
    ----------
    candidates : Sequence[Candidate]
        Ordered candidates.
    order_by : OrderField
        Tie-break field when *preserve_order* is ``False``.
    direction : OrderDirection
        Tie-break direction.
    preserve_order : bool
        Keep the first occurrence per issuer and the input order, as
        required after strategy ranking.

    Returns
    -------
    tuple[list[Candidate], list[str]]
        Surviving candidates and the tickers removed as duplicates.
    """
    winners: dict[str, Candidate] = {}
    for candidate in candidates:
        key = candidate.issuer_key
        incumbent = winners.get(key)
        if incumbent is None:
            winners[key] = candidate
        elif not preserve_order and is_better(candidate, incumbent, order_by, direction):
            winners[key] = candidate

    kept_tickers = {c.ticker for c in winners.values()}
    removed = [c.ticker for c in candidates if c.ticker not in kept_tickers]
    if preserve_order:
        return [c for c in candidates if c.ticker in kept_tickers], removed
    return sort_candidates(list(winners.values()), order_by, direction), removed
