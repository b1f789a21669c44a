"""Ordering comparators over candidate fields, nulls always last."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from screener.config import OrderDirection, OrderField
from screener.domain.models import Candidate

_ACCESSORS: dict[OrderField, Callable[[Candidate], float | None]] = {
    OrderField.UPSIDE: lambda c: c.upside,
    OrderField.DIVIDEND_YIELD: lambda c: c.dividend_yield,
    OrderField.OVERALL_SCORE: lambda c: c.overall_score,
    OrderField.MARKET_CAP: lambda c: c.market_cap,
    OrderField.TECHNICAL_MARGIN: lambda c: c.technical_margin,
}


def order_value(candidate: Candidate, order_by: OrderField) -> float | None:
    """Value of the ordering field for *candidate*."""
    return _ACCESSORS[order_by](candidate)


def sort_candidates(
    candidates: Sequence[Candidate],
    order_by: OrderField = OrderField.UPSIDE,
    direction: OrderDirection = OrderDirection.DESC,
) -> list[Candidate]:
    """Stable sort by *order_by*; candidates without a value go last.

    Parameters
    ----------
    candidates : Sequence[Candidate]
        Candidates to order.
    order_by : OrderField
        Ordering field.
    direction : OrderDirection
        Sort direction for present values.

    Returns
    -------
    list[Candidate]
        New list; the input is not modified.
    """
    present = [c for c in candidates if order_value(c, order_by) is not None]
    missing = [c for c in candidates if order_value(c, order_by) is None]
    present.sort(
        key=lambda c: order_value(c, order_by),
        reverse=direction == OrderDirection.DESC,
    )
    return present + missing


def is_better(
    challenger: Candidate,
    incumbent: Candidate,
    order_by: OrderField = OrderField.UPSIDE,
    direction: OrderDirection = OrderDirection.DESC,
) -> bool:
    """Whether *challenger* strictly beats *incumbent* on *order_by*.

    A present value beats a missing one; ties keep the incumbent.
    """
    new = order_value(challenger, order_by)
    old = order_value(incumbent, order_by)
    if new is None:
        return False
    if old is None:
        return True
    if direction == OrderDirection.DESC:
        return new > old
    return new < old


def ranking_position(
    ticker: str,
    candidates: Sequence[Candidate],
    order_by: OrderField = OrderField.UPSIDE,
    direction: OrderDirection = OrderDirection.DESC,
) -> int | None:
    """1-based position of *ticker* after sorting, or ``None`` if absent."""
    for position, candidate in enumerate(
        sort_candidates(candidates, order_by, direction), start=1
    ):
        if candidate.ticker == ticker:
            return position
    return None
