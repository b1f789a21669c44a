"""Range predicates on fundamentals and on the overall score."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from screener.config import FundamentalField, QualityConfig, Range
from screener.domain.models import Candidate, Fundamentals, Instrument


def _percent(value: float) -> str:
    return f"{value * 100:.1f}%"


def _multiple(value: float) -> str:
    return f"{value:.2f}x"


def _ratio(value: float) -> str:
    return f"{value:.2f}"


def _billions(value: float) -> str:
    return f"{value / 1_000_000_000:.2f}bn"


def _score(value: float) -> str:
    return f"{value:.0f}"


# Display label and value formatter per fundamental field
FIELD_FORMATS: dict[FundamentalField, tuple[str, Callable[[float], str]]] = {
    FundamentalField.ROE: ("ROE", _percent),
    FundamentalField.NET_MARGIN: ("Net margin", _percent),
    FundamentalField.NET_DEBT_TO_EBITDA: ("Net debt/EBITDA", _multiple),
    FundamentalField.PAYOUT: ("Payout", _percent),
    FundamentalField.MARKET_CAP: ("Market cap", _billions),
    FundamentalField.PE: ("P/E", _ratio),
    FundamentalField.PB: ("P/B", _ratio),
}

SCORE_FORMAT: tuple[str, Callable[[float], str]] = ("Overall score", _score)


def check_range(
    label: str,
    value: float | None,
    bounds: Range,
    fmt: Callable[[float], str] = _ratio,
) -> str | None:
    """Evaluate one range predicate.

    Parameters
    ----------
    label : str
        Display name of the checked field.
    value : float or None
        Observed value.  ``None`` always fails.
    bounds : Range
        Configured bounds.
    fmt : callable
        Formatter applied to the value and the violated bound.

    Returns
    -------
    str or None
        Rejection reason, or ``None`` when the value satisfies the range.
    """
    if value is None:
        return f"{label} not available"
    if bounds.gte is not None and value < bounds.gte:
        return f"{label} {fmt(value)} below minimum {fmt(bounds.gte)}"
    if bounds.lte is not None and value > bounds.lte:
        return f"{label} {fmt(value)} above maximum {fmt(bounds.lte)}"
    return None


def check_fundamentals(
    fundamentals: Fundamentals | None,
    ranges: dict[FundamentalField, Range],
) -> str | None:
    """Check every configured fundamental range, first failure wins."""
    if not ranges:
        return None
    if fundamentals is None:
        return "no financial data available"
    for field_name, bounds in ranges.items():
        label, fmt = FIELD_FORMATS[field_name]
        reason = check_range(label, fundamentals.get(field_name), bounds, fmt)
        if reason is not None:
            return reason
    return None


def check_score(score: float | None, bounds: Range | None) -> str | None:
    """Check the overall-score range, if one is configured."""
    if bounds is None:
        return None
    label, fmt = SCORE_FORMAT
    return check_range(label, score, bounds, fmt)


class FinancialDataFilter:
    """Drops instruments with no financial statement on file."""

    name = "FinancialData"

    def filter(self, item: Instrument) -> tuple[bool, str]:
        if item.fundamentals is None:
            return False, "no financial data available"
        return True, ""


@dataclass(frozen=True)
class QualityFilter:
    """Applies the configured fundamental ranges to an instrument."""

    config: QualityConfig

    @property
    def name(self) -> str:
        return "Quality"

    def filter(self, item: Instrument) -> tuple[bool, str]:
        reason = check_fundamentals(item.fundamentals, self.config.ranges)
        if reason is not None:
            return False, reason
        return True, ""


@dataclass(frozen=True)
class ScoreRangeFilter:
    """Applies the overall-score range to an enriched candidate."""

    bounds: Range

    @property
    def name(self) -> str:
        return "OverallScore"

    def filter(self, item: Candidate) -> tuple[bool, str]:
        reason = check_score(item.overall_score, self.bounds)
        if reason is not None:
            return False, reason
        return True, ""
