"""Weighting schemes for the selected basket."""

from screener.weighting._weights import (
    WEIGHT_TOLERANCE,
    calculate_weights,
    custom_weights,
    equal_weights,
    market_cap_weights,
    normalize,
    score_weights,
)

__all__ = [
    "WEIGHT_TOLERANCE",
    "calculate_weights",
    "custom_weights",
    "equal_weights",
    "market_cap_weights",
    "normalize",
    "score_weights",
]
