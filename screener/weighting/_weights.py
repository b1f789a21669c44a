"""Portfolio weights for the selected basket."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from screener.config import WeightingConfig, WeightType
from screener.domain.models import Candidate
from screener.exceptions import DataError

logger = logging.getLogger(__name__)

# Final-normalisation tolerance on the weight total
WEIGHT_TOLERANCE = 1e-4


def normalize(weights: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Scale *weights* to sum to one; an all-zero vector becomes equal weight.

    Parameters
    ----------
    weights : ndarray, shape (n_assets,)
        Non-negative raw weights.

    Returns
    -------
    ndarray, shape (n_assets,)
        Weights summing to one.
    """
    total = weights.sum()
    if total <= 0.0:
        return np.full(len(weights), 1.0 / len(weights))
    return weights / total


def equal_weights(n_assets: int) -> npt.NDArray[np.float64]:
    """``1 / n_assets`` for every asset."""
    return np.full(n_assets, 1.0 / n_assets)


def market_cap_weights(
    market_caps: Sequence[float | None],
) -> npt.NDArray[np.float64]:
    """Weights proportional to market capitalisation.

    Missing capitalisations count as zero; a zero total falls back to
    equal weights.
    """
    caps = np.array([c or 0.0 for c in market_caps], dtype=np.float64)
    total = caps.sum()
    if total == 0.0:
        logger.warning("Total market cap is zero, using equal weights")
        return equal_weights(len(caps))
    return caps / total


def score_weights(
    scores: Sequence[float | None],
    min_weight: float,
    max_weight: float,
) -> npt.NDArray[np.float64]:
    """Score-proportional weights clamped to ``[min_weight, max_weight]``.

    Assets without a score share the mass left after clamping.  When the
    clamped weights already exceed one, they are rescaled and score-less
    assets receive zero.  The result is normalised to sum to one.

    Parameters
    ----------
    scores : Sequence[float or None]
        Overall score per asset.
    min_weight, max_weight : float
        Clamp bounds for the proportional weights.

    Returns
    -------
    ndarray, shape (n_assets,)
    """
    n_assets = len(scores)
    has_score = np.array([s is not None for s in scores])
    values = np.array([s if s is not None else 0.0 for s in scores], dtype=np.float64)

    total_score = values[has_score].sum()
    if not has_score.any() or total_score == 0.0:
        return equal_weights(n_assets)

    weights = np.zeros(n_assets)
    weights[has_score] = np.clip(values[has_score] / total_score, min_weight, max_weight)

    assigned = weights.sum()
    n_missing = int((~has_score).sum())
    if assigned > 1.0:
        weights[has_score] /= assigned
    elif n_missing:
        weights[~has_score] = (1.0 - assigned) / n_missing

    if abs(weights.sum() - 1.0) > WEIGHT_TOLERANCE:
        weights = normalize(weights)
    return weights


def custom_weights(
    tickers: Sequence[str],
    explicit: dict[str, float],
) -> npt.NDArray[np.float64]:
    """Explicit weights with the remaining mass split among the rest.

    Lookups are case-insensitive.  Tickers without an explicit weight
    share ``1 - sum(explicit)`` equally.  When the explicit weights
    alone exceed one, or leave nothing for unweighted tickers, every
    weight is rescaled proportionally.

    Parameters
    ----------
    tickers : Sequence[str]
        Selected tickers.
    explicit : dict[str, float]
        Configured ticker weights.

    Returns
    -------
    ndarray, shape (n_assets,)
    """
    if not explicit:
        logger.warning("Custom weighting without custom weights, using equal weights")
        return equal_weights(len(tickers))

    lookup = {t.upper(): w for t, w in explicit.items()}
    matched = np.array([t.upper() in lookup for t in tickers])
    weights = np.array([lookup.get(t.upper(), 0.0) for t in tickers], dtype=np.float64)

    assigned = weights[matched].sum()
    n_unweighted = int((~matched).sum())
    if n_unweighted and assigned < 1.0:
        weights[~matched] = (1.0 - assigned) / n_unweighted
    elif n_unweighted:
        logger.warning(
            "Custom weights sum to %.4f, leaving nothing for %d unweighted "
            "tickers; rescaling",
            assigned,
            n_unweighted,
        )

    if weights.sum() == 0.0:
        logger.warning("Custom weights total zero, using equal weights")
        return equal_weights(len(tickers))
    if abs(weights.sum() - 1.0) > WEIGHT_TOLERANCE:
        weights = normalize(weights)
    return weights


def calculate_weights(
    candidates: Sequence[Candidate],
    config: WeightingConfig,
) -> dict[str, float]:
    """Assign normalised weights to the selected candidates.

    Parameters
    ----------
    candidates : Sequence[Candidate]
        Final basket.
    config : WeightingConfig
        Weighting scheme and bounds.

    Returns
    -------
    dict[str, float]
        Weight per ticker, in candidate order, summing to one.  Empty
        for an empty basket.

    Raises
    ------
    DataError
        If a ticker appears more than once.
    """
    if not candidates:
        return {}
    tickers = [c.ticker for c in candidates]
    if len(set(tickers)) != len(tickers):
        duplicates = sorted({t for t in tickers if tickers.count(t) > 1})
        msg = f"duplicate tickers in basket: {duplicates}"
        raise DataError(msg)

    if config.type == WeightType.MARKET_CAP:
        weights = market_cap_weights([c.market_cap for c in candidates])
    elif config.type == WeightType.OVERALL_SCORE:
        weights = score_weights(
            [c.overall_score for c in candidates],
            config.min_weight,
            config.max_weight,
        )
    elif config.type == WeightType.CUSTOM:
        weights = custom_weights(tickers, config.custom_weights)
    else:
        weights = equal_weights(len(candidates))

    logger.debug(
        "Weights (%s): %s",
        config.type.value,
        ", ".join(f"{t}={w:.4f}" for t, w in zip(tickers, weights)),
    )
    return {t: float(w) for t, w in zip(tickers, weights)}
