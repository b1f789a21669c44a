"""Index screening and rebalancing engine.

Modules
-------
config
    Immutable index configuration (universe, quality ranges, liquidity,
    selection, weighting, rebalance and diversification policies) and
    the parser for the stored JSON document.
domain
    Instruments, candidates, composition rows and change records, plus
    the protocols of the external collaborators.
filters
    Range predicates, exclusion, quality, liquidity, upside and
    technical fair-value filters composed in a filter pipeline.
screening
    Market enrichment, strategy ranking, deduplication, selection,
    sector diversification and the screening engine.
weighting
    Equal, score, market-cap and custom weighting schemes.
rebalancing
    Rebalance decision, quality revalidation, composition diff and
    the rebalance reason summary.
pipeline
    End-to-end index job: screening → weights → decision → persistence.
market
    yfinance-backed price and traded-value provider.
database
    Settings, SQLAlchemy models and repositories.
"""

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

logging.getLogger("screener").addHandler(logging.NullHandler())

from screener.exceptions import (
    ConfigurationError,
    DataError,
    EnrichmentError,
    PersistenceError,
    ScreenerError,
    UniverseError,
)

__all__ = [
    "ConfigurationError",
    "DataError",
    "EnrichmentError",
    "PersistenceError",
    "ScreenerError",
    "UniverseError",
]

try:
    __version__ = _pkg_version("index-screener")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
