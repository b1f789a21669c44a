"""Custom exception hierarchy for the screener library."""


class ScreenerError(Exception):
    """Base exception for all screener library errors."""


class ConfigurationError(ScreenerError):
    """Invalid index configuration or conflicting options."""


class DataError(ScreenerError):
    """Invalid input data: duplicate tickers, wrong shape, or missing keys."""


class UniverseError(ScreenerError):
    """The universe query failed; no candidates can be built."""


class EnrichmentError(ScreenerError):
    """A whole market-data enrichment phase failed or timed out."""


class PersistenceError(ScreenerError):
    """Writing the composition or change log failed and was rolled back."""
