"""Universe scope filters: asset-type allowlist and ticker exclusions."""

from __future__ import annotations

from collections.abc import Callable

from screener.config import UniverseConfig
from screener.domain.models import Instrument


def compile_pattern(pattern: str) -> Callable[[str], bool]:
    """Build a case-insensitive matcher for one exclusion pattern.

    ``*X`` matches tickers ending in ``X``, ``X*`` matches tickers
    starting with ``X``; any other pattern is an exact match.

    Parameters
    ----------
    pattern : str
        Exclusion pattern.

    Returns
    -------
    callable
        Predicate returning ``True`` for excluded tickers.
    """
    upper = pattern.upper()
    if upper.startswith("*"):
        suffix = upper[1:]
        return lambda ticker: ticker.upper().endswith(suffix)
    if upper.endswith("*"):
        prefix = upper[:-1]
        return lambda ticker: ticker.upper().startswith(prefix)
    return lambda ticker: ticker.upper() == upper


class AssetTypeFilter:
    """Keeps instruments whose asset type is in the allowlist."""

    name = "AssetType"

    def __init__(self, asset_types: tuple[str, ...]) -> None:
        self._allowed = {str(getattr(t, "value", t)).upper() for t in asset_types}

    def filter(self, item: Instrument) -> tuple[bool, str]:
        if item.asset_type.upper() in self._allowed:
            return True, ""
        return False, f"asset type {item.asset_type} not in universe"


class ExclusionFilter:
    """Removes explicitly excluded or pattern-matched tickers."""

    name = "Exclusion"

    def __init__(self, config: UniverseConfig) -> None:
        self._excluded = {t.upper() for t in config.excluded_tickers}
        self._patterns = [(p, compile_pattern(p)) for p in config.excluded_patterns]

    @property
    def active(self) -> bool:
        return bool(self._excluded or self._patterns)

    def filter(self, item: Instrument) -> tuple[bool, str]:
        if item.ticker.upper() in self._excluded:
            return False, "excluded by ticker list"
        for pattern, matches in self._patterns:
            if matches(item.ticker):
                return False, f"excluded by pattern {pattern!r}"
        return True, ""
