"""Traded-value and last-price computations on OHLCV frames."""

from __future__ import annotations

import pandas as pd


def split_ohlcv(data: pd.DataFrame, symbols: list[str]) -> dict[str, pd.DataFrame]:
    """Split a bulk download into one (dates x symbols) frame per field.

    Parameters
    ----------
    data : pd.DataFrame
        Download with ``(field, symbol)`` MultiIndex columns, or flat
        field columns for a single symbol.
    symbols : list[str]
        Requested symbols.

    Returns
    -------
    dict[str, pd.DataFrame]
        Frames keyed by field name (``Close``, ``High``, ...).
    """
    if not isinstance(data.columns, pd.MultiIndex):
        if len(symbols) != 1:
            msg = "flat OHLCV columns are only valid for a single symbol"
            raise ValueError(msg)
        return {field: data[[field]].set_axis(symbols, axis=1) for field in data.columns}
    fields = data.columns.get_level_values(0).unique()
    return {field: data[field] for field in fields}


def last_prices(close: pd.DataFrame) -> pd.Series:
    """Last non-missing close per symbol; symbols without one are dropped."""
    return close.ffill().iloc[-1].dropna() if not close.empty else pd.Series(dtype=float)


def compute_average_daily_traded_value(
    close: pd.DataFrame,
    volume: pd.DataFrame,
    window: int,
    high: pd.DataFrame | None = None,
    low: pd.DataFrame | None = None,
) -> pd.Series:
    """Average daily traded value over a trailing window.

    The daily traded value is ``volume * (high + low) / 2``, falling back
    to ``volume * close`` on days without a high/low.

    Parameters
    ----------
    close : pd.DataFrame
        Close prices (dates x symbols).
    volume : pd.DataFrame
        Share volume, aligned with *close*.
    window : int
        Number of trailing trading days.
    high, low : pd.DataFrame or None
        Daily highs and lows.

    Returns
    -------
    pd.Series
        Average traded value per symbol; symbols without data are dropped.
    """
    if high is not None and low is not None:
        typical = ((high + low) / 2).fillna(close)
    else:
        typical = close
    traded = volume * typical
    tail = traded.iloc[-window:] if len(traded) >= window else traded
    return tail.mean().dropna()
