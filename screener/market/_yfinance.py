"""yfinance-backed market data provider."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, timedelta

import pandas as pd
import yfinance as yf

from screener.market._volume import (
    compute_average_daily_traded_value,
    last_prices,
    split_ohlcv,
)

logger = logging.getLogger(__name__)


class YFinanceMarketDataProvider:
    """Batch prices and traded values from one ``yf.download`` per call.

    Parameters
    ----------
    ticker_suffix : str
        Exchange suffix appended to every ticker for Yahoo Finance
        (``".SA"`` for B3).
    price_period : str
        Download period used to find the latest close.
    """

    def __init__(self, ticker_suffix: str = "", price_period: str = "5d") -> None:
        self.ticker_suffix = ticker_suffix
        self.price_period = price_period

    def get_prices(self, tickers: Sequence[str]) -> dict[str, float]:
        """Latest close per ticker; tickers without a quote are omitted."""
        frames = self._download(tickers, period=self.price_period)
        if not frames:
            return {}
        prices = last_prices(frames["Close"])
        return self._to_tickers(prices)

    def get_average_daily_volumes(
        self, tickers: Sequence[str], days: int = 30
    ) -> dict[str, float]:
        """Average daily traded value over the last *days* trading days."""
        # Calendar window wide enough to hold `days` trading sessions
        start = date.today() - timedelta(days=days * 2)
        frames = self._download(tickers, start=start.isoformat())
        if not frames:
            return {}
        addv = compute_average_daily_traded_value(
            frames["Close"],
            frames["Volume"],
            days,
            high=frames.get("High"),
            low=frames.get("Low"),
        )
        return self._to_tickers(addv)

    def _symbol(self, ticker: str) -> str:
        return f"{ticker}{self.ticker_suffix}"

    def _to_tickers(self, values: pd.Series) -> dict[str, float]:
        suffix = self.ticker_suffix
        result: dict[str, float] = {}
        for symbol, value in values.items():
            ticker = symbol[: -len(suffix)] if suffix and symbol.endswith(suffix) else symbol
            result[ticker] = float(value)
        return result

    def _download(
        self,
        tickers: Sequence[str],
        period: str | None = None,
        start: str | None = None,
    ) -> dict[str, pd.DataFrame]:
        if not tickers:
            return {}
        symbols = [self._symbol(t) for t in tickers]
        kwargs: dict[str, object] = {
            "tickers": symbols,
            "interval": "1d",
            "group_by": "column",
            "auto_adjust": False,
            "progress": False,
            "threads": True,
        }
        if start is not None:
            kwargs["start"] = start
        else:
            kwargs["period"] = period

        logger.info("Bulk downloading %d symbols", len(symbols))
        data = yf.download(**kwargs)
        if data is None or data.empty:
            logger.warning("Bulk download returned no data for %d symbols", len(symbols))
            return {}
        return split_ohlcv(data, symbols)
