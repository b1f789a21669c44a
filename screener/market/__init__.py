"""Market data providers and traded-value computations."""

from screener.market._volume import (
    compute_average_daily_traded_value,
    last_prices,
    split_ohlcv,
)
from screener.market._yfinance import YFinanceMarketDataProvider

__all__ = [
    "YFinanceMarketDataProvider",
    "compute_average_daily_traded_value",
    "last_prices",
    "split_ohlcv",
]
