"""
Daily closing price download with bounded, linearly increasing retries.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import pandas as pd
import yfinance as yf

from errors import DataUnavailableError
from models import PriceSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryBackoff:
    """Retry state threaded through fetch calls instead of a global counter"""
    attempt: int = 0
    unit: float = 1.0

    @property
    def delay(self) -> float:
        """Seconds to wait after the current attempt fails"""
        return self.attempt * self.unit

    def next(self) -> 'RetryBackoff':
        return RetryBackoff(attempt=self.attempt + 1, unit=self.unit)


class DataLoader:
    """Fetches daily closes from Yahoo Finance"""

    def __init__(self, max_attempts: int = 100,
                 sleep: Callable[[float], None] = time.sleep,
                 download: Optional[Callable[..., pd.DataFrame]] = None):
        """
        Args:
            max_attempts: Total download attempts before giving up
            sleep: Called with the backoff delay between attempts
            download: Replacement for yfinance.download (same signature)
        """
        self.max_attempts = max_attempts
        self.sleep = sleep
        self.download = download or yf.download
        self.logger = logging.getLogger('data_manager.data_loader')

    def _download_once(self, symbol: str, start: str, end: str) -> pd.Series:
        data = self.download(
            symbol,
            start=start,
            end=end,
            progress=False,
            auto_adjust=True,
            threads=False,
        )
        if data is None or data.empty:
            raise ValueError(f"No data returned for {symbol}")

        close = data['Close']
        # Newer yfinance returns a ticker-level column index even for one symbol
        if isinstance(close, pd.DataFrame):
            close = close.iloc[:, 0]

        close = close.dropna()
        if close.empty:
            raise ValueError(f"Only missing closes returned for {symbol}")

        index = pd.DatetimeIndex(close.index)
        if index.tz is not None:
            index = index.tz_localize(None)

        return pd.Series(close.to_numpy(dtype=float), index=index, name='close')

    def fetch_prices(self, symbol: str, start: str, end: str,
                     backoff: Optional[RetryBackoff] = None) -> Tuple[PriceSeries, RetryBackoff]:
        """
        Download daily closing prices, retrying on failure.

        Attempt N waits N backoff units before attempt N + 1. The updated
        backoff is returned with the series so a caller can resume from it.

        Returns:
            Tuple of (price series, backoff state after the last attempt)
        """
        backoff = backoff or RetryBackoff()
        last_error = None

        while backoff.attempt < self.max_attempts:
            backoff = backoff.next()
            try:
                self.logger.info(
                    f"Downloading {symbol} {start} to {end} "
                    f"(attempt {backoff.attempt}/{self.max_attempts})"
                )
                prices = self._download_once(symbol, start, end)
                self.logger.info(
                    f"Downloaded {len(prices)} closes for {symbol}: "
                    f"{prices.index[0]:%Y-%m-%d} to {prices.index[-1]:%Y-%m-%d}"
                )
                return PriceSeries(symbol=symbol, prices=prices), backoff

            except Exception as e:
                last_error = e
                if backoff.attempt >= self.max_attempts:
                    break
                self.logger.warning(
                    f"Attempt {backoff.attempt} for {symbol} failed: {str(e)}; "
                    f"retrying in {backoff.delay:.1f}s"
                )
                self.sleep(backoff.delay)

        self.logger.error(f"Giving up on {symbol} after {backoff.attempt} attempts")
        raise DataUnavailableError(symbol, backoff.attempt, last_error)
