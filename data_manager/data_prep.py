"""
Prepare prices for modelling: outlier removal and log returns.
"""

import logging

import numpy as np
import pandas as pd

from errors import InsufficientDataError
from models import PriceSeries
from .data_validator import ensure_finite

logger = logging.getLogger(__name__)


def iqr_bounds(values: np.ndarray, k: float = 1.5):
    """Tukey fences [Q1 - k*IQR, Q3 + k*IQR]"""
    q1, q3 = np.percentile(values, [25, 75])
    iqr = q3 - q1
    return q1 - k * iqr, q3 + k * iqr


class ReturnsPrep:
    """Cleans a price series and converts it to log returns"""

    def __init__(self, iqr_multiplier: float = 1.5, until_stable: bool = True):
        """
        Args:
            iqr_multiplier: Fence width in interquartile ranges
            until_stable: Repeat the filter until it removes nothing, so a
                second call on the output is a no-op
        """
        self.iqr_multiplier = iqr_multiplier
        self.until_stable = until_stable
        self.logger = logging.getLogger('data_manager.data_prep')

    def remove_outliers(self, series: PriceSeries) -> PriceSeries:
        """Drop prices outside the IQR fences, preserving order"""
        prices = series.prices
        if prices.empty:
            return series

        while True:
            lower, upper = iqr_bounds(prices.to_numpy(dtype=float), self.iqr_multiplier)
            keep = (prices >= lower) & (prices <= upper)
            removed = int((~keep).sum())
            if removed == 0:
                break
            self.logger.info(
                f"{series.symbol}: removed {removed} outliers outside "
                f"[{lower:.4f}, {upper:.4f}]"
            )
            prices = prices[keep]
            if not self.until_stable or prices.empty:
                break

        self.logger.info(f"{series.symbol}: {len(prices)} of {len(series)} prices after cleaning")
        return series.with_prices(prices)

    def log_returns(self, series: PriceSeries) -> pd.Series:
        """
        ln(p[t]) - ln(p[t-1]), indexed by the later date.

        Raises:
            InsufficientDataError: if fewer than two prices are available
        """
        if len(series) < 2:
            raise InsufficientDataError(
                f"Insufficient data for {series.symbol}: {len(series)} prices, "
                f"at least 2 needed for returns"
            )

        log_prices = np.log(series.values)
        returns = pd.Series(np.diff(log_prices), index=series.prices.index[1:], name='log_return')
        ensure_finite(returns.to_numpy(), 'returns', self.logger)

        self.logger.info(
            f"Prepared log returns:\n"
            f"  Count: {len(returns)}\n"
            f"  Mean:  {returns.mean():.6f}\n"
            f"  Std:   {returns.std():.6f}"
        )
        return returns

    def prepare_returns(self, series: PriceSeries):
        """
        Clean and transform in one step.

        Returns:
            Tuple of (cleaned price series, log returns)
        """
        cleaned = self.remove_outliers(series)
        return cleaned, self.log_returns(cleaned)
