"""
Validation of price series and of intermediate numeric series.
"""

import logging
from typing import List, Optional

import numpy as np
import pandas as pd

from errors import InsufficientDataError, NonFiniteValueError
from models import PriceSeries

logger = logging.getLogger(__name__)


def ensure_finite(values, stage: str, log: Optional[logging.Logger] = None) -> np.ndarray:
    """
    Reject NaN and infinity.

    Args:
        values: Array-like of numbers (any shape)
        stage: Name of the stage the values belong to, used in the error
        log: Logger to report the failure on

    Returns:
        The values as a float ndarray

    Raises:
        NonFiniteValueError: on the first non-finite value; for 2-D input the
            reported index is the row (observation), not the flat position
    """
    array = np.asarray(values, dtype=float)
    bad = np.flatnonzero(~np.isfinite(array))
    if bad.size:
        position = int(bad[0])
        value = float(array.flat[position])
        index = int(np.unravel_index(position, array.shape)[0]) if array.ndim > 1 else position
        (log or logger).error(
            f"Stage '{stage}': {bad.size} non-finite values, first at index {index} ({value})"
        )
        raise NonFiniteValueError(stage, index, value)
    return array


class DataValidator:
    """Checks daily price data before modelling"""

    def __init__(self, min_points: int = 2):
        self.min_points = min_points
        self.logger = logging.getLogger('data_manager.data_validator')

    def find_issues(self, prices: pd.Series) -> List[str]:
        """List problems without modifying anything"""
        issues = []

        if not isinstance(prices.index, pd.DatetimeIndex):
            issues.append("Index is not a DatetimeIndex")
        else:
            if prices.index.has_duplicates:
                issues.append(f"{prices.index.duplicated().sum()} duplicate dates")
            if not prices.index.is_monotonic_increasing:
                issues.append("Dates are not increasing")

        missing = prices.isna().sum()
        if missing > 0:
            issues.append(f"{missing} missing prices")

        values = prices.to_numpy(dtype=float)
        infinite = np.isinf(values).sum()
        if infinite > 0:
            issues.append(f"{infinite} infinite prices")

        non_positive = prices[prices <= 0]
        if not non_positive.empty:
            issues.append(
                f"{len(non_positive)} non-positive prices "
                f"(first occurrence at {non_positive.index[0]})"
            )

        return issues

    def validate_prices(self, series: PriceSeries) -> PriceSeries:
        """
        Return a series with strictly increasing dates and positive finite prices.

        Out-of-order rows are sorted, duplicate dates keep the last quote and
        unusable prices are dropped; every repair is logged.

        Raises:
            InsufficientDataError: if fewer than `min_points` prices remain
        """
        prices = series.prices.copy()
        prices.index = pd.DatetimeIndex(prices.index)

        issues = self.find_issues(prices)
        for issue in issues:
            self.logger.warning(f"{series.symbol}: {issue}")

        if issues:
            prices = prices.sort_index(kind='mergesort')  # stable, so keep='last' means last received
            prices = prices[~prices.index.duplicated(keep='last')]
            prices = prices.astype(float)
            prices = prices[np.isfinite(prices.to_numpy()) & (prices > 0)]
            self.logger.info(f"{series.symbol}: {len(prices)} of {len(series)} prices kept after repair")

        if len(prices) < self.min_points:
            raise InsufficientDataError(
                f"Insufficient data for {series.symbol}: {len(prices)} valid prices, "
                f"{self.min_points} required"
            )

        return series.with_prices(prices.astype(float))
