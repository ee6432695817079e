"""
Trading signals, directional accuracy and risk-adjusted return.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence
import logging

import numpy as np
import pandas as pd

from errors import UndefinedMetricError

logger = logging.getLogger(__name__)

TRADING_DAYS_PER_YEAR = 252


class Signal(Enum):
    BUY = 'Buy'
    HOLD = 'Hold'
    SELL = 'Sell'


def classify_actual(deltas) -> List[Signal]:
    """Buy on any rise, Sell on any fall, Hold when unchanged"""
    return [
        Signal.BUY if d > 0 else Signal.SELL if d < 0 else Signal.HOLD
        for d in np.asarray(deltas, dtype=float)
    ]


def classify_predicted(deltas, buy_threshold: float = 0.05,
                       sell_threshold: float = -0.05) -> List[Signal]:
    """Buy above buy_threshold, Sell below sell_threshold, Hold in between"""
    return [
        Signal.BUY if d > buy_threshold else Signal.SELL if d < sell_threshold else Signal.HOLD
        for d in np.asarray(deltas, dtype=float)
    ]


def directional_accuracy(actual: Sequence[Signal], predicted: Sequence[Signal]) -> Optional[float]:
    """
    Percentage of matching signals over the overlapping length.

    Returns None when there is no overlap.
    """
    n = min(len(actual), len(predicted))
    if n == 0:
        return None
    matches = sum(1 for a, p in zip(actual[:n], predicted[:n]) if a == p)
    return 100.0 * matches / n


def signal_accuracy(actual_values, predicted_values, buy_threshold: float = 0.05,
                    sell_threshold: float = -0.05) -> Optional[float]:
    """Directional accuracy of two level series via their first differences"""
    actual = classify_actual(np.diff(np.asarray(actual_values, dtype=float)))
    predicted = classify_predicted(
        np.diff(np.asarray(predicted_values, dtype=float)),
        buy_threshold,
        sell_threshold,
    )
    return directional_accuracy(actual, predicted)


def sharpe_ratio(returns, periods: int = TRADING_DAYS_PER_YEAR,
                 strict: bool = False) -> Optional[float]:
    """
    Annualized mean / stdev of a return series.

    Returns None (undefined) when fewer than two returns are given or the
    standard deviation is zero up to rounding noise. With strict=True an
    UndefinedMetricError is raised instead.
    """
    values = np.asarray(returns, dtype=float)
    values = values[np.isfinite(values)]

    std = values.std(ddof=1) if values.size > 1 else 0.0
    if values.size < 2 or np.isclose(std, 0.0, rtol=0.0, atol=1e-12):
        message = f"Sharpe ratio undefined: {values.size} returns, stdev={std}"
        if strict:
            raise UndefinedMetricError(message)
        logger.warning(message)
        return None

    return float(values.mean() / std * np.sqrt(periods))


@dataclass
class StrategyResult:
    """Signals and metrics derived from a simulated price path"""
    predicted_signals: List[Signal]
    directional_accuracy: Optional[float]
    sharpe_ratio: Optional[float]


class StrategyEvaluator:
    """Turns the smoothed simulated path and validation predictions into signals and metrics"""

    def __init__(self, buy_threshold: float = 0.05, sell_threshold: float = -0.05,
                 periods: int = TRADING_DAYS_PER_YEAR):
        self.buy_threshold = buy_threshold
        self.sell_threshold = sell_threshold
        self.periods = periods
        self.logger = logging.getLogger('strategy.performance')

    def evaluate(self, smoothed_path, valid_predictions, valid_targets) -> StrategyResult:
        """
        Args:
            smoothed_path: Smoothed simulated prices
            valid_predictions: Held-out (out-of-fold) predictions
            valid_targets: Targets aligned with valid_predictions
        """
        path = np.asarray(smoothed_path, dtype=float)

        predicted_signals = classify_predicted(
            np.diff(path), self.buy_threshold, self.sell_threshold
        )

        accuracy = signal_accuracy(
            valid_targets, valid_predictions, self.buy_threshold, self.sell_threshold
        )
        if accuracy is None:
            self.logger.warning("Directional accuracy undefined: no overlapping deltas")

        path_returns = pd.Series(path).pct_change().dropna().to_numpy()
        sharpe = sharpe_ratio(path_returns, self.periods)

        self.logger.info(
            f"Strategy metrics:\n"
            f"  Directional accuracy: "
            f"{'undefined' if accuracy is None else f'{accuracy:.1f}%'}\n"
            f"  Sharpe ratio:         "
            f"{'undefined' if sharpe is None else f'{sharpe:.3f}'}"
        )

        return StrategyResult(
            predicted_signals=predicted_signals,
            directional_accuracy=accuracy,
            sharpe_ratio=sharpe,
        )
