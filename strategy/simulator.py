import logging
from typing import Tuple

import numpy as np
from scipy.interpolate import PchipInterpolator

from data_manager.data_validator import ensure_finite
from errors import InsufficientDataError
from timeseries.volatility import ema

logger = logging.getLogger(__name__)


class PriceSimulator:
    """Projects prices forward by compounding predicted (scaled) log returns"""

    def __init__(self, horizon: int = 365,
                 target_scale: float = 1000.0,
                 smoothing_window: int = 10,
                 seed: str = 'first'):
        """
        Args:
            horizon: Length of the simulated path, including the last real price
            target_scale: Factor the predictions were multiplied by
            smoothing_window: EMA window for the path
            seed: EMA seeding rule, see timeseries.volatility.ema
        """
        self.horizon = horizon
        self.target_scale = target_scale
        self.smoothing_window = smoothing_window
        self.seed = seed
        self.logger = logging.getLogger('strategy.simulator')

    def simulate(self, predictions, last_price: float) -> np.ndarray:
        """
        price[0] = last_price; price[t] = price[t-1] * exp(prediction[t-1] / scale).

        Needs at least horizon - 1 predictions; extra predictions are ignored.

        Raises:
            InsufficientDataError: fewer than horizon - 1 predictions
        """
        preds = ensure_finite(predictions, 'simulator', self.logger)
        needed = self.horizon - 1
        if preds.size < needed:
            raise InsufficientDataError(
                f"Insufficient data for simulation: {preds.size} predictions, "
                f"{needed} needed for a {self.horizon}-day path"
            )
        if not np.isfinite(last_price) or last_price <= 0:
            raise ValueError(f"Last price must be positive and finite, got {last_price}")

        steps = preds[:needed] / self.target_scale
        path = np.empty(self.horizon)
        path[0] = last_price
        path[1:] = last_price * np.exp(np.cumsum(steps))
        return path

    def smooth(self, path) -> np.ndarray:
        """
        EMA-smooth the path, pin the first point to the raw start, then fill
        any missing lead-in points by monotone cubic interpolation.
        """
        raw = np.asarray(path, dtype=float)
        smoothed = np.array(ema(raw, self.smoothing_window, seed=self.seed), dtype=float)
        if smoothed.size == 0:
            return smoothed

        smoothed[0] = raw[0]

        missing = ~np.isfinite(smoothed)
        if missing.any():
            known = np.flatnonzero(~missing)
            if known.size < 2:
                # Nothing to interpolate between
                smoothed[missing] = raw[missing]
            else:
                interpolator = PchipInterpolator(known, smoothed[known], extrapolate=True)
                smoothed[missing] = interpolator(np.flatnonzero(missing))
            self.logger.debug(f"Interpolated {missing.sum()} lead-in points")

        return ensure_finite(smoothed, 'simulator', self.logger)

    def run(self, predictions, last_price: float) -> Tuple[np.ndarray, np.ndarray]:
        """Returns (raw path, smoothed path)"""
        raw = self.simulate(predictions, last_price)
        smoothed = self.smooth(raw)
        self.logger.info(
            f"Simulated {self.horizon}-day path: start={raw[0]:.2f}, "
            f"end={raw[-1]:.2f} (smoothed end={smoothed[-1]:.2f})"
        )
        return raw, smoothed
