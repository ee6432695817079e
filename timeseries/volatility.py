import logging

import numpy as np
import pandas as pd

from data_manager.data_validator import ensure_finite

logger = logging.getLogger(__name__)


def ema(values, window: int, seed: str = 'first') -> np.ndarray:
    """
    Exponential moving average v[t] = a*x[t] + (1 - a)*v[t-1], a = 2/(window + 1).

    Seeding rules:
        'first': v[0] = x[0]; output has no gaps.
        'sma':   v[window-1] = mean(x[:window]); earlier points are NaN.
    """
    x = np.asarray(values, dtype=float)
    if window < 1:
        raise ValueError(f"EMA window must be at least 1, got {window}")
    if x.size == 0:
        return x.copy()

    if seed == 'first':
        # writable copy; copy-on-write may hand back a read-only view
        return pd.Series(x).ewm(span=window, adjust=False).mean().to_numpy(copy=True)

    if seed == 'sma':
        out = np.full(x.size, np.nan)
        if x.size < window:
            return out
        alpha = 2.0 / (window + 1)
        out[window - 1] = x[:window].mean()
        for t in range(window, x.size):
            out[t] = alpha * x[t] + (1 - alpha) * out[t - 1]
        return out

    raise ValueError(f"Unknown EMA seeding rule '{seed}'")


class EMAVolatility:
    """Time-varying volatility as the EMA of absolute trend residuals"""

    def __init__(self, window: int = 20):
        self.window = window
        self.alpha = 2.0 / (window + 1)
        self.logger = logging.getLogger('timeseries.volatility')

    def estimate(self, residuals: pd.Series) -> pd.Series:
        """
        Smoothed |residual| series, same length and index as the input.

        Seeded with the first absolute residual so no output is lost.
        """
        if not isinstance(residuals, pd.Series):
            residuals = pd.Series(np.asarray(residuals, dtype=float))

        abs_resid = np.abs(ensure_finite(residuals.to_numpy(), 'volatility', self.logger))
        vol = ema(abs_resid, self.window, seed='first')

        if len(vol):
            self.logger.info(
                f"EMA volatility (window={self.window}, alpha={self.alpha:.4f}): "
                f"mean={vol.mean():.6f}, max={vol.max():.6f}"
            )
        return pd.Series(vol, index=residuals.index, name='volatility')
