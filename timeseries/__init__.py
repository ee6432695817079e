"""
Time-series modelling package for log returns.
Fits the ARIMA trend model and the EMA residual volatility model.
"""

from .estimator import ARIMAEstimator
from .volatility import EMAVolatility, ema
from models import TrendResult

__all__ = ['ARIMAEstimator', 'EMAVolatility', 'ema', 'TrendResult']
