"""Exceptions raised by the forecasting pipeline."""

from typing import Optional


class ForecastError(Exception):
    """Base class for every pipeline failure"""


class DataUnavailableError(ForecastError):
    """Price download failed on every allowed attempt"""

    def __init__(self, symbol: str, attempts: int, last_error: Optional[BaseException] = None):
        self.symbol = symbol
        self.attempts = attempts
        self.last_error = last_error
        message = f"No price data for {symbol} after {attempts} attempts"
        if last_error is not None:
            message += f" (last error: {last_error})"
        super().__init__(message)


class InsufficientDataError(ForecastError, ValueError):
    """Too few observations left to continue"""


class InsufficientHistoryError(InsufficientDataError):
    """A source series is shorter than the feature horizon"""

    def __init__(self, name: str, available: int, required: int):
        self.name = name
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient data: {name} has {available} usable points, {required} required"
        )


class NonFiniteValueError(ForecastError, ValueError):
    """NaN or infinity reached a stage that requires finite input"""

    def __init__(self, stage: str, index: int, value: float):
        self.stage = stage
        self.index = index
        self.value = value
        super().__init__(f"Non-finite value {value!r} in stage '{stage}' at index {index}")


class ConvergenceError(ForecastError):
    """No ARIMA candidate order converged"""


class EmptySearchSpaceError(ForecastError, ValueError):
    """Hyperparameter grid has a dimension without values"""


class DegenerateFoldError(ForecastError, ValueError):
    """A cross-validation fold has no training or no validation rows"""


class UndefinedMetricError(ForecastError, ArithmeticError):
    """Metric denominator is zero (e.g. zero-variance returns)"""


class ConfigurationError(ForecastError, ValueError):
    """Pipeline configuration is inconsistent"""
