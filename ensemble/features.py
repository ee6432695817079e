import logging

import numpy as np
import pandas as pd

from data_manager.data_validator import ensure_finite
from errors import InsufficientHistoryError
from models import FeatureSet

logger = logging.getLogger(__name__)


class FeatureBuilder:
    """Aligns residuals, volatility and returns on their most recent rows"""

    def __init__(self, horizon: int = 365, target_scale: float = 1000.0):
        self.horizon = horizon
        self.target_scale = target_scale
        self.logger = logging.getLogger('ensemble.features')

    def build(self, residuals: pd.Series, volatility: pd.Series, returns: pd.Series) -> FeatureSet:
        """
        Feature matrix of (residual, volatility) rows with target = return * scale.

        The series may differ in length (the trend model drops its burn-in);
        all three are cut to their last `horizon` values.

        Raises:
            InsufficientHistoryError: any series has fewer than `horizon` points
            NonFiniteValueError: a feature or target is NaN or infinite
        """
        sources = {'residuals': residuals, 'volatility': volatility, 'returns': returns}
        for name, series in sources.items():
            if len(series) < self.horizon:
                self.logger.error(
                    f"{name} has {len(series)} points, horizon is {self.horizon}"
                )
                raise InsufficientHistoryError(name, len(series), self.horizon)

        tail = {name: np.asarray(series, dtype=float)[-self.horizon:]
                for name, series in sources.items()}

        X = np.column_stack([tail['residuals'], tail['volatility']])
        y = tail['returns'] * self.target_scale

        ensure_finite(X, 'features', self.logger)
        ensure_finite(y, 'features', self.logger)

        if isinstance(returns, pd.Series):
            index = returns.index[-self.horizon:]
        else:
            index = pd.RangeIndex(self.horizon)

        self.logger.info(
            f"Built feature matrix: {X.shape[0]} rows x {X.shape[1]} features "
            f"(target scale {self.target_scale:g})"
        )
        return FeatureSet(X=X, y=y, index=index)
