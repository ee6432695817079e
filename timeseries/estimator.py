from typing import Dict, List, Optional, Tuple
import logging
import warnings

import numpy as np
import pandas as pd
from statsmodels.tsa.arima.model import ARIMA

from data_manager.data_validator import ensure_finite
from errors import ConvergenceError, InsufficientDataError
from models import TrendResult

logger = logging.getLogger(__name__)

Order = Tuple[int, int, int]


class ARIMAEstimator:
    """Selects and fits an ARIMA model of log returns by information criterion"""

    def __init__(self, max_p: int = 5,
                 max_d: int = 2,
                 max_q: int = 5,
                 min_observations: int = 30,
                 information_criterion: str = 'aicc'):
        """
        Initialize estimator

        Args:
            max_p: Largest autoregressive order tried
            max_d: Largest differencing order tried
            max_q: Largest moving-average order tried
            min_observations: Minimum number of returns required
            information_criterion: statsmodels results attribute to minimize
                ('aicc', 'aic', 'bic' or 'hqic')
        """
        self.max_p = max_p
        self.max_d = max_d
        self.max_q = max_q
        self.min_observations = min_observations
        self.information_criterion = information_criterion
        self.logger = logging.getLogger('timeseries.estimator')

    def candidate_orders(self) -> List[Order]:
        """All (p, d, q) combinations inside the bounds, smallest first"""
        return [
            (p, d, q)
            for d in range(self.max_d + 1)
            for p in range(self.max_p + 1)
            for q in range(self.max_q + 1)
        ]

    def _fit_single_order(self, returns: pd.Series, order: Order):
        """Fit one order; returns None if it fails or does not converge"""
        _, d, _ = order
        try:
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                model = ARIMA(
                    returns,
                    order=order,
                    trend='c' if d == 0 else 'n',  # no mean term once differenced
                )
                result = model.fit()

            retvals = getattr(result, 'mle_retvals', None) or {}
            if not retvals.get('converged', True):
                self.logger.warning(f"ARIMA{order} did not converge")
                return None

            score = getattr(result, self.information_criterion)
            if not np.isfinite(score):
                self.logger.warning(f"ARIMA{order} has non-finite {self.information_criterion}")
                return None

            return result

        except Exception as e:
            self.logger.warning(f"Error fitting ARIMA{order}: {str(e)}")
            return None

    def _constant_model(self, returns: pd.Series) -> TrendResult:
        """Zero-variance returns: every residual is zero around the constant"""
        mean = float(returns.iloc[0]) if len(returns) else 0.0
        self.logger.info(
            f"Returns have zero variance; using constant model (mean={mean:.6f})"
        )
        return TrendResult(
            order=(0, 0, 0),
            criterion=self.information_criterion,
            criterion_value=float('nan'),
            params={'const': mean},
            residuals=pd.Series(np.zeros(len(returns)), index=returns.index, name='residual'),
            fitted=None,
        )

    def estimate(self, returns: pd.Series) -> TrendResult:
        """
        Select the order minimizing the information criterion and return its residuals.

        The first p + d residuals are dropped: they are computed without a full
        lag history and are not one-step-ahead errors.

        Raises:
            InsufficientDataError: fewer than `min_observations` returns
            ConvergenceError: no candidate order converged
        """
        if not isinstance(returns, pd.Series):
            returns = pd.Series(np.asarray(returns, dtype=float))

        if len(returns) < self.min_observations:
            raise InsufficientDataError(
                f"Insufficient data for trend model: {len(returns)} < {self.min_observations}"
            )

        values = ensure_finite(returns.to_numpy(), 'trend', self.logger)
        self.logger.info(
            f"Input returns stats:\n"
            f"  Count: {len(values)}\n"
            f"  Mean:  {values.mean():8.6f}\n"
            f"  Std:   {values.std():8.6f}"
        )

        if np.ptp(values) == 0:
            return self._constant_model(returns)

        # statsmodels wants a supported frequency or a plain index
        endog = pd.Series(values, name='log_return')

        candidates: Dict[Order, object] = {}
        for order in self.candidate_orders():
            result = self._fit_single_order(endog, order)
            if result is not None:
                candidates[order] = result

        if not candidates:
            self.logger.error(
                f"No ARIMA order converged among {len(self.candidate_orders())} candidates"
            )
            raise ConvergenceError(
                f"No ARIMA candidate converged (p<={self.max_p}, d<={self.max_d}, q<={self.max_q})"
            )

        # min() keeps the first (simplest) order on ties
        best_order = min(
            candidates,
            key=lambda o: getattr(candidates[o], self.information_criterion)
        )
        best = candidates[best_order]
        score = float(getattr(best, self.information_criterion))

        self.logger.info(
            f"Selected ARIMA{best_order} from {len(candidates)} converged candidates "
            f"({self.information_criterion}={score:.2f})"
        )

        p, d, _ = best_order
        burn_in = p + d
        residuals = np.asarray(best.resid, dtype=float)[burn_in:]
        ensure_finite(residuals, 'trend', self.logger)

        return TrendResult(
            order=best_order,
            criterion=self.information_criterion,
            criterion_value=score,
            params={str(k): float(v) for k, v in dict(best.params).items()},
            residuals=pd.Series(residuals, index=returns.index[burn_in:], name='residual'),
            fitted=best,
        )
