"""Common data models used across the project."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd


@dataclass(frozen=True, eq=False)
class PriceSeries:
    """Daily closing prices for one symbol, indexed by trading date"""
    symbol: str
    prices: pd.Series  # DatetimeIndex, strictly increasing, positive values

    def __len__(self) -> int:
        return len(self.prices)

    @property
    def values(self) -> np.ndarray:
        return self.prices.to_numpy(dtype=float)

    @property
    def dates(self) -> pd.DatetimeIndex:
        return pd.DatetimeIndex(self.prices.index)

    @property
    def last_price(self) -> float:
        return float(self.prices.iloc[-1])

    def with_prices(self, prices: pd.Series) -> 'PriceSeries':
        """New series for the same symbol"""
        return PriceSeries(symbol=self.symbol, prices=prices)


class MaxFeatures(Enum):
    """Feature subsampling strategy for each split"""
    AUTO = 'auto'
    SQRT = 'sqrt'
    LOG2 = 'log2'

    def to_estimator(self) -> Union[str, float]:
        # 'auto' meant "all features" for forest regressors
        if self is MaxFeatures.AUTO:
            return 1.0
        return self.value


class Unbounded(Enum):
    """Sentinel for a tree depth without limit"""
    DEPTH = 'unbounded'

    def __str__(self) -> str:
        return self.value


UNBOUNDED = Unbounded.DEPTH

MaxDepth = Union[int, Unbounded]


@dataclass(frozen=True)
class HyperparameterSet:
    """One random-forest configuration drawn from the search space"""
    tree_count: int
    max_depth: MaxDepth
    min_samples_split: int
    min_samples_leaf: int
    max_features: MaxFeatures

    def to_estimator_params(self) -> Dict[str, Any]:
        """Keyword arguments for RandomForestRegressor"""
        return {
            'n_estimators': self.tree_count,
            'max_depth': None if self.max_depth is UNBOUNDED else int(self.max_depth),
            'min_samples_split': self.min_samples_split,
            'min_samples_leaf': self.min_samples_leaf,
            'max_features': self.max_features.to_estimator(),
        }

    def to_dict(self) -> Dict[str, Union[int, str]]:
        return {
            'tree_count': self.tree_count,
            'max_depth': str(self.max_depth),
            'min_samples_split': self.min_samples_split,
            'min_samples_leaf': self.min_samples_leaf,
            'max_features': self.max_features.value,
        }


@dataclass(frozen=True)
class FoldMetrics:
    """Train and validation metrics for a single cross-validation fold"""
    fold: int
    n_train: int
    n_valid: int
    train_rmse: float
    train_r2: float  # NaN when undefined
    train_mae: float
    valid_rmse: float
    valid_r2: float  # NaN when undefined
    valid_mae: float
    directional_accuracy: Optional[float]  # percent


@dataclass(frozen=True)
class TrialResult:
    """Cross-validated outcome of one hyperparameter trial"""
    trial: int
    params: HyperparameterSet
    folds: Tuple[FoldMetrics, ...]
    oof_predictions: np.ndarray  # validation predictions of every fold, in row order

    @property
    def mean_valid_rmse(self) -> float:
        return float(np.mean([f.valid_rmse for f in self.folds]))

    def mean_metrics(self) -> Dict[str, float]:
        """Fold averages; undefined fold values are skipped"""
        names = ['train_rmse', 'train_r2', 'train_mae',
                 'valid_rmse', 'valid_r2', 'valid_mae']
        summary = {}
        for name in names:
            values = np.array([getattr(f, name) for f in self.folds], dtype=float)
            summary[name] = float(np.nanmean(values)) if np.isfinite(values).any() else float('nan')
        accuracies = [f.directional_accuracy for f in self.folds if f.directional_accuracy is not None]
        summary['directional_accuracy'] = float(np.mean(accuracies)) if accuracies else float('nan')
        return summary


@dataclass(frozen=True)
class SearchResult:
    """Outcome of the randomized hyperparameter search"""
    best: TrialResult
    trials: Tuple[TrialResult, ...]
    stopped_early: bool
    n_planned: int

    @property
    def best_params(self) -> HyperparameterSet:
        return self.best.params

    def to_dataframe(self) -> pd.DataFrame:
        """One row per evaluated trial"""
        records = []
        for trial in self.trials:
            records.append({
                'trial': trial.trial,
                **trial.params.to_dict(),
                **trial.mean_metrics(),
            })
        return pd.DataFrame(records)

    def fold_dataframe(self) -> pd.DataFrame:
        """Per-fold metrics of the best trial"""
        return pd.DataFrame([vars(f) for f in self.best.folds])


@dataclass
class TrendResult:
    """Fitted ARIMA model of log returns"""
    order: Tuple[int, int, int]
    criterion: str
    criterion_value: float
    params: Dict[str, float]
    residuals: pd.Series  # in-sample one-step-ahead residuals, burn-in removed
    fitted: Any = None  # statsmodels results, None for the constant model

    @property
    def burn_in(self) -> int:
        p, d, _ = self.order
        return p + d

    def forecast(self, steps: int) -> np.ndarray:
        """Out-of-sample mean forecast of the next `steps` log returns"""
        if self.fitted is None:
            return np.full(steps, self.params.get('const', 0.0))
        return np.asarray(self.fitted.forecast(steps=steps), dtype=float)


@dataclass(frozen=True)
class FeatureSet:
    """Aligned (residual, volatility) features and the scaled return target"""
    X: np.ndarray  # shape (horizon, 2)
    y: np.ndarray  # shape (horizon,)
    index: pd.Index
    feature_names: Tuple[str, ...] = ('residual', 'volatility')

    def __len__(self) -> int:
        return len(self.y)

    def to_dataframe(self) -> pd.DataFrame:
        frame = pd.DataFrame(self.X, index=self.index, columns=list(self.feature_names))
        frame['target'] = self.y
        return frame


@dataclass
class TrainedModel:
    """Forest refit on the full feature set with the selected parameters"""
    params: HyperparameterSet
    estimator: Any
    predictions: np.ndarray  # in-sample, not validation
    in_sample_metrics: Dict[str, float]

    def predict(self, X: np.ndarray) -> np.ndarray:
        return self.estimator.predict(X)


@dataclass
class ForecastReport:
    """Structured results handed to reporting"""
    symbol: str
    trend: TrendResult
    search: SearchResult
    model: TrainedModel
    raw_path: np.ndarray
    smoothed_path: np.ndarray
    combined: pd.DataFrame  # columns: price, type ('historical' / 'predicted')
    signals: pd.DataFrame  # next N predicted Buy/Hold/Sell signals
    directional_accuracy: Optional[float]
    sharpe_ratio: Optional[float]
    stage_timings: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'arima_order': self.trend.order,
            'best_params': self.search.best_params.to_dict(),
            'cv_metrics': self.search.best.mean_metrics(),
            'fold_metrics': [vars(f) for f in self.search.best.folds],
            'in_sample_metrics': dict(self.model.in_sample_metrics),
            'trials_evaluated': len(self.search.trials),
            'stopped_early': self.search.stopped_early,
            'signals': [
                {'date': date, 'signal': signal}
                for date, signal in zip(self.signals.index, self.signals['signal'])
            ],
            'directional_accuracy': self.directional_accuracy,
            'sharpe_ratio': self.sharpe_ratio,
        }

