"""
Contiguous K-fold cross-validation for the forest regressor.

Folds are sequential blocks and are not shuffled. Every fold serves as the
hold-out once with all other folds as training data, so later observations
are used to predict earlier ones. This is not a forward-chaining time-series
split and can leak future information into validation scores.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import stats
from sklearn.ensemble import RandomForestRegressor
from sklearn.metrics import mean_absolute_error, mean_squared_error

from errors import DegenerateFoldError
from models import FoldMetrics, HyperparameterSet, TrialResult
from strategy.performance import signal_accuracy

logger = logging.getLogger(__name__)

Fold = Tuple[np.ndarray, np.ndarray]  # (train indices, validation indices)


def contiguous_folds(n_samples: int, n_folds: int) -> List[Fold]:
    """
    Split range(n_samples) into n_folds sequential validation blocks.

    Blocks have n_samples // n_folds rows; the last block absorbs the remainder.

    Raises:
        DegenerateFoldError: a fold would have no training or no validation rows
    """
    if n_folds < 1:
        raise DegenerateFoldError(f"n_folds must be positive, got {n_folds}")

    fold_size = n_samples // n_folds
    if fold_size == 0:
        raise DegenerateFoldError(
            f"{n_folds} folds over {n_samples} rows leaves empty validation folds"
        )

    indices = np.arange(n_samples)
    folds = []
    for k in range(n_folds):
        start = k * fold_size
        stop = n_samples if k == n_folds - 1 else start + fold_size
        valid_idx = indices[start:stop]
        train_idx = np.concatenate([indices[:start], indices[stop:]])
        if train_idx.size == 0:
            raise DegenerateFoldError(f"Fold {k} has no training rows")
        folds.append((train_idx, valid_idx))
    return folds


def rmse(y_true, y_pred) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def mae(y_true, y_pred) -> float:
    return float(mean_absolute_error(y_true, y_pred))


def r_squared(y_true, y_pred) -> float:
    """Squared Pearson correlation; NaN when either side has no variance"""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.size < 2 or np.ptp(y_true) == 0 or np.ptp(y_pred) == 0:
        return float('nan')
    r, _ = stats.pearsonr(y_true, y_pred)
    return float(r ** 2)


def make_regressor(params: HyperparameterSet, random_seed: int,
                   n_jobs: Optional[int] = None) -> RandomForestRegressor:
    return RandomForestRegressor(
        **params.to_estimator_params(),
        random_state=random_seed,
        n_jobs=n_jobs,
    )


def evaluate_fold(fold: int, params: HyperparameterSet, X: np.ndarray, y: np.ndarray,
                  train_idx: np.ndarray, valid_idx: np.ndarray,
                  random_seed: int = 42,
                  buy_threshold: float = 0.05,
                  sell_threshold: float = -0.05,
                  n_jobs: Optional[int] = None) -> Tuple[FoldMetrics, np.ndarray]:
    """
    Fit on the training rows and score both partitions.

    Returns:
        Tuple of (fold metrics, validation predictions)
    """
    if train_idx.size == 0 or valid_idx.size == 0:
        raise DegenerateFoldError(
            f"Fold {fold}: {train_idx.size} training rows, {valid_idx.size} validation rows"
        )

    model = make_regressor(params, random_seed, n_jobs)
    model.fit(X[train_idx], y[train_idx])

    train_pred = model.predict(X[train_idx])
    valid_pred = model.predict(X[valid_idx])
    y_train, y_valid = y[train_idx], y[valid_idx]

    metrics = FoldMetrics(
        fold=fold,
        n_train=int(train_idx.size),
        n_valid=int(valid_idx.size),
        train_rmse=rmse(y_train, train_pred),
        train_r2=r_squared(y_train, train_pred),
        train_mae=mae(y_train, train_pred),
        valid_rmse=rmse(y_valid, valid_pred),
        valid_r2=r_squared(y_valid, valid_pred),
        valid_mae=mae(y_valid, valid_pred),
        directional_accuracy=signal_accuracy(y_valid, valid_pred, buy_threshold, sell_threshold),
    )
    return metrics, valid_pred


def evaluate_trial(trial: int, params: HyperparameterSet, X: np.ndarray, y: np.ndarray,
                   folds: Sequence[Fold], random_seed: int = 42,
                   buy_threshold: float = 0.05,
                   sell_threshold: float = -0.05,
                   n_jobs: Optional[int] = None) -> TrialResult:
    """Cross-validate one configuration; folds are independent of each other"""
    outcomes = [
        evaluate_fold(k, params, X, y, train_idx, valid_idx,
                      random_seed, buy_threshold, sell_threshold, n_jobs)
        for k, (train_idx, valid_idx) in enumerate(folds)
    ]

    oof = np.full(len(y), np.nan)
    for (_, valid_idx), (_, valid_pred) in zip(folds, outcomes):
        oof[valid_idx] = valid_pred

    return TrialResult(
        trial=trial,
        params=params,
        folds=tuple(metrics for metrics, _ in outcomes),
        oof_predictions=oof,
    )
