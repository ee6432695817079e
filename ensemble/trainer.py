from typing import List, Optional, Tuple
import logging

import numpy as np

from data_manager.data_validator import ensure_finite
from errors import DegenerateFoldError
from models import FeatureSet, HyperparameterSet, SearchResult, TrainedModel, TrialResult
from utils.progress import ProgressMonitor
from .cross_validation import Fold, contiguous_folds, evaluate_trial, mae, make_regressor, r_squared, rmse
from .hyperparameters import SearchSpace

logger = logging.getLogger(__name__)


class EnsembleTrainer:
    """Randomized hyperparameter search with early stopping, then a full-data refit"""

    def __init__(self, search_space: Optional[SearchSpace] = None,
                 n_trials: int = 10,
                 n_folds: int = 25,
                 patience: int = 3,
                 random_seed: int = 42,
                 buy_threshold: float = 0.05,
                 sell_threshold: float = -0.05,
                 n_jobs: Optional[int] = None,
                 show_progress: bool = True):
        """
        Initialize trainer

        Args:
            search_space: Candidate values per hyperparameter
            n_trials: Trial budget
            n_folds: Contiguous cross-validation folds per trial
            patience: Consecutive trials without improvement before stopping
            random_seed: Seed for trial sampling and for every forest
            buy_threshold, sell_threshold: Signal thresholds for fold accuracy
            n_jobs: Passed to RandomForestRegressor
            show_progress: Draw a progress bar over trials
        """
        self.search_space = search_space or SearchSpace()
        self.n_trials = n_trials
        self.n_folds = n_folds
        self.patience = patience
        self.random_seed = random_seed
        self.buy_threshold = buy_threshold
        self.sell_threshold = sell_threshold
        self.n_jobs = n_jobs
        self.show_progress = show_progress
        self.logger = logging.getLogger('ensemble.trainer')

    def _evaluate_trial(self, trial: int, params: HyperparameterSet,
                        X: np.ndarray, y: np.ndarray, folds: List[Fold]) -> TrialResult:
        return evaluate_trial(
            trial, params, X, y, folds,
            random_seed=self.random_seed,
            buy_threshold=self.buy_threshold,
            sell_threshold=self.sell_threshold,
            n_jobs=self.n_jobs,
        )

    def search(self, X: np.ndarray, y: np.ndarray) -> SearchResult:
        """
        Evaluate sampled configurations in trial order, keeping the lowest
        mean validation RMSE. The first trial to reach the minimum wins ties.
        The loop stops once `patience` consecutive trials fail to improve.

        Raises:
            EmptySearchSpaceError: a hyperparameter has no candidate values
            DegenerateFoldError: n_folds does not fit the number of rows
        """
        X = ensure_finite(X, 'ensemble', self.logger)
        y = ensure_finite(y, 'ensemble', self.logger)
        if len(X) != len(y):
            raise ValueError(f"Feature rows ({len(X)}) and targets ({len(y)}) differ")

        if self.n_trials < 1:
            raise ValueError(f"n_trials must be positive, got {self.n_trials}")

        candidates = self.search_space.sample_trials(self.n_trials, self.random_seed)
        folds = contiguous_folds(len(y), self.n_folds)

        self.logger.info(
            f"Randomized search: {self.n_trials} trials over {self.search_space.size()} "
            f"configurations, {self.n_folds} contiguous folds, patience {self.patience}"
        )

        trials: List[TrialResult] = []
        best: Optional[TrialResult] = None
        without_improvement = 0
        stopped_early = False

        monitor = ProgressMonitor(
            total=len(candidates), desc="Hyperparameter search",
            logger=self.logger, disable=not self.show_progress
        )
        try:
            for i, params in enumerate(candidates):
                result = self._evaluate_trial(i, params, X, y, folds)
                trials.append(result)

                if best is None or result.mean_valid_rmse < best.mean_valid_rmse:
                    best = result
                    without_improvement = 0
                else:
                    without_improvement += 1

                monitor.update(
                    status=f"trial {i} rmse={result.mean_valid_rmse:.4f} "
                           f"best={best.mean_valid_rmse:.4f} (trial {best.trial})"
                )

                if without_improvement >= self.patience and i < len(candidates) - 1:
                    stopped_early = True
                    self.logger.info(
                        f"Early stopping after trial {i}: no improvement for "
                        f"{self.patience} trials (best trial {best.trial})"
                    )
                    break
        finally:
            monitor.close()

        self.logger.info(
            f"Best trial {best.trial}: {best.params.to_dict()} "
            f"mean validation RMSE {best.mean_valid_rmse:.4f}"
        )

        return SearchResult(
            best=best,
            trials=tuple(trials),
            stopped_early=stopped_early,
            n_planned=len(candidates),
        )

    def fit(self, params: HyperparameterSet, X: np.ndarray, y: np.ndarray) -> TrainedModel:
        """Refit on every row; the returned metrics are in-sample, not validation"""
        model = make_regressor(params, self.random_seed, self.n_jobs)
        model.fit(X, y)
        predictions = model.predict(X)

        in_sample = {
            'rmse': rmse(y, predictions),
            'r2': r_squared(y, predictions),
            'mae': mae(y, predictions),
        }
        self.logger.info(
            f"Final model in-sample (not validation) metrics: "
            f"RMSE={in_sample['rmse']:.4f}, R2={in_sample['r2']:.4f}, MAE={in_sample['mae']:.4f}"
        )
        return TrainedModel(
            params=params,
            estimator=model,
            predictions=predictions,
            in_sample_metrics=in_sample,
        )

    def train(self, features: FeatureSet) -> Tuple[SearchResult, TrainedModel]:
        """Search, then refit the best configuration on the full feature set"""
        if len(features) < 2:
            raise DegenerateFoldError(f"Cannot cross-validate {len(features)} rows")
        search = self.search(features.X, features.y)
        model = self.fit(search.best_params, features.X, features.y)
        return search, model
