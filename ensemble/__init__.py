"""
Ensemble package: feature construction, hyperparameter search and the final forest.
"""

from .features import FeatureBuilder
from .hyperparameters import SearchSpace
from .cross_validation import contiguous_folds, evaluate_fold, evaluate_trial
from .trainer import EnsembleTrainer

__all__ = [
    'FeatureBuilder', 'SearchSpace', 'contiguous_folds',
    'evaluate_fold', 'evaluate_trial', 'EnsembleTrainer',
]
