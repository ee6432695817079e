"""
Strategy package: price path simulation and signal evaluation.
"""

from .simulator import PriceSimulator
from .performance import (
    Signal,
    StrategyEvaluator,
    StrategyResult,
    classify_actual,
    classify_predicted,
    directional_accuracy,
    sharpe_ratio,
)

__all__ = [
    'PriceSimulator', 'Signal', 'StrategyEvaluator', 'StrategyResult',
    'classify_actual', 'classify_predicted', 'directional_accuracy', 'sharpe_ratio',
]
