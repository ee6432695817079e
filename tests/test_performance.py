import sys
import os

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest
import numpy as np
from strategy.performance import (
    Signal, StrategyEvaluator, classify_actual, classify_predicted,
    directional_accuracy, sharpe_ratio, signal_accuracy
)
from errors import UndefinedMetricError

def test_classify_actual():
    """Any change counts for realized moves"""
    assert classify_actual([0.01, -0.01, 0.0]) == [Signal.BUY, Signal.SELL, Signal.HOLD]

def test_classify_predicted_thresholds():
    """Predicted moves must clear the thresholds; equality is Hold"""
    deltas = [0.06, 0.05, 0.0, -0.05, -0.06]
    assert classify_predicted(deltas) == [
        Signal.BUY, Signal.HOLD, Signal.HOLD, Signal.HOLD, Signal.SELL
    ]

def test_signal_values():
    assert [s.value for s in Signal] == ['Buy', 'Hold', 'Sell']

def test_accuracy_all_correct():
    actual = [1.0, 2.0, 1.0, 3.0]
    assert signal_accuracy(actual, actual) == pytest.approx(100.0)

def test_accuracy_all_wrong():
    actual = [1.0, 2.0, 1.0, 3.0]
    predicted = [3.0, 1.0, 2.0, 1.0]
    assert signal_accuracy(actual, predicted) == pytest.approx(0.0)

def test_accuracy_uses_overlap():
    actual = [Signal.BUY, Signal.SELL, Signal.HOLD]
    predicted = [Signal.BUY, Signal.BUY]
    assert directional_accuracy(actual, predicted) == pytest.approx(50.0)

def test_accuracy_undefined_without_overlap():
    assert directional_accuracy([], [Signal.BUY]) is None
    assert signal_accuracy([1.0], [1.0]) is None

def test_small_predicted_moves_are_hold():
    """Actual rise of 1.0 against a predicted rise below the buy threshold"""
    assert signal_accuracy([0.0, 1.0], [0.0, 0.01]) == pytest.approx(0.0)

def test_sharpe_ratio():
    returns = np.array([0.01, 0.02, -0.005, 0.015])
    expected = returns.mean() / returns.std(ddof=1) * np.sqrt(252)
    assert sharpe_ratio(returns) == pytest.approx(expected)

def test_sharpe_undefined_for_flat_returns():
    assert sharpe_ratio(np.zeros(100)) is None
    assert sharpe_ratio([0.01]) is None

def test_sharpe_strict():
    with pytest.raises(UndefinedMetricError):
        sharpe_ratio(np.zeros(10), strict=True)

def test_evaluator_on_rising_path():
    path = np.linspace(100, 200, 50)
    targets = np.array([1.0, 2.0, 3.0, 2.0])
    result = StrategyEvaluator().evaluate(path, targets, targets)

    assert len(result.predicted_signals) == 49
    assert all(s is Signal.BUY for s in result.predicted_signals)
    assert result.directional_accuracy == pytest.approx(100.0)
    assert result.sharpe_ratio is not None and result.sharpe_ratio > 0

def test_evaluator_flat_path_sharpe_undefined():
    result = StrategyEvaluator().evaluate(np.full(30, 50.0), [1.0, 2.0], [1.0, 2.0])
    assert result.sharpe_ratio is None
    assert all(s is Signal.HOLD for s in result.predicted_signals)

if __name__ == '__main__':
    pytest.main([__file__])
