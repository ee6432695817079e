import sys
import os

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest
import numpy as np
from strategy.simulator import PriceSimulator
from errors import InsufficientDataError, NonFiniteValueError

@pytest.fixture
def predictions():
    np.random.seed(9)
    return np.random.normal(0.5, 10.0, 365)  # scaled by 1000

def test_path_recurrence(predictions):
    """price[t] = price[t-1] * exp(pred[t-1] / 1000)"""
    path = PriceSimulator(horizon=365).simulate(predictions, 150.0)

    assert path.shape == (365,)
    assert path[0] == 150.0
    np.testing.assert_allclose(path[1:] / path[:-1], np.exp(predictions[:364] / 1000.0))

def test_path_is_positive(predictions):
    path = PriceSimulator(horizon=365).simulate(predictions * 50, 10.0)
    assert (path > 0).all()

def test_extra_predictions_ignored(predictions):
    short = PriceSimulator(horizon=100).simulate(predictions, 20.0)
    assert short.shape == (100,)

def test_exactly_horizon_minus_one_predictions(predictions):
    path = PriceSimulator(horizon=365).simulate(predictions[:364], 20.0)
    assert path.shape == (365,)

def test_insufficient_predictions(predictions):
    with pytest.raises(InsufficientDataError):
        PriceSimulator(horizon=365).simulate(predictions[:100], 20.0)

def test_invalid_inputs(predictions):
    with pytest.raises(ValueError):
        PriceSimulator(horizon=10).simulate(predictions, -1.0)
    bad = predictions.copy()
    bad[3] = np.nan
    with pytest.raises(NonFiniteValueError):
        PriceSimulator(horizon=10).simulate(bad, 10.0)

def test_zero_predictions_give_flat_path():
    raw, smoothed = PriceSimulator(horizon=50).run(np.zeros(49), 42.0)
    np.testing.assert_allclose(raw, 42.0)
    np.testing.assert_allclose(smoothed, 42.0)

def test_smoothing_pins_start(predictions):
    """Smoothed path starts at the last real price and has no gaps"""
    raw, smoothed = PriceSimulator(horizon=365, smoothing_window=10).run(predictions, 150.0)

    assert smoothed.shape == raw.shape
    assert smoothed[0] == raw[0] == 150.0
    assert np.isfinite(smoothed).all()

def test_smoothing_read_only_path():
    """A read-only input path is smoothed without touching it"""
    raw = np.linspace(100.0, 110.0, 30)
    raw.setflags(write=False)
    smoothed = PriceSimulator(horizon=30).smooth(raw)

    assert smoothed[0] == 100.0
    assert smoothed.flags.writeable
    assert np.isfinite(smoothed).all()

def test_smoothing_reduces_step_variation(predictions):
    raw, smoothed = PriceSimulator(horizon=365).run(predictions * 5, 100.0)
    assert np.abs(np.diff(smoothed)).mean() < np.abs(np.diff(raw)).mean()

def test_sma_seed_lead_in_is_interpolated(predictions):
    """NaN lead-in of an SMA-seeded EMA is filled"""
    simulator = PriceSimulator(horizon=365, smoothing_window=10, seed='sma')
    raw, smoothed = simulator.run(predictions, 150.0)

    assert smoothed[0] == 150.0
    assert np.isfinite(smoothed).all()
    # Points after the lead-in are the EMA itself
    assert smoothed[9] == pytest.approx(raw[:10].mean())

if __name__ == '__main__':
    pytest.main([__file__])
