import sys
import os

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest
import numpy as np
import pandas as pd
from data_manager.data_prep import ReturnsPrep, iqr_bounds
from errors import InsufficientDataError
from models import PriceSeries

@pytest.fixture
def prep():
    return ReturnsPrep()

@pytest.fixture
def trending_prices():
    """Linear trend with a small cycle, no outliers"""
    n = 500
    t = np.arange(n)
    dates = pd.bdate_range('2015-01-01', periods=n)
    return PriceSeries('TEST', pd.Series(50 + 0.02 * t + np.sin(t / 10), index=dates))

@pytest.fixture
def prices_with_spikes(trending_prices):
    """Same series with two obvious bad ticks"""
    prices = trending_prices.prices.copy()
    prices.iloc[100] = prices.max() * 10
    prices.iloc[300] = prices.max() * 12
    return trending_prices.with_prices(prices)

def test_iqr_bounds():
    """Fences use 1.5 interquartile ranges"""
    lower, upper = iqr_bounds(np.array([1.0, 2.0, 3.0, 4.0, 5.0]))
    # Q1 = 2, Q3 = 4, IQR = 2
    assert lower == pytest.approx(-1.0)
    assert upper == pytest.approx(7.0)

def test_spikes_removed(prep, prices_with_spikes):
    """Bad ticks are dropped and order is preserved"""
    cleaned = prep.remove_outliers(prices_with_spikes)

    assert len(cleaned) == len(prices_with_spikes) - 2
    assert cleaned.dates.is_monotonic_increasing
    assert prices_with_spikes.dates[100] not in cleaned.dates
    assert prices_with_spikes.dates[300] not in cleaned.dates

def test_original_series_untouched(prep, prices_with_spikes):
    """Cleaning returns a new series"""
    before = prices_with_spikes.prices.copy()
    prep.remove_outliers(prices_with_spikes)
    pd.testing.assert_series_equal(prices_with_spikes.prices, before)

def test_cleaning_idempotent(prep, prices_with_spikes):
    """Filtering already-filtered data changes nothing"""
    once = prep.remove_outliers(prices_with_spikes)
    twice = prep.remove_outliers(once)
    pd.testing.assert_series_equal(once.prices, twice.prices)

def test_cleaning_idempotent_heavy_tails(prep):
    """Idempotent even when one pass exposes new outliers"""
    np.random.seed(7)
    dates = pd.bdate_range('2015-01-01', periods=400)
    prices = PriceSeries('TAIL', pd.Series(np.exp(np.random.standard_t(2, 400)) + 1, index=dates))

    once = prep.remove_outliers(prices)
    twice = prep.remove_outliers(once)
    pd.testing.assert_series_equal(once.prices, twice.prices)

def test_constant_prices_kept(prep):
    """Zero IQR keeps every identical price"""
    dates = pd.bdate_range('2020-01-01', periods=50)
    prices = PriceSeries('FLAT', pd.Series(np.full(50, 10.0), index=dates))
    assert len(prep.remove_outliers(prices)) == 50

def test_log_returns_length_and_values(prep, trending_prices):
    """One return per consecutive pair of prices"""
    returns = prep.log_returns(trending_prices)
    values = trending_prices.values

    assert len(returns) == len(trending_prices) - 1
    assert returns.iloc[0] == pytest.approx(np.log(values[1]) - np.log(values[0]))
    assert returns.index[0] == trending_prices.dates[1]

def test_log_returns_round_trip(prep, trending_prices):
    """exp(cumsum(returns)) * p0 reconstructs the prices"""
    returns = prep.log_returns(trending_prices)
    values = trending_prices.values
    rebuilt = values[0] * np.exp(np.cumsum(returns.to_numpy()))

    np.testing.assert_allclose(rebuilt, values[1:], rtol=1e-10)

def test_returns_require_two_prices(prep):
    """A single price has no return"""
    one = PriceSeries('ONE', pd.Series([10.0], index=pd.bdate_range('2020-01-01', periods=1)))
    with pytest.raises(InsufficientDataError):
        prep.log_returns(one)

def test_empty_series_fails_downstream(prep):
    """Cleaning an empty series is fine, returns are not"""
    empty = PriceSeries('NONE', pd.Series([], dtype=float, index=pd.DatetimeIndex([])))
    cleaned = prep.remove_outliers(empty)
    assert len(cleaned) == 0
    with pytest.raises(InsufficientDataError, match="Insufficient data"):
        prep.log_returns(cleaned)

def test_prepare_returns(prep, prices_with_spikes):
    """Clean and transform in one call"""
    cleaned, returns = prep.prepare_returns(prices_with_spikes)
    assert len(returns) == len(cleaned) - 1
    assert np.isfinite(returns).all()

if __name__ == '__main__':
    pytest.main([__file__])
