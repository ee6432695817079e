import sys
import os

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest
import numpy as np
import pandas as pd
from data_manager.data_loader import DataLoader, RetryBackoff
from data_manager.data_validator import DataValidator, ensure_finite
from errors import DataUnavailableError, InsufficientDataError, NonFiniteValueError
from models import PriceSeries

def make_download_frame(n: int = 10, multi_index: bool = False) -> pd.DataFrame:
    """Frame shaped like a yfinance download"""
    dates = pd.bdate_range('2024-01-01', periods=n)
    close = np.linspace(100, 110, n)
    if multi_index:
        columns = pd.MultiIndex.from_tuples([('Close', 'TEST'), ('Open', 'TEST')])
        return pd.DataFrame(np.column_stack([close, close]), index=dates, columns=columns)
    return pd.DataFrame({'Close': close, 'Open': close}, index=dates)

class FlakyDownload:
    """Fails a fixed number of times, then returns data"""
    def __init__(self, failures: int, frame: pd.DataFrame = None):
        self.failures = failures
        self.frame = frame if frame is not None else make_download_frame()
        self.calls = 0

    def __call__(self, symbol, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"network down (call {self.calls})")
        return self.frame

@pytest.fixture
def sleeps():
    return []

def test_backoff_delay_increases_linearly():
    """Attempt N waits N units"""
    backoff = RetryBackoff(unit=0.5)
    delays = []
    for _ in range(4):
        backoff = backoff.next()
        delays.append(backoff.delay)
    assert delays == [0.5, 1.0, 1.5, 2.0]

def test_fetch_first_try(sleeps):
    """No retries when the first download succeeds"""
    loader = DataLoader(sleep=sleeps.append, download=FlakyDownload(0))
    prices, backoff = loader.fetch_prices('TEST', '2024-01-01', '2024-02-01')

    assert isinstance(prices, PriceSeries)
    assert len(prices) == 10
    assert backoff.attempt == 1
    assert sleeps == []

def test_fetch_retries_with_increasing_delay(sleeps):
    """Each failure sleeps one unit longer than the previous"""
    download = FlakyDownload(3)
    loader = DataLoader(max_attempts=10, sleep=sleeps.append, download=download)
    prices, backoff = loader.fetch_prices('TEST', '2024-01-01', '2024-02-01',
                                          backoff=RetryBackoff(unit=1.0))

    assert download.calls == 4
    assert sleeps == [1.0, 2.0, 3.0]
    assert backoff.attempt == 4
    assert prices.last_price == pytest.approx(110.0)

def test_fetch_exhausts_attempts(sleeps):
    """Terminal failure after max_attempts"""
    download = FlakyDownload(failures=100)
    loader = DataLoader(max_attempts=5, sleep=sleeps.append, download=download)

    with pytest.raises(DataUnavailableError) as excinfo:
        loader.fetch_prices('TEST', '2024-01-01', '2024-02-01')

    assert download.calls == 5
    assert excinfo.value.attempts == 5
    assert isinstance(excinfo.value.last_error, ConnectionError)
    # No sleep after the final attempt
    assert sleeps == [1.0, 2.0, 3.0, 4.0]

def test_empty_download_counts_as_failure(sleeps):
    """An empty frame is retried like an exception"""
    responses = [pd.DataFrame(), make_download_frame()]
    loader = DataLoader(sleep=sleeps.append, download=lambda symbol, **kw: responses.pop(0))
    prices, backoff = loader.fetch_prices('TEST', '2024-01-01', '2024-02-01')

    assert backoff.attempt == 2
    assert len(prices) == 10

def test_backoff_resumes_from_caller_state(sleeps):
    """A passed-in backoff continues counting"""
    loader = DataLoader(max_attempts=10, sleep=sleeps.append, download=FlakyDownload(1))
    _, backoff = loader.fetch_prices('TEST', '2024-01-01', '2024-02-01',
                                     backoff=RetryBackoff(attempt=3, unit=1.0))
    assert sleeps == [4.0]
    assert backoff.attempt == 5

def test_multi_index_columns(sleeps):
    """Ticker-level columns from newer yfinance are flattened"""
    loader = DataLoader(sleep=sleeps.append,
                        download=FlakyDownload(0, make_download_frame(multi_index=True)))
    prices, _ = loader.fetch_prices('TEST', '2024-01-01', '2024-02-01')
    assert prices.prices.name == 'close'
    assert prices.values.shape == (10,)

def test_validator_repairs_order_and_duplicates():
    """Sorted, de-duplicated (last quote wins), non-positive dropped"""
    dates = pd.to_datetime(['2024-01-03', '2024-01-02', '2024-01-02', '2024-01-04', '2024-01-05'])
    raw = pd.Series([12.0, 10.0, 11.0, -1.0, 13.0], index=dates)
    validated = DataValidator().validate_prices(PriceSeries('TEST', raw))

    assert list(validated.values) == [11.0, 12.0, 13.0]
    assert validated.dates.is_monotonic_increasing
    assert not validated.dates.has_duplicates

def test_validator_reports_issues():
    """Problems are listed without modification"""
    dates = pd.to_datetime(['2024-01-02', '2024-01-02'])
    issues = DataValidator().find_issues(pd.Series([1.0, np.nan], index=dates))
    assert any('duplicate' in issue for issue in issues)
    assert any('missing' in issue for issue in issues)

def test_validator_insufficient_data():
    """Fewer than two usable prices"""
    dates = pd.to_datetime(['2024-01-02', '2024-01-03'])
    with pytest.raises(InsufficientDataError):
        DataValidator().validate_prices(PriceSeries('TEST', pd.Series([5.0, 0.0], index=dates)))

def test_ensure_finite_reports_stage_and_index():
    """First offending index is reported"""
    with pytest.raises(NonFiniteValueError) as excinfo:
        ensure_finite([1.0, 2.0, np.inf, np.nan], 'features')
    assert excinfo.value.stage == 'features'
    assert excinfo.value.index == 2

def test_ensure_finite_reports_row_of_matrix():
    """2-D input: row of the first bad value"""
    matrix = np.ones((5, 2))
    matrix[3, 1] = np.inf
    with pytest.raises(NonFiniteValueError) as excinfo:
        ensure_finite(matrix, 'ensemble')
    assert excinfo.value.index == 3
    assert excinfo.value.value == np.inf

if __name__ == '__main__':
    pytest.main([__file__])
