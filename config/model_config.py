"""Stage configuration and the assembly-time consistency check."""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional
import logging

from errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataConfig:
    """Price download settings"""
    symbol: str = 'AAPL'
    start_date: str = '2010-01-01'
    end_date: Optional[str] = None  # None means today
    max_attempts: int = 100
    backoff_unit: float = 1.0  # seconds; attempt N waits N units

    def resolved_end_date(self) -> str:
        return self.end_date or date.today().isoformat()


@dataclass(frozen=True)
class TrendConfig:
    """ARIMA order search bounds"""
    max_p: int = 5
    max_d: int = 2
    max_q: int = 5
    min_observations: int = 30
    information_criterion: str = 'aicc'


@dataclass(frozen=True)
class VolatilityConfig:
    """EMA windows for residual volatility and simulated path smoothing"""
    window: int = 20
    path_window: int = 10
    path_seed: str = 'first'  # 'first' or 'sma'


@dataclass(frozen=True)
class SearchConfig:
    """Randomized search, cross-validation and signal thresholds"""
    n_trials: int = 10
    n_folds: int = 25
    patience: int = 3
    random_seed: int = 42
    target_scale: float = 1000.0
    buy_threshold: float = 0.05
    sell_threshold: float = -0.05
    n_jobs: Optional[int] = None


@dataclass(frozen=True)
class PipelineConfig:
    """Everything one forecasting run needs"""
    data: DataConfig = field(default_factory=DataConfig)
    trend: TrendConfig = field(default_factory=TrendConfig)
    volatility: VolatilityConfig = field(default_factory=VolatilityConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    horizon: int = 365
    signal_days: int = 30
    output_dir: str = 'results'

    def validate(self) -> 'PipelineConfig':
        """Check cross-stage consistency; returns self so it can be chained"""
        issues = []

        if self.horizon < 2:
            issues.append(f"horizon must be at least 2, got {self.horizon}")
        if not 0 < self.signal_days <= self.horizon:
            issues.append(f"signal_days must be in [1, horizon], got {self.signal_days}")

        if self.data.max_attempts < 1:
            issues.append(f"max_attempts must be positive, got {self.data.max_attempts}")
        if self.data.backoff_unit < 0:
            issues.append(f"backoff_unit must be non-negative, got {self.data.backoff_unit}")

        if min(self.trend.max_p, self.trend.max_d, self.trend.max_q) < 0:
            issues.append("ARIMA order bounds must be non-negative")
        if self.trend.information_criterion not in ('aic', 'aicc', 'bic', 'hqic'):
            issues.append(f"Unknown information criterion '{self.trend.information_criterion}'")

        if self.volatility.window < 1 or self.volatility.path_window < 1:
            issues.append("EMA windows must be at least 1")
        if self.volatility.path_seed not in ('first', 'sma'):
            issues.append(f"Unknown EMA seeding rule '{self.volatility.path_seed}'")

        if self.search.n_trials < 1:
            issues.append(f"n_trials must be positive, got {self.search.n_trials}")
        if self.search.n_folds < 2:
            issues.append(f"n_folds must be at least 2, got {self.search.n_folds}")
        elif self.search.n_folds > self.horizon:
            issues.append(
                f"n_folds ({self.search.n_folds}) exceeds horizon ({self.horizon}); "
                f"folds would be empty"
            )
        if self.search.patience < 1:
            issues.append(f"patience must be positive, got {self.search.patience}")
        if self.search.target_scale <= 0:
            issues.append(f"target_scale must be positive, got {self.search.target_scale}")
        if self.search.buy_threshold < self.search.sell_threshold:
            issues.append("buy_threshold must not be below sell_threshold")

        if issues:
            for issue in issues:
                logger.error(f"Invalid configuration: {issue}")
            raise ConfigurationError("; ".join(issues))

        return self
