"""
Configuration for the forecasting pipeline.
Groups the tunable values of each stage and validates them together.
"""

from .model_config import (
    DataConfig,
    TrendConfig,
    VolatilityConfig,
    SearchConfig,
    PipelineConfig,
)

__all__ = ['DataConfig', 'TrendConfig', 'VolatilityConfig', 'SearchConfig', 'PipelineConfig']
