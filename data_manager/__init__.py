"""
Data management package for the returns forecast.
Handles price download, validation and preparation.
"""

from .data_loader import DataLoader, RetryBackoff
from .data_validator import DataValidator, ensure_finite
from .data_prep import ReturnsPrep

__all__ = ['DataLoader', 'RetryBackoff', 'DataValidator', 'ensure_finite', 'ReturnsPrep']
