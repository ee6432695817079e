"""Utility functions and classes for forecast reporting"""

from .visualization import ForecastVisualizer, build_combined_frame, build_signal_frame
from .progress import ProgressMonitor

__all__ = ['ForecastVisualizer', 'build_combined_frame', 'build_signal_frame', 'ProgressMonitor']
