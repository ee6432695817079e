"""Shared pytest setup: project root on sys.path, headless plotting."""

import matplotlib

matplotlib.use('Agg')
