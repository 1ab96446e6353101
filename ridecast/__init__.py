"""Seasonal forecast backtesting for bike-share ridership."""

from ridecast.pipeline import BacktestHarness

__version__ = "0.1.0"

__all__ = ["BacktestHarness", "__version__"]
