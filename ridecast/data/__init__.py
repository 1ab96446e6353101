"""Data loading, gap handling, aggregation, and splitting utilities."""

from .structs import TimeSeries, Split, period_frequency
from .loaders import RidershipLoader, ValidationResult
from .preprocessors import Preprocessor
from .aggregators import Aggregator
from .splitters import TimeSeriesSplitter

__all__ = [
    "TimeSeries",
    "Split",
    "period_frequency",
    "RidershipLoader",
    "ValidationResult",
    "Preprocessor",
    "Aggregator",
    "TimeSeriesSplitter",
]
