"""Core data structures for the backtesting harness."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import pandas as pd

# Nominal period code -> pandas offset alias used for the index frequency.
PERIOD_CODES = ("D", "W", "M")
WEEKDAYS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")


def period_frequency(period: str, week_start: str = "MON") -> str:
    """
    Return the pandas frequency alias for a nominal period.

    Weekly series are labelled by the first day of the week, so a week that
    starts on Monday maps to ``W-MON``. Monthly series are labelled by the
    first day of the month (``MS``).
    """
    if period == "D":
        return "D"
    if period == "W":
        week_start = week_start.upper()
        if week_start not in WEEKDAYS:
            raise ValueError(f"Unknown week start: {week_start}")
        return f"W-{week_start}"
    if period == "M":
        return "MS"
    raise ValueError(f"Unknown period: {period}. Supported periods are: {list(PERIOD_CODES)}")


@dataclass(frozen=True)
class TimeSeries:
    """
    Immutable univariate time series with a fixed nominal period.

    Attributes:
        values: Series of observations with a strictly increasing DatetimeIndex
        period: Nominal period code ('D', 'W' or 'M')
        metadata: Free-form metadata (source file, aggregation rule, ...)

    Immutability is shallow: fields cannot be reassigned, but ``values`` is a
    pandas Series and must not be modified in place. Derived series get their
    own copy of ``metadata``.
    """
    values: pd.Series
    period: str
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        """Validate ordering and completeness."""
        if self.period not in PERIOD_CODES:
            raise ValueError(f"Unknown period: {self.period}")
        if not isinstance(self.values, pd.Series):
            raise TypeError("values must be a pandas Series")
        if not isinstance(self.values.index, pd.DatetimeIndex):
            raise TypeError("values must have a DatetimeIndex")
        if self.values.index.has_duplicates:
            raise ValueError("Timestamps must be unique")
        if not self.values.index.is_monotonic_increasing:
            raise ValueError("Timestamps must be strictly increasing")
        if self.values.isna().any():
            raise ValueError(
                f"Series contains {int(self.values.isna().sum())} missing values; "
                "fill or drop them before building a TimeSeries"
            )

    @classmethod
    def from_series(
        cls,
        values: pd.Series,
        period: str,
        week_start: str = "MON",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "TimeSeries":
        """
        Build a TimeSeries from an arbitrary Series, sorting it and attaching
        the index frequency when the timestamps are regular.
        """
        if not isinstance(values.index, pd.DatetimeIndex):
            raise TypeError("values must have a DatetimeIndex")
        if values.empty:
            raise ValueError("Cannot build a TimeSeries from an empty Series")
        series = values.sort_index().astype(float)
        freq = period_frequency(period, week_start)
        expected = pd.date_range(series.index.min(), series.index.max(), freq=freq)
        if series.index.equals(expected):
            series = series.copy()
            series.index = expected
        meta = dict(metadata or {})
        meta["freq"] = freq
        return cls(values=series, period=period, metadata=meta)

    def __len__(self) -> int:
        return len(self.values)

    @property
    def index(self) -> pd.DatetimeIndex:
        return self.values.index

    @property
    def freq(self) -> Optional[str]:
        return self.metadata.get("freq")

    @property
    def first_timestamp(self) -> pd.Timestamp:
        return self.values.index[0]

    @property
    def last_timestamp(self) -> pd.Timestamp:
        return self.values.index[-1]

    def total(self) -> float:
        """Sum of all observations."""
        return float(self.values.sum())

    def is_regular(self) -> bool:
        """True when there are no missing periods between first and last timestamp."""
        if len(self) < 2 or self.freq is None:
            return True
        expected = pd.date_range(self.first_timestamp, self.last_timestamp, freq=self.freq)
        return len(expected) == len(self) and self.index.equals(expected)

    def slice(self, start: int, stop: Optional[int] = None) -> "TimeSeries":
        """Positional slice sharing the underlying data but not the metadata."""
        return TimeSeries(
            values=self.values.iloc[start:stop],
            period=self.period,
            metadata=dict(self.metadata),
        )


@dataclass(frozen=True)
class Split:
    """
    Train/test partition of a TimeSeries at a boundary date.

    Train holds the points strictly before ``boundary`` and test the points at
    or after it. Both sides are positional slices of ``series``, so no data is
    copied. ``test_stop`` truncates the test side (used by expanding-origin
    folds); when it is None the partition is total.
    """
    series: TimeSeries
    boundary: pd.Timestamp
    position: int
    test_stop: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def train(self) -> TimeSeries:
        return self.series.slice(0, self.position)

    @property
    def test(self) -> TimeSeries:
        return self.series.slice(self.position, self.test_stop)

    @property
    def horizon(self) -> int:
        """Number of test points."""
        return len(self.test)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        train, test = self.train, self.test
        return {
            "boundary": self.boundary.isoformat(),
            "train_start": train.first_timestamp.isoformat(),
            "train_end": train.last_timestamp.isoformat(),
            "train_size": len(train),
            "test_start": test.first_timestamp.isoformat(),
            "test_end": test.last_timestamp.isoformat(),
            "test_size": len(test),
            "metadata": self.metadata,
        }
