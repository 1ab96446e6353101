"""Unit tests for TimeSeries and Split."""

import pytest
import pandas as pd
import numpy as np

from ridecast.data.structs import Split, TimeSeries, period_frequency


class TestPeriodFrequency:
    """Tests for period_frequency."""

    def test_known_periods(self):
        assert period_frequency("D") == "D"
        assert period_frequency("W") == "W-MON"
        assert period_frequency("W", week_start="sun") == "W-SUN"
        assert period_frequency("M") == "MS"

    def test_unknown_period(self):
        with pytest.raises(ValueError, match="Unknown period"):
            period_frequency("Q")

    def test_unknown_week_start(self):
        with pytest.raises(ValueError, match="Unknown week start"):
            period_frequency("W", week_start="XYZ")


class TestTimeSeries:
    """Tests for TimeSeries construction and accessors."""

    def test_from_series_sorts_and_sets_frequency(self):
        """Unsorted input is sorted and a regular index gets its frequency."""
        dates = pd.date_range("2020-01-01", periods=5, freq="D")
        values = pd.Series([1, 2, 3, 4, 5], index=dates)[::-1]
        ts = TimeSeries.from_series(values, period="D")

        assert ts.index.is_monotonic_increasing
        assert ts.index.freqstr == "D"
        assert ts.freq == "D"
        assert ts.values.dtype == float
        assert ts.total() == 15.0

    def test_from_series_keeps_caller_metadata(self):
        dates = pd.date_range("2020-01-06", periods=3, freq="W-MON")
        ts = TimeSeries.from_series(
            pd.Series([1.0, 2.0, 3.0], index=dates), period="W",
            metadata={"source": "x.csv", "freq": "bogus"},
        )
        assert ts.metadata["source"] == "x.csv"
        assert ts.freq == "W-MON"

    def test_rejects_duplicate_timestamps(self):
        index = pd.DatetimeIndex(["2020-01-01", "2020-01-01", "2020-01-02"])
        with pytest.raises(ValueError, match="unique"):
            TimeSeries(values=pd.Series([1.0, 2.0, 3.0], index=index), period="D")

    def test_rejects_unsorted_timestamps(self):
        index = pd.DatetimeIndex(["2020-01-02", "2020-01-01"])
        with pytest.raises(ValueError, match="increasing"):
            TimeSeries(values=pd.Series([1.0, 2.0], index=index), period="D")

    def test_rejects_missing_values(self):
        dates = pd.date_range("2020-01-01", periods=3, freq="D")
        with pytest.raises(ValueError, match="missing values"):
            TimeSeries(values=pd.Series([1.0, np.nan, 3.0], index=dates), period="D")

    def test_rejects_non_datetime_index(self):
        with pytest.raises(TypeError):
            TimeSeries.from_series(pd.Series([1.0, 2.0]), period="D")

    def test_rejects_empty_series(self):
        empty = pd.Series([], index=pd.DatetimeIndex([]), dtype=float)
        with pytest.raises(ValueError, match="empty"):
            TimeSeries.from_series(empty, period="D")

    def test_is_regular_detects_gaps(self):
        dates = pd.DatetimeIndex(["2020-01-01", "2020-01-02", "2020-01-04"])
        ts = TimeSeries.from_series(pd.Series([1.0, 2.0, 3.0], index=dates), period="D")
        assert not ts.is_regular()

    def test_is_immutable(self, daily_ts):
        with pytest.raises(AttributeError):
            daily_ts.period = "W"

    def test_slice_is_positional(self, daily_ts):
        part = daily_ts.slice(10, 20)
        assert len(part) == 10
        assert part.first_timestamp == daily_ts.index[10]
        assert part.period == "D"

    def test_slice_metadata_is_independent(self, weekly_ts):
        """Metadata written on a slice or split view never leaks into the parent."""
        ts = TimeSeries(values=weekly_ts.values, period="W", metadata={"source": "rides.csv"})
        part = ts.slice(0, 10)
        part.metadata["note"] = "train window"

        split = Split(series=ts, boundary=ts.index[100], position=100)
        split.test.metadata["source"] = "overwritten"

        assert ts.metadata == {"source": "rides.csv"}
        assert part.metadata == {"source": "rides.csv", "note": "train window"}


class TestSplit:
    """Tests for Split views."""

    def test_train_and_test_cover_series(self, weekly_ts):
        split = Split(series=weekly_ts, boundary=weekly_ts.index[100], position=100)

        assert len(split.train) + len(split.test) == len(weekly_ts)
        assert split.train.last_timestamp < split.test.first_timestamp
        assert split.horizon == 60

    def test_test_stop_truncates(self, weekly_ts):
        split = Split(series=weekly_ts, boundary=weekly_ts.index[100], position=100, test_stop=110)
        assert len(split.test) == 10
        assert split.test.last_timestamp == weekly_ts.index[109]

    def test_to_dict(self, weekly_ts):
        split = Split(series=weekly_ts, boundary=weekly_ts.index[100], position=100)
        data = split.to_dict()
        assert data["train_size"] == 100
        assert data["test_size"] == 60
        assert data["test_start"] == weekly_ts.index[100].isoformat()
