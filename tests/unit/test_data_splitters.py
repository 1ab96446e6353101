"""Unit tests for the TimeSeriesSplitter."""

import pytest
import pandas as pd

from ridecast.data.splitters import TimeSeriesSplitter
from ridecast.utils.error_handling import InvalidBoundary, RidecastError


class TestSplitAt:
    """Tests for split_at."""

    def test_boundary_goes_to_test(self, weekly_ts):
        boundary = weekly_ts.index[100]
        split = TimeSeriesSplitter().split_at(weekly_ts, boundary)

        assert split.train.last_timestamp < boundary
        assert split.test.first_timestamp == boundary
        assert len(split.train) == 100
        assert len(split.train) + len(split.test) == len(weekly_ts)

    def test_boundary_between_timestamps(self, weekly_ts):
        """A mid-week boundary starts the test window at the next week label."""
        boundary = weekly_ts.index[100] - pd.Timedelta(days=3)
        split = TimeSeriesSplitter().split_at(weekly_ts, boundary)
        assert split.test.first_timestamp == weekly_ts.index[100]

    def test_accepts_string_boundary(self, daily_ts):
        split = TimeSeriesSplitter().split_at(daily_ts, "2019-01-01")
        assert split.test.first_timestamp == pd.Timestamp("2019-01-01")
        assert split.train.last_timestamp == pd.Timestamp("2018-12-31")

    def test_boundary_before_start(self, weekly_ts):
        """A boundary before the series start must never give an empty train set."""
        with pytest.raises(InvalidBoundary, match="training window would be empty"):
            TimeSeriesSplitter().split_at(weekly_ts, "2000-01-01")

    def test_boundary_at_start(self, weekly_ts):
        with pytest.raises(InvalidBoundary):
            TimeSeriesSplitter().split_at(weekly_ts, weekly_ts.first_timestamp)

    def test_boundary_after_end(self, weekly_ts):
        with pytest.raises(InvalidBoundary, match="test window would be empty"):
            TimeSeriesSplitter().split_at(weekly_ts, weekly_ts.last_timestamp + pd.Timedelta(days=1))

    def test_boundary_at_last_point(self, weekly_ts):
        split = TimeSeriesSplitter().split_at(weekly_ts, weekly_ts.last_timestamp)
        assert len(split.test) == 1

    def test_invalid_boundary_is_value_error(self, weekly_ts):
        with pytest.raises(ValueError):
            TimeSeriesSplitter().split_at(weekly_ts, "2000-01-01")
        assert issubclass(InvalidBoundary, RidecastError)


class TestExpandingOrigin:
    """Tests for expanding_origin_splits."""

    def test_fold_layout(self, weekly_ts):
        folds = list(TimeSeriesSplitter().expanding_origin_splits(
            weekly_ts, weekly_ts.index[100], horizon=20, step=10
        ))

        assert len(folds) == 5
        assert [len(f.train) for f in folds] == [100, 110, 120, 130, 140]
        assert all(len(f.test) == 20 for f in folds)
        assert [f.metadata["fold"] for f in folds] == [0, 1, 2, 3, 4]
        assert folds[-1].test.last_timestamp == weekly_ts.last_timestamp

    def test_horizon_too_long(self, weekly_ts):
        with pytest.raises(InvalidBoundary, match="need 100"):
            list(TimeSeriesSplitter().expanding_origin_splits(
                weekly_ts, weekly_ts.index[100], horizon=100
            ))

    def test_invalid_step(self, weekly_ts):
        with pytest.raises(ValueError, match="positive"):
            list(TimeSeriesSplitter().expanding_origin_splits(
                weekly_ts, weekly_ts.index[100], horizon=10, step=0
            ))


class TestValidateNoLeakage:
    """Tests for validate_no_leakage."""

    def test_valid_split(self, weekly_ts):
        splitter = TimeSeriesSplitter()
        split = splitter.split_at(weekly_ts, weekly_ts.index[80])
        is_valid, issues = splitter.validate_no_leakage(split)
        assert is_valid
        assert issues == []

    def test_folds_do_not_leak(self, weekly_ts):
        splitter = TimeSeriesSplitter()
        for split in splitter.expanding_origin_splits(weekly_ts, weekly_ts.index[120], horizon=10, step=5):
            assert splitter.validate_no_leakage(split)[0]
