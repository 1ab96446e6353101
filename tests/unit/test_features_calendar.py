"""Unit tests for calendar regressors."""

import pytest
import pandas as pd
import numpy as np

from ridecast.features.calendar import (
    CalendarRegressors,
    RegressorDefinitions,
    fourier_terms,
    holiday_counts,
    time_position,
)


class TestFourierTerms:
    """Tests for fourier_terms."""

    def test_columns_and_bounds(self):
        index = pd.date_range("2019-01-07", periods=60, freq="W-MON")
        terms = fourier_terms(index, "W", 52, K=2)

        assert list(terms.columns) == ["sin1_52", "cos1_52", "sin2_52", "cos2_52"]
        assert terms.index.equals(index)
        np.testing.assert_allclose(terms["sin1_52"] ** 2 + terms["cos1_52"] ** 2, 1.0)

    def test_periodic(self):
        index = pd.date_range("2019-01-01", periods=21, freq="D")
        terms = fourier_terms(index, "D", 7, K=3)
        np.testing.assert_allclose(terms.iloc[0].values, terms.iloc[7].values, atol=1e-9)
        np.testing.assert_allclose(terms.iloc[3].values, terms.iloc[17].values, atol=1e-9)

    def test_same_values_for_any_window(self):
        """Terms depend only on the timestamp, not on where the window starts."""
        full = pd.date_range("2018-01-01", periods=100, freq="D")
        whole = fourier_terms(full, "D", 365.25, K=4)
        tail = fourier_terms(full[60:], "D", 365.25, K=4)
        pd.testing.assert_frame_equal(whole.iloc[60:], tail)

    def test_invalid_harmonics(self):
        index = pd.date_range("2019-01-01", periods=10, freq="MS")
        with pytest.raises(ValueError, match="K must be"):
            fourier_terms(index, "M", 12, K=7)
        with pytest.raises(ValueError, match="K must be"):
            fourier_terms(index, "M", 12, K=0)


class TestHolidayCounts:
    """Tests for holiday_counts."""

    def test_daily_indicator(self):
        index = pd.date_range("2019-07-03", periods=3, freq="D")
        counts = holiday_counts(index, "D", "US")
        assert list(counts) == [0.0, 1.0, 0.0]
        assert counts.name == "holidays"

    def test_weekly_counts(self):
        index = pd.DatetimeIndex(["2019-12-16", "2019-12-23"], freq="W-MON")
        counts = holiday_counts(index, "W", "US")
        assert list(counts) == [0.0, 1.0]

    def test_monthly_counts(self):
        index = pd.date_range("2019-01-01", periods=2, freq="MS")
        counts = holiday_counts(index, "M", "US")
        # New Year's Day and MLK Day; Presidents' Day
        assert list(counts) == [2.0, 1.0]


class TestCalendarRegressors:
    """Tests for CalendarRegressors."""

    def test_empty_definitions(self):
        definitions = RegressorDefinitions.from_config(None)
        assert definitions.is_empty
        index = pd.date_range("2019-01-01", periods=5, freq="D")
        assert CalendarRegressors(definitions).build(index, "D") is None

    def test_build_combined(self):
        definitions = RegressorDefinitions.from_config({
            "fourier": [{"period": 365.25, "K": 2}],
            "holidays": "US",
        })
        index = pd.date_range("2019-01-01", periods=30, freq="D")
        frame = CalendarRegressors(definitions).build(index, "D")

        assert frame.shape == (30, 5)
        assert "holidays" in frame.columns
        assert frame.index.equals(index)
        assert not frame.isnull().any().any()


def test_time_position_units():
    index = pd.DatetimeIndex(["1970-01-01", "1970-01-15"])
    assert list(time_position(index, "D")) == [0.0, 14.0]
    assert list(time_position(index, "W")) == [0.0, 2.0]
    monthly = pd.DatetimeIndex(["1970-01-01", "1971-03-01"])
    assert list(time_position(monthly, "M")) == [0.0, 14.0]
