"""Unit tests for stationarity diagnostics."""

import pytest
import pandas as pd
import numpy as np

from ridecast.data.structs import TimeSeries
from ridecast.diagnostics.stationarity import StationarityDiagnostics, ljung_box


def _ts(values, freq="D", start="2015-01-01"):
    index = pd.date_range(start, periods=len(values), freq=freq)
    return TimeSeries.from_series(pd.Series(values, index=index), period="D" if freq == "D" else "W")


@pytest.fixture
def random_walk():
    rng = np.random.default_rng(0)
    return _ts(np.cumsum(rng.normal(0, 1, 400)) + 100)


@pytest.fixture
def white_noise():
    rng = np.random.default_rng(1)
    return _ts(rng.normal(50, 1, 400))


class TestStationarityDiagnostics:
    """Tests for StationarityDiagnostics class."""

    def test_random_walk_needs_one_difference(self, random_walk):
        report = StationarityDiagnostics().diagnose(random_walk, seasonal_period=1)

        assert report.recommendation == (0, 1)
        assert not report.level_tests["kpss"].stationary
        assert set(report.differenced_tests) == {"adf", "kpss"}
        assert any("Non-seasonal" in note for note in report.notes)

    def test_white_noise_needs_none(self, white_noise):
        report = StationarityDiagnostics().diagnose(white_noise, seasonal_period=1)

        assert report.recommendation == (0, 0)
        assert report.level_tests["adf"].stationary
        assert report.differenced_tests == {}

    def test_disagreement_flag_matches_tests(self, weekly_ts):
        report = StationarityDiagnostics().diagnose(weekly_ts, seasonal_period=52)
        adf, kpss = report.level_tests["adf"], report.level_tests["kpss"]

        assert report.tests_disagree == (adf.stationary != kpss.stationary)
        assert report.seasonal_differences in (0, 1)
        assert report.non_seasonal_differences in (0, 1)

    def test_short_series_skips_seasonal_test(self, white_noise):
        short = white_noise.slice(0, 60)
        report = StationarityDiagnostics().diagnose(short, seasonal_period=52)

        assert report.seasonal_differences == 0
        assert any("seasonal differencing not tested" in note for note in report.notes)

    def test_series_not_modified(self, random_walk):
        before = random_walk.values.copy()
        StationarityDiagnostics().diagnose(random_walk, seasonal_period=1)
        pd.testing.assert_series_equal(random_walk.values, before)

    def test_report_to_dict(self, random_walk):
        data = StationarityDiagnostics().diagnose(random_walk, seasonal_period=1).to_dict()
        assert data["non_seasonal_differences"] == 1
        assert "p_value" in data["level_tests"]["adf"]

    def test_unknown_seasonal_test(self):
        with pytest.raises(ValueError, match="Unknown seasonal test"):
            StationarityDiagnostics(seasonal_test="hegy")

    def test_difference(self):
        diagnostics = StationarityDiagnostics()
        values = np.array([1.0, 2.0, 4.0, 7.0, 11.0])
        np.testing.assert_array_equal(diagnostics.difference(values, 1, 0, 1), [1, 2, 3, 4])
        np.testing.assert_array_equal(diagnostics.difference(values, 0, 1, 2), [3, 5, 7])
        np.testing.assert_array_equal(diagnostics.difference(values, 1, 1, 2), [2, 2])

    def test_decompose(self, weekly_ts):
        components = StationarityDiagnostics().decompose(weekly_ts, seasonal_period=52)

        assert list(components.columns) == ["observed", "trend", "seasonal", "remainder"]
        assert components.index.equals(weekly_ts.index)
        recombined = components["trend"] + components["seasonal"] + components["remainder"]
        np.testing.assert_allclose(recombined, components["observed"], rtol=1e-8)

    def test_decompose_needs_two_seasons(self, weekly_ts):
        with pytest.raises(ValueError, match="at least 104"):
            StationarityDiagnostics().decompose(weekly_ts.slice(0, 80), seasonal_period=52)
        with pytest.raises(ValueError, match="at least 2"):
            StationarityDiagnostics().decompose(weekly_ts, seasonal_period=1)


class TestLjungBox:
    """Tests for ljung_box."""

    def test_white_noise(self):
        rng = np.random.default_rng(5)
        result = ljung_box(rng.normal(size=300), lag=10, model_df=2)

        assert 0.0 <= result["p_value"] <= 1.0
        assert result["statistic"] >= 0.0
        assert result["lag"] == 10
        assert result["df"] == 8

    def test_autocorrelated_residuals(self):
        rng = np.random.default_rng(6)
        residuals = np.cumsum(rng.normal(size=300))
        result = ljung_box(residuals, lag=10)
        assert result["p_value"] < 0.01

    def test_no_degrees_of_freedom(self):
        result = ljung_box(np.arange(20, dtype=float), lag=2, model_df=3)
        assert result["statistic"] is None
        assert result["p_value"] is None
