"""Property tests for forecast accuracy metrics."""

import numpy as np
from hypothesis import given, settings, strategies as st

from ridecast.evaluation.metrics import MetricsCalculator

finite = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)


@st.composite
def actual_and_forecast(draw, min_size=1, max_size=60):
    n = draw(st.integers(min_value=min_size, max_value=max_size))
    actual = draw(st.lists(finite, min_size=n, max_size=n))
    forecast = draw(st.lists(finite, min_size=n, max_size=n))
    return np.array(actual), np.array(forecast)


def _non_negative_or_nan(value):
    return np.isnan(value) or value >= 0


class TestMetricsProperties:

    @given(actual_and_forecast(), st.lists(finite, min_size=0, max_size=40), st.integers(1, 12))
    @settings(max_examples=100, deadline=None)
    def test_error_magnitudes_non_negative(self, data, training, m):
        """
        Property: RMSE, MAE, MAPE, MASE and Theil's U are never negative.
        """
        actual, forecast = data
        metrics = MetricsCalculator().calculate_accuracy(
            actual, forecast, training=np.array(training), seasonal_period=m
        )

        for name in ("RMSE", "MAE", "MAPE", "MASE", "Theil's U"):
            assert _non_negative_or_nan(metrics[name]), name
        assert metrics["RMSE"] >= metrics["MAE"] - 1e-6 * max(1.0, metrics["MAE"])
        assert abs(metrics["ME"]) <= metrics["MAE"] + 1e-6 * max(1.0, metrics["MAE"])

    @given(actual_and_forecast())
    @settings(max_examples=50, deadline=None)
    def test_perfect_forecast_scores_zero(self, data):
        """Property: forecasting the actuals exactly gives zero error."""
        actual, _ = data
        metrics = MetricsCalculator().calculate_accuracy(actual, actual)

        assert metrics["RMSE"] == 0.0
        assert metrics["MAE"] == 0.0
        assert metrics["ME"] == 0.0

    @given(actual_and_forecast(min_size=3))
    @settings(max_examples=50, deadline=None)
    def test_acf1_bounded(self, data):
        """Property: lag-one autocorrelation of errors lies in [-1, 1] when defined."""
        actual, forecast = data
        acf1 = MetricsCalculator().calculate_accuracy(actual, forecast)["ACF1"]
        assert np.isnan(acf1) or -1.0 - 1e-9 <= acf1 <= 1.0 + 1e-9
