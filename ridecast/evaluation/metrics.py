"""Forecast accuracy metrics."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import logging

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error
from statsmodels.tsa.stattools import acf

logger = logging.getLogger(__name__)

TEST_METRICS = ("ME", "RMSE", "MAE", "MPE", "MAPE", "MASE", "ACF1", "Theil's U")
TRAINING_METRICS = TEST_METRICS[:-1]


@dataclass
class AccuracyReport:
    """
    Accuracy of one forecast against its held-out window.

    Attributes:
        test: Metric name -> value on the test window
        training: Metric name -> value on the in-sample fit
        metadata: Horizon, seasonal period and similar context
    """
    test: Dict[str, float]
    training: Dict[str, float] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, metric: str) -> float:
        return self.test[metric]

    def to_frame(self) -> pd.DataFrame:
        """Rows 'Training set' and 'Test set', one column per metric."""
        rows = {"Training set": self.training, "Test set": self.test}
        frame = pd.DataFrame.from_dict(
            {name: values for name, values in rows.items() if values}, orient="index"
        )
        return frame.reindex(columns=[m for m in TEST_METRICS if m in frame.columns])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test": self.test,
            "training": self.training,
            "metadata": self.metadata,
        }


class MetricsCalculator:
    """Calculate point-forecast accuracy metrics.

    Errors are ``actual - forecast``. Percentage metrics skip zero actuals
    and are NaN when every actual is zero.
    """

    def mase_scale(self, training: np.ndarray, seasonal_period: int = 1) -> float:
        """
        Mean absolute error of the seasonal naive forecast on the training data.

        Falls back to the one-step naive forecast when the training series is
        not longer than one season.
        """
        training = np.asarray(training, dtype=float)
        lag = seasonal_period if seasonal_period > 1 and len(training) > seasonal_period else 1
        if len(training) <= lag:
            return np.nan
        scale = float(np.mean(np.abs(training[lag:] - training[:-lag])))
        return scale if scale > 0 else np.nan

    def calculate_accuracy(
        self,
        actual: np.ndarray,
        forecast: np.ndarray,
        training: Optional[np.ndarray] = None,
        seasonal_period: int = 1,
        include_theil: bool = True,
        scale: Optional[float] = None,
    ) -> Dict[str, float]:
        """
        Calculate ME, RMSE, MAE, MPE, MAPE, MASE, ACF1 and Theil's U.

        Args:
            actual: Observed values
            forecast: Forecast values, same length as ``actual``
            training: Training observations used for the MASE scale
            seasonal_period: Season length of the MASE naive benchmark
            include_theil: Add Theil's U (test-set only)
            scale: Precomputed MASE scale; overrides ``training``

        Returns:
            Dictionary of metric names to values
        """
        actual = np.asarray(actual, dtype=float)
        forecast = np.asarray(forecast, dtype=float)
        if actual.shape != forecast.shape:
            raise ValueError(
                f"actual and forecast lengths differ: {actual.shape} vs {forecast.shape}"
            )
        if actual.size == 0:
            raise ValueError("Cannot compute accuracy on an empty window")

        errors = actual - forecast
        metrics: Dict[str, float] = {}

        metrics["ME"] = float(np.mean(errors))
        metrics["RMSE"] = float(np.sqrt(mean_squared_error(actual, forecast)))
        metrics["MAE"] = float(mean_absolute_error(actual, forecast))

        # Avoid division by zero
        mask = actual != 0
        if mask.any():
            percentage = 100 * errors[mask] / actual[mask]
            metrics["MPE"] = float(np.mean(percentage))
            metrics["MAPE"] = float(np.mean(np.abs(percentage)))
        else:
            metrics["MPE"] = np.nan
            metrics["MAPE"] = np.nan

        if scale is None and training is not None:
            scale = self.mase_scale(training, seasonal_period)
        if scale is not None and np.isfinite(scale):
            metrics["MASE"] = metrics["MAE"] / scale
        else:
            metrics["MASE"] = np.nan

        metrics["ACF1"] = self.error_autocorrelation(errors)

        if include_theil:
            metrics["Theil's U"] = self.theils_u(actual, forecast)

        return metrics

    def error_autocorrelation(self, errors: np.ndarray) -> float:
        """Lag-1 autocorrelation of the errors."""
        errors = np.asarray(errors, dtype=float)
        if len(errors) < 3 or np.var(errors) == 0:
            return np.nan
        return float(acf(errors, nlags=1, fft=False)[1])

    def theils_u(self, actual: np.ndarray, forecast: np.ndarray) -> float:
        """
        Theil's U against the no-change forecast.

        U = sqrt(sum(((f[t+1] - y[t+1]) / y[t])^2) / sum(((y[t+1] - y[t]) / y[t])^2)).
        Below 1 the forecast beats the naive one.
        """
        actual = np.asarray(actual, dtype=float)
        forecast = np.asarray(forecast, dtype=float)
        if len(actual) < 2:
            return np.nan

        base = actual[:-1]
        mask = base != 0
        if not mask.any():
            return np.nan
        forecast_change = (forecast[1:][mask] - actual[1:][mask]) / base[mask]
        naive_change = (actual[1:][mask] - base[mask]) / base[mask]

        denominator = float(np.sum(naive_change ** 2))
        if denominator == 0:
            return np.nan
        return float(np.sqrt(np.sum(forecast_change ** 2) / denominator))
