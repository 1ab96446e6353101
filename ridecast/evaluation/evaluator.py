"""Forecast a fitted model over a held-out window and score it."""

from typing import Optional, Sequence, Tuple
import logging

import pandas as pd

from ridecast.data.structs import TimeSeries
from ridecast.evaluation.metrics import AccuracyReport, MetricsCalculator
from ridecast.models.base_model import DEFAULT_LEVELS, BaseModel, ForecastResult

logger = logging.getLogger(__name__)


class Evaluator:
    """Produces a ForecastResult and AccuracyReport for a fitted model."""

    def __init__(
        self,
        levels: Sequence[int] = DEFAULT_LEVELS,
        calculator: Optional[MetricsCalculator] = None,
    ):
        self.levels = tuple(levels)
        self.calculator = calculator or MetricsCalculator()

    def evaluate(
        self,
        model: BaseModel,
        test: TimeSeries,
        exog: Optional[pd.DataFrame] = None,
        seasonal_period: Optional[int] = None,
    ) -> Tuple[ForecastResult, AccuracyReport]:
        """
        Forecast ``len(test)`` steps and compare against ``test``.

        Args:
            model: Fitted model
            test: Held-out window that immediately follows the training series
            exog: Regressors for the test window, required when the model was
                fitted with regressors
            seasonal_period: Season length of the MASE naive benchmark. Pass
                the series' own season length so that models compared on one
                series share a scale; defaults to the model's

        Returns:
            Tuple of (ForecastResult, AccuracyReport)
        """
        horizon = len(test)
        forecast = model.forecast(horizon, exog=exog, levels=self.levels)
        report = self.score(model, forecast, test, seasonal_period)
        logger.info(
            f"{forecast.model_description}: test RMSE={report.test['RMSE']:.2f}, "
            f"MAPE={report.test['MAPE']:.2f}"
        )
        return forecast, report

    def score(
        self,
        model: BaseModel,
        forecast: ForecastResult,
        test: TimeSeries,
        seasonal_period: Optional[int] = None,
    ) -> AccuracyReport:
        """Accuracy of an existing forecast against ``test``."""
        if len(forecast) != len(test):
            raise ValueError(
                f"Test window has {len(test)} points but the forecast horizon is {len(forecast)}"
            )
        if not forecast.index.equals(test.index):
            raise ValueError(
                f"Test window starting {test.first_timestamp.date()} does not follow the "
                f"training series ending {model.training_series.last_timestamp.date()}"
            )

        train = model.training_series
        m = seasonal_period or model.seasonal_period
        scale = self.calculator.mase_scale(train.values.to_numpy(), m)

        test_metrics = self.calculator.calculate_accuracy(
            test.values.to_numpy(),
            forecast.mean.to_numpy(),
            seasonal_period=m,
            scale=scale,
        )

        fitted = model.fitted_values
        observed = train.values.loc[fitted.index]
        training_metrics = self.calculator.calculate_accuracy(
            observed.to_numpy(),
            fitted.to_numpy(),
            seasonal_period=m,
            scale=scale,
            include_theil=False,
        )

        return AccuracyReport(
            test=test_metrics,
            training=training_metrics,
            metadata={
                "model": forecast.model_description,
                "horizon": len(test),
                "seasonal_period": m,
                "train_size": len(train),
            },
        )
