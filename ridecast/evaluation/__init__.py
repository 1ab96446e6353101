"""Forecast accuracy metrics, evaluation and comparison."""

from ridecast.evaluation.metrics import AccuracyReport, MetricsCalculator
from ridecast.evaluation.evaluator import Evaluator
from ridecast.evaluation.comparison import (
    ModelComparator,
    RunRecord,
    plot_forecast,
    plot_metric_heatmap,
)

__all__ = [
    "AccuracyReport",
    "MetricsCalculator",
    "Evaluator",
    "ModelComparator",
    "RunRecord",
    "plot_forecast",
    "plot_metric_heatmap",
]
