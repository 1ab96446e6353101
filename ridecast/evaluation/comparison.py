"""Collect backtest runs into comparison tables and plots."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from ridecast.data.structs import TimeSeries
from ridecast.evaluation.metrics import AccuracyReport
from ridecast.models.base_model import ForecastResult

logger = logging.getLogger(__name__)


@dataclass
class RunRecord:
    """Everything one (granularity, model) run produced."""
    granularity: str
    model_name: str
    status: str
    description: str = ""
    accuracy: Optional[AccuracyReport] = None
    forecast: Optional[ForecastResult] = None
    converged: Optional[bool] = None
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, Any]] = None

    @property
    def key(self) -> str:
        return f"{self.granularity}/{self.model_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "granularity": self.granularity,
            "model_name": self.model_name,
            "status": self.status,
            "description": self.description,
            "converged": self.converged,
            "accuracy": self.accuracy.to_dict() if self.accuracy else None,
            "forecast": self.forecast.to_frame().reset_index().to_dict(orient="records")
            if self.forecast is not None
            else None,
            "residuals": self.forecast.residuals.to_dict() if self.forecast is not None else None,
            "diagnostics": self.diagnostics,
            "error": self.error,
        }


class ModelComparator:
    """
    Framework for comparing forecasting runs across granularities and models.
    """

    def __init__(self):
        self.records: Dict[str, RunRecord] = {}

    def add_record(self, record: RunRecord) -> None:
        """
        Add a run for comparison. A later run with the same granularity and
        model name replaces the earlier one.
        """
        if record.key in self.records:
            logger.warning(f"Replacing existing run {record.key}")
        self.records[record.key] = record

    @property
    def successful(self) -> List[RunRecord]:
        return [r for r in self.records.values() if r.status == "success"]

    @property
    def failed(self) -> List[RunRecord]:
        return [r for r in self.records.values() if r.status != "success"]

    def compare_metrics(
        self,
        metric_names: Optional[List[str]] = None,
        include_training: bool = False,
    ) -> pd.DataFrame:
        """
        Compare test metrics across runs.

        Args:
            metric_names: Metrics to keep (e.g. ['RMSE', 'MAPE']). If None, show all.
            include_training: Add training metrics with a ``train_`` prefix

        Returns:
            DataFrame indexed by (granularity, model) with one column per metric
        """
        data = []
        indices = []
        for record in self.successful:
            metrics = dict(record.accuracy.test)
            if include_training:
                for k, v in record.accuracy.training.items():
                    metrics[f"train_{k}"] = v
            if metric_names:
                metrics = {
                    k: v for k, v in metrics.items()
                    if k in metric_names or k.replace("train_", "", 1) in metric_names
                }
            metrics["description"] = record.description
            data.append(metrics)
            indices.append((record.granularity, record.model_name))

        if not data:
            return pd.DataFrame()

        index = pd.MultiIndex.from_tuples(indices, names=["granularity", "model"])
        return pd.DataFrame(data, index=index)

    def best_models(self, metric: str = "RMSE") -> pd.DataFrame:
        """Lowest-``metric`` run per granularity."""
        table = self.compare_metrics()
        if table.empty:
            return table
        if metric not in table.columns:
            raise ValueError(f"Unknown metric: {metric}")
        best = table[metric].groupby(level="granularity").idxmin().dropna()
        return table.loc[list(best)]


def plot_forecast(
    series: TimeSeries,
    forecast: ForecastResult,
    ax=None,
    level: Optional[int] = 95,
    title: Optional[str] = None,
    history: Optional[int] = None,
) -> Any:
    """
    Plot observed values with the point forecast and one prediction interval.

    Args:
        series: Observed series covering the training and test windows
        forecast: Forecast to overlay
        ax: Matplotlib axes (optional)
        level: Interval level to shade, or None for no band
        title: Plot title, defaults to the model description
        history: Number of observations before the forecast to show

    Returns:
        Matplotlib axes object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(12, 5))

    observed = series.values
    if history is not None:
        start = observed.index.searchsorted(forecast.index[0]) - history
        observed = observed.iloc[max(start, 0):]

    ax.plot(observed.index, observed.values, color="black", linewidth=1, label="Observed")
    ax.plot(forecast.index, forecast.mean.values, color="tab:blue", label="Forecast")

    if level is not None and level in forecast.intervals:
        band = forecast.intervals[level]
        ax.fill_between(
            band.index, band["lower"], band["upper"],
            color="tab:blue", alpha=0.2, label=f"{level}% interval",
        )

    ax.axvline(forecast.index[0], color="grey", linestyle="--", linewidth=0.8)
    ax.set_xlabel("Date")
    ax.set_ylabel("Rides")
    ax.set_title(title or forecast.model_description)
    ax.legend(loc="upper left")

    return ax


def plot_metric_heatmap(
    comparison: pd.DataFrame,
    metrics: Optional[List[str]] = None,
    ax=None,
) -> Any:
    """
    Heatmap of metrics (columns) per run (rows), each column scaled to its
    own range so that metrics in different units share one colour map.

    Args:
        comparison: Output of ``ModelComparator.compare_metrics``
        metrics: Metric columns to show, defaults to every numeric column
        ax: Matplotlib axes (optional)

    Returns:
        Matplotlib axes object
    """
    table = comparison.select_dtypes(include=[np.number])
    if metrics:
        table = table[metrics]
    if table.empty:
        raise ValueError("Nothing to plot: comparison has no metric columns")

    spread = (table.max() - table.min()).replace(0, np.nan)
    scaled = (table - table.min()) / spread

    if ax is None:
        fig, ax = plt.subplots(figsize=(1.4 * len(table.columns) + 3, 0.6 * len(table) + 2))

    labels = [" / ".join(map(str, idx)) if isinstance(idx, tuple) else str(idx) for idx in table.index]
    sns.heatmap(
        scaled,
        annot=table.round(2),
        fmt="g",
        cmap="RdYlGn_r",
        cbar=False,
        yticklabels=labels,
        ax=ax,
    )
    ax.set_title("Forecast accuracy (lower is better per column)")
    ax.set_ylabel("")

    return ax
