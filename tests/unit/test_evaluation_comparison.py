"""Unit tests for run comparison and plotting."""

import json

import matplotlib
matplotlib.use("Agg")

import pytest
import pandas as pd
import numpy as np
import matplotlib.pyplot as plt

from ridecast.evaluation.comparison import (
    ModelComparator,
    RunRecord,
    plot_forecast,
    plot_metric_heatmap,
)
from ridecast.evaluation.metrics import AccuracyReport
from ridecast.models.base_model import ForecastResult, ResidualDiagnostics
from ridecast.utils.serialization import save_json


def _record(granularity, name, rmse, status="success"):
    if status != "success":
        return RunRecord(granularity=granularity, model_name=name, status=status,
                         error={"exception_type": "NonConvergence"})
    report = AccuracyReport(
        test={"RMSE": rmse, "MAPE": rmse / 10, "Theil's U": 0.5},
        training={"RMSE": rmse / 2, "MAPE": rmse / 20},
    )
    return RunRecord(granularity=granularity, model_name=name, status=status,
                     description=f"{name} model", accuracy=report)


@pytest.fixture
def comparator():
    comp = ModelComparator()
    comp.add_record(_record("weekly", "manual", 100.0))
    comp.add_record(_record("weekly", "tbats", 80.0))
    comp.add_record(_record("monthly", "auto", 500.0))
    comp.add_record(_record("monthly", "tbats", 0.0, status="failed"))
    return comp


@pytest.fixture
def forecast_result():
    index = pd.date_range("2019-01-07", periods=4, freq="W-MON")
    mean = pd.Series([10.0, 11.0, 12.0, 13.0], index=index)
    band = pd.DataFrame({"lower": mean - 2, "upper": mean + 2}, index=index)
    residuals = ResidualDiagnostics(mean=0.1, ljung_box_statistic=5.0,
                                    ljung_box_p_value=0.4, lag=10, df=8)
    return ForecastResult(mean=mean, intervals={95: band}, residuals=residuals,
                          model_description="ARIMA(0,1,1)")


class TestModelComparator:
    """Tests for ModelComparator class."""

    def test_compare_metrics(self, comparator):
        table = comparator.compare_metrics()

        assert table.index.names == ["granularity", "model"]
        assert len(table) == 3
        assert table.loc[("weekly", "tbats"), "RMSE"] == 80.0
        assert table.loc[("monthly", "auto"), "description"] == "auto model"

    def test_compare_selected_metrics_with_training(self, comparator):
        table = comparator.compare_metrics(["RMSE"], include_training=True)
        assert set(table.columns) == {"RMSE", "train_RMSE", "description"}

    def test_failed_runs_listed_separately(self, comparator):
        assert [r.key for r in comparator.failed] == ["monthly/tbats"]
        assert len(comparator.successful) == 3

    def test_best_models(self, comparator):
        best = comparator.best_models("RMSE")
        assert set(best.index) == {("weekly", "tbats"), ("monthly", "auto")}

    def test_best_models_unknown_metric(self, comparator):
        with pytest.raises(ValueError, match="Unknown metric"):
            comparator.best_models("R2")

    def test_replacing_a_run(self, comparator):
        comparator.add_record(_record("weekly", "manual", 50.0))
        assert comparator.compare_metrics().loc[("weekly", "manual"), "RMSE"] == 50.0

    def test_empty(self):
        assert ModelComparator().compare_metrics().empty


class TestRunRecord:
    """Tests for RunRecord serialisation."""

    def test_to_dict_is_json_serialisable(self, tmp_path, forecast_result):
        record = RunRecord(
            granularity="weekly", model_name="m", status="success",
            accuracy=AccuracyReport(test={"RMSE": 1.0, "MASE": np.nan}),
            forecast=forecast_result,
        )
        path = tmp_path / "record.json"
        save_json(record.to_dict(), path)

        with open(path) as f:
            data = json.load(f)
        assert data["accuracy"]["test"]["MASE"] is None
        assert len(data["forecast"]) == 4
        assert data["residuals"]["df"] == 8


class TestPlots:
    """Smoke tests for the plotting helpers."""

    def test_plot_forecast(self, weekly_ts, forecast_result):
        series = weekly_ts.slice(0, 40)
        ax = plot_forecast(series, forecast_result, history=10)
        assert ax.get_title() == "ARIMA(0,1,1)"
        plt.close("all")

    def test_plot_metric_heatmap(self, comparator):
        ax = plot_metric_heatmap(comparator.compare_metrics(), metrics=["RMSE", "MAPE"])
        assert len(ax.get_yticklabels()) == 3
        plt.close("all")

    def test_plot_metric_heatmap_empty(self):
        with pytest.raises(ValueError, match="Nothing to plot"):
            plot_metric_heatmap(pd.DataFrame({"description": ["x"]}))
