# 02_forecast_backtest.py
import marimo

__generated_with = "0.1.0"
app = marimo.App(width="medium")

@app.cell
def __():
    import marimo as mo
    from pathlib import Path
    import pandas as pd
    import sys
    import matplotlib.pyplot as plt

    # Add project root to path
    project_root = Path(__file__).parent.parent.resolve()
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    from ridecast import BacktestHarness
    from ridecast.evaluation import plot_forecast, plot_metric_heatmap
    from ridecast.utils import ConfigManager, setup_logging

    mo.md("# Seasonal Forecast Backtest: SARIMA vs TBATS")
    return (BacktestHarness, ConfigManager, Path, mo, pd, plot_forecast,
            plot_metric_heatmap, plt, project_root, setup_logging, sys)


@app.cell
def __(ConfigManager, project_root, setup_logging):
    config = ConfigManager().load_backtest_config()
    setup_logging(
        log_level=config["logging"]["level"],
        log_dir=str(project_root / config["logging"]["dir"]),
    )
    return (config,)


@app.cell
def __(mo):
    mo.md("## 1. Run Every Granularity and Model")
    return


@app.cell
def __(BacktestHarness, config):
    harness = BacktestHarness(config)
    comparator = harness.run()
    summary_path = harness.save_summary()
    print(f"Summary written to {summary_path}")

    for record in comparator.failed:
        print(f"FAILED {record.key}: {record.error['exception_type']}: {record.error['exception_message']}")
    return comparator, harness, record, summary_path


@app.cell
def __(mo):
    mo.md("## 2. Accuracy Comparison")
    return


@app.cell
def __(comparator, pd, plot_metric_heatmap, plt):
    table = comparator.compare_metrics()
    with pd.option_context("display.float_format", "{:,.3f}".format, "display.width", 160):
        print(table)

    print("\nBest model per granularity (RMSE):")
    print(comparator.best_models("RMSE")[["description", "RMSE", "MAPE", "MASE"]])

    plot_metric_heatmap(table, metrics=["RMSE", "MAE", "MAPE", "MASE", "Theil's U"])
    plt.tight_layout()
    plt.show()
    return (table,)


@app.cell
def __(mo):
    mo.md("## 3. Forecasts vs Actuals")
    return


@app.cell
def __(comparator, harness, plot_forecast, plt):
    for granularity in harness.granularities:
        records = [r for r in comparator.successful if r.granularity == granularity]
        if not records:
            continue
        series = harness.series(granularity)
        fig, axes = plt.subplots(len(records), 1, figsize=(12, 4 * len(records)), squeeze=False)
        for ax, rec in zip(axes[:, 0], records):
            plot_forecast(series, rec.forecast, ax=ax, history=3 * len(rec.forecast),
                          title=f"{granularity}: {rec.description}")
        plt.tight_layout()
        plt.show()
    return axes, fig, granularity, records, series


@app.cell
def __(mo):
    mo.md("## 4. Residual Checks and Per-Model Accuracy")
    return


@app.cell
def __(comparator):
    for rec in comparator.successful:
        res = rec.forecast.residuals
        p_value = "n/a" if res.ljung_box_p_value is None else f"{res.ljung_box_p_value:.4f}"
        print(f"{rec.key} [{rec.description}] converged={rec.converged}")
        print(f"  residual mean={res.mean:.2f}, Ljung-Box Q*={res.ljung_box_statistic}, "
              f"df={res.df}, lag={res.lag}, p={p_value}")
        print(rec.accuracy.to_frame().round(3).to_string())
        print()
    return p_value, rec, res


@app.cell
def __(mo):
    mo.md("## 5. Expanding-Origin Check (weekly manual SARIMA)")
    return


@app.cell
def __(harness):
    folds = harness.cross_validate("weekly", "manual_sarima", horizon=52, step=13, max_folds=4)
    print(folds[["fold", "boundary", "train_size", "status", "RMSE", "MAPE", "MASE"]])
    return (folds,)


if __name__ == "__main__":
    app.run()
