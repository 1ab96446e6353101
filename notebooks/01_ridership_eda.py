# 01_ridership_eda.py
import marimo

__generated_with = "0.1.0"
app = marimo.App(width="medium")

@app.cell
def __():
    import marimo as mo
    from pathlib import Path
    import pandas as pd
    import numpy as np
    import sys
    import matplotlib.pyplot as plt
    import seaborn as sns

    # Add project root to path
    project_root = Path(__file__).parent.parent.resolve()
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    from ridecast.data import Aggregator, Preprocessor, RidershipLoader
    from ridecast.diagnostics import StationarityDiagnostics
    from ridecast.utils import ConfigManager, setup_logging

    mo.md("# Bike-Share Ridership: Exploratory Analysis")
    return (Aggregator, ConfigManager, Path, Preprocessor, RidershipLoader,
            StationarityDiagnostics, mo, np, pd, plt, project_root, setup_logging, sns, sys)


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
    mo.md("## 1. Load Daily and Monthly Files")
    return


@app.cell
def __(Preprocessor, RidershipLoader, config, mo, project_root):
    daily_path = project_root / config["data"]["daily_path"]
    monthly_path = project_root / config["data"]["monthly_path"]

    if not daily_path.exists():
        mo.md(f"**Error**: Daily file not found at {daily_path}.")
        raise FileNotFoundError(f"Data file not found: {daily_path}")

    loader = RidershipLoader(log_dir=str(project_root / "logs" / "validation"))
    preprocessor = Preprocessor()

    daily = preprocessor.fill_gaps(
        loader.load_daily(str(daily_path)), config["data"]["gap_strategy"]
    )
    monthly = None
    if monthly_path.exists():
        monthly = loader.load_monthly(str(monthly_path))

    print(f"Daily: {len(daily)} days, {daily.first_timestamp.date()} to {daily.last_timestamp.date()}")
    if monthly is not None:
        print(f"Monthly: {len(monthly)} months")
    return daily, daily_path, loader, monthly, monthly_path, preprocessor


@app.cell
def __(mo):
    mo.md("## 2. Daily, Weekly and Monthly Series")
    return


@app.cell
def __(Aggregator, config, daily, plt):
    aggregator = Aggregator(week_start=config["aggregation"]["week_start"])
    weekly = aggregator.aggregate(daily, "W")
    monthly_from_daily = aggregator.aggregate(daily, "M")

    # Partial buckets understate the true total
    print(f"Partial weekly buckets: {weekly.metadata['partial_buckets']}")
    print(f"Partial monthly buckets: {monthly_from_daily.metadata['partial_buckets']}")

    fig, axes = plt.subplots(3, 1, figsize=(12, 10), sharex=True)
    for ax, ts, label in zip(axes, [daily, weekly, monthly_from_daily], ["Daily", "Weekly", "Monthly"]):
        ax.plot(ts.index, ts.values.values, linewidth=0.8)
        ax.set_title(f"{label} total rides")
        ax.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.show()
    return aggregator, monthly_from_daily, weekly


@app.cell
def __(daily, pd, plt, sns):
    # Weekly pattern
    frame = pd.DataFrame({"rides": daily.values.values, "weekday": daily.index.day_name()})
    order = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
    plt.figure(figsize=(10, 4))
    sns.boxplot(data=frame, x="weekday", y="rides", order=order)
    plt.title("Daily rides by weekday")
    plt.show()
    return frame, order


@app.cell
def __(mo):
    mo.md("## 3. Stationarity and Decomposition (weekly, training window)")
    return


@app.cell
def __(StationarityDiagnostics, config, weekly):
    weekly_cfg = config["granularities"]["weekly"]
    train = weekly.slice(0, int(weekly.index.searchsorted(weekly_cfg["boundary"])))

    diagnostics = StationarityDiagnostics(
        alpha=config["diagnostics"]["alpha"],
        seasonal_test=config["diagnostics"]["seasonal_test"],
    )
    report = diagnostics.diagnose(train, weekly_cfg["seasonal_period"])

    print(f"Recommended (D, d): {report.recommendation}")
    for name, test in report.level_tests.items():
        print(f"  {name.upper()}: statistic={test.statistic:.3f}, p={test.p_value:.4f}, stationary={test.stationary}")
    if report.tests_disagree:
        # Reported as-is: the plot shows trend and seasonality that the ADF result does not reflect
        print("ADF and KPSS disagree on the level series:")
        for note in report.notes:
            print(f"  - {note}")
    return diagnostics, report, train, weekly_cfg


@app.cell
def __(diagnostics, plt, train, weekly_cfg):
    components = diagnostics.decompose(train, weekly_cfg["seasonal_period"])
    components.plot(subplots=True, figsize=(12, 9), title="STL decomposition (weekly)")
    plt.tight_layout()
    plt.show()
    return (components,)


if __name__ == "__main__":
    app.run()
