"""Pytest configuration and shared fixtures."""

import pytest
import pandas as pd
import numpy as np

from ridecast.data.structs import TimeSeries


def _seasonal_values(n, period, level, slope, amplitude, noise, seed):
    rng = np.random.default_rng(seed)
    t = np.arange(n)
    return (
        level
        + slope * t
        + amplitude * np.sin(2 * np.pi * t / period)
        + rng.normal(0, noise, n)
    )


@pytest.fixture
def daily_rides():
    """Four years of synthetic daily rides, Monday 2016-01-04 to Sunday 2019-12-29."""
    dates = pd.date_range("2016-01-04", "2019-12-29", freq="D", name="Date")
    yearly = _seasonal_values(len(dates), 365.25, 40000, 5.0, 15000, 1500, seed=42)
    weekday = np.where(dates.dayofweek >= 5, -6000.0, 2000.0)
    return pd.Series(np.round(yearly + weekday), index=dates, name="Total_Rides")


@pytest.fixture
def daily_ts(daily_rides):
    """Daily rides as a TimeSeries."""
    return TimeSeries.from_series(daily_rides, period="D")


@pytest.fixture
def weekly_ts():
    """160 weeks of trending, yearly-seasonal weekly rides."""
    dates = pd.date_range("2014-01-06", periods=160, freq="W-MON")
    values = _seasonal_values(160, 52, 250000, 300.0, 80000, 8000, seed=7)
    return TimeSeries.from_series(pd.Series(values, index=dates), period="W")


@pytest.fixture
def monthly_ts():
    """Six years of monthly rides with a yearly cycle."""
    dates = pd.date_range("2013-01-01", periods=72, freq="MS")
    values = _seasonal_values(72, 12, 1_000_000, 4000.0, 300000, 30000, seed=3)
    return TimeSeries.from_series(pd.Series(values, index=dates), period="M")


@pytest.fixture
def csv_files(tmp_path, daily_rides):
    """Daily and monthly ridership CSVs in the source file layouts."""
    daily_path = tmp_path / "daily_rides.csv"
    pd.DataFrame({
        "Date": daily_rides.index.strftime("%Y-%m-%d"),
        "Total_Rides": daily_rides.values.astype(int),
    }).to_csv(daily_path, index=False)

    monthly = daily_rides.groupby([daily_rides.index.year, daily_rides.index.month]).sum()
    monthly_path = tmp_path / "monthly_rides.csv"
    pd.DataFrame({
        "Year": monthly.index.get_level_values(0),
        "Month": monthly.index.get_level_values(1),
        "number_of_rides": monthly.values.astype(int),
    }).to_csv(monthly_path, index=False)

    return {"daily": daily_path, "monthly": monthly_path}


@pytest.fixture
def backtest_config(tmp_path, csv_files):
    """Small but complete backtest configuration over the synthetic CSVs."""
    return {
        "data": {
            "daily_path": str(csv_files["daily"]),
            "monthly_path": str(csv_files["monthly"]),
            "gap_strategy": "reject",
        },
        "aggregation": {"week_start": "MON"},
        "diagnostics": {"enabled": True, "alpha": 0.05, "seasonal_test": "ocsb"},
        "fitter": {"strict_convergence": False, "interval_levels": [80, 95]},
        "output": {"dir": str(tmp_path / "outputs"), "save_models": False},
        "logging": {"level": "INFO", "dir": None},
        "granularities": {
            "weekly": {
                "source": "daily",
                "period": "W",
                "seasonal_period": 52,
                "boundary": "2019-01-07",
                "models": [
                    {"name": "manual_sarima", "kind": "manual",
                     "p": 1, "d": 1, "q": 1, "P": 0, "D": 1, "Q": 0},
                ],
            },
            "monthly": {
                "source": "monthly",
                "period": "M",
                "seasonal_period": 12,
                "boundary": "2019-01-01",
                "models": [
                    {"name": "auto_sarima", "kind": "auto",
                     "max_p": 1, "max_q": 1, "max_P": 1, "max_Q": 1, "D": 1},
                    {"name": "tbats", "kind": "decomposition",
                     "use_trend": False, "use_damping": False,
                     "use_variance_stabilization": False},
                ],
            },
        },
    }
