"""Unit-root diagnostics that recommend differencing orders.

The diagnostics are advisory: they never modify the series. The caller decides
whether to pin the recommended orders when fitting.
"""

from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import logging
import warnings

import numpy as np
import pandas as pd
from pmdarima.arima import ndiffs, nsdiffs
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.seasonal import STL
from statsmodels.tsa.stattools import adfuller, kpss

from ridecast.data.structs import TimeSeries

logger = logging.getLogger(__name__)

SEASONAL_TESTS = ("ocsb", "ch")


@dataclass
class UnitRootTest:
    """Outcome of a single unit-root or stationarity test."""
    name: str
    statistic: float
    p_value: float
    lags: int
    critical_values: Dict[str, float]
    stationary: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "statistic": self.statistic,
            "p_value": self.p_value,
            "lags": self.lags,
            "critical_values": self.critical_values,
            "stationary": self.stationary,
        }


@dataclass
class StationarityReport:
    """
    Recommended differencing orders plus the raw test results behind them.

    Attributes:
        seasonal_differences: Recommended D
        non_seasonal_differences: Recommended d (after seasonal differencing)
        seasonal_period: Season length used for the seasonal test
        seasonal_test: Name of the seasonal unit-root test
        level_tests: ADF and KPSS on the series as given
        differenced_tests: ADF and KPSS after applying the recommended orders
        tests_disagree: ADF and KPSS reach opposite conclusions on the level series
        notes: Human-readable caveats
    """
    seasonal_differences: int
    non_seasonal_differences: int
    seasonal_period: int
    seasonal_test: str
    level_tests: Dict[str, UnitRootTest]
    differenced_tests: Dict[str, UnitRootTest] = field(default_factory=dict)
    tests_disagree: bool = False
    notes: List[str] = field(default_factory=list)

    @property
    def recommendation(self) -> Tuple[int, int]:
        """(seasonal_differences, non_seasonal_differences)"""
        return self.seasonal_differences, self.non_seasonal_differences

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seasonal_differences": self.seasonal_differences,
            "non_seasonal_differences": self.non_seasonal_differences,
            "seasonal_period": self.seasonal_period,
            "seasonal_test": self.seasonal_test,
            "level_tests": {k: v.to_dict() for k, v in self.level_tests.items()},
            "differenced_tests": {k: v.to_dict() for k, v in self.differenced_tests.items()},
            "tests_disagree": self.tests_disagree,
            "notes": self.notes,
        }


class StationarityDiagnostics:
    """Wraps ADF, KPSS and seasonal unit-root tests."""

    def __init__(
        self,
        alpha: float = 0.05,
        seasonal_test: str = "ocsb",
        max_d: int = 1,
        max_D: int = 1,
    ):
        if seasonal_test not in SEASONAL_TESTS:
            raise ValueError(f"Unknown seasonal test: {seasonal_test}. Supported tests are: {list(SEASONAL_TESTS)}")
        self.alpha = alpha
        self.seasonal_test = seasonal_test
        self.max_d = max_d
        self.max_D = max_D

    def diagnose(self, ts: TimeSeries, seasonal_period: int) -> StationarityReport:
        """
        Recommend differencing orders for ``ts``.

        The seasonal order comes from the configured seasonal test; the
        non-seasonal order from KPSS-based ``ndiffs`` on the seasonally
        differenced series. Both are capped at their maxima.

        Args:
            ts: Series to test (typically the training window)
            seasonal_period: Season length in periods (1 for non-seasonal)

        Returns:
            StationarityReport
        """
        values = ts.values.to_numpy(dtype=float)
        notes: List[str] = []

        level_tests = {"adf": self.adf(values), "kpss": self.kpss(values)}
        tests_disagree = level_tests["adf"].stationary != level_tests["kpss"].stationary
        if tests_disagree:
            notes.append(
                f"ADF ({'stationary' if level_tests['adf'].stationary else 'unit root'}, "
                f"p={level_tests['adf'].p_value:.3f}) and KPSS "
                f"({'stationary' if level_tests['kpss'].stationary else 'not stationary'}, "
                f"p={level_tests['kpss'].p_value:.3f}) disagree; inspect the plot and decomposition"
            )

        D = 0
        if seasonal_period < 2:
            notes.append("Non-seasonal series: seasonal differencing not tested")
        elif len(values) < 2 * seasonal_period + 2:
            notes.append(
                f"Only {len(values)} observations for season length {seasonal_period}; "
                "seasonal differencing not tested"
            )
        else:
            D = int(nsdiffs(values, m=seasonal_period, max_D=self.max_D, test=self.seasonal_test))

        seasonally_differenced = self.difference(values, 0, D, seasonal_period)
        d = int(ndiffs(seasonally_differenced, alpha=self.alpha, test="kpss", max_d=self.max_d))

        differenced = self.difference(values, d, D, seasonal_period)
        differenced_tests: Dict[str, UnitRootTest] = {}
        if (d or D) and len(differenced) > 10:
            differenced_tests = {"adf": self.adf(differenced), "kpss": self.kpss(differenced)}

        report = StationarityReport(
            seasonal_differences=D,
            non_seasonal_differences=d,
            seasonal_period=seasonal_period,
            seasonal_test=self.seasonal_test,
            level_tests=level_tests,
            differenced_tests=differenced_tests,
            tests_disagree=tests_disagree,
            notes=notes,
        )
        logger.info(
            f"Stationarity ({len(values)} obs, m={seasonal_period}): "
            f"ADF p={level_tests['adf'].p_value:.4f}, KPSS p={level_tests['kpss'].p_value:.4f} "
            f"-> D={D}, d={d}"
        )
        for note in notes:
            logger.warning(note)
        return report

    def adf(self, values: np.ndarray) -> UnitRootTest:
        """Augmented Dickey-Fuller test; the null hypothesis is a unit root."""
        statistic, p_value, used_lag, _, critical, _ = adfuller(values, autolag="AIC")
        return UnitRootTest(
            name="adf",
            statistic=float(statistic),
            p_value=float(p_value),
            lags=int(used_lag),
            critical_values={k: float(v) for k, v in critical.items()},
            stationary=bool(p_value < self.alpha),
        )

    def kpss(self, values: np.ndarray) -> UnitRootTest:
        """KPSS test; the null hypothesis is level stationarity."""
        # p-values outside the lookup table are clipped to its bounds
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", InterpolationWarning)
            statistic, p_value, lags, critical = kpss(values, regression="c", nlags="auto")
        return UnitRootTest(
            name="kpss",
            statistic=float(statistic),
            p_value=float(p_value),
            lags=int(lags),
            critical_values={k: float(v) for k, v in critical.items()},
            stationary=bool(p_value >= self.alpha),
        )

    def difference(self, values: np.ndarray, d: int, D: int, seasonal_period: int) -> np.ndarray:
        """Apply D seasonal then d ordinary differences, returning a new array."""
        result = np.asarray(values, dtype=float)
        for _ in range(D):
            result = result[seasonal_period:] - result[:-seasonal_period]
        for _ in range(d):
            result = np.diff(result)
        return result

    def decompose(
        self,
        ts: TimeSeries,
        seasonal_period: int,
        robust: bool = True,
    ) -> pd.DataFrame:
        """
        STL decomposition into trend, seasonal and remainder components.

        Args:
            ts: Series to decompose; needs at least two full seasons
            seasonal_period: Season length in periods
            robust: Down-weight outliers in the loess fits

        Returns:
            DataFrame with columns observed, trend, seasonal, remainder
        """
        if seasonal_period < 2:
            raise ValueError("STL needs a seasonal period of at least 2")
        if len(ts) < 2 * seasonal_period:
            raise ValueError(
                f"STL needs at least {2 * seasonal_period} observations, got {len(ts)}"
            )

        result = STL(ts.values, period=seasonal_period, robust=robust).fit()
        return pd.DataFrame({
            "observed": result.observed,
            "trend": result.trend,
            "seasonal": result.seasonal,
            "remainder": result.resid,
        }, index=ts.index)


def ljung_box(residuals: np.ndarray, lag: int, model_df: int = 0) -> Dict[str, Optional[float]]:
    """
    Ljung-Box portmanteau test on model residuals.

    Args:
        residuals: In-sample residuals
        lag: Number of autocorrelation lags tested
        model_df: Degrees of freedom used by the model, subtracted from ``lag``

    Returns:
        Dict with statistic, p_value, lag and df (None values when the test
        cannot run for lack of degrees of freedom)
    """
    residuals = np.asarray(residuals, dtype=float)
    residuals = residuals[~np.isnan(residuals)]
    lag = int(max(1, min(lag, len(residuals) - 1)))
    df = lag - model_df
    if df < 1 or len(residuals) < 3:
        return {"statistic": None, "p_value": None, "lag": lag, "df": df}

    result = acorr_ljungbox(residuals, lags=[lag], model_df=model_df)
    return {
        "statistic": float(result["lb_stat"].iloc[0]),
        "p_value": float(result["lb_pvalue"].iloc[0]),
        "lag": lag,
        "df": df,
    }
