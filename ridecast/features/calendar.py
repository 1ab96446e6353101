"""Deterministic calendar regressors for seasonal ARIMA models.

Every regressor depends only on the timestamp, so the same builder produces
aligned columns for the training window and for any forecast window.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
import logging

import numpy as np
import pandas as pd
import holidays

logger = logging.getLogger(__name__)

_EPOCH = pd.Timestamp("1970-01-01")


@dataclass
class RegressorDefinitions:
    """Which calendar regressors to build."""
    fourier: List[Dict[str, Any]] = field(default_factory=list)
    holiday_country: Optional[str] = None

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "RegressorDefinitions":
        """Build from the ``exog`` block of a granularity config."""
        config = config or {}
        return cls(
            fourier=list(config.get("fourier", [])),
            holiday_country=config.get("holidays"),
        )

    @property
    def is_empty(self) -> bool:
        return not self.fourier and self.holiday_country is None


class CalendarRegressors:
    """Builds Fourier and public-holiday regressors for a DatetimeIndex."""

    def __init__(self, definitions: RegressorDefinitions):
        self.definitions = definitions

    def build(self, index: pd.DatetimeIndex, period: str) -> Optional[pd.DataFrame]:
        """
        Build the configured regressors for ``index``.

        Args:
            index: Timestamps of a daily, weekly or monthly series
            period: Nominal period of the series ('D', 'W', 'M')

        Returns:
            DataFrame aligned with ``index``, or None when nothing is configured
        """
        if self.definitions.is_empty:
            return None

        frames = []
        for term in self.definitions.fourier:
            frames.append(fourier_terms(index, period, float(term["period"]), int(term["K"])))
        if self.definitions.holiday_country:
            frames.append(
                holiday_counts(index, period, self.definitions.holiday_country).to_frame()
            )

        result = pd.concat(frames, axis=1)
        logger.debug(f"Built {result.shape[1]} calendar regressors for {len(index)} periods")
        return result


def time_position(index: pd.DatetimeIndex, period: str) -> np.ndarray:
    """
    Return each timestamp's position on a fixed time axis, in units of ``period``.

    Daily and weekly positions count days (or weeks) since 1970-01-01; monthly
    positions count months.
    """
    if period == "M":
        return np.asarray((index.year - _EPOCH.year) * 12 + (index.month - 1), dtype=float)
    days = np.asarray((index - _EPOCH).days, dtype=float)
    if period == "W":
        return days / 7.0
    return days


def fourier_terms(
    index: pd.DatetimeIndex,
    period: str,
    seasonal_period: float,
    K: int,
) -> pd.DataFrame:
    """
    Sine/cosine pairs for the first ``K`` harmonics of a seasonal cycle.

    Args:
        index: Timestamps to evaluate
        period: Nominal period of the series
        seasonal_period: Cycle length in series periods (e.g. 365.25 for a
            yearly cycle in daily data, 52.18 in weekly data)
        K: Number of harmonics; must satisfy K <= seasonal_period / 2

    Returns:
        DataFrame with columns ``sin{k}_{m}`` and ``cos{k}_{m}``
    """
    if K < 1 or K > seasonal_period / 2:
        raise ValueError(f"K must be between 1 and {seasonal_period / 2:g}, got {K}")

    t = time_position(index, period)
    columns = {}
    label = f"{seasonal_period:g}"
    for k in range(1, K + 1):
        angle = 2 * np.pi * k * t / seasonal_period
        columns[f"sin{k}_{label}"] = np.sin(angle)
        columns[f"cos{k}_{label}"] = np.cos(angle)
    return pd.DataFrame(columns, index=index)


def holiday_counts(index: pd.DatetimeIndex, period: str, country: str = "US") -> pd.Series:
    """
    Number of public holidays falling in each period.

    For daily data this is a 0/1 indicator. Weekly buckets cover the seven
    days starting at the label; monthly buckets the whole month.
    """
    if len(index) == 0:
        return pd.Series(dtype=float, index=index, name="holidays")

    if period == "D":
        ends = index + pd.Timedelta(days=1)
    elif period == "W":
        ends = index + pd.Timedelta(days=7)
    elif period == "M":
        ends = index + pd.offsets.MonthBegin(1)
    else:
        raise ValueError(f"Unknown period: {period}")

    years = range(index.min().year, ends.max().year + 1)
    calendar = holidays.country_holidays(country, years=years)
    holiday_days = pd.DatetimeIndex(sorted(pd.Timestamp(d) for d in calendar.keys()))

    counts = holiday_days.searchsorted(ends) - holiday_days.searchsorted(index)
    return pd.Series(counts.astype(float), index=index, name="holidays")
