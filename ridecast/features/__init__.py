"""Exogenous regressors for the seasonal models."""

from ridecast.features.calendar import (
    CalendarRegressors,
    RegressorDefinitions,
    fourier_terms,
    holiday_counts,
)

__all__ = [
    "CalendarRegressors",
    "RegressorDefinitions",
    "fourier_terms",
    "holiday_counts",
]
