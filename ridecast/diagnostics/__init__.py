"""Stationarity and residual diagnostics."""

from ridecast.diagnostics.stationarity import (
    StationarityDiagnostics,
    StationarityReport,
    UnitRootTest,
    ljung_box,
)

__all__ = [
    "StationarityDiagnostics",
    "StationarityReport",
    "UnitRootTest",
    "ljung_box",
]
