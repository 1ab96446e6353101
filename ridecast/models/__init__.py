"""Seasonal forecasting models."""

from ridecast.models.base_model import BaseModel, ForecastResult, ResidualDiagnostics
from ridecast.models.specs import (
    AutoSpec,
    DecompositionSpec,
    ManualSpec,
    ModelSpec,
    spec_from_config,
)
from ridecast.models.sarima import AutoSarimaModel, ManualSarimaModel
from ridecast.models.tbats_model import TBATSModel
from ridecast.models.factory import build_model

__all__ = [
    "BaseModel",
    "ForecastResult",
    "ResidualDiagnostics",
    "AutoSpec",
    "DecompositionSpec",
    "ManualSpec",
    "ModelSpec",
    "spec_from_config",
    "AutoSarimaModel",
    "ManualSarimaModel",
    "TBATSModel",
    "build_model",
]
