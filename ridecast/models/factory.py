"""Map model specifications to model classes."""

from typing import Optional

from ridecast.models.base_model import BaseModel
from ridecast.models.sarima import AutoSarimaModel, ManualSarimaModel
from ridecast.models.specs import AutoSpec, DecompositionSpec, ManualSpec, ModelSpec
from ridecast.models.tbats_model import TBATSModel

MODEL_MAP = {
    AutoSpec: AutoSarimaModel,
    ManualSpec: ManualSarimaModel,
    DecompositionSpec: TBATSModel,
}


def build_model(
    spec: ModelSpec,
    model_id: Optional[str] = None,
    strict_convergence: bool = False,
) -> BaseModel:
    """
    Instantiate the unfitted model for ``spec``.

    Args:
        spec: Model specification
        model_id: Optional identifier
        strict_convergence: Raise NonConvergence instead of warning

    Returns:
        Unfitted BaseModel subclass instance
    """
    model_cls = MODEL_MAP.get(type(spec))
    if model_cls is None:
        raise TypeError(f"No model registered for spec type {type(spec).__name__}")
    return model_cls(spec, model_id=model_id, strict_convergence=strict_convergence)
