"""Model specifications: which model to fit and with what settings."""

from dataclasses import dataclass, asdict
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

INFORMATION_CRITERIA = ("aic", "aicc", "bic")


@dataclass(frozen=True)
class AutoSpec:
    """
    Seasonal ARIMA with orders chosen by information criterion.

    The search covers p, q, P, Q up to their maxima and d, D up to 1. Pin
    ``d`` or ``D`` to skip the corresponding unit-root test.
    """
    kind: ClassVar[str] = "auto"

    seasonal_period: int
    max_p: int = 5
    max_q: int = 5
    max_P: int = 2
    max_Q: int = 2
    max_d: int = 1
    max_D: int = 1
    d: Optional[int] = None
    D: Optional[int] = None
    information_criterion: str = "aicc"
    stepwise: bool = True

    def __post_init__(self):
        if self.seasonal_period < 1:
            raise ValueError("seasonal_period must be at least 1")
        if not 0 <= self.max_d <= 1 or not 0 <= self.max_D <= 1:
            raise ValueError("max_d and max_D must be 0 or 1")
        for name in ("d", "D"):
            value = getattr(self, name)
            if value is not None and not 0 <= value <= 1:
                raise ValueError(f"{name} must be 0 or 1")
        if min(self.max_p, self.max_q, self.max_P, self.max_Q) < 0:
            raise ValueError("Maximum orders must be non-negative")
        if self.information_criterion not in INFORMATION_CRITERIA:
            raise ValueError(
                f"Unknown information criterion: {self.information_criterion}. "
                f"Supported: {list(INFORMATION_CRITERIA)}"
            )

    def describe(self) -> str:
        search = "stepwise" if self.stepwise else "exhaustive"
        return f"auto ARIMA[{self.seasonal_period}] ({search}, {self.information_criterion})"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True)
class ManualSpec:
    """Seasonal ARIMA(p,d,q)(P,D,Q)[m] with fixed orders."""
    kind: ClassVar[str] = "manual"

    p: int
    d: int
    q: int
    P: int = 0
    D: int = 0
    Q: int = 0
    seasonal_period: int = 1

    def __post_init__(self):
        if min(self.p, self.d, self.q, self.P, self.D, self.Q) < 0:
            raise ValueError("ARIMA orders must be non-negative")
        if self.seasonal_period < 1:
            raise ValueError("seasonal_period must be at least 1")
        if self.seasonal_period == 1 and (self.P or self.D or self.Q):
            raise ValueError("Seasonal orders need a seasonal_period above 1")

    @property
    def order(self) -> Tuple[int, int, int]:
        return (self.p, self.d, self.q)

    @property
    def seasonal_order(self) -> Tuple[int, int, int, int]:
        if self.seasonal_period == 1:
            return (0, 0, 0, 0)
        return (self.P, self.D, self.Q, self.seasonal_period)

    def describe(self) -> str:
        return format_arima(self.order, self.seasonal_order)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True)
class DecompositionSpec:
    """
    TBATS: trigonometric seasonality, Box-Cox transform, ARMA errors, trend
    and seasonal components. A flag left as None lets the model try both
    settings and keep the better fit.
    """
    kind: ClassVar[str] = "decomposition"

    seasonal_periods: Tuple[float, ...]
    use_trend: Optional[bool] = None
    use_damping: Optional[bool] = None
    use_variance_stabilization: Optional[bool] = None
    use_arma_errors: bool = True

    def __post_init__(self):
        if any(p <= 1 for p in self.seasonal_periods):
            raise ValueError("Seasonal periods must be greater than 1")

    def describe(self) -> str:
        periods = ", ".join(f"{p:g}" for p in self.seasonal_periods)
        return f"TBATS[{periods}]"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["seasonal_periods"] = list(self.seasonal_periods)
        return {"kind": self.kind, **data}


ModelSpec = Union[AutoSpec, ManualSpec, DecompositionSpec]

_SPEC_TYPES = {cls.kind: cls for cls in (AutoSpec, ManualSpec, DecompositionSpec)}

# Model entries in the backtest config carry these alongside the spec fields
HARNESS_KEYS = ("name", "kind", "use_exog", "use_diagnostics")


def spec_from_config(config: Dict[str, Any]) -> ModelSpec:
    """
    Build a ModelSpec from a config entry such as
    ``{"kind": "manual", "p": 1, "d": 1, "q": 1, "D": 1, "seasonal_period": 52}``.
    Harness keys (``name``, ``kind``, ``use_exog``, ``use_diagnostics``) are
    not passed to the spec.
    """
    params = {k: v for k, v in config.items() if k not in HARNESS_KEYS}
    kind = config.get("kind")
    if kind not in _SPEC_TYPES:
        raise ValueError(f"Unknown model kind: {kind}. Supported kinds are: {sorted(_SPEC_TYPES)}")
    if kind == "decomposition" and "seasonal_periods" in params:
        params["seasonal_periods"] = tuple(params["seasonal_periods"])
    return _SPEC_TYPES[kind](**params)


def format_arima(order: Tuple[int, int, int], seasonal_order: Tuple[int, int, int, int]) -> str:
    """Conventional ARIMA(p,d,q)(P,D,Q)[m] label."""
    label = "ARIMA({},{},{})".format(*order)
    if seasonal_order[3] > 1:
        label += "({},{},{})[{}]".format(*seasonal_order)
    return label
