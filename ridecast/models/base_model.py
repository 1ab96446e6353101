"""Base model interface shared by the seasonal forecasting models."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple
import logging
import warnings

import numpy as np
import pandas as pd

from ridecast.data.structs import TimeSeries
from ridecast.diagnostics.stationarity import ljung_box
from ridecast.utils.error_handling import NonConvergence, NonConvergenceWarning
from ridecast.utils.serialization import load_pickle, save_json, save_pickle

logger = logging.getLogger(__name__)

DEFAULT_LEVELS = (80, 95)


@dataclass(frozen=True)
class ResidualDiagnostics:
    """Residual checks on the training fit."""
    mean: float
    ljung_box_statistic: Optional[float]
    ljung_box_p_value: Optional[float]
    lag: int
    df: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean": self.mean,
            "ljung_box_statistic": self.ljung_box_statistic,
            "ljung_box_p_value": self.ljung_box_p_value,
            "lag": self.lag,
            "df": self.df,
        }


@dataclass(frozen=True)
class ForecastResult:
    """
    Point forecasts with prediction intervals.

    Attributes:
        mean: Point forecasts indexed by the forecast timestamps
        intervals: Confidence level (e.g. 95) -> DataFrame with lower/upper columns
        residuals: Diagnostics of the training residuals
        model_description: Label of the fitted model
    """
    mean: pd.Series
    intervals: Dict[int, pd.DataFrame]
    residuals: ResidualDiagnostics
    model_description: str = ""

    def __len__(self) -> int:
        return len(self.mean)

    @property
    def index(self) -> pd.DatetimeIndex:
        return self.mean.index

    def to_frame(self) -> pd.DataFrame:
        """One row per step with point forecast and lo/hi bounds per level."""
        frame = pd.DataFrame({"point": self.mean})
        for level in sorted(self.intervals):
            frame[f"lo_{level}"] = self.intervals[level]["lower"]
            frame[f"hi_{level}"] = self.intervals[level]["upper"]
        return frame


class BaseModel(ABC):
    """
    Abstract base class for the fitted-model handle.

    Subclasses implement ``fit``, ``_predict`` and the in-sample accessors.
    Forecasting never changes the fitted state, so the same handle gives the
    same forecast every time it is asked.
    """

    def __init__(
        self,
        spec: Any,
        model_id: Optional[str] = None,
        strict_convergence: bool = False,
    ):
        """
        Initialize base model.

        Args:
            spec: Model specification
            model_id: Unique identifier for the model
            strict_convergence: Raise NonConvergence instead of warning when
                the optimiser reports failure
        """
        self.spec = spec
        self.model_id = model_id or self._generate_model_id()
        self.strict_convergence = strict_convergence
        self.model_object: Any = None
        self.is_fitted: bool = False
        self.converged: Optional[bool] = None
        self.training_time: float = 0.0
        self.exog_names: list = []
        self._train: Optional[TimeSeries] = None
        self._created_at: datetime = datetime.now()

    @property
    @abstractmethod
    def model_type(self) -> str:
        """Return the model type identifier."""

    @property
    @abstractmethod
    def seasonal_period(self) -> int:
        """Season length used for residual and MASE scaling."""

    @abstractmethod
    def fit(self, endog: TimeSeries, exog: Optional[pd.DataFrame] = None) -> "BaseModel":
        """
        Fit the model to a training series.

        Args:
            endog: Training series
            exog: Optional regressors aligned 1:1 with ``endog``

        Returns:
            Self for method chaining
        """

    @abstractmethod
    def _predict(
        self,
        steps: int,
        exog: Optional[pd.DataFrame],
        alpha: float,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return (mean, lower, upper) arrays for a 1 - alpha interval."""

    @abstractmethod
    def _in_sample(self) -> Tuple[pd.Series, pd.Series]:
        """Return (fitted values, residuals) over the usable training window."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable label of the fitted model."""

    @property
    def n_params(self) -> int:
        """Estimated coefficients, used as Ljung-Box degrees of freedom."""
        return 0

    @property
    def training_series(self) -> TimeSeries:
        self._check_fitted()
        return self._train

    @property
    def fitted_values(self) -> pd.Series:
        self._check_fitted()
        return self._in_sample()[0]

    @property
    def residuals(self) -> pd.Series:
        self._check_fitted()
        return self._in_sample()[1]

    def forecast(
        self,
        steps: int,
        exog: Optional[pd.DataFrame] = None,
        levels: Sequence[int] = DEFAULT_LEVELS,
    ) -> ForecastResult:
        """
        Forecast ``steps`` periods past the end of the training series.

        Args:
            steps: Forecast horizon
            exog: Regressors for the forecast window (required when the model
                was fitted with regressors), one row per step
            levels: Prediction interval confidence levels in percent

        Returns:
            ForecastResult
        """
        self._check_fitted()
        if steps < 1:
            raise ValueError(f"steps must be positive, got {steps}")
        if self.exog_names and exog is None:
            raise ValueError("Model was fitted with regressors; exog is required for forecasting")
        if exog is not None:
            if not self.exog_names:
                raise ValueError("Model was fitted without regressors; exog must be None")
            if len(exog) != steps:
                raise ValueError(f"exog must have {steps} rows, got {len(exog)}")
            exog = exog[self.exog_names]

        index = self._future_index(steps)
        intervals: Dict[int, pd.DataFrame] = {}
        mean = None
        for level in levels:
            if not 0 < level < 100:
                raise ValueError(f"Interval level must be between 0 and 100, got {level}")
            point, lower, upper = self._predict(steps, exog, alpha=1 - level / 100)
            mean = point
            intervals[int(level)] = pd.DataFrame(
                {"lower": np.asarray(lower, dtype=float), "upper": np.asarray(upper, dtype=float)},
                index=index,
            )
        if mean is None:
            mean, _, _ = self._predict(steps, exog, alpha=0.05)

        return ForecastResult(
            mean=pd.Series(np.asarray(mean, dtype=float), index=index, name="forecast"),
            intervals=intervals,
            residuals=self.residual_diagnostics(),
            model_description=self.describe(),
        )

    def residual_diagnostics(self) -> ResidualDiagnostics:
        """
        Residual mean and Ljung-Box test on the training fit.

        Lag is twice the season length (10 for non-seasonal models), capped at
        a fifth of the sample and kept at least three above the model's
        degrees of freedom.
        """
        residuals = self.residuals.to_numpy(dtype=float)
        m = self.seasonal_period
        lag = 2 * m if m > 1 else 10
        lag = min(lag, round(len(residuals) / 5))
        lag = max(self.n_params + 3, lag)
        test = ljung_box(residuals, lag=lag, model_df=self.n_params)
        return ResidualDiagnostics(
            mean=float(np.nanmean(residuals)),
            ljung_box_statistic=test["statistic"],
            ljung_box_p_value=test["p_value"],
            lag=test["lag"],
            df=test["df"],
        )

    def save_model(self, path: str) -> None:
        """
        Save model to disk.

        Args:
            path: Directory path to save model artifacts
        """
        if not self.is_fitted:
            raise ValueError("Cannot save unfitted model")

        save_dir = Path(path)
        save_pickle(self, save_dir / "model.pkl")
        save_json(self.to_dict(), save_dir / "metadata.json")

        logger.info(f"Model saved to {save_dir}")

    @staticmethod
    def load_model(path: str) -> "BaseModel":
        """
        Load a model saved with ``save_model``.

        Args:
            path: Directory path containing model artifacts

        Returns:
            The fitted model
        """
        model = load_pickle(Path(path) / "model.pkl")
        logger.info(f"Model loaded from {path}")
        return model

    def to_dict(self) -> Dict[str, Any]:
        """Model metadata (excludes the fitted object)."""
        return {
            "model_id": self.model_id,
            "model_type": self.model_type,
            "spec": self.spec.to_dict(),
            "description": self.describe() if self.is_fitted else self.spec.describe(),
            "converged": self.converged,
            "exog_names": self.exog_names,
            "training_time": self.training_time,
            "created_at": self._created_at.isoformat(),
        }

    def _record_training(self, endog: TimeSeries, exog: Optional[pd.DataFrame]) -> None:
        """Validate inputs and remember the training window."""
        self.is_fitted = False
        if len(endog) < 3:
            raise ValueError(f"Need at least 3 observations to fit, got {len(endog)}")
        if exog is not None:
            if not isinstance(exog, pd.DataFrame):
                raise TypeError("exog must be a pandas DataFrame")
            if len(exog) != len(endog):
                raise ValueError(
                    f"Dimensions in endog ({len(endog)}) and exog ({len(exog)}) do not match."
                )
            if not exog.index.equals(endog.index):
                raise ValueError("exog index must match the training series index")
            if exog.isnull().any().any():
                raise ValueError("exog contains missing values")
            self.exog_names = list(exog.columns)
        else:
            self.exog_names = []
        self._train = endog

    def _check_convergence(self, converged: bool, detail: str = "") -> None:
        """Raise or warn when the optimiser did not converge."""
        self.converged = converged
        if converged:
            return
        if self.strict_convergence:
            raise NonConvergence(self.model_type, detail)
        message = f"{self.model_type} fit did not converge; keeping the last estimate"
        if detail:
            message = f"{message} ({detail})"
        logger.warning(message)
        warnings.warn(message, NonConvergenceWarning, stacklevel=3)

    def _future_index(self, steps: int) -> pd.DatetimeIndex:
        train = self.training_series
        if train.freq is None:
            raise ValueError("Training series has no frequency; cannot index the forecast")
        return pd.date_range(train.last_timestamp, periods=steps + 1, freq=train.freq)[1:]

    def _check_fitted(self) -> None:
        if not self.is_fitted:
            raise ValueError("Model must be fitted before use. Call fit() first.")

    def _generate_model_id(self) -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"{self.model_type}_{timestamp}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"model_id='{self.model_id}', "
            f"spec={self.spec.describe()!r}, "
            f"is_fitted={self.is_fitted})"
        )
