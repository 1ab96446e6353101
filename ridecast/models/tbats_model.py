"""TBATS decomposition model."""

from typing import Optional
import logging
import time

import numpy as np
import pandas as pd
from tbats import TBATS

from ridecast.data.structs import TimeSeries
from ridecast.models.base_model import BaseModel
from ridecast.models.specs import DecompositionSpec

logger = logging.getLogger(__name__)


class TBATSModel(BaseModel):
    """
    Trigonometric seasonal model with optional Box-Cox transform, damped
    trend and ARMA errors.

    Smoothing parameters, the Box-Cox lambda and the number of harmonics per
    season are chosen by the ``tbats`` library (AIC over the candidate
    component combinations). Exogenous regressors are not supported.
    """

    def __init__(
        self,
        spec: DecompositionSpec,
        model_id: Optional[str] = None,
        strict_convergence: bool = False,
        n_jobs: int = 1,
    ):
        super().__init__(spec, model_id, strict_convergence)
        self.n_jobs = n_jobs

    @property
    def model_type(self) -> str:
        return "tbats"

    @property
    def seasonal_period(self) -> int:
        return int(round(max(self.spec.seasonal_periods)))

    def fit(self, endog: TimeSeries, exog: Optional[pd.DataFrame] = None) -> "TBATSModel":
        """Fit TBATS to the training series."""
        if exog is not None:
            raise ValueError("TBATS does not support exogenous regressors")
        self._record_training(endog, None)
        spec = self.spec

        estimator = TBATS(
            seasonal_periods=list(spec.seasonal_periods),
            use_box_cox=spec.use_variance_stabilization,
            use_trend=spec.use_trend,
            use_damped_trend=spec.use_damping,
            use_arma_errors=spec.use_arma_errors,
            show_warnings=False,
            n_jobs=self.n_jobs,
        )

        start = time.time()
        self.model_object = estimator.fit(endog.values.to_numpy(dtype=float))
        self.training_time = time.time() - start

        # the optimiser status only reaches the caller as a model warning
        aic = float(self.model_object.aic)
        flagged = [w for w in self.model_object.warnings if "did not converge" in w]
        if not np.isfinite(aic):
            flagged.append(f"non-finite AIC ({aic})")
        self._check_convergence(not flagged, "; ".join(flagged))
        self.is_fitted = True

        logger.info(
            f"Fitted {self.describe()} on {len(endog)} observations "
            f"(AIC={aic:.2f}, {self.training_time:.1f}s)"
        )
        return self

    def _predict(self, steps, exog, alpha):
        mean, bounds = self.model_object.forecast(steps=steps, confidence_level=1 - alpha)
        return np.asarray(mean), np.asarray(bounds["lower_bound"]), np.asarray(bounds["upper_bound"])

    def _in_sample(self):
        index = self._train.index
        fitted = pd.Series(np.asarray(self.model_object.y_hat), index=index, name="fitted")
        resid = pd.Series(np.asarray(self.model_object.resid), index=index, name="residuals")
        return fitted, resid

    def describe(self) -> str:
        if not self.is_fitted:
            return self.spec.describe()
        components = self.model_object.params.components
        periods = ", ".join(f"{p:g}" for p in self.spec.seasonal_periods)
        harmonics = ", ".join(str(int(k)) for k in components.seasonal_harmonics)
        return (
            f"TBATS(box_cox={components.use_box_cox}, "
            f"ARMA({components.p},{components.q}), "
            f"trend={components.use_trend}, damped={components.use_damped_trend}, "
            f"<{periods}; k={harmonics}>)"
        )
