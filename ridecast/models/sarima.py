"""Seasonal ARIMA models: automatic order search and fixed orders."""

from typing import Callable, List, Optional, Tuple
import logging
import time
import warnings

import numpy as np
import pandas as pd
import pmdarima as pm
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.statespace.sarimax import SARIMAX

from ridecast.data.structs import TimeSeries
from ridecast.models.base_model import BaseModel
from ridecast.models.specs import AutoSpec, ManualSpec, format_arima

logger = logging.getLogger(__name__)


def _fit_capturing_convergence(fit: Callable[[], object]) -> Tuple[object, List[str]]:
    """Run ``fit`` and collect any ConvergenceWarning messages it raised."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        result = fit()

    flagged = []
    for w in caught:
        if issubclass(w.category, ConvergenceWarning):
            flagged.append(str(w.message))
        else:
            logger.debug(f"{w.category.__name__} during fit: {w.message}")
    return result, flagged


def _optimizer_converged(results) -> bool:
    retvals = getattr(results, "mle_retvals", None) or {}
    return bool(retvals.get("converged", True))


def _estimated_params(param_names: List[str]) -> int:
    return len([name for name in param_names if name != "sigma2"])


def _burn_in(results, order, seasonal_order) -> int:
    """Leading observations whose one-step predictions are not informative."""
    d, D, m = order[1], seasonal_order[1], seasonal_order[3]
    return max(int(results.loglikelihood_burn), d + D * m)


def _in_sample_series(results, index, burn):
    fitted = pd.Series(np.asarray(results.fittedvalues)[burn:], index=index[burn:], name="fitted")
    resid = pd.Series(np.asarray(results.resid)[burn:], index=index[burn:], name="residuals")
    return fitted, resid


class ManualSarimaModel(BaseModel):
    """Seasonal ARIMA with the exact orders given in a ManualSpec."""

    def __init__(self, spec: ManualSpec, model_id: Optional[str] = None, strict_convergence: bool = False):
        super().__init__(spec, model_id, strict_convergence)

    @property
    def model_type(self) -> str:
        return "sarima_manual"

    @property
    def seasonal_period(self) -> int:
        return self.spec.seasonal_period

    def fit(self, endog: TimeSeries, exog: Optional[pd.DataFrame] = None) -> "ManualSarimaModel":
        """
        Fit SARIMA(p,d,q)(P,D,Q)[m] by maximum likelihood.

        A constant is estimated only when the model has no differencing.
        """
        self._record_training(endog, exog)
        spec = self.spec
        trend = "c" if spec.d + spec.D == 0 else None

        model = SARIMAX(
            endog.values,
            exog=exog,
            order=spec.order,
            seasonal_order=spec.seasonal_order,
            trend=trend,
        )

        start = time.time()
        results, flagged = _fit_capturing_convergence(lambda: model.fit(disp=False))
        self.training_time = time.time() - start

        self.model_object = results
        converged = _optimizer_converged(results) and not flagged
        self._check_convergence(converged, "; ".join(flagged))
        self.is_fitted = True

        logger.info(
            f"Fitted {self.describe()} on {len(endog)} observations "
            f"(AIC={results.aic:.2f}, {self.training_time:.1f}s)"
        )
        return self

    def _predict(self, steps, exog, alpha):
        # positional: the forecast index is built by the base class
        exog_values = None if exog is None else np.asarray(exog, dtype=float)
        forecast = self.model_object.get_forecast(steps=steps, exog=exog_values)
        conf_int = np.asarray(forecast.conf_int(alpha=alpha))
        return np.asarray(forecast.predicted_mean), conf_int[:, 0], conf_int[:, 1]

    def _in_sample(self):
        burn = _burn_in(self.model_object, self.spec.order, self.spec.seasonal_order)
        return _in_sample_series(self.model_object, self._train.index, burn)

    @property
    def n_params(self) -> int:
        return _estimated_params(self.model_object.param_names)

    @property
    def aic(self) -> float:
        self._check_fitted()
        return float(self.model_object.aic)

    def describe(self) -> str:
        return self.spec.describe()


class AutoSarimaModel(BaseModel):
    """Seasonal ARIMA whose orders are picked by ``pmdarima.auto_arima``."""

    def __init__(self, spec: AutoSpec, model_id: Optional[str] = None, strict_convergence: bool = False):
        super().__init__(spec, model_id, strict_convergence)

    @property
    def model_type(self) -> str:
        return "sarima_auto"

    @property
    def seasonal_period(self) -> int:
        return self.spec.seasonal_period

    def fit(self, endog: TimeSeries, exog: Optional[pd.DataFrame] = None) -> "AutoSarimaModel":
        """
        Search ARIMA orders within the spec's bounds and keep the best model
        by the spec's information criterion.
        """
        self._record_training(endog, exog)
        spec = self.spec
        seasonal = spec.seasonal_period > 1

        def search():
            return pm.auto_arima(
                endog.values,
                X=exog,
                d=spec.d,
                D=spec.D if seasonal else 0,
                max_p=spec.max_p,
                max_q=spec.max_q,
                max_d=spec.max_d,
                max_P=spec.max_P,
                max_Q=spec.max_Q,
                max_D=spec.max_D,
                start_p=min(2, spec.max_p),
                start_q=min(2, spec.max_q),
                start_P=min(1, spec.max_P),
                start_Q=min(1, spec.max_Q),
                m=spec.seasonal_period,
                seasonal=seasonal,
                information_criterion=spec.information_criterion,
                stepwise=spec.stepwise,
                suppress_warnings=True,
                error_action="ignore",
                trace=False,
            )

        start = time.time()
        model, flagged = _fit_capturing_convergence(search)
        self.training_time = time.time() - start

        self.model_object = model
        converged = _optimizer_converged(model.arima_res_) and not flagged
        self._check_convergence(converged, "; ".join(flagged))
        self.is_fitted = True

        logger.info(
            f"Selected {self.describe()} on {len(endog)} observations "
            f"({spec.information_criterion}={self.criterion_value:.2f}, {self.training_time:.1f}s)"
        )
        return self

    def _predict(self, steps, exog, alpha):
        mean, conf_int = self.model_object.predict(
            n_periods=steps, X=exog, return_conf_int=True, alpha=alpha
        )
        conf_int = np.asarray(conf_int)
        return np.asarray(mean), conf_int[:, 0], conf_int[:, 1]

    def _in_sample(self):
        results = self.model_object.arima_res_
        burn = _burn_in(results, self.model_object.order, self.model_object.seasonal_order)
        return _in_sample_series(results, self._train.index, burn)

    @property
    def n_params(self) -> int:
        return _estimated_params(self.model_object.arima_res_.param_names)

    @property
    def order(self) -> Tuple[int, int, int]:
        self._check_fitted()
        return tuple(self.model_object.order)

    @property
    def seasonal_order(self) -> Tuple[int, int, int, int]:
        self._check_fitted()
        return tuple(self.model_object.seasonal_order)

    @property
    def criterion_value(self) -> float:
        self._check_fitted()
        return float(getattr(self.model_object, self.spec.information_criterion)())

    def describe(self) -> str:
        if not self.is_fitted:
            return self.spec.describe()
        label = format_arima(self.order, self.seasonal_order)
        if "intercept" in self.model_object.arima_res_.param_names:
            label += " with intercept"
        return label
