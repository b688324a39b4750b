"""
ARMA Forecaster
===============

Multi-step point forecasts and confidence intervals from a FittedModel.

Point forecasts substitute recursively into the fitted equation, written
around the process mean mu:

    x_hat[T+h] - mu = sum_i phi_i * (x[T+h-i] - mu) + sum_j theta_j * e[T+h-j]

where x[T+h-i] is the observation when T+h-i <= T and the forecast
otherwise, and e[T+h-j] is the fitted residual when T+h-j <= T and zero
(its expectation) otherwise.

Forecast error variance uses the MA(infinity) weights psi_k of the model:

    Var(h) = sigma^2 * sum_{k=0}^{h-1} psi_k^2

so intervals never narrow as the horizon grows.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy import stats
from statsmodels.tsa.arima_process import arma2ma

from portfolio_forecast.core.exceptions import InvalidHorizonError
from portfolio_forecast.timeseries.arma import FittedModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Forecast:
    """
    h-step-ahead forecast from one fitted model.

    Attributes:
        model: Model the forecast was produced from
        horizon: Number of steps ahead
        point: Point forecasts, steps 1..horizon
        std_errors: Forecast standard errors
        lower: Lower confidence bounds
        upper: Upper confidence bounds
        confidence_level: Interval coverage (e.g. 0.95)
    """
    model: FittedModel
    horizon: int
    point: np.ndarray
    std_errors: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    confidence_level: float

    def __post_init__(self):
        for name in ('point', 'std_errors', 'lower', 'upper'):
            array = np.array(getattr(self, name), dtype=float).ravel()
            if array.size != self.horizon:
                raise ValueError(f"{name} has {array.size} values for horizon {self.horizon}")
            array.setflags(write=False)
            object.__setattr__(self, name, array)

    def __len__(self) -> int:
        return self.horizon


def _check_horizon(horizon) -> int:
    if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)):
        raise InvalidHorizonError(f"Horizon must be an integer, got {horizon!r}")
    if horizon <= 0:
        raise InvalidHorizonError(f"Horizon must be positive, got {horizon}")
    return int(horizon)


def point_forecast(model: FittedModel, horizon: int) -> np.ndarray:
    """
    Recursive point forecasts for steps 1..horizon.

    Args:
        model: Fitted ARMA model
        horizon: Steps ahead

    Returns:
        Array of point forecasts
    """
    horizon = _check_horizon(horizon)
    phi = model.ar_params
    theta = model.ma_params
    p, q = phi.size, theta.size
    mu = model.mean

    # Demeaned history followed by slots for the forecasts
    history = np.concatenate([model.observations[-p:] - mu if p else [], np.zeros(horizon)])
    shocks = np.concatenate([model.residuals[-q:] if q else [], np.zeros(horizon)])

    for h in range(horizon):
        value = 0.0
        for i in range(1, p + 1):
            value += phi[i - 1] * history[p + h - i]
        for j in range(1, q + 1):
            value += theta[j - 1] * shocks[q + h - j]
        history[p + h] = value

    return history[p:] + mu


def forecast_std_errors(model: FittedModel, horizon: int) -> np.ndarray:
    """
    Standard errors of the 1..horizon step forecasts.

    Args:
        model: Fitted ARMA model
        horizon: Steps ahead

    Returns:
        Array of standard errors (non-decreasing)
    """
    horizon = _check_horizon(horizon)
    ar_poly = np.r_[1.0, -model.ar_params]
    ma_poly = np.r_[1.0, model.ma_params]
    psi = arma2ma(ar_poly, ma_poly, lags=horizon)
    variance = model.sigma2 * np.cumsum(psi ** 2)
    return np.sqrt(np.maximum(variance, 0.0))


def forecast(
    model: FittedModel,
    horizon: int,
    confidence_level: float = 0.95
) -> Forecast:
    """
    Produce an h-step-ahead forecast with confidence bounds.

    Deterministic for a given model and horizon.

    Args:
        model: Fitted ARMA model
        horizon: Steps ahead (positive integer)
        confidence_level: Interval coverage in (0, 1)

    Returns:
        Forecast

    Raises:
        InvalidHorizonError: If horizon <= 0
    """
    horizon = _check_horizon(horizon)
    if not 0.0 < confidence_level < 1.0:
        raise ValueError(f"Confidence level must lie in (0, 1), got {confidence_level}")

    point = point_forecast(model, horizon)
    std_errors = forecast_std_errors(model, horizon)
    z = stats.norm.ppf(0.5 + confidence_level / 2)

    logger.debug(f"{model.label} on {model.series_name}: {horizon}-step forecast")

    return Forecast(
        model=model,
        horizon=horizon,
        point=point,
        std_errors=std_errors,
        lower=point - z * std_errors,
        upper=point + z * std_errors,
        confidence_level=confidence_level
    )
