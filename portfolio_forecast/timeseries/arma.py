"""
ARMA Fitter
===========

Fits a low-order ARMA(p, q) model with a mean term to one return series by
maximum likelihood:

    x_t = c + sum_i phi_i * x_{t-i} + e_t + sum_j theta_j * e_{t-j}
    e_t ~ N(0, sigma^2)

Orders are chosen by the caller from the stationarity and ACF/PACF evidence
(see stationarity.py); this module never searches over orders.

Estimation:
- ARMA(0, 0) has a closed-form MLE: the sample mean and the population
  variance of the series.
- Anything larger is estimated with statsmodels' state-space ARIMA: the
  exact Gaussian likelihood is evaluated by the Kalman filter and maximized
  with L-BFGS, with stationarity and invertibility enforced.

A Ljung-Box test on the residuals is reported as a quality signal only.

Fitter life cycle:

    UNFIT -> FITTING -> FITTED
                     -> FAILED
"""

import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.arima.model import ARIMA

from portfolio_forecast.core.exceptions import InvalidOrderError, NonConvergenceError

logger = logging.getLogger(__name__)

# Estimation methods understood by the fitter
METHODS = ('ML',)


class FitState(Enum):
    UNFIT = 'unfit'
    FITTING = 'fitting'
    FITTED = 'fitted'
    FAILED = 'failed'


@dataclass(frozen=True)
class ARMASpecification:
    """
    An ARMA order and estimation method.

    Attributes:
        p: Autoregressive order
        d: Differencing order (must be 0; difference the series upstream)
        q: Moving-average order
        method: Estimation method ('ML')
    """
    p: int
    d: int = 0
    q: int = 0
    method: str = 'ML'

    def __post_init__(self):
        for name in ('p', 'd', 'q'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise InvalidOrderError(f"Order {name} must be an integer, got {value!r}")
            if value < 0:
                raise InvalidOrderError(f"Order {name} must be non-negative, got {value}")
        if self.d != 0:
            raise InvalidOrderError(
                f"Only d = 0 is supported, got d = {self.d}; "
                "difference the series before fitting"
            )
        if self.method not in METHODS:
            raise ValueError(f"Unknown estimation method '{self.method}'. Use one of {METHODS}")

    @property
    def order(self) -> Tuple[int, int, int]:
        return (self.p, self.d, self.q)

    @property
    def label(self) -> str:
        return f"ARIMA({self.p},{self.d},{self.q})"

    @classmethod
    def coerce(
        cls,
        order: Union['ARMASpecification', Sequence[int]],
        method: str = 'ML'
    ) -> 'ARMASpecification':
        """Accept a specification or a (p, d, q) / (p, q) tuple."""
        if isinstance(order, cls):
            return order
        order = tuple(order)
        if len(order) == 2:
            return cls(order[0], 0, order[1], method)
        if len(order) == 3:
            return cls(order[0], order[1], order[2], method)
        raise InvalidOrderError(f"Order must be (p, d, q) or (p, q), got {order}")


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Estimated ARMA model and its fit statistics.

    Attributes:
        specification: Order and method that produced the fit
        series_name: Name of the series the model was fit on
        observations: Copy of the fitted sample
        mean: Unconditional mean mu of the process
        intercept: c = mu * (1 - sum(phi))
        ar_params: phi_1..phi_p
        ma_params: theta_1..theta_q
        sigma2: Innovation variance
        residuals: One-step prediction errors over the fitted sample
        log_likelihood: Maximized Gaussian log-likelihood
        aic: Akaike information criterion
        bic: Bayesian information criterion
        ljung_box_stat: Ljung-Box Q statistic of the residuals
        ljung_box_pvalue: p-value of the Ljung-Box test
        residuals_uncorrelated: True if the Ljung-Box null is not rejected
        params: All estimated parameters by name
        converged: Whether the likelihood optimizer reported convergence
    """
    specification: ARMASpecification
    series_name: str
    observations: np.ndarray
    mean: float
    intercept: float
    ar_params: np.ndarray
    ma_params: np.ndarray
    sigma2: float
    residuals: np.ndarray
    log_likelihood: float
    aic: float
    bic: float
    ljung_box_stat: float
    ljung_box_pvalue: float
    residuals_uncorrelated: bool
    params: Dict[str, float] = field(default_factory=dict)
    converged: bool = True

    def __post_init__(self):
        for name in ('observations', 'ar_params', 'ma_params', 'residuals'):
            array = np.array(getattr(self, name), dtype=float).ravel()
            array.setflags(write=False)
            object.__setattr__(self, name, array)

    @property
    def n_obs(self) -> int:
        return self.observations.size

    @property
    def fitted_values(self) -> np.ndarray:
        """One-step-ahead in-sample predictions."""
        return self.observations - self.residuals

    @property
    def label(self) -> str:
        return self.specification.label

    def summary(self) -> str:
        """Short text summary of coefficients and fit statistics."""
        lines = [f"{self.label} fitted to {self.series_name} ({self.n_obs} obs)"]
        for name, value in self.params.items():
            lines.append(f"  {name:<8} {value: .6f}")
        lines.append(f"  log-likelihood = {self.log_likelihood:.4f}")
        lines.append(f"  AIC = {self.aic:.4f}, BIC = {self.bic:.4f}")
        verdict = 'pass' if self.residuals_uncorrelated else 'fail'
        lines.append(f"  Ljung-Box p-value = {self.ljung_box_pvalue:.4f} ({verdict})")
        return "\n".join(lines)


def _ljung_box(
    residuals: np.ndarray,
    lags: int,
    model_df: int
) -> Tuple[float, float]:
    """Ljung-Box Q and p-value, degrees of freedom adjusted for the ARMA terms."""
    if np.var(residuals) == 0:
        return 0.0, 1.0
    lags = min(max(lags, model_df + 1), residuals.size // 2)
    if lags <= model_df:
        return float('nan'), float('nan')
    table = acorr_ljungbox(residuals, lags=[lags], model_df=model_df, return_df=True)
    row = table.iloc[-1]
    return float(row['lb_stat']), float(row['lb_pvalue'])


class ARMAFitter:
    """
    Maximum likelihood ARMA estimation with an explicit fit state.

    Attributes:
        state (FitState): UNFIT, FITTING, FITTED or FAILED
        model (FittedModel): Result of the last successful fit
        error (Exception): Error of the last failed fit

    Example:
        >>> fitter = ARMAFitter()
        >>> model = fitter.fit(portfolio.returns.train, (1, 0, 1))
        >>> fitter.state
        <FitState.FITTED: 'fitted'>
    """

    def __init__(
        self,
        max_iterations: int = 500,
        ljung_box_lags: int = 10,
        significance: float = 0.05
    ):
        """
        Initialize the fitter.

        Args:
            max_iterations: Iteration budget for the likelihood optimizer
            ljung_box_lags: Lags for the residual portmanteau test
            significance: Level at which residual autocorrelation fails
        """
        self.max_iterations = max_iterations
        self.ljung_box_lags = ljung_box_lags
        self.significance = significance
        self.state = FitState.UNFIT
        self.model: Optional[FittedModel] = None
        self.error: Optional[Exception] = None

    def fit(
        self,
        series,
        order: Union[ARMASpecification, Sequence[int]],
        method: str = 'ML'
    ) -> FittedModel:
        """
        Fit an ARMA(p, 0, q) model to a return series.

        Args:
            series: ReturnSeries or array of returns
            order: ARMASpecification or (p, d, q) tuple with d = 0
            method: Estimation method ('ML')

        Returns:
            FittedModel

        Raises:
            InvalidOrderError: If p or q is negative, d != 0, or the series
                is shorter than p + q + 1
            NonConvergenceError: If the optimizer does not converge
        """
        self.state = FitState.FITTING
        self.model = None
        self.error = None

        try:
            spec = ARMASpecification.coerce(order, method)
            values = np.asarray(series, dtype=float).ravel()
            name = str(getattr(series, 'name', None) or 'series')

            if values.size < spec.p + spec.q + 1:
                raise InvalidOrderError(
                    f"{spec.label} needs at least {spec.p + spec.q + 1} observations, "
                    f"got {values.size}"
                )
            if not np.all(np.isfinite(values)):
                raise ValueError(f"Series '{name}' contains NaN or Inf")

            logger.info(f"Fitting {spec.label} to {name} ({values.size} obs)")
            if spec.p == 0 and spec.q == 0:
                fitted = self._fit_mean_only(values, name, spec)
            else:
                fitted = self._fit_state_space(values, name, spec)

        except Exception as e:
            self.state = FitState.FAILED
            self.error = e
            logger.error(f"Fit failed: {e}")
            raise

        self.state = FitState.FITTED
        self.model = fitted
        logger.info(
            f"{spec.label} on {name}: log-likelihood = {fitted.log_likelihood:.4f}, "
            f"AIC = {fitted.aic:.4f}"
        )
        return fitted

    def _fit_mean_only(
        self,
        values: np.ndarray,
        name: str,
        spec: ARMASpecification
    ) -> FittedModel:
        """Closed-form Gaussian MLE of x_t = mu + e_t."""
        n_obs = values.size
        # Exact for constant series, where np.mean can drift by an ulp
        mean = float(values[0]) if np.ptp(values) == 0 else float(np.mean(values))
        residuals = values - mean
        sigma2 = float(np.mean(residuals ** 2))

        if sigma2 == 0:
            logger.warning(f"Series {name} is constant; residual variance is zero")

        with np.errstate(divide='ignore'):
            log_likelihood = float(-0.5 * n_obs * (np.log(2 * np.pi * sigma2) + 1))
        n_params = 2
        aic = 2 * n_params - 2 * log_likelihood
        bic = n_params * np.log(n_obs) - 2 * log_likelihood

        lb_stat, lb_pvalue = _ljung_box(residuals, self.ljung_box_lags, 0)

        return FittedModel(
            specification=spec,
            series_name=name,
            observations=values,
            mean=mean,
            intercept=mean,
            ar_params=np.array([]),
            ma_params=np.array([]),
            sigma2=sigma2,
            residuals=residuals,
            log_likelihood=log_likelihood,
            aic=float(aic),
            bic=float(bic),
            ljung_box_stat=lb_stat,
            ljung_box_pvalue=lb_pvalue,
            residuals_uncorrelated=bool(lb_pvalue >= self.significance),
            params={'const': mean, 'sigma2': sigma2}
        )

    def _fit_state_space(
        self,
        values: np.ndarray,
        name: str,
        spec: ARMASpecification
    ) -> FittedModel:
        """Kalman-filter likelihood maximized by statsmodels."""
        model = ARIMA(values, order=spec.order, trend='c')

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            result = model.fit(
                method='statespace',
                method_kwargs={'maxiter': self.max_iterations}
            )

        converged = bool((getattr(result, 'mle_retvals', None) or {}).get('converged', True))
        for w in caught:
            if issubclass(w.category, ConvergenceWarning):
                converged = False
            logger.debug(f"{spec.label} on {name}: {w.message}")

        if not converged:
            raise NonConvergenceError(
                f"{spec.label} on {name} did not converge within "
                f"{self.max_iterations} iterations"
            )

        params = {k: float(v) for k, v in zip(model.param_names, np.asarray(result.params))}
        ar_params = np.array([params[f'ar.L{i}'] for i in range(1, spec.p + 1)])
        ma_params = np.array([params[f'ma.L{j}'] for j in range(1, spec.q + 1)])

        # With d = 0, 'const' is the process mean (regression with ARMA errors)
        mean = params['const']
        intercept = mean * (1 - ar_params.sum())

        residuals = np.asarray(result.resid, dtype=float)
        lb_stat, lb_pvalue = _ljung_box(residuals, self.ljung_box_lags, spec.p + spec.q)

        return FittedModel(
            specification=spec,
            series_name=name,
            observations=values,
            mean=mean,
            intercept=float(intercept),
            ar_params=ar_params,
            ma_params=ma_params,
            sigma2=params['sigma2'],
            residuals=residuals,
            log_likelihood=float(result.llf),
            aic=float(result.aic),
            bic=float(result.bic),
            ljung_box_stat=lb_stat,
            ljung_box_pvalue=lb_pvalue,
            residuals_uncorrelated=bool(lb_pvalue >= self.significance),
            params=params,
            converged=converged
        )


def fit_arma(
    series,
    order: Union[ARMASpecification, Sequence[int]],
    method: str = 'ML',
    max_iterations: int = 500,
    ljung_box_lags: int = 10,
    significance: float = 0.05
) -> FittedModel:
    """
    Fit one ARMA model with a fresh ARMAFitter.

    See ARMAFitter.fit for arguments and errors.
    """
    fitter = ARMAFitter(max_iterations, ljung_box_lags, significance)
    return fitter.fit(series, order, method)


def compare_models(models: Iterable[FittedModel]) -> pd.DataFrame:
    """
    Side-by-side fit statistics for candidate models.

    Rows keep the caller's order; choosing among them is left to the reader.

    Args:
        models: Fitted models, typically several orders on one series

    Returns:
        DataFrame with one row per model
    """
    rows = []
    for m in models:
        rows.append({
            'series': m.series_name,
            'model': m.label,
            'log_likelihood': m.log_likelihood,
            'aic': m.aic,
            'bic': m.bic,
            'sigma2': m.sigma2,
            'ljung_box_pvalue': m.ljung_box_pvalue,
            'residuals_uncorrelated': m.residuals_uncorrelated,
        })
    return pd.DataFrame(
        rows,
        columns=['series', 'model', 'log_likelihood', 'aic', 'bic', 'sigma2',
                 'ljung_box_pvalue', 'residuals_uncorrelated']
    )
