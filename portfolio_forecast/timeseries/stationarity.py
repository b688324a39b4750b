"""
Stationarity Tester and Correlogram Diagnostics
===============================================

Evidence used to choose ARMA orders by hand:
- Augmented Dickey-Fuller unit-root test (null: the series has a unit root)
- ACF / PACF values with the approximate 95% significance band

Nothing here picks an order automatically. A cut-off in the PACF after lag p
suggests AR(p); a cut-off in the ACF after lag q suggests MA(q); a stationary
ADF result means no differencing (d = 0).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import pandas as pd
from statsmodels.tsa.stattools import acf, adfuller, pacf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationarityResult:
    """Outcome of an Augmented Dickey-Fuller test."""
    series_name: str
    is_stationary: bool
    p_value: float
    test_statistic: float
    significance: float
    used_lag: int
    n_obs: int
    critical_values: Dict[str, float] = field(default_factory=dict)


def _values_and_name(series):
    name = getattr(series, 'name', None) or 'series'
    values = np.asarray(series, dtype=float).ravel()
    return values, str(name)


def test_stationarity(series, significance: float = 0.05) -> StationarityResult:
    """
    Run an Augmented Dickey-Fuller test on a return series.

    The null hypothesis is a unit root (non-stationarity); the series is
    declared stationary when p_value < significance. The lag length is
    chosen by AIC.

    Args:
        series: ReturnSeries or array of returns
        significance: Test level in (0, 1)

    Returns:
        StationarityResult
    """
    if not 0.0 < significance < 1.0:
        raise ValueError(f"Significance must lie in (0, 1), got {significance}")

    values, name = _values_and_name(series)
    statistic, p_value, used_lag, n_obs, critical_values, _ = adfuller(values, autolag='AIC')

    result = StationarityResult(
        series_name=name,
        is_stationary=bool(p_value < significance),
        p_value=float(p_value),
        test_statistic=float(statistic),
        significance=significance,
        used_lag=int(used_lag),
        n_obs=int(n_obs),
        critical_values={k: float(v) for k, v in critical_values.items()}
    )

    logger.info(
        f"ADF test on {name}: statistic = {statistic:.4f}, p-value = {p_value:.6f}, "
        f"Stationary = {result.is_stationary}"
    )
    return result


# Not a pytest test despite the name
test_stationarity.__test__ = False


def correlogram(series, nlags: Optional[int] = None) -> pd.DataFrame:
    """
    Autocorrelation and partial autocorrelation by lag.

    Args:
        series: ReturnSeries or array of returns
        nlags: Number of lags (default: min(20, n // 2 - 1))

    Returns:
        DataFrame indexed by lag (1..nlags) with columns acf, pacf, bound,
        acf_significant and pacf_significant
    """
    values, _ = _values_and_name(series)
    n_obs = values.size
    max_lags = n_obs // 2 - 1
    if max_lags < 1:
        raise ValueError(f"Need at least 4 observations for a correlogram, got {n_obs}")
    if nlags is None:
        nlags = min(20, max_lags)
    if not 1 <= nlags <= max_lags:
        raise ValueError(f"nlags must lie in [1, {max_lags}] for {n_obs} observations")

    acf_values = acf(values, nlags=nlags, fft=True)
    pacf_values = pacf(values, nlags=nlags, method='ywm')
    bound = 1.96 / np.sqrt(n_obs)

    table = pd.DataFrame({
        'acf': acf_values[1:],
        'pacf': pacf_values[1:],
        'bound': bound,
    }, index=pd.RangeIndex(1, nlags + 1, name='lag'))
    table['acf_significant'] = table['acf'].abs() > bound
    table['pacf_significant'] = table['pacf'].abs() > bound
    return table
