"""
Sample Statistics and Covariance Matrix Builder
===============================================

Small numeric helpers over return series:
- sample mean, variance, standard deviation and pairwise covariance
- the asset-by-asset covariance matrix and mean-return vector, assembled in
  the fixed asset order used by every weight vector

The covariance matrix is computed the way Excel's matrix approach does it:

    Cov = (1/N) * (R - mean)^T * (R - mean)

which is equivalent to
{=MMULT(TRANSPOSE(B3:F284-B286:F286),B3:F284-B286:F286)/COUNT(B3:B284)}

Pass ddof=1 for the sample (N-1) estimator instead.
"""

from typing import Mapping, Optional, Sequence, Tuple

import numpy as np

from portfolio_forecast.core.exceptions import MisalignedSeriesError


def _as_vector(series) -> np.ndarray:
    values = np.asarray(series, dtype=float).ravel()
    if values.size == 0:
        raise ValueError("Return series is empty")
    return values


def sample_mean(series) -> float:
    """Arithmetic mean of a return series."""
    return float(np.mean(_as_vector(series)))


def sample_variance(series, ddof: int = 0) -> float:
    """
    Variance of a return series.

    Args:
        series: Return values
        ddof: 0 for population (N), 1 for sample (N-1)

    Returns:
        Variance
    """
    values = _as_vector(series)
    if values.size <= ddof:
        raise ValueError(f"Need more than {ddof} observations, got {values.size}")
    return float(np.var(values, ddof=ddof))


def sample_std(series, ddof: int = 0) -> float:
    """Standard deviation of a return series."""
    return float(np.sqrt(sample_variance(series, ddof)))


def sample_covariance(x, y, ddof: int = 0) -> float:
    """
    Covariance between two aligned return series.

    Raises:
        MisalignedSeriesError: If the series lengths differ
    """
    x = _as_vector(x)
    y = _as_vector(y)
    if x.size != y.size:
        raise MisalignedSeriesError(
            f"Cannot take covariance of series with lengths {x.size} and {y.size}"
        )
    if x.size <= ddof:
        raise ValueError(f"Need more than {ddof} observations, got {x.size}")
    return float(np.dot(x - x.mean(), y - y.mean()) / (x.size - ddof))


def stack_returns(
    returns_by_asset: Mapping[str, object],
    asset_names: Optional[Sequence[str]] = None
) -> Tuple[np.ndarray, Tuple[str, ...]]:
    """
    Stack per-asset series into a (periods x assets) matrix.

    Args:
        returns_by_asset: Mapping of asset name -> return series
        asset_names: Column order (default: mapping order)

    Returns:
        Tuple of (returns_matrix, asset_names)

    Raises:
        MisalignedSeriesError: If an asset is missing or lengths differ
    """
    if asset_names is None:
        asset_names = list(returns_by_asset.keys())
    asset_names = tuple(asset_names)

    columns = []
    for name in asset_names:
        if name not in returns_by_asset:
            raise MisalignedSeriesError(f"No return series for asset '{name}'")
        columns.append(_as_vector(returns_by_asset[name]))

    lengths = {len(c) for c in columns}
    if len(lengths) > 1:
        raise MisalignedSeriesError(
            "Return series have different lengths: "
            + ", ".join(f"{n}={len(c)}" for n, c in zip(asset_names, columns))
        )

    return np.column_stack(columns), asset_names


def mean_vector(
    returns_by_asset: Mapping[str, object],
    asset_names: Optional[Sequence[str]] = None
) -> np.ndarray:
    """Vector of per-asset mean returns, in asset order."""
    returns, _ = stack_returns(returns_by_asset, asset_names)
    means = returns.mean(axis=0)
    means.setflags(write=False)
    return means


def covariance_matrix(
    returns_by_asset: Mapping[str, object],
    asset_names: Optional[Sequence[str]] = None,
    ddof: int = 0
) -> np.ndarray:
    """
    Build the asset-by-asset covariance matrix from aligned return series.

    The result is symmetric by construction and read-only; rebuild it
    whenever the underlying training returns change.

    Args:
        returns_by_asset: Mapping of asset name -> return series
        asset_names: Row/column order (default: mapping order)
        ddof: 0 for population (N), 1 for sample (N-1)

    Returns:
        Covariance matrix (n_assets x n_assets)
    """
    returns, _ = stack_returns(returns_by_asset, asset_names)
    n_periods = returns.shape[0]
    if n_periods <= ddof:
        raise ValueError(f"Need more than {ddof} periods, got {n_periods}")

    demeaned = returns - returns.mean(axis=0)
    cov = np.dot(demeaned.T, demeaned) / (n_periods - ddof)

    # Symmetrize away floating-point noise
    cov = (cov + cov.T) / 2
    cov.setflags(write=False)
    return cov
