"""
Portfolio Weight Solver
=======================

Closed-form solvers for the three allocation schemes compared in the study:
- Equal-Weight Portfolio (1/n in every asset)
- Minimum Variance Portfolio (MVP)
- Tangent Portfolio (Maximum Sharpe Ratio, implicit zero risk-free rate)

Short positions are permitted, so both optimal portfolios have exact
solutions and no iterative optimizer is involved.

Theory Background:
------------------
Minimum variance:

    minimize   w^T * Sigma * w
    subject to 1^T * w = 1

The Lagrangian first-order conditions form one linear system:

    [ 2*Sigma  1 ] [ w      ]   [ 0 ]
    [ 1^T      0 ] [ lambda ] = [ 1 ]

Tangency (maximum Sharpe with rf = 0):

    w_raw = Sigma^-1 * mu
    w     = w_raw / (1^T * w_raw)

Both solutions are invariant to scaling Sigma, so population and sample
covariance give identical weights.
"""

import warnings
from typing import Dict, List, Optional, Sequence

import numpy as np

from portfolio_forecast.core.exceptions import (
    DegenerateNormalizationError,
    SingularMatrixError,
)
from portfolio_forecast.core.series import WeightVector

# Covariance matrices worse conditioned than this are treated as singular
# (perfectly collinear assets never give an exactly singular sample matrix).
MAX_CONDITION_NUMBER = 1e12

# |1^T w_raw| below this fraction of ||w_raw||_1 cannot be normalized.
NORMALIZATION_TOLERANCE = 1e-12


def _default_names(n_assets: int) -> List[str]:
    return [f"Asset_{i+1}" for i in range(n_assets)]


def _validate_covariance(cov) -> np.ndarray:
    """Check shape and finiteness, symmetrize, and reject singular matrices."""
    cov = np.array(cov, dtype=float)
    if cov.ndim != 2 or cov.shape[0] != cov.shape[1] or cov.shape[0] == 0:
        raise ValueError(f"Covariance matrix must be square, got shape {cov.shape}")
    if not np.all(np.isfinite(cov)):
        raise ValueError("Covariance matrix contains NaN or Inf")

    if not np.allclose(cov, cov.T):
        warnings.warn("Covariance matrix is not symmetric. Symmetrizing...")
    cov = (cov + cov.T) / 2

    with np.errstate(divide='ignore', invalid='ignore'):
        condition = np.linalg.cond(cov)
    if not np.isfinite(condition) or condition > MAX_CONDITION_NUMBER:
        raise SingularMatrixError(
            "Covariance matrix is singular (collinear assets); "
            f"condition number exceeds {MAX_CONDITION_NUMBER:.0e}"
        )
    return cov


def _resolve_names(asset_names: Optional[Sequence[str]], n_assets: int) -> List[str]:
    if asset_names is None:
        return _default_names(n_assets)
    asset_names = list(asset_names)
    if len(asset_names) != n_assets:
        raise ValueError(
            f"{len(asset_names)} asset names given for {n_assets} assets"
        )
    return asset_names


def equal_weights(asset_names: Sequence[str]) -> WeightVector:
    """
    Equal-weight portfolio: 1/n in every asset.

    Args:
        asset_names: Ordered asset universe

    Returns:
        WeightVector
    """
    asset_names = list(asset_names)
    if not asset_names:
        raise ValueError("Asset universe is empty")
    n_assets = len(asset_names)
    return WeightVector(asset_names, np.full(n_assets, 1.0 / n_assets))


def minimum_variance_weights(
    cov,
    asset_names: Optional[Sequence[str]] = None
) -> WeightVector:
    """
    Find the Minimum Variance Portfolio (MVP).

    The MVP has the lowest possible risk among all fully invested
    portfolios. It is the leftmost point on the efficient frontier.

    Solves the augmented (n+1)x(n+1) KKT system exactly:

        [ 2*Sigma  1 ] [ w      ]   [ 0 ]
        [ 1^T      0 ] [ lambda ] = [ 1 ]

    Args:
        cov: Covariance matrix (n x n)
        asset_names: Optional asset names (default: Asset_1, Asset_2, ...)

    Returns:
        WeightVector summing to one (entries may be negative)

    Raises:
        SingularMatrixError: If Sigma or the augmented system is singular
    """
    cov = _validate_covariance(cov)
    n_assets = cov.shape[0]
    asset_names = _resolve_names(asset_names, n_assets)

    kkt = np.zeros((n_assets + 1, n_assets + 1))
    kkt[:n_assets, :n_assets] = 2 * cov
    kkt[:n_assets, n_assets] = 1.0
    kkt[n_assets, :n_assets] = 1.0

    rhs = np.zeros(n_assets + 1)
    rhs[n_assets] = 1.0

    try:
        solution = np.linalg.solve(kkt, rhs)
    except np.linalg.LinAlgError as e:
        raise SingularMatrixError(f"Minimum variance system is singular: {e}") from e

    return WeightVector(asset_names, solution[:n_assets])


def tangency_weights(
    cov,
    mean_returns,
    asset_names: Optional[Sequence[str]] = None
) -> WeightVector:
    """
    Find the Tangent Portfolio (Maximum Sharpe Ratio Portfolio).

    Closed form under an implicit zero risk-free rate:

        w_raw = Sigma^-1 * mu
        w     = w_raw / sum(w_raw)

    Args:
        cov: Covariance matrix (n x n)
        mean_returns: Vector of mean returns (n)
        asset_names: Optional asset names

    Returns:
        WeightVector summing to one

    Raises:
        SingularMatrixError: If Sigma is singular
        DegenerateNormalizationError: If sum(w_raw) is zero
    """
    cov = _validate_covariance(cov)
    n_assets = cov.shape[0]
    mu = np.asarray(mean_returns, dtype=float).ravel()
    if mu.size != n_assets:
        raise ValueError(
            f"Mean return vector length {mu.size} doesn't match "
            f"covariance matrix shape {cov.shape}"
        )
    if not np.all(np.isfinite(mu)):
        raise ValueError("Mean returns contain NaN or Inf")
    asset_names = _resolve_names(asset_names, n_assets)

    try:
        w_raw = np.linalg.solve(cov, mu)
    except np.linalg.LinAlgError as e:
        raise SingularMatrixError(f"Covariance matrix is singular: {e}") from e

    scale = np.sum(w_raw)
    if abs(scale) <= NORMALIZATION_TOLERANCE * max(np.sum(np.abs(w_raw)), np.finfo(float).tiny):
        raise DegenerateNormalizationError(
            f"Tangency weights sum to {scale:.3e}; cannot normalize to one"
        )

    return WeightVector(asset_names, w_raw / scale)


class PortfolioOptimizer:
    """
    Portfolio statistics and the three weight schemes for one asset universe.

    Attributes:
        expected_returns (np.ndarray): Vector of mean returns for each asset
        cov_matrix (np.ndarray): Covariance matrix of asset returns
        asset_names (List[str]): Names of the assets
        n_assets (int): Number of assets in the portfolio
        rf_rate (float): Risk-free rate used for Sharpe statistics (default 0)

    Example:
        >>> means = np.array([0.01, 0.015, 0.02, 0.025, 0.012])
        >>> cov = np.diag([0.04, 0.05, 0.06, 0.05, 0.03])
        >>> optimizer = PortfolioOptimizer(means, cov)
        >>> mvp = optimizer.minimum_variance_portfolio()
    """

    def __init__(
        self,
        expected_returns,
        cov_matrix,
        asset_names: Optional[List[str]] = None,
        rf_rate: float = 0.0
    ):
        """
        Initialize the Portfolio Optimizer.

        Args:
            expected_returns: Vector of mean returns for each asset
            cov_matrix: Covariance matrix of asset returns (n x n)
            asset_names: Optional list of asset names (default: Asset_1, Asset_2, ...)
            rf_rate: Risk-free rate for Sharpe statistics

        Raises:
            ValueError: If dimensions don't match
        """
        self.expected_returns = np.array(expected_returns, dtype=float).flatten()
        self.cov_matrix = np.array(cov_matrix, dtype=float)
        self.n_assets = len(self.expected_returns)
        self.rf_rate = rf_rate

        if self.cov_matrix.shape != (self.n_assets, self.n_assets):
            raise ValueError(
                f"Covariance matrix shape {self.cov_matrix.shape} doesn't match "
                f"number of assets {self.n_assets}"
            )

        self.asset_names = _resolve_names(asset_names, self.n_assets)

    def portfolio_return(self, weights) -> float:
        """
        Calculate expected portfolio return.

        Formula: mu_p = w^T * mu = sum(w_i * mu_i)
        """
        return float(np.dot(np.asarray(weights, dtype=float), self.expected_returns))

    def portfolio_variance(self, weights) -> float:
        """
        Calculate portfolio variance using the quadratic form.

        Formula: sigma_p^2 = w^T * Sigma * w
        """
        w = np.asarray(weights, dtype=float)
        return float(np.dot(w, np.dot(self.cov_matrix, w)))

    def portfolio_std(self, weights) -> float:
        """Calculate portfolio standard deviation (volatility)."""
        return float(np.sqrt(max(self.portfolio_variance(weights), 0.0)))

    def portfolio_sharpe(self, weights) -> float:
        """
        Calculate portfolio Sharpe ratio.

        Formula: Sharpe = (mu_p - rf) / sigma_p
        """
        std = self.portfolio_std(weights)
        if std < 1e-10:
            return 0.0
        return (self.portfolio_return(weights) - self.rf_rate) / std

    def portfolio_stats(self, weights) -> Dict[str, float]:
        """
        Calculate all portfolio statistics.

        Returns:
            Dictionary containing mean, std, variance, and Sharpe ratio
        """
        ret = self.portfolio_return(weights)
        var = self.portfolio_variance(weights)
        std = float(np.sqrt(max(var, 0.0)))
        sharpe = (ret - self.rf_rate) / std if std > 1e-10 else 0.0

        return {
            'mean': ret,
            'std': std,
            'variance': var,
            'sharpe': sharpe
        }

    def equal_weight_portfolio(self) -> WeightVector:
        """Equal-weight portfolio over this universe."""
        return equal_weights(self.asset_names)

    def minimum_variance_portfolio(self) -> WeightVector:
        """Minimum variance portfolio over this universe."""
        return minimum_variance_weights(self.cov_matrix, self.asset_names)

    def tangent_portfolio(self) -> WeightVector:
        """Maximum Sharpe (tangency) portfolio over this universe."""
        return tangency_weights(self.cov_matrix, self.expected_returns, self.asset_names)

    def summary_report(self) -> str:
        """
        Generate a summary of asset statistics and the three portfolios.

        Returns:
            Formatted string report
        """
        lines = []
        lines.append("=" * 70)
        lines.append("PORTFOLIO WEIGHT SUMMARY REPORT")
        lines.append("=" * 70)

        lines.append("\n--- Individual Asset Statistics ---")
        lines.append(f"{'Asset':<12} {'Mean':>12} {'Std Dev':>12} {'Variance':>12}")
        lines.append("-" * 50)
        for i, name in enumerate(self.asset_names):
            mean = self.expected_returns[i]
            var = self.cov_matrix[i, i]
            lines.append(f"{name:<12} {mean:>12.6f} {np.sqrt(var):>12.6f} {var:>12.6f}")

        portfolios = [
            ("Equal-Weight Portfolio", self.equal_weight_portfolio),
            ("Minimum Variance Portfolio (MVP)", self.minimum_variance_portfolio),
            ("Tangent Portfolio (Maximum Sharpe Ratio)", self.tangent_portfolio),
        ]
        for title, solver in portfolios:
            lines.append(f"\n--- {title} ---")
            weights = solver()
            stats = self.portfolio_stats(weights)
            lines.append("Weights:")
            for name, w in weights.as_dict().items():
                lines.append(f"  {name}: {w:.6f} ({w*100:.2f}%)")
            lines.append(f"Expected Return: {stats['mean']:.6f} ({stats['mean']*100:.2f}%)")
            lines.append(f"Standard Deviation: {stats['std']:.6f} ({stats['std']*100:.2f}%)")
            lines.append(f"Sharpe Ratio: {stats['sharpe']:.6f}")

        lines.append("\n" + "=" * 70)

        return "\n".join(lines)
