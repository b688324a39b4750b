"""
Error types raised by the portfolio and time-series computations.

Every error is terminal for the computation that raised it. Callers decide
whether to retry with different inputs or skip; nothing here substitutes
default weights or default model orders.
"""

import numpy as np


class PortfolioForecastError(Exception):
    """Base class for all errors raised by portfolio_forecast."""


class SingularMatrixError(PortfolioForecastError, np.linalg.LinAlgError):
    """Covariance matrix (or the augmented KKT system) cannot be inverted."""


class DegenerateNormalizationError(PortfolioForecastError, ValueError):
    """Raw tangency weights sum to zero, so they cannot be scaled to one."""


class MisalignedSeriesError(PortfolioForecastError, ValueError):
    """Return series differ in length or period labels, or have gaps."""


class InvalidOrderError(PortfolioForecastError, ValueError):
    """ARMA order is negative, differenced, or too large for the sample."""


class NonConvergenceError(PortfolioForecastError, RuntimeError):
    """Likelihood optimizer stopped before converging."""


class InvalidHorizonError(PortfolioForecastError, ValueError):
    """Forecast horizon is not a positive integer."""


class LengthMismatchError(PortfolioForecastError, ValueError):
    """Realized values do not line up with the forecast horizon."""
