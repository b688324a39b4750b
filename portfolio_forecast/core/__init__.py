"""Core computational modules: statistics, weight solvers, series and loading."""

from portfolio_forecast.core.exceptions import (
    PortfolioForecastError,
    SingularMatrixError,
    DegenerateNormalizationError,
    MisalignedSeriesError,
    InvalidOrderError,
    NonConvergenceError,
    InvalidHorizonError,
    LengthMismatchError,
)
from portfolio_forecast.core.optimizer import (
    PortfolioOptimizer,
    equal_weights,
    minimum_variance_weights,
    tangency_weights,
)
from portfolio_forecast.core.series import ReturnSeries, WeightVector, blend
from portfolio_forecast.core.loader import DataLoader, generate_sample_data

__all__ = [
    "PortfolioForecastError",
    "SingularMatrixError",
    "DegenerateNormalizationError",
    "MisalignedSeriesError",
    "InvalidOrderError",
    "NonConvergenceError",
    "InvalidHorizonError",
    "LengthMismatchError",
    "PortfolioOptimizer",
    "equal_weights",
    "minimum_variance_weights",
    "tangency_weights",
    "ReturnSeries",
    "WeightVector",
    "blend",
    "DataLoader",
    "generate_sample_data",
]
