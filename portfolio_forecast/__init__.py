"""
Portfolio Forecast - Portfolio Weights and ARMA Forecast Evaluation
===================================================================

Compares three allocation schemes on a fixed five-asset universe and
forecasts each portfolio's returns with low-order ARMA models.

Usage:
    from portfolio_forecast import DataLoader, run_analysis
    from portfolio_forecast.visualization import plot_forecast

Classes:
    DataLoader - Load the five-asset dataset from Excel/CSV
    PortfolioOptimizer - Portfolio statistics and weight schemes
    ARMAFitter - Maximum likelihood ARMA estimation
    AnalysisConfig - User-configurable assumptions

Functions:
    minimum_variance_weights - Closed-form MVP weights
    tangency_weights - Closed-form maximum Sharpe weights
    blend - Apply frozen weights to per-asset returns
    test_stationarity - Augmented Dickey-Fuller test
    fit_arma / forecast / evaluate - Model, forecast and score one series
    run_analysis - Run the whole study
"""

from portfolio_forecast.config import AnalysisConfig
from portfolio_forecast.core.loader import AssetData, DataLoader, generate_sample_data
from portfolio_forecast.core.optimizer import (
    PortfolioOptimizer,
    equal_weights,
    minimum_variance_weights,
    tangency_weights,
)
from portfolio_forecast.core.series import (
    Portfolio,
    ReturnSeries,
    SeriesSplit,
    WeightVector,
    blend,
    synthesize_portfolio,
)
from portfolio_forecast.timeseries import (
    ARMAFitter,
    ARMASpecification,
    FittedModel,
    Forecast,
    AccuracyReport,
    fit_arma,
    forecast,
    evaluate,
    test_stationarity,
)
from portfolio_forecast.pipeline import AnalysisResults, run_analysis

__version__ = "1.0.0"

__all__ = [
    "AnalysisConfig",
    "AssetData",
    "DataLoader",
    "generate_sample_data",
    "PortfolioOptimizer",
    "equal_weights",
    "minimum_variance_weights",
    "tangency_weights",
    "Portfolio",
    "ReturnSeries",
    "SeriesSplit",
    "WeightVector",
    "blend",
    "synthesize_portfolio",
    "ARMAFitter",
    "ARMASpecification",
    "FittedModel",
    "Forecast",
    "AccuracyReport",
    "fit_arma",
    "forecast",
    "evaluate",
    "test_stationarity",
    "AnalysisResults",
    "run_analysis",
]
