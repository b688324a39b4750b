"""Stationarity testing, ARMA fitting, forecasting and accuracy evaluation."""

from portfolio_forecast.timeseries.stationarity import (
    StationarityResult,
    correlogram,
    test_stationarity,
)
from portfolio_forecast.timeseries.arma import (
    ARMAFitter,
    ARMASpecification,
    FitState,
    FittedModel,
    compare_models,
    fit_arma,
)
from portfolio_forecast.timeseries.forecaster import Forecast, forecast
from portfolio_forecast.timeseries.evaluation import (
    AccuracyReport,
    accuracy_table,
    evaluate,
    mae,
    rmse,
)

__all__ = [
    "StationarityResult",
    "correlogram",
    "test_stationarity",
    "ARMAFitter",
    "ARMASpecification",
    "FitState",
    "FittedModel",
    "compare_models",
    "fit_arma",
    "Forecast",
    "forecast",
    "AccuracyReport",
    "accuracy_table",
    "evaluate",
    "mae",
    "rmse",
]
