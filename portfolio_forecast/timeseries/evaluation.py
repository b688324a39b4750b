"""
Forecast accuracy: RMSE and MAE over the training fit and the test horizon.

    RMSE = sqrt(mean((forecast - realized)^2))
    MAE  = mean(|forecast - realized|)

Training errors are the fitted model's one-step residuals; test errors
compare the multi-step forecast with the held-out realized returns.
"""

from dataclasses import dataclass
from typing import Iterable

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error

from portfolio_forecast.core.exceptions import LengthMismatchError
from portfolio_forecast.timeseries.forecaster import Forecast


@dataclass(frozen=True)
class AccuracyReport:
    """Error statistics for one model on one series."""
    series_name: str
    model: str
    train_rmse: float
    train_mae: float
    test_rmse: float
    test_mae: float
    test_bias: float

    def as_dict(self):
        return {
            'series': self.series_name,
            'model': self.model,
            'train_rmse': self.train_rmse,
            'train_mae': self.train_mae,
            'test_rmse': self.test_rmse,
            'test_mae': self.test_mae,
            'test_bias': self.test_bias,
        }


def rmse(actual, predicted) -> float:
    """Root mean squared error."""
    return float(np.sqrt(mean_squared_error(actual, predicted)))


def mae(actual, predicted) -> float:
    """Mean absolute error."""
    return float(mean_absolute_error(actual, predicted))


def evaluate(forecast: Forecast, realized) -> AccuracyReport:
    """
    Score a forecast against realized values.

    Args:
        forecast: Forecast to evaluate
        realized: Realized values aligned to the forecast horizon
                  (ReturnSeries or array)

    Returns:
        AccuracyReport

    Raises:
        LengthMismatchError: If len(realized) != forecast.horizon
    """
    actual = np.asarray(realized, dtype=float).ravel()
    if actual.size != forecast.horizon:
        raise LengthMismatchError(
            f"Realized slice has {actual.size} values but the forecast horizon is "
            f"{forecast.horizon}"
        )

    model = forecast.model

    return AccuracyReport(
        series_name=model.series_name,
        model=model.label,
        train_rmse=rmse(model.observations, model.fitted_values),
        train_mae=mae(model.observations, model.fitted_values),
        test_rmse=rmse(actual, forecast.point),
        test_mae=mae(actual, forecast.point),
        test_bias=float(np.mean(forecast.point - actual))
    )


def accuracy_table(reports: Iterable[AccuracyReport]) -> pd.DataFrame:
    """
    Tabulate accuracy reports for rendering.

    Returns:
        DataFrame with one row per (series, model)
    """
    rows = [r.as_dict() for r in reports]
    return pd.DataFrame(
        rows,
        columns=['series', 'model', 'train_rmse', 'train_mae',
                 'test_rmse', 'test_mae', 'test_bias']
    )
