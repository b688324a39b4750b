import numpy as np
import pytest

from portfolio_forecast.core.exceptions import LengthMismatchError
from portfolio_forecast.core.series import ReturnSeries
from portfolio_forecast.timeseries.arma import fit_arma
from portfolio_forecast.timeseries.evaluation import accuracy_table, evaluate, mae, rmse
from portfolio_forecast.timeseries.forecaster import forecast


@pytest.fixture
def zero_forecast():
    model = fit_arma(ReturnSeries('zeros', np.zeros(50)), (0, 0, 0))
    return forecast(model, 4)


def test_rmse_and_mae():
    assert rmse([1.0, 1.0], [4.0, -3.0]) == pytest.approx(np.sqrt(12.5))
    assert mae([1.0, 1.0], [4.0, -3.0]) == pytest.approx(3.5)
    assert rmse([0.5, 0.5], [0.5, 0.5]) == 0.0


def test_alternating_errors(zero_forecast):
    report = evaluate(zero_forecast, [1.0, -1.0, 1.0, -1.0])

    assert report.test_rmse == pytest.approx(1.0)
    assert report.test_mae == pytest.approx(1.0)
    assert report.test_bias == pytest.approx(0.0)
    assert report.train_rmse == 0.0
    assert report.model == "ARIMA(0,0,0)"
    assert report.series_name == 'zeros'


def test_evaluate_accepts_return_series(zero_forecast):
    realized = ReturnSeries('zeros', [0.5, 0.5, 0.5, 0.5])
    report = evaluate(zero_forecast, realized)
    assert report.test_bias == pytest.approx(-0.5)


def test_length_mismatch(zero_forecast):
    with pytest.raises(LengthMismatchError):
        evaluate(zero_forecast, [1.0, -1.0, 1.0])


def test_accuracy_table(zero_forecast):
    reports = [evaluate(zero_forecast, [1.0, -1.0, 1.0, -1.0])]
    table = accuracy_table(reports)

    assert list(table.columns) == ['series', 'model', 'train_rmse', 'train_mae',
                                   'test_rmse', 'test_mae', 'test_bias']
    assert table.loc[0, 'test_rmse'] == pytest.approx(1.0)
    assert accuracy_table([]).empty
