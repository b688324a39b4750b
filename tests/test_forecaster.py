import numpy as np
import pytest
from scipy import stats

from conftest import simulate_arma
from portfolio_forecast.core.exceptions import InvalidHorizonError
from portfolio_forecast.core.series import ReturnSeries
from portfolio_forecast.timeseries.arma import fit_arma
from portfolio_forecast.timeseries.forecaster import (
    forecast,
    forecast_std_errors,
    point_forecast,
)


@pytest.fixture(scope='module')
def ar1_model():
    values = simulate_arma([0.5], [], 600, mean=0.01, scale=0.05, seed=21)
    return fit_arma(ReturnSeries('ar1', values), (1, 0, 0))


@pytest.fixture(scope='module')
def ma1_model():
    values = simulate_arma([], [0.4], 600, mean=0.005, scale=0.05, seed=22)
    return fit_arma(ReturnSeries('ma1', values), (0, 0, 1))


def test_constant_series_forecast_is_constant():
    model = fit_arma(ReturnSeries('flat', np.full(300, 0.0075)), (0, 0, 0))
    result = forecast(model, 12)

    assert result.horizon == 12
    np.testing.assert_array_equal(result.point, np.full(12, 0.0075))
    np.testing.assert_array_equal(result.std_errors, np.zeros(12))
    np.testing.assert_array_equal(result.lower, result.upper)


def test_ar1_recursion(ar1_model):
    mu = ar1_model.mean
    phi = ar1_model.ar_params[0]
    last = ar1_model.observations[-1]

    points = point_forecast(ar1_model, 3)
    expected = [mu + phi * (last - mu), mu + phi ** 2 * (last - mu), mu + phi ** 3 * (last - mu)]
    np.testing.assert_allclose(points, expected, rtol=1e-12)


def test_ar1_forecast_reverts_to_mean(ar1_model):
    points = point_forecast(ar1_model, 60)
    assert points[-1] == pytest.approx(ar1_model.mean, abs=1e-12)


def test_ma1_recursion(ma1_model):
    mu = ma1_model.mean
    theta = ma1_model.ma_params[0]

    points = point_forecast(ma1_model, 4)
    assert points[0] == pytest.approx(mu + theta * ma1_model.residuals[-1])
    np.testing.assert_allclose(points[1:], mu)


def test_std_errors_follow_psi_weights(ar1_model):
    phi = ar1_model.ar_params[0]
    sigma2 = ar1_model.sigma2

    std_errors = forecast_std_errors(ar1_model, 3)
    expected = np.sqrt(sigma2 * np.cumsum([1.0, phi ** 2, phi ** 4]))
    np.testing.assert_allclose(std_errors, expected, rtol=1e-10)


def test_intervals_widen_with_horizon(ar1_model, ma1_model):
    for model in (ar1_model, ma1_model):
        result = forecast(model, 12)
        width = result.upper - result.lower
        assert np.all(np.diff(width) >= -1e-15)
        assert np.all(result.lower <= result.point)
        assert np.all(result.point <= result.upper)


def test_interval_uses_normal_quantile(ar1_model):
    result = forecast(ar1_model, 5, confidence_level=0.9)
    z = stats.norm.ppf(0.95)

    np.testing.assert_allclose(result.upper - result.point, z * result.std_errors)
    assert result.std_errors[0] == pytest.approx(np.sqrt(ar1_model.sigma2))


def test_forecast_is_deterministic(ar1_model):
    first = forecast(ar1_model, 12)
    second = forecast(ar1_model, 12)

    np.testing.assert_array_equal(first.point, second.point)
    np.testing.assert_array_equal(first.lower, second.lower)
    np.testing.assert_array_equal(first.upper, second.upper)


@pytest.mark.parametrize("horizon", [0, -3, 1.5, True])
def test_invalid_horizon(ar1_model, horizon):
    with pytest.raises(InvalidHorizonError):
        forecast(ar1_model, horizon)


def test_invalid_confidence_level(ar1_model):
    with pytest.raises(ValueError):
        forecast(ar1_model, 3, confidence_level=1.0)


def test_forecast_arrays_are_read_only(ar1_model):
    result = forecast(ar1_model, 3)
    with pytest.raises(ValueError):
        result.point[0] = 0.0
