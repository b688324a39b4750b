import numpy as np
import pytest

from conftest import simulate_arma
from portfolio_forecast.core.exceptions import InvalidOrderError, NonConvergenceError
from portfolio_forecast.core.series import ReturnSeries
from portfolio_forecast.timeseries.arma import (
    ARMAFitter,
    ARMASpecification,
    FitState,
    compare_models,
    fit_arma,
)


@pytest.fixture
def ar1_series():
    values = simulate_arma([0.5], [], 2000, mean=0.01, scale=0.05, seed=42)
    return ReturnSeries('ar1', values)


@pytest.fixture
def ma1_series():
    values = simulate_arma([], [0.4], 2000, mean=0.0, scale=0.05, seed=43)
    return ReturnSeries('ma1', values)


def test_specification_label_and_coercion():
    spec = ARMASpecification.coerce((1, 0, 2))
    assert spec.order == (1, 0, 2)
    assert spec.label == "ARIMA(1,0,2)"
    assert ARMASpecification.coerce((2, 1)).order == (2, 0, 1)
    assert ARMASpecification.coerce(spec) is spec


@pytest.mark.parametrize("order", [(-1, 0, 0), (0, 0, -2), (1, 1, 0), (1.5, 0, 0), (1, 0, 0, 0)])
def test_invalid_orders(order):
    with pytest.raises(InvalidOrderError):
        ARMASpecification.coerce(order)


def test_unknown_method():
    with pytest.raises(ValueError):
        ARMASpecification(1, 0, 0, method='CSS')


def test_fitter_state_transitions(ar1_series):
    fitter = ARMAFitter()
    assert fitter.state is FitState.UNFIT

    model = fitter.fit(ar1_series, (1, 0, 0))
    assert fitter.state is FitState.FITTED
    assert fitter.model is model
    assert fitter.error is None


def test_short_series_fails_with_invalid_order():
    fitter = ARMAFitter()
    with pytest.raises(InvalidOrderError):
        fitter.fit([0.01, 0.02], (1, 0, 1))
    assert fitter.state is FitState.FAILED
    assert isinstance(fitter.error, InvalidOrderError)
    assert fitter.model is None


def test_invalid_order_marks_fitter_failed(ar1_series):
    fitter = ARMAFitter()
    with pytest.raises(InvalidOrderError):
        fitter.fit(ar1_series, (1, 1, 0))
    assert fitter.state is FitState.FAILED


def test_failed_fitter_can_refit(ar1_series):
    fitter = ARMAFitter()
    with pytest.raises(InvalidOrderError):
        fitter.fit(ar1_series, (-1, 0, 0))
    fitter.fit(ar1_series, (0, 0, 0))
    assert fitter.state is FitState.FITTED


def test_ar1_coefficient_recovery(ar1_series):
    model = fit_arma(ar1_series, (1, 0, 0))

    assert model.ar_params.shape == (1,)
    assert model.ma_params.shape == (0,)
    assert model.ar_params[0] == pytest.approx(0.5, abs=0.06)
    assert model.mean == pytest.approx(0.01, abs=0.01)
    assert model.intercept == pytest.approx(model.mean * (1 - model.ar_params[0]))
    assert model.sigma2 == pytest.approx(0.05 ** 2, rel=0.1)
    assert model.n_obs == 2000


def test_ma1_coefficient_recovery(ma1_series):
    model = fit_arma(ma1_series, (0, 0, 1))
    assert model.ma_params[0] == pytest.approx(0.4, abs=0.06)
    assert model.params['ma.L1'] == model.ma_params[0]


def test_arma11_fit_statistics(ar1_series):
    model = fit_arma(ar1_series, (1, 0, 1))

    assert set(model.params) == {'const', 'ar.L1', 'ma.L1', 'sigma2'}
    assert model.converged
    assert np.isfinite(model.log_likelihood)
    assert model.aic == pytest.approx(2 * 4 - 2 * model.log_likelihood, rel=1e-6)
    assert model.residuals.shape == (2000,)
    np.testing.assert_allclose(model.fitted_values + model.residuals, ar1_series.values)


def test_mean_only_model_is_closed_form(ar1_series):
    model = fit_arma(ar1_series, (0, 0, 0))
    values = ar1_series.values

    assert model.mean == pytest.approx(values.mean())
    assert model.sigma2 == pytest.approx(values.var())
    expected_llf = -0.5 * values.size * (np.log(2 * np.pi * values.var()) + 1)
    assert model.log_likelihood == pytest.approx(expected_llf)
    # The AR(1) structure is left in the residuals
    assert not model.residuals_uncorrelated


def test_constant_series_recovers_constant():
    series = ReturnSeries('flat', np.full(300, 0.0075))
    model = fit_arma(series, (0, 0, 0))

    assert model.mean == pytest.approx(0.0075)
    assert model.sigma2 == 0.0
    np.testing.assert_allclose(model.residuals, 0.0, atol=1e-15)
    assert model.residuals_uncorrelated


def test_iteration_limit_exhausted(ar1_series):
    fitter = ARMAFitter(max_iterations=1)
    with pytest.raises(NonConvergenceError):
        fitter.fit(ar1_series, (1, 0, 1))
    assert fitter.state is FitState.FAILED


def test_model_arrays_are_read_only(ar1_series):
    model = fit_arma(ar1_series, (1, 0, 0))
    with pytest.raises(ValueError):
        model.residuals[0] = 0.0


def test_compare_models(ar1_series):
    models = [fit_arma(ar1_series, order) for order in [(0, 0, 0), (1, 0, 0)]]
    table = compare_models(models)

    assert list(table['model']) == ["ARIMA(0,0,0)", "ARIMA(1,0,0)"]
    # The true order fits better
    assert table['aic'].iloc[1] < table['aic'].iloc[0]


def test_summary_mentions_parameters(ar1_series):
    text = fit_arma(ar1_series, (1, 0, 0)).summary()
    assert "ARIMA(1,0,0)" in text
    assert "ar.L1" in text
    assert "Ljung-Box" in text
