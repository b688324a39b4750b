import numpy as np
import pytest

from portfolio_forecast.core.exceptions import (
    DegenerateNormalizationError,
    PortfolioForecastError,
    SingularMatrixError,
)
from portfolio_forecast.core.optimizer import (
    PortfolioOptimizer,
    equal_weights,
    minimum_variance_weights,
    tangency_weights,
)

ASSETS = ['AAPL', 'JNJ', 'JPM', 'KO', 'XOM']


@pytest.fixture
def covariance():
    """Positive definite 5x5 covariance at monthly return scale"""
    rng = np.random.default_rng(3)
    A = rng.normal(0, 0.03, (5, 5))
    return A @ A.T + np.eye(5) * 0.002


@pytest.fixture
def means():
    return np.array([0.004, 0.006, 0.008, 0.010, 0.012])


def test_equal_weights():
    weights = equal_weights(ASSETS)
    np.testing.assert_allclose(weights.values, 0.2)
    assert weights.asset_names == tuple(ASSETS)


def test_identity_covariance_gives_equal_minimum_variance_weights():
    weights = minimum_variance_weights(np.eye(5), ASSETS)
    np.testing.assert_allclose(weights.values, [0.2] * 5, atol=1e-12)


def test_minimum_variance_matches_closed_form(covariance):
    weights = minimum_variance_weights(covariance, ASSETS)
    inv_ones = np.linalg.solve(covariance, np.ones(5))
    expected = inv_ones / inv_ones.sum()

    np.testing.assert_allclose(weights.values, expected, atol=1e-10)
    assert weights.total == pytest.approx(1.0, abs=1e-10)


def test_minimum_variance_beats_equal_weight(covariance, means):
    optimizer = PortfolioOptimizer(means, covariance, ASSETS)
    mvp = optimizer.minimum_variance_portfolio()
    ew = optimizer.equal_weight_portfolio()
    assert optimizer.portfolio_variance(mvp) <= optimizer.portfolio_variance(ew)


def test_tangency_matches_closed_form(covariance, means):
    weights = tangency_weights(covariance, means, ASSETS)
    raw = np.linalg.solve(covariance, means)

    np.testing.assert_allclose(weights.values, raw / raw.sum(), atol=1e-10)
    assert weights.total == pytest.approx(1.0, abs=1e-10)


def test_tangency_has_highest_sharpe(covariance, means):
    optimizer = PortfolioOptimizer(means, covariance, ASSETS)
    tangent = optimizer.tangent_portfolio()
    for other in (optimizer.equal_weight_portfolio(), optimizer.minimum_variance_portfolio()):
        assert optimizer.portfolio_sharpe(tangent) >= optimizer.portfolio_sharpe(other) - 1e-12


def test_weights_invariant_to_covariance_scale(covariance, means):
    """Population and sample covariance differ only by a constant factor"""
    n_periods = 282
    scaled = covariance * n_periods / (n_periods - 1)

    np.testing.assert_allclose(
        minimum_variance_weights(covariance).values,
        minimum_variance_weights(scaled).values,
        atol=1e-10
    )
    np.testing.assert_allclose(
        tangency_weights(covariance, means).values,
        tangency_weights(scaled, means).values,
        atol=1e-10
    )


def test_singular_covariance_raises():
    """Perfectly collinear assets"""
    cov = np.ones((5, 5)) * 0.004
    with pytest.raises(SingularMatrixError):
        minimum_variance_weights(cov)
    with pytest.raises(SingularMatrixError):
        tangency_weights(cov, np.full(5, 0.01))


def test_singular_error_is_linalg_error():
    with pytest.raises(np.linalg.LinAlgError):
        minimum_variance_weights(np.zeros((5, 5)))


def test_tangency_degenerate_normalization():
    """Sigma^-1 mu sums to zero and cannot be scaled to a fully invested portfolio"""
    mu = np.array([0.01, -0.01, 0.0, 0.0, 0.0])
    with pytest.raises(DegenerateNormalizationError) as excinfo:
        tangency_weights(np.eye(5), mu)
    assert isinstance(excinfo.value, PortfolioForecastError)


def test_asymmetric_covariance_warns_and_symmetrizes():
    cov = np.eye(5)
    cov[0, 1] = 0.1
    with pytest.warns(UserWarning, match="not symmetric"):
        weights = minimum_variance_weights(cov)
    assert weights.total == pytest.approx(1.0)


def test_default_asset_names():
    weights = minimum_variance_weights(np.eye(3))
    assert weights.asset_names == ('Asset_1', 'Asset_2', 'Asset_3')


def test_optimizer_dimension_mismatch():
    with pytest.raises(ValueError):
        PortfolioOptimizer(np.zeros(4), np.eye(5))


def test_summary_report_lists_all_portfolios(covariance, means):
    report = PortfolioOptimizer(means, covariance, ASSETS).summary_report()
    assert "Equal-Weight Portfolio" in report
    assert "Minimum Variance Portfolio (MVP)" in report
    assert "Tangent Portfolio (Maximum Sharpe Ratio)" in report
    for name in ASSETS:
        assert name in report
