import matplotlib.pyplot as plt
import pytest
from matplotlib.figure import Figure

from portfolio_forecast.pipeline import MIN_VARIANCE, build_portfolios, model_portfolio
from portfolio_forecast.visualization import (
    plot_correlogram,
    plot_forecast,
    plot_portfolio_weights,
    plot_return_series,
    plot_weight_comparison,
)


@pytest.fixture
def portfolios(sample_data):
    portfolios, _, _ = build_portfolios(sample_data)
    yield portfolios
    plt.close('all')


def test_weight_plots(portfolios, tmp_path):
    path = tmp_path / "weights.png"
    fig = plot_portfolio_weights(portfolios[MIN_VARIANCE].weights, save_path=str(path))
    assert isinstance(fig, Figure)
    assert path.exists()

    fig = plot_weight_comparison(portfolios)
    assert len(fig.axes[0].get_legend().get_texts()) == 3


def test_return_series_and_correlogram(portfolios):
    portfolio = portfolios[MIN_VARIANCE]
    assert isinstance(plot_return_series(portfolio), Figure)

    fig = plot_correlogram(portfolio.returns.train, nlags=12)
    assert len(fig.axes) == 2


def test_forecast_plot(portfolios, tmp_path):
    portfolio = portfolios[MIN_VARIANCE]
    outcomes = model_portfolio(portfolio, [(1, 0, 0), (0, 0, 1)])
    forecasts = [o.forecast for o in outcomes]

    path = tmp_path / "forecast.png"
    fig = plot_forecast(portfolio.returns.full, forecasts, history=24, save_path=str(path))
    assert path.exists()
    assert 'Minimum-Variance' in fig.axes[0].get_title()
