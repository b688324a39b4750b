"""Visualization modules for portfolio forecasting."""

from portfolio_forecast.visualization.plots import (
    plot_portfolio_weights,
    plot_weight_comparison,
    plot_return_series,
    plot_correlogram,
    plot_forecast,
)

__all__ = [
    "plot_portfolio_weights",
    "plot_weight_comparison",
    "plot_return_series",
    "plot_correlogram",
    "plot_forecast",
]
