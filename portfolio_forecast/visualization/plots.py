"""
Plotting Module for Portfolio Forecasting
=========================================

This module provides the figures that accompany the analysis:
- Portfolio weights (one portfolio, or all three side by side)
- Portfolio return series with the train/test boundary marked
- ACF/PACF correlograms used to choose ARMA orders
- Forecasts against realized returns with confidence bands

Every function returns the matplotlib Figure and optionally saves it.
"""

from typing import Dict, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure
from statsmodels.graphics.tsaplots import plot_acf, plot_pacf

from portfolio_forecast.core.series import Portfolio, ReturnSeries, WeightVector
from portfolio_forecast.timeseries.forecaster import Forecast


def _finish(fig: Figure, save_path: Optional[str]) -> Figure:
    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
    return fig


def _x_axis(series: ReturnSeries):
    if series.periods is not None:
        return series.periods
    return np.arange(len(series))


def plot_portfolio_weights(
    weights: WeightVector,
    title: str = "Portfolio Weights",
    figsize: Tuple[int, int] = (10, 6),
    save_path: Optional[str] = None
) -> Figure:
    """
    Create a bar chart of portfolio weights.

    Args:
        weights: Weight vector
        title: Plot title
        figsize: Figure size
        save_path: Optional path to save figure

    Returns:
        matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    values = weights.values
    colors = ['green' if w >= 0 else 'red' for w in values]
    bars = ax.bar(weights.asset_names, values * 100, color=colors, edgecolor='black')

    # Add value labels on bars
    for bar, w in zip(bars, values):
        height = bar.get_height()
        ax.annotate(f'{w*100:.1f}%',
                    xy=(bar.get_x() + bar.get_width() / 2, height),
                    xytext=(0, 3 if height >= 0 else -15),
                    textcoords='offset points',
                    ha='center', va='bottom' if height >= 0 else 'top',
                    fontsize=10, fontweight='bold')

    ax.axhline(y=0, color='black', linestyle='-', linewidth=0.5)
    ax.set_xlabel('Assets', fontsize=12)
    ax.set_ylabel('Weight %', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, axis='y', alpha=0.3)

    return _finish(fig, save_path)


def plot_weight_comparison(
    portfolios: Dict[str, Portfolio],
    figsize: Tuple[int, int] = (12, 6),
    save_path: Optional[str] = None
) -> Figure:
    """
    Grouped bar chart comparing the weights of several portfolios.

    Args:
        portfolios: Dictionary of portfolio name -> Portfolio
        figsize: Figure size
        save_path: Optional save path

    Returns:
        matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    first = next(iter(portfolios.values()))
    asset_names = first.weights.asset_names
    x = np.arange(len(asset_names))
    width = 0.8 / len(portfolios)

    for i, (name, portfolio) in enumerate(portfolios.items()):
        ax.bar(x + i * width - 0.4 + width / 2, portfolio.weights.values * 100,
               width, label=name, alpha=0.8, edgecolor='black')

    ax.set_xlabel('Assets', fontsize=11)
    ax.set_ylabel('Weight %', fontsize=11)
    ax.set_title('Portfolio Weight Comparison', fontsize=13, fontweight='bold')
    ax.set_xticks(x)
    ax.set_xticklabels(asset_names, rotation=45)
    ax.legend(fontsize=9)
    ax.axhline(y=0, color='black', linestyle='-', linewidth=0.5)
    ax.grid(True, axis='y', alpha=0.3)

    return _finish(fig, save_path)


def plot_return_series(
    portfolio: Portfolio,
    figsize: Tuple[int, int] = (12, 5),
    save_path: Optional[str] = None
) -> Figure:
    """
    Plot a portfolio's returns, shading the held-out test window.

    Args:
        portfolio: Portfolio with synthesized returns
        figsize: Figure size
        save_path: Optional save path

    Returns:
        matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    full = portfolio.returns.full
    x = _x_axis(full)
    n_train = len(portfolio.returns.train)

    ax.plot(x[:n_train], full.values[:n_train] * 100, 'b-', linewidth=1, label='Training')
    ax.plot(x[n_train - 1:], full.values[n_train - 1:] * 100, 'r-', linewidth=1.5, label='Test')
    ax.axvspan(x[n_train], x[-1], color='grey', alpha=0.15)
    ax.axhline(y=0, color='black', linestyle='-', linewidth=0.5)

    ax.set_xlabel('Period', fontsize=11)
    ax.set_ylabel('Log Return %', fontsize=11)
    ax.set_title(f'{portfolio.name} Portfolio Returns', fontsize=13, fontweight='bold')
    ax.legend(loc='upper left', fontsize=9)
    ax.grid(True, alpha=0.3)

    return _finish(fig, save_path)


def plot_correlogram(
    series: ReturnSeries,
    nlags: int = 20,
    figsize: Tuple[int, int] = (12, 4),
    save_path: Optional[str] = None
) -> Figure:
    """
    ACF and PACF side by side, the evidence for choosing (p, q).

    Args:
        series: Return series (usually a portfolio's training window)
        nlags: Number of lags
        figsize: Figure size
        save_path: Optional save path

    Returns:
        matplotlib Figure object
    """
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=figsize)

    nlags = min(nlags, len(series) // 2 - 1)
    plot_acf(series.values, lags=nlags, ax=ax1, zero=False)
    plot_pacf(series.values, lags=nlags, ax=ax2, zero=False, method='ywm')

    ax1.set_title(f'{series.name}: ACF', fontsize=12, fontweight='bold')
    ax2.set_title(f'{series.name}: PACF', fontsize=12, fontweight='bold')
    for ax in (ax1, ax2):
        ax.set_xlabel('Lag', fontsize=11)
        ax.grid(True, alpha=0.3)

    return _finish(fig, save_path)


def plot_forecast(
    full: ReturnSeries,
    forecasts: Sequence[Forecast],
    history: int = 48,
    figsize: Tuple[int, int] = (12, 6),
    save_path: Optional[str] = None,
    title: Optional[str] = None
) -> Figure:
    """
    Plot realized returns with one or more forecasts over the test window.

    Args:
        full: Full realized return series (train + test)
        forecasts: Forecasts starting right after the training window
        history: Number of training periods to show before the forecasts
        figsize: Figure size
        save_path: Optional save path
        title: Plot title (default: '<series> Forecasts')

    Returns:
        matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    x = _x_axis(full)
    horizon = max(f.horizon for f in forecasts)
    n_train = len(full) - horizon
    start = max(n_train - history, 0)

    ax.plot(x[start:], full.values[start:] * 100, 'k-', linewidth=1.5, label='Realized')
    ax.axvline(x[n_train - 1], color='grey', linestyle=':', linewidth=1)

    colors = plt.cm.tab10(np.linspace(0, 1, max(len(forecasts), 2)))
    for i, fc in enumerate(forecasts):
        fx = x[n_train:n_train + fc.horizon]
        ax.plot(fx, fc.point * 100, '--', color=colors[i], linewidth=2,
                label=f'{fc.model.label} forecast')
        ax.fill_between(fx, fc.lower * 100, fc.upper * 100, color=colors[i], alpha=0.15,
                        label=f'{fc.confidence_level*100:.0f}% interval')

    ax.set_xlabel('Period', fontsize=11)
    ax.set_ylabel('Log Return %', fontsize=11)
    ax.set_title(title or f'{full.name} Forecasts', fontsize=13, fontweight='bold')
    ax.legend(loc='upper left', fontsize=9)
    ax.grid(True, alpha=0.3)

    return _finish(fig, save_path)
