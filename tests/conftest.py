import os
import sys

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import matplotlib

matplotlib.use('Agg')

import numpy as np
import pytest

from portfolio_forecast.core.loader import DataLoader, generate_sample_data
from portfolio_forecast.core.series import ReturnSeries


def simulate_arma(phi, theta, n_obs, mean=0.0, scale=1.0, seed=0, burn_in=200):
    """Simulate x_t - mean = sum phi_i (x_{t-i} - mean) + e_t + sum theta_j e_{t-j}."""
    rng = np.random.default_rng(seed)
    phi = np.asarray(phi, dtype=float)
    theta = np.asarray(theta, dtype=float)
    total = n_obs + burn_in
    shocks = rng.normal(0.0, scale, total)
    x = np.zeros(total)
    for t in range(total):
        value = shocks[t]
        for i, coef in enumerate(phi, start=1):
            if t - i >= 0:
                value += coef * x[t - i]
        for j, coef in enumerate(theta, start=1):
            if t - j >= 0:
                value += coef * shocks[t - j]
        x[t] = value
    return x[burn_in:] + mean


@pytest.fixture
def sample_frame():
    """Five-asset monthly dataset: 294 return periods plus the initial price row"""
    return generate_sample_data(n_periods=294, seed=42)


@pytest.fixture
def sample_data(sample_frame):
    return DataLoader().from_frame(sample_frame)


@pytest.fixture
def white_noise():
    rng = np.random.default_rng(7)
    return ReturnSeries('noise', rng.normal(0.01, 0.05, 300))
