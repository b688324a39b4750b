import numpy as np
import pandas as pd
import pytest

from portfolio_forecast.core.exceptions import MisalignedSeriesError
from portfolio_forecast.core.series import (
    ReturnSeries,
    WeightVector,
    blend,
    synthesize_portfolio,
)


@pytest.fixture
def periods():
    return pd.date_range('2020-01-31', periods=6, freq='ME')


@pytest.fixture
def returns(periods):
    return {
        'A': ReturnSeries('A', [0.01, 0.02, -0.01, 0.03, 0.00, 0.02], periods),
        'B': ReturnSeries('B', [0.02, -0.01, 0.01, 0.00, 0.01, -0.02], periods),
        'C': ReturnSeries('C', [-0.01, 0.00, 0.02, 0.01, 0.03, 0.01], periods),
    }


def test_blend_is_weighted_sum(returns):
    weights = WeightVector(('A', 'B', 'C'), [0.5, 0.3, 0.2])
    blended = blend(returns, weights, name='P')

    expected = (0.5 * returns['A'].values + 0.3 * returns['B'].values
                + 0.2 * returns['C'].values)
    np.testing.assert_allclose(blended.values, expected)
    assert blended.name == 'P'
    assert blended.periods.equals(returns['A'].periods)


def test_blend_is_linear_in_weights(returns):
    w1 = np.array([0.6, 0.1, 0.3])
    w2 = np.array([-0.2, 0.9, 0.3])
    a, b = 0.7, 0.3

    combined = blend(returns, a * w1 + b * w2).values
    separate = a * blend(returns, w1).values + b * blend(returns, w2).values
    np.testing.assert_allclose(combined, separate, atol=1e-15)


def test_blend_with_unit_weight_returns_asset(returns):
    blended = blend(returns, [0.0, 1.0, 0.0])
    np.testing.assert_allclose(blended.values, returns['B'].values)


def test_blend_rejects_different_lengths(returns):
    returns['C'] = ReturnSeries('C', [0.01, 0.02, 0.03])
    with pytest.raises(MisalignedSeriesError):
        blend(returns, [1 / 3] * 3)


def test_blend_rejects_mismatched_periods(returns):
    shifted = pd.date_range('2021-01-31', periods=6, freq='ME')
    returns['C'] = ReturnSeries('C', returns['C'].values, shifted)
    with pytest.raises(MisalignedSeriesError):
        blend(returns, [1 / 3] * 3)


def test_blend_rejects_wrong_weight_count(returns):
    with pytest.raises(MisalignedSeriesError):
        blend(returns, [0.5, 0.5])


def test_blend_missing_asset(returns):
    weights = WeightVector(('A', 'B', 'D'), [0.4, 0.3, 0.3])
    with pytest.raises(MisalignedSeriesError):
        blend(returns, weights)


def test_series_rejects_missing_values():
    with pytest.raises(MisalignedSeriesError):
        ReturnSeries('A', [0.01, np.nan, 0.02])


def test_series_is_read_only():
    series = ReturnSeries('A', [0.01, 0.02])
    with pytest.raises(ValueError):
        series.values[0] = 1.0


def test_split_holds_out_trailing_periods(returns):
    split = returns['A'].split(2)
    assert len(split.train) == 4
    assert len(split.test) == 2
    assert split.full is returns['A']
    np.testing.assert_allclose(split['test'].values, [0.00, 0.02])
    assert split.test.periods[0] == returns['A'].periods[4]


def test_split_rejects_invalid_test_size(returns):
    with pytest.raises(ValueError):
        returns['A'].split(6)
    with pytest.raises(KeyError):
        returns['A'].split(2)['validation']


def test_synthesize_portfolio_uses_same_weights_for_every_window(returns):
    weights = WeightVector(('A', 'B', 'C'), [0.2, 0.5, 0.3])
    splits = {name: series.split(2) for name, series in returns.items()}
    portfolio = synthesize_portfolio('Test', weights, splits)

    full = portfolio.returns.full.values
    np.testing.assert_allclose(
        np.concatenate([portfolio.returns.train.values, portfolio.returns.test.values]),
        full
    )
    np.testing.assert_allclose(full, blend(returns, weights).values)
    assert portfolio.prices is None


def test_weight_vector_validation():
    with pytest.raises(MisalignedSeriesError):
        WeightVector(('A', 'B'), [1.0])
    with pytest.raises(ValueError):
        WeightVector(('A', 'A'), [0.5, 0.5])

    weights = WeightVector(['A', 'B'], [1.5, -0.5])
    assert weights.total == pytest.approx(1.0)
    assert weights.as_dict() == {'A': 1.5, 'B': -0.5}
