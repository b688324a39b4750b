"""
Return Series, Weight Vectors and the Portfolio Return Synthesizer
==================================================================

Immutable value objects passed between the pipeline stages:

- ReturnSeries: one asset's (or one portfolio's) per-period returns
- SeriesSplit: the training / test / full views of a ReturnSeries
- WeightVector: portfolio weights, positionally aligned to the asset universe
- Portfolio: a named weight vector with its synthesized return series

Portfolio returns are synthesized with blend():

    r_p[t] = sum_i w_i * r_i[t]

This is equivalent to Excel's MMULT(returns, weights) over a block of rows.
Weights are frozen at training time and the blend is applied separately to
the training, test and full windows, so nothing is ever refit on test data.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from portfolio_forecast.core.exceptions import MisalignedSeriesError


def _frozen_array(values) -> np.ndarray:
    array = np.array(values, dtype=float).ravel()
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class ReturnSeries:
    """
    Ordered per-period returns for one asset or portfolio.

    Attributes:
        name: Asset or portfolio name
        values: Return values, one per period (read-only)
        periods: Optional period labels (end-of-period, not day-accurate)
    """
    name: str
    values: np.ndarray
    periods: Optional[pd.Index] = None

    def __post_init__(self):
        values = _frozen_array(self.values)
        if values.size == 0:
            raise ValueError(f"Return series '{self.name}' is empty")
        if not np.all(np.isfinite(values)):
            raise MisalignedSeriesError(
                f"Return series '{self.name}' has missing periods "
                f"({int(np.sum(~np.isfinite(values)))} non-finite values)"
            )
        object.__setattr__(self, 'values', values)

        if self.periods is not None:
            periods = pd.Index(self.periods)
            if len(periods) != values.size:
                raise MisalignedSeriesError(
                    f"Return series '{self.name}' has {values.size} values "
                    f"but {len(periods)} period labels"
                )
            object.__setattr__(self, 'periods', periods)

    def __len__(self) -> int:
        return self.values.size

    def __array__(self, dtype=None, copy=None):
        if dtype is None and not copy:
            return self.values
        return np.array(self.values, dtype=dtype)

    def window(self, start: Optional[int] = None, stop: Optional[int] = None) -> 'ReturnSeries':
        """Return a contiguous slice of this series as a new series."""
        periods = None if self.periods is None else self.periods[start:stop]
        return ReturnSeries(self.name, self.values[start:stop], periods)

    def split(self, test_periods: int) -> 'SeriesSplit':
        """
        Split into a training slice and a trailing test slice.

        Args:
            test_periods: Number of trailing periods held out

        Returns:
            SeriesSplit with train, test and full views
        """
        if not 0 < test_periods < len(self):
            raise ValueError(
                f"Cannot hold out {test_periods} of {len(self)} periods "
                f"from series '{self.name}'"
            )
        return SeriesSplit(
            train=self.window(None, -test_periods),
            test=self.window(-test_periods, None),
            full=self
        )

    def to_series(self) -> pd.Series:
        """Convert to a pandas Series indexed by period."""
        return pd.Series(self.values, index=self.periods, name=self.name)


@dataclass(frozen=True)
class SeriesSplit:
    """Training, held-out test and full views of one return series."""
    train: ReturnSeries
    test: ReturnSeries
    full: ReturnSeries

    def __getitem__(self, window: str) -> ReturnSeries:
        if window not in ('train', 'test', 'full'):
            raise KeyError(f"Unknown window '{window}'. Use 'train', 'test' or 'full'")
        return getattr(self, window)


@dataclass(frozen=True, eq=False)
class WeightVector:
    """
    Portfolio weights aligned to an ordered asset universe.

    Weights may be negative (short positions).

    Attributes:
        asset_names: Asset order the weights refer to
        values: One weight per asset (read-only)
    """
    asset_names: tuple
    values: np.ndarray

    def __post_init__(self):
        names = tuple(self.asset_names)
        values = _frozen_array(self.values)
        if len(names) != values.size:
            raise MisalignedSeriesError(
                f"{values.size} weights given for {len(names)} assets"
            )
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate asset names: {names}")
        object.__setattr__(self, 'asset_names', names)
        object.__setattr__(self, 'values', values)

    def __len__(self) -> int:
        return self.values.size

    def __array__(self, dtype=None, copy=None):
        if dtype is None and not copy:
            return self.values
        return np.array(self.values, dtype=dtype)

    @property
    def total(self) -> float:
        """Sum of the weights."""
        return float(np.sum(self.values))

    def as_dict(self) -> Dict[str, float]:
        """Map each asset name to its weight."""
        return {name: float(w) for name, w in zip(self.asset_names, self.values)}


@dataclass(frozen=True)
class Portfolio:
    """
    A named allocation and the return series it produces.

    Attributes:
        name: Portfolio name (e.g. 'Minimum-Variance')
        weights: Weight vector fixed at training time
        returns: Synthesized returns over train, test and full windows
        prices: Optional blended price series over the full window
    """
    name: str
    weights: WeightVector
    returns: SeriesSplit
    prices: Optional[ReturnSeries] = None


def blend(
    returns_by_asset: Mapping[str, Union[ReturnSeries, Sequence[float]]],
    weights: Union[WeightVector, Sequence[float]],
    name: str = 'portfolio'
) -> ReturnSeries:
    """
    Apply a fixed weight vector to per-asset return series.

    For each period t: output[t] = sum_i weights[i] * returns[asset_i][t]

    Args:
        returns_by_asset: Mapping of asset name -> return series
        weights: WeightVector (assets taken in its order) or a plain sequence
                 aligned to the mapping's order
        name: Name of the resulting series

    Returns:
        Blended ReturnSeries

    Raises:
        MisalignedSeriesError: If series lengths or period labels differ, or
            an asset named by the weights has no series
    """
    if isinstance(weights, WeightVector):
        asset_names = weights.asset_names
        w = weights.values
    else:
        asset_names = tuple(returns_by_asset.keys())
        w = np.asarray(weights, dtype=float).ravel()
        if w.size != len(asset_names):
            raise MisalignedSeriesError(
                f"{w.size} weights given for {len(asset_names)} return series"
            )

    columns = []
    periods = None
    for asset in asset_names:
        if asset not in returns_by_asset:
            raise MisalignedSeriesError(f"No return series for asset '{asset}'")
        series = returns_by_asset[asset]
        columns.append(np.asarray(series, dtype=float).ravel())

        asset_periods = getattr(series, 'periods', None)
        if asset_periods is not None:
            if periods is None:
                periods = asset_periods
            elif len(periods) != len(asset_periods) or not periods.equals(asset_periods):
                raise MisalignedSeriesError(
                    f"Period labels of '{asset}' do not match the other assets"
                )

    lengths = {c.size for c in columns}
    if len(lengths) != 1:
        raise MisalignedSeriesError(
            "Return series have different lengths: "
            + ", ".join(f"{a}={c.size}" for a, c in zip(asset_names, columns))
        )

    blended = np.column_stack(columns) @ w
    return ReturnSeries(name, blended, periods)


def synthesize_portfolio(
    name: str,
    weights: WeightVector,
    returns_by_asset: Mapping[str, SeriesSplit],
    prices_by_asset: Optional[Mapping[str, ReturnSeries]] = None
) -> Portfolio:
    """
    Build a Portfolio by blending each window with the same frozen weights.

    Args:
        name: Portfolio name
        weights: Weight vector computed on the training window
        returns_by_asset: Mapping of asset name -> SeriesSplit
        prices_by_asset: Optional mapping of asset name -> full price series

    Returns:
        Portfolio with train, test and full return series
    """
    windows = {}
    for window in ('train', 'test', 'full'):
        windows[window] = blend(
            {asset: split[window] for asset, split in returns_by_asset.items()},
            weights,
            name=name
        )

    prices = None
    if prices_by_asset is not None:
        prices = blend(prices_by_asset, weights, name=name)

    return Portfolio(
        name=name,
        weights=weights,
        returns=SeriesSplit(**windows),
        prices=prices
    )
