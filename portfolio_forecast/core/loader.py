"""
Data Loader Module for Portfolio Forecasting
============================================

This module handles loading the five-asset dataset and splitting it into
training and held-out test windows:
- Excel files (.xlsx, via openpyxl)
- CSV files
- pandas DataFrames already in memory

Expected table layout (one row per period):

    Date | AAA | AAA_return | BBB | BBB_return | ...

- Date: period identifier. It labels the END of the period and is not
  accurate to the day, so it is kept only as a label.
- <ASSET>: price column
- <ASSET>_return: log return column, r_t = ln(P_t / P_{t-1})

The first period has no return (there is no previous price) and is dropped.
Any other gap is a data-quality fault and is rejected. If the table carries
prices only, log returns are derived from them here; the core never touches
prices again except to blend them for plotting.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from portfolio_forecast.config import AnalysisConfig
from portfolio_forecast.core.exceptions import MisalignedSeriesError
from portfolio_forecast.core.series import ReturnSeries, SeriesSplit
from portfolio_forecast.core.statistics import covariance_matrix, mean_vector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetData:
    """
    Aligned per-asset return (and price) series for the asset universe.

    Attributes:
        asset_names: Ordered asset universe
        returns: Mapping of asset name -> full ReturnSeries
        prices: Optional mapping of asset name -> full price series
    """
    asset_names: Tuple[str, ...]
    returns: Dict[str, ReturnSeries]
    prices: Optional[Dict[str, ReturnSeries]] = None

    @property
    def n_periods(self) -> int:
        return len(self.returns[self.asset_names[0]])

    def split(self, test_periods: int) -> Dict[str, SeriesSplit]:
        """
        Split every asset into training (all but the last test_periods)
        and test (the last test_periods) windows.
        """
        return {name: self.returns[name].split(test_periods) for name in self.asset_names}

    def returns_frame(self) -> pd.DataFrame:
        """Returns as a (periods x assets) DataFrame."""
        first = self.returns[self.asset_names[0]]
        return pd.DataFrame(
            {name: self.returns[name].values for name in self.asset_names},
            index=first.periods
        )


class DataLoader:
    """
    A class for loading the portfolio dataset from various sources.

    Example:
        >>> loader = DataLoader()
        >>> data = loader.load("monthly_prices.csv")
        >>> splits = data.split(12)
    """

    EXCEL_SUFFIXES = ('.xlsx', '.xlsm', '.xls')

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize the DataLoader.

        Args:
            config: Analysis configuration (default: AnalysisConfig())
        """
        self.config = config or AnalysisConfig()

    def load(
        self,
        file_path: Union[str, Path],
        sheet: Optional[str] = None,
        assets: Optional[Sequence[str]] = None
    ) -> AssetData:
        """
        Load the dataset from a CSV or Excel file.

        Args:
            file_path: Path to the file
            sheet: Excel sheet name (default: first sheet)
            assets: Optional asset subset/order (default: file order)

        Returns:
            AssetData
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Data file not found: {file_path}")

        if file_path.suffix.lower() in self.EXCEL_SUFFIXES:
            df = pd.read_excel(file_path, sheet_name=sheet if sheet is not None else 0)
        else:
            df = pd.read_csv(file_path)

        logger.info(f"Loaded {len(df)} rows x {df.shape[1]} columns from {file_path.name}")
        return self.from_frame(df, assets)

    def from_frame(
        self,
        df: pd.DataFrame,
        assets: Optional[Sequence[str]] = None
    ) -> AssetData:
        """
        Build AssetData from a table of prices and log returns.

        Args:
            df: Table with a period column, price and return columns
            assets: Optional asset subset/order (default: table order)

        Returns:
            AssetData

        Raises:
            MisalignedSeriesError: If returns have gaps after the first period
            ValueError: If the universe size is wrong or columns are missing
        """
        df = df.copy()
        date_col = self.config.date_column
        suffix = self.config.return_suffix

        periods = None
        if date_col in df.columns:
            periods = df.pop(date_col)

        return_cols = [c for c in df.columns if str(c).endswith(suffix)]
        if return_cols:
            names = [str(c)[:-len(suffix)] for c in return_cols]
            returns = df[return_cols].apply(pd.to_numeric, errors='coerce')
            returns.columns = names
            price_cols = [n for n in names if n in df.columns]
            prices = df[price_cols].apply(pd.to_numeric, errors='coerce') if price_cols else None
        else:
            logger.info("No return columns found; deriving log returns from prices")
            prices = df.apply(pd.to_numeric, errors='coerce').dropna(axis=1, how='all')
            if (prices <= 0).any().any():
                raise ValueError("Prices must be positive to compute log returns")
            returns = np.log(prices / prices.shift(1))
            names = list(prices.columns)

        if assets is not None:
            missing = [a for a in assets if a not in returns.columns]
            if missing:
                raise ValueError(f"Assets not found in data: {missing}")
            names = list(assets)
            returns = returns[names]
            if prices is not None:
                prices = prices[[n for n in names if n in prices.columns]]

        if len(names) != self.config.n_assets:
            raise ValueError(
                f"Expected {self.config.n_assets} assets, found {len(names)}: {names}"
            )

        # Drop leading periods without returns (the first price has no predecessor)
        has_returns = returns.notna().any(axis=1).to_numpy()
        if not has_returns.any():
            raise ValueError("Dataset contains no return values")
        start = int(np.argmax(has_returns))
        returns = returns.iloc[start:]
        if prices is not None:
            prices = prices.iloc[start:]
        if periods is not None:
            periods = pd.Index(periods.iloc[start:])

        gaps = returns.isna()
        if gaps.any().any():
            bad = {col: int(n) for col, n in gaps.sum().items() if n}
            raise MisalignedSeriesError(f"Missing return periods per asset: {bad}")

        return_series = {
            name: ReturnSeries(name, returns[name].to_numpy(), periods)
            for name in names
        }

        price_series = None
        if prices is not None and list(prices.columns) == names and not prices.isna().any().any():
            price_series = {
                name: ReturnSeries(name, prices[name].to_numpy(), periods)
                for name in names
            }

        logger.info(f"Assets: {', '.join(names)} ({len(returns)} periods)")
        return AssetData(tuple(names), return_series, price_series)

    def validate_data(self, data: AssetData) -> Dict[str, Any]:
        """
        Validate the loaded data and return diagnostics.

        Checks:
        - Enough periods for the test window
        - Covariance matrix of training returns is positive definite
        - No asset has zero variance

        Args:
            data: Loaded AssetData

        Returns:
            Dictionary with validation results
        """
        results = {
            'is_valid': True,
            'warnings': [],
            'errors': [],
            'n_assets': len(data.asset_names),
            'n_periods': data.n_periods,
            'asset_names': list(data.asset_names)
        }

        if data.n_periods <= self.config.test_periods + 1:
            results['errors'].append(
                f"Only {data.n_periods} periods; need more than "
                f"{self.config.test_periods + 1} to hold out a test window"
            )
            results['is_valid'] = False
            return results

        train = {name: split.train for name, split in data.split(self.config.test_periods).items()}
        cov = covariance_matrix(train, data.asset_names, ddof=self.config.ddof)

        eigenvalues = np.linalg.eigvalsh(cov)
        if np.any(eigenvalues <= 1e-14):
            results['warnings'].append(
                f"Training covariance matrix is (near) singular: "
                f"min eigenvalue = {eigenvalues.min():.6e}"
            )

        stds = np.sqrt(np.diag(cov))
        for name, std in zip(data.asset_names, stds):
            if std == 0:
                results['errors'].append(f"Asset '{name}' has zero return variance")
                results['is_valid'] = False

        means = mean_vector(train, data.asset_names)
        results['return_stats'] = {
            'min': float(means.min()),
            'max': float(means.max()),
            'mean': float(means.mean())
        }
        results['std_stats'] = {
            'min': float(stds.min()),
            'max': float(stds.max()),
            'mean': float(stds.mean())
        }

        return results


def generate_sample_data(
    n_periods: int = 294,
    n_assets: int = 5,
    seed: int = 42,
    asset_names: Optional[List[str]] = None,
    ar_coefficient: float = 0.2
) -> pd.DataFrame:
    """
    Generate a synthetic monthly dataset in the loader's table layout.

    Returns follow a mild AR(1) around realistic monthly means with
    correlated innovations; prices start at 100.

    Args:
        n_periods: Number of return periods (one extra price row is added)
        n_assets: Number of assets (default: 5)
        seed: Random seed for reproducibility
        asset_names: Optional asset names
        ar_coefficient: AR(1) coefficient of every asset's returns

    Returns:
        DataFrame with Date, price and '<asset>_return' columns
    """
    random_state = np.random.RandomState(seed)

    if asset_names is None:
        if n_assets == 5:
            asset_names = ['AAPL', 'JNJ', 'JPM', 'KO', 'XOM']
        else:
            asset_names = [f'Stock_{i+1}' for i in range(n_assets)]

    means = np.linspace(0.004, 0.012, n_assets)

    # Positive definite covariance at realistic monthly variance levels
    A = random_state.randn(n_assets, n_assets) * 0.03
    cov = np.dot(A, A.T) + np.eye(n_assets) * 0.002
    cov = cov / np.max(cov) * 0.004

    shocks = random_state.multivariate_normal(np.zeros(n_assets), cov, size=n_periods)
    returns = np.zeros((n_periods, n_assets))
    returns[0] = means + shocks[0]
    for t in range(1, n_periods):
        returns[t] = means + ar_coefficient * (returns[t - 1] - means) + shocks[t]

    log_prices = np.vstack([np.zeros(n_assets), np.cumsum(returns, axis=0)])
    prices = 100.0 * np.exp(log_prices)

    dates = pd.date_range('2000-01-31', periods=n_periods + 1, freq='ME')
    frame = {'Date': dates}
    for i, name in enumerate(asset_names):
        frame[name] = prices[:, i]
        frame[f'{name}_return'] = np.concatenate([[np.nan], returns[:, i]])

    return pd.DataFrame(frame)
