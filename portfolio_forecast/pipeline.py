"""
Analysis pipeline: weights -> portfolio returns -> ARMA fits -> forecasts -> accuracy.

Each stage takes only the values it needs and returns new immutable values;
nothing is accumulated on a shared table. Weights are computed once from the
training window and reused for the test and full windows.

A failure in the weight solvers stops the run. A failure fitting,
forecasting or scoring one candidate model is logged and recorded on that
model's outcome, and the remaining candidates still run.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from portfolio_forecast.config import AnalysisConfig
from portfolio_forecast.core.exceptions import PortfolioForecastError
from portfolio_forecast.core.loader import AssetData
from portfolio_forecast.core.optimizer import (
    equal_weights,
    minimum_variance_weights,
    tangency_weights,
)
from portfolio_forecast.core.series import Portfolio, synthesize_portfolio
from portfolio_forecast.core.statistics import covariance_matrix, mean_vector
from portfolio_forecast.timeseries.arma import ARMAFitter, ARMASpecification, FittedModel
from portfolio_forecast.timeseries.evaluation import AccuracyReport, accuracy_table, evaluate
from portfolio_forecast.timeseries.forecaster import Forecast, forecast
from portfolio_forecast.timeseries.stationarity import StationarityResult, test_stationarity

logger = logging.getLogger(__name__)

EQUAL_WEIGHT = 'Equal-Weight'
MIN_VARIANCE = 'Minimum-Variance'
MAX_SHARPE = 'Maximum-Sharpe'
PORTFOLIO_NAMES = (EQUAL_WEIGHT, MIN_VARIANCE, MAX_SHARPE)


@dataclass(frozen=True)
class ModelOutcome:
    """Fit, forecast and accuracy of one candidate order on one portfolio."""
    portfolio: str
    order: tuple
    specification: Optional[ARMASpecification] = None
    model: Optional[FittedModel] = None
    forecast: Optional[Forecast] = None
    accuracy: Optional[AccuracyReport] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class AnalysisResults:
    """Everything a run produces, keyed by portfolio name."""
    asset_names: Tuple[str, ...]
    cov_matrix: np.ndarray
    mean_returns: np.ndarray
    portfolios: Dict[str, Portfolio]
    stationarity: Dict[str, StationarityResult] = field(default_factory=dict)
    outcomes: Dict[str, List[ModelOutcome]] = field(default_factory=dict)

    def weights_frame(self) -> pd.DataFrame:
        """Weights as an (assets x portfolios) DataFrame."""
        return pd.DataFrame(
            {name: p.weights.values for name, p in self.portfolios.items()},
            index=list(self.asset_names)
        )

    def accuracy(self) -> pd.DataFrame:
        """Accuracy table over every successful model."""
        reports = [
            o.accuracy
            for outcomes in self.outcomes.values()
            for o in outcomes
            if o.accuracy is not None
        ]
        return accuracy_table(reports)

    def failures(self) -> List[ModelOutcome]:
        return [o for outcomes in self.outcomes.values() for o in outcomes if not o.succeeded]


def build_portfolios(
    data: AssetData,
    config: Optional[AnalysisConfig] = None
) -> Tuple[Dict[str, Portfolio], np.ndarray, np.ndarray]:
    """
    Solve the three weight schemes on the training window and synthesize
    each portfolio's train, test and full return series.

    Args:
        data: Aligned per-asset series
        config: Analysis configuration

    Returns:
        Tuple of (portfolios by name, covariance matrix, mean return vector)

    Raises:
        SingularMatrixError: If the training covariance matrix is singular
        DegenerateNormalizationError: If tangency weights cannot be normalized
    """
    config = config or AnalysisConfig()
    splits = data.split(config.test_periods)
    train = {name: split.train for name, split in splits.items()}

    cov = covariance_matrix(train, data.asset_names, ddof=config.ddof)
    means = mean_vector(train, data.asset_names)

    weights = {
        EQUAL_WEIGHT: equal_weights(data.asset_names),
        MIN_VARIANCE: minimum_variance_weights(cov, data.asset_names),
        MAX_SHARPE: tangency_weights(cov, means, data.asset_names),
    }

    portfolios = {}
    for name, w in weights.items():
        portfolios[name] = synthesize_portfolio(name, w, splits, data.prices)
        logger.info(
            f"{name} weights: "
            + ", ".join(f"{a}={v*100:.2f}%" for a, v in w.as_dict().items())
        )

    return portfolios, cov, means


def model_portfolio(
    portfolio: Portfolio,
    orders: Sequence,
    config: Optional[AnalysisConfig] = None
) -> List[ModelOutcome]:
    """
    Fit, forecast and score each candidate order on one portfolio.

    Models are fit on the training window and forecast over the test window.

    Args:
        portfolio: Portfolio with synthesized returns
        orders: Candidate ARMASpecifications or (p, d, q) tuples
        config: Analysis configuration

    Returns:
        One ModelOutcome per candidate, in the given order
    """
    config = config or AnalysisConfig()
    train = portfolio.returns.train
    realized = portfolio.returns.test.window(None, config.forecast_horizon)

    outcomes = []
    for order in orders:
        fitter = ARMAFitter(
            max_iterations=config.max_iterations,
            ljung_box_lags=config.ljung_box_lags,
            significance=config.significance_level
        )
        requested = order.order if isinstance(order, ARMASpecification) else tuple(order)
        spec = None
        try:
            spec = ARMASpecification.coerce(order)
            model = fitter.fit(train, spec)
            prediction = forecast(model, config.forecast_horizon, config.confidence_level)
            report = evaluate(prediction, realized)
        except PortfolioForecastError as e:
            logger.error(f"{portfolio.name} {requested}: {type(e).__name__}: {e}")
            outcomes.append(ModelOutcome(
                portfolio=portfolio.name,
                order=requested,
                specification=spec,
                error=f"{type(e).__name__}: {e}"
            ))
            continue

        outcomes.append(ModelOutcome(
            portfolio=portfolio.name,
            order=requested,
            specification=spec,
            model=model,
            forecast=prediction,
            accuracy=report
        ))
        logger.info(
            f"{portfolio.name} {spec.label}: AIC = {model.aic:.2f}, "
            f"test RMSE = {report.test_rmse:.6f}, test MAE = {report.test_mae:.6f}"
        )

    return outcomes


def run_analysis(
    data: AssetData,
    orders: Optional[Mapping[str, Sequence]] = None,
    config: Optional[AnalysisConfig] = None
) -> AnalysisResults:
    """
    Run the full weight / forecast / evaluation analysis.

    Args:
        data: Aligned per-asset series
        orders: Candidate orders per portfolio name; portfolios not listed
                use config.candidate_orders
        config: Analysis configuration

    Returns:
        AnalysisResults
    """
    config = config or AnalysisConfig()
    config.validate()
    orders = dict(orders or {})

    unknown = set(orders) - set(PORTFOLIO_NAMES)
    if unknown:
        raise ValueError(f"Unknown portfolio names: {sorted(unknown)}. Use {PORTFOLIO_NAMES}")

    portfolios, cov, means = build_portfolios(data, config)
    results = AnalysisResults(
        asset_names=data.asset_names,
        cov_matrix=cov,
        mean_returns=means,
        portfolios=portfolios
    )

    for name, portfolio in portfolios.items():
        results.stationarity[name] = test_stationarity(
            portfolio.returns.train, config.significance_level
        )
        candidates = orders.get(name, config.candidate_orders)
        results.outcomes[name] = model_portfolio(portfolio, candidates, config)

    n_failed = len(results.failures())
    if n_failed:
        logger.warning(f"{n_failed} candidate model(s) failed; see outcomes for details")

    return results
