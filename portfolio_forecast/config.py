"""
Analysis configuration.

Holds every user-configurable assumption of a portfolio forecasting run in
one place, so the CLI, the pipeline and the tests agree on the defaults.

ASSUMPTIONS (User-Configurable):
--------------------------------
1. UNIVERSE: exactly five assets, positionally indexed in file order.
2. SPLIT: the last 12 periods are held out as the test window.
3. COVARIANCE: population covariance (divide by N), matching Excel's MMULT
   approach. Minimum-variance and tangency weights are invariant to this
   choice because both are scale-free in the covariance matrix.
4. RISK-FREE RATE: zero. The tangency portfolio is Sigma^-1 mu normalized,
   which is the maximum-Sharpe portfolio only when rf = 0.
5. ARMA ORDERS: supplied by the caller after inspecting ACF/PACF; the
   candidate list below is just the default set tried for every portfolio.
"""

from typing import List, Tuple


class AnalysisConfig:
    """
    Stores all configurable assumptions for the analysis.

    Attributes:
        n_assets: Size of the fixed asset universe
        test_periods: Number of trailing periods held out for testing
        forecast_horizon: Steps ahead to forecast (defaults to test_periods)
        significance_level: Alpha for the ADF and Ljung-Box tests
        confidence_level: Coverage of forecast confidence intervals
        use_population_cov: If True, use N; if False, use N-1
        max_iterations: Iteration budget for the likelihood optimizer
        ljung_box_lags: Lags used by the residual portmanteau test
        correlogram_lags: Lags reported by the ACF/PACF diagnostics
        risk_free_rate: Per-period rate used only for Sharpe statistics
        date_column: Name of the period identifier column
        return_suffix: Suffix identifying log-return columns
        candidate_orders: Default (p, d, q) orders fitted to each portfolio
    """

    DEFAULT_ORDERS = [(1, 0, 0), (0, 0, 1), (1, 0, 1)]

    def __init__(self):
        """Initialize with default assumptions."""
        self.n_assets = 5
        self.test_periods = 12
        self.forecast_horizon = 12
        self.significance_level = 0.05
        self.confidence_level = 0.95
        self.use_population_cov = True      # Match Excel's approach
        self.max_iterations = 500
        self.ljung_box_lags = 10
        self.correlogram_lags = 20
        self.risk_free_rate = 0.0
        self.date_column = 'Date'
        self.return_suffix = '_return'
        self.candidate_orders: List[Tuple[int, int, int]] = list(self.DEFAULT_ORDERS)

    @property
    def ddof(self) -> int:
        """Delta degrees of freedom for variance/covariance estimates."""
        return 0 if self.use_population_cov else 1

    def validate(self):
        """
        Check the configuration is internally consistent.

        Raises:
            ValueError: If any setting is out of range
        """
        if self.n_assets < 1:
            raise ValueError(f"n_assets must be positive, got {self.n_assets}")
        if self.test_periods < 1:
            raise ValueError(f"test_periods must be positive, got {self.test_periods}")
        if not 1 <= self.forecast_horizon <= self.test_periods:
            raise ValueError(
                f"forecast_horizon must lie in [1, test_periods={self.test_periods}], "
                f"got {self.forecast_horizon}"
            )
        for name in ('significance_level', 'confidence_level'):
            value = getattr(self, name)
            if not 0.0 < value < 1.0:
                raise ValueError(f"{name} must lie in (0, 1), got {value}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations}")

    def describe(self) -> List[str]:
        """Return the current configuration as printable lines."""
        return [
            "=" * 60,
            "CURRENT ANALYSIS CONFIGURATION",
            "=" * 60,
            f"Assets in universe: {self.n_assets}",
            f"Test periods held out: {self.test_periods}",
            f"Forecast horizon: {self.forecast_horizon}",
            f"Significance level: {self.significance_level}",
            f"Confidence level: {self.confidence_level*100:.0f}%",
            f"Covariance Type: {'Population (N)' if self.use_population_cov else 'Sample (N-1)'}",
            f"Optimizer iterations: {self.max_iterations}",
            f"Candidate orders: {', '.join(str(o) for o in self.candidate_orders)}",
            "=" * 60,
        ]
