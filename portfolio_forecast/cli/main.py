"""
Main Runner Script for Portfolio Forecasting
============================================

This script runs the full study:
1. Loading the five-asset dataset (CSV or Excel)
2. Solving equal-weight, minimum variance and tangency weights on the
   training window
3. Synthesizing each portfolio's train / test / full returns
4. Testing stationarity and fitting the candidate ARMA orders
5. Forecasting the held-out periods and scoring RMSE / MAE
6. Visualizing results and writing the accuracy table

Usage:
    pf-analyze                               # Run with sample data
    pf-analyze --file prices.csv             # Run with a custom dataset
    pf-analyze --order ALL=1,0,1             # Same candidate for every portfolio
    pf-analyze --order Minimum-Variance=2,0,0 --order Minimum-Variance=0,0,1
    pf-analyze --no-plots                    # Skip figures
"""

import argparse
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import matplotlib.pyplot as plt

from portfolio_forecast.config import AnalysisConfig
from portfolio_forecast.core.loader import AssetData, DataLoader, generate_sample_data
from portfolio_forecast.core.optimizer import PortfolioOptimizer
from portfolio_forecast.pipeline import PORTFOLIO_NAMES, AnalysisResults, run_analysis
from portfolio_forecast.timeseries.arma import compare_models
from portfolio_forecast.timeseries.stationarity import correlogram
from portfolio_forecast.visualization import (
    plot_correlogram,
    plot_forecast,
    plot_return_series,
    plot_weight_comparison,
)


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logger(
    script_name: str = "portfolio_forecast",
    log_dir: Optional[Path] = None
) -> logging.Logger:
    """
    Sets up a logger that writes to both file and console.

    Library modules log under the 'portfolio_forecast' namespace, so the
    handlers are attached there as well as to the script logger.

    Args:
        script_name: Name of the script (used in log filename)
        log_dir: Directory for log files (default: <project root>/logs)

    Returns:
        Configured logger instance
    """
    if log_dir is None:
        log_dir = Path(__file__).parent.parent.parent / "logs"
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Generate unique log filename
    timestamp = datetime.now().strftime("%Y_%m_%d_%H%M")
    log_filename = log_dir / f"log_{script_name}_{timestamp}.txt"

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    for name in (script_name, "portfolio_forecast"):
        logger = logging.getLogger(name)
        logger.setLevel(logging.INFO)
        logger.propagate = False

        # Clear existing handlers (prevent duplicates)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        logger.addHandler(file_handler)
        logger.addHandler(console_handler)

    return logging.getLogger(script_name)


# =============================================================================
# ANALYSIS CLASS
# =============================================================================

class AnalysisCheckpoint:
    """
    Tracks the progress of the analysis for the final report.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.steps_completed = {}
        self.start_time = datetime.now()
        self.current_step = None

    def start_step(self, step_name: str):
        """Mark a step as started."""
        self.current_step = step_name
        self.logger.info(f"[CHECKPOINT] Starting: {step_name}")

    def complete_step(self, step_name: str):
        """Mark a step as completed."""
        self.steps_completed[step_name] = True
        self.logger.info(f"[CHECKPOINT] Completed: {step_name}")

    def get_progress_summary(self) -> dict:
        """Get summary of analysis progress."""
        elapsed = (datetime.now() - self.start_time).total_seconds()
        return {
            'steps_completed': list(self.steps_completed.keys()),
            'current_step': self.current_step,
            'elapsed_seconds': elapsed
        }

    def log_final_report(self):
        """Log final analysis report."""
        summary = self.get_progress_summary()
        self.logger.info("=" * 60)
        self.logger.info("  ANALYSIS COMPLETE")
        self.logger.info("=" * 60)
        self.logger.info(f"  Steps completed: {len(summary['steps_completed'])}")
        self.logger.info(f"  Total time: {summary['elapsed_seconds']:.2f} seconds")
        self.logger.info("=" * 60)


# =============================================================================
# MAIN ANALYSIS FUNCTIONS
# =============================================================================

def get_output_dir() -> Path:
    """Get the output directory path."""
    package_root = Path(__file__).parent.parent.parent
    output_dir = package_root / "output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


def parse_order(text: str) -> Tuple[str, Tuple[int, int, int]]:
    """
    Parse a 'NAME=p,d,q' command-line order.

    Args:
        text: e.g. 'Maximum-Sharpe=1,0,1' or 'ALL=0,0,1'

    Returns:
        Tuple of (portfolio name, (p, d, q))
    """
    name, sep, spec = text.partition('=')
    if not sep:
        raise argparse.ArgumentTypeError(f"Expected NAME=p,d,q, got '{text}'")
    name = name.strip()
    if name != 'ALL' and name not in PORTFOLIO_NAMES:
        raise argparse.ArgumentTypeError(
            f"Unknown portfolio '{name}'. Use ALL or one of {', '.join(PORTFOLIO_NAMES)}"
        )
    try:
        order = tuple(int(part) for part in spec.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Order must be integers p,d,q, got '{spec}'")
    if len(order) != 3:
        raise argparse.ArgumentTypeError(f"Order must have three parts p,d,q, got '{spec}'")
    return name, order


def collect_orders(
    parsed: List[Tuple[str, Tuple[int, int, int]]]
) -> Dict[str, List[Tuple[int, int, int]]]:
    """Group parsed --order values by portfolio; ALL applies to every portfolio."""
    orders: Dict[str, List[Tuple[int, int, int]]] = {}
    for name, order in parsed:
        targets = PORTFOLIO_NAMES if name == 'ALL' else (name,)
        for target in targets:
            orders.setdefault(target, []).append(order)
    return orders


def log_results(results: AnalysisResults, config: AnalysisConfig, logger: logging.Logger):
    """Write weights, stationarity, fit statistics and accuracy to the log."""
    optimizer = PortfolioOptimizer(
        results.mean_returns,
        results.cov_matrix,
        list(results.asset_names),
        rf_rate=config.risk_free_rate
    )
    for line in optimizer.summary_report().splitlines():
        logger.info(line)

    logger.info("\n--- Portfolio Weights ---")
    for line in results.weights_frame().to_string(float_format=lambda v: f"{v:.4f}").splitlines():
        logger.info(line)

    logger.info("\n--- Stationarity (ADF, training window) ---")
    for name, adf in results.stationarity.items():
        logger.info(
            f"{name:<18} statistic = {adf.test_statistic:>8.4f}  "
            f"p-value = {adf.p_value:.6f}  "
            f"{'stationary' if adf.is_stationary else 'NOT stationary'}"
        )

    for name, outcomes in results.outcomes.items():
        fitted = [o.model for o in outcomes if o.model is not None]
        if fitted:
            logger.info(f"\n--- {name}: candidate models ---")
            for line in compare_models(fitted).to_string(index=False).splitlines():
                logger.info(line)
        for failed in (o for o in outcomes if not o.succeeded):
            logger.warning(f"{name} {failed.order}: {failed.error}")

    logger.info("\n--- Forecast Accuracy (test window) ---")
    table = results.accuracy()
    if table.empty:
        logger.warning("No model produced a forecast")
    else:
        for line in table.to_string(index=False, float_format=lambda v: f"{v:.6f}").splitlines():
            logger.info(line)


def save_plots(results: AnalysisResults, output_dir: Path, config: AnalysisConfig,
               logger: logging.Logger):
    """Save weight, return, correlogram and forecast figures."""
    plot_weight_comparison(
        results.portfolios,
        save_path=str(output_dir / "weights_comparison.png")
    )
    logger.info("Saved: weights_comparison.png")

    for name, portfolio in results.portfolios.items():
        slug = name.lower().replace('-', '_')

        plot_return_series(portfolio, save_path=str(output_dir / f"{slug}_returns.png"))
        plot_correlogram(
            portfolio.returns.train,
            nlags=config.correlogram_lags,
            save_path=str(output_dir / f"{slug}_acf_pacf.png")
        )

        forecasts = [o.forecast for o in results.outcomes.get(name, []) if o.forecast is not None]
        if forecasts:
            plot_forecast(
                portfolio.returns.full.window(
                    None, len(portfolio.returns.train) + config.forecast_horizon
                ),
                forecasts,
                save_path=str(output_dir / f"{slug}_forecast.png"),
                title=f"{name} Portfolio: ARMA Forecasts vs Realized"
            )
        logger.info(f"Saved: {slug}_*.png")

    plt.close('all')


def run_full_analysis(
    data: AssetData,
    orders: Optional[Dict[str, List[Tuple[int, int, int]]]] = None,
    config: Optional[AnalysisConfig] = None,
    make_plots: bool = True,
    output_dir: Optional[str] = None,
    logger: Optional[logging.Logger] = None
) -> AnalysisResults:
    """
    Run the complete weight / forecast / evaluation analysis.

    Args:
        data: Loaded AssetData
        orders: Candidate orders per portfolio (default: config.candidate_orders)
        config: Analysis configuration
        make_plots: If True, save plots to files
        output_dir: Directory for output files
        logger: Logger instance

    Returns:
        AnalysisResults
    """
    if logger is None:
        logger = setup_logger()
    config = config or AnalysisConfig()

    if output_dir is None:
        output_dir = get_output_dir()
    else:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

    checkpoint = AnalysisCheckpoint(logger)

    logger.info("=" * 70)
    logger.info("  PORTFOLIO WEIGHTS AND ARMA FORECAST ANALYSIS")
    logger.info("=" * 70)
    logger.info(f"  Assets: {', '.join(data.asset_names)}")
    logger.info(f"  Periods: {data.n_periods} ({config.test_periods} held out)")
    for line in config.describe():
        logger.info(line)

    checkpoint.start_step("Run Analysis")
    results = run_analysis(data, orders, config)
    checkpoint.complete_step("Run Analysis")

    checkpoint.start_step("Report Results")
    log_results(results, config, logger)
    accuracy_path = output_dir / "forecast_accuracy.csv"
    results.accuracy().to_csv(accuracy_path, index=False)
    results.weights_frame().to_csv(output_dir / "portfolio_weights.csv")
    logger.info(f"Saved: {accuracy_path.name}, portfolio_weights.csv")
    checkpoint.complete_step("Report Results")

    if make_plots:
        checkpoint.start_step("Generate Plots")
        save_plots(results, output_dir, config, logger)
        checkpoint.complete_step("Generate Plots")

    checkpoint.log_final_report()
    return results


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Portfolio Weights and ARMA Forecast Analysis Tool',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pf-analyze                                    # Run with sample data
  pf-analyze --file "prices.csv"                # Analyze a dataset
  pf-analyze --file "prices.xlsx" --sheet Data
  pf-analyze --order ALL=1,0,0 --order ALL=0,0,1
  pf-analyze --no-plots
        """
    )

    parser.add_argument('--file', '-f', type=str,
                        help='Path to CSV or Excel file with prices and log returns')
    parser.add_argument('--sheet', '-s', type=str, default=None,
                        help='Excel sheet name (default: first sheet)')
    parser.add_argument('--order', '-o', type=parse_order, action='append', default=[],
                        metavar='NAME=p,d,q',
                        help='Candidate ARMA order for a portfolio (repeatable; NAME may be ALL)')
    parser.add_argument('--test-periods', type=int, default=12,
                        help='Trailing periods held out for testing (default: 12)')
    parser.add_argument('--horizon', type=int, default=None,
                        help='Forecast horizon (default: test periods)')
    parser.add_argument('--significance', type=float, default=0.05,
                        help='Significance level for ADF and Ljung-Box tests (default: 0.05)')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Directory for tables and figures (default: ./output)')
    parser.add_argument('--log-dir', type=str, default=None,
                        help='Directory for log files (default: ./logs)')
    parser.add_argument('--no-plots', action='store_true',
                        help='Disable plot generation')
    parser.add_argument('--show-plots', action='store_true',
                        help='Show plots interactively (default: just save)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the portfolio forecasting script."""
    args = build_parser().parse_args(argv)

    logger = setup_logger("portfolio_forecast_cli", args.log_dir)

    config = AnalysisConfig()
    config.test_periods = args.test_periods
    config.forecast_horizon = args.horizon or args.test_periods
    config.significance_level = args.significance

    try:
        config.validate()
        loader = DataLoader(config)

        if args.file:
            logger.info(f"Loading data from: {args.file}")
            data = loader.load(args.file, sheet=args.sheet)
        else:
            logger.info("No file specified. Using sample data...")
            data = loader.from_frame(generate_sample_data(n_assets=config.n_assets))

        validation = loader.validate_data(data)
        for warning in validation['warnings']:
            logger.warning(warning)
        if not validation['is_valid']:
            for error in validation['errors']:
                logger.error(error)
            raise ValueError("Data validation failed")

        run_full_analysis(
            data,
            orders=collect_orders(args.order),
            config=config,
            make_plots=not args.no_plots,
            output_dir=args.output_dir,
            logger=logger
        )

        if args.show_plots and not args.no_plots:
            plt.show()

        logger.info("Analysis completed successfully!")
        return 0

    except Exception as e:
        logger.error(f"Analysis failed: {e}")
        logger.error(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
