"""
Five-Asset Portfolio Forecast Walkthrough
AAPL, JNJ, JPM, KO, XOM (synthetic monthly data)

Step by step version of what pf-analyze does: weights from the training
window, ADF and correlogram evidence, a hand-picked ARMA order per
portfolio, then a 12-month forecast scored against the held-out year.
"""

from pathlib import Path

import matplotlib.pyplot as plt

from portfolio_forecast import DataLoader, generate_sample_data
from portfolio_forecast.pipeline import build_portfolios, model_portfolio
from portfolio_forecast.timeseries import accuracy_table, correlogram, test_stationarity
from portfolio_forecast.visualization import plot_forecast, plot_weight_comparison

# Get the project root directory (parent of examples/)
PROJECT_ROOT = Path(__file__).parent.parent
OUTPUT_DIR = PROJECT_ROOT / 'output'
OUTPUT_DIR.mkdir(exist_ok=True)

# === Data: 294 monthly returns, last 12 held out ===
data = DataLoader().from_frame(generate_sample_data(seed=7))
portfolios, cov, means = build_portfolios(data)

print("=" * 70)
print("PORTFOLIO WEIGHTS (training window)")
print("=" * 70)
for name, portfolio in portfolios.items():
    weights = ", ".join(f"{a}: {w*100:6.2f}%" for a, w in portfolio.weights.as_dict().items())
    print(f"{name:<18} {weights}")

# === Evidence for choosing (p, q) ===
orders = {}
for name, portfolio in portfolios.items():
    train = portfolio.returns.train
    adf = test_stationarity(train)
    table = correlogram(train, nlags=6)
    print(f"\n{name}: ADF p-value = {adf.p_value:.4f} "
          f"({'stationary' if adf.is_stationary else 'not stationary'})")
    print(table.round(3).to_string())

    # PACF cut-off after lag 1 suggests AR(1); compare against MA(1)
    orders[name] = [(1, 0, 0), (0, 0, 1)]

# === Fit, forecast and score ===
reports = []
for name, portfolio in portfolios.items():
    outcomes = model_portfolio(portfolio, orders[name])
    reports.extend(o.accuracy for o in outcomes if o.accuracy is not None)

    forecasts = [o.forecast for o in outcomes if o.forecast is not None]
    slug = name.lower().replace('-', '_')
    plot_forecast(portfolio.returns.full, forecasts,
                  save_path=str(OUTPUT_DIR / f'example_{slug}_forecast.png'))

print("\n" + "=" * 70)
print("FORECAST ACCURACY (12 held-out months)")
print("=" * 70)
print(accuracy_table(reports).to_string(index=False, float_format=lambda v: f"{v:.6f}"))

plot_weight_comparison(portfolios, save_path=str(OUTPUT_DIR / 'example_weights.png'))
plt.close('all')
print(f"\nFigures saved to: {OUTPUT_DIR}")
