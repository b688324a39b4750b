"""
CLI entry point for portfolio forecasting.

Usage:
    python run_cli.py                          # Run with sample data
    python run_cli.py --file prices.xlsx       # Run with custom Excel file
    python run_cli.py --sheet Data             # Specify sheet name
    python run_cli.py --order ALL=1,0,1        # Candidate order for every portfolio

For installed package, use: pf-analyze
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from portfolio_forecast.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
