#!/usr/bin/env python3
"""
SpectraScope Technical Core - Demo Runner

Runs the technical analysis pipeline for one symbol:
    Step 1: Load OHLCV history (CSV file or seeded synthetic random walk)
    Step 2: Compute indicators, classify signals, aggregate the score
    Step 3: Print the report and optionally save it as JSON

EXECUTION
    python run_demo.py --synthetic
    python run_demo.py --input data/aapl.csv --symbol AAPL
    python run_demo.py --input data/aapl.csv --symbol AAPL --price 187.20 --output outputs/aapl.json

CSV FORMAT
    A date column plus open, high, low, close and volume columns (any
    casing, any ordering of rows).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from spectrascope.config import VERSION
from spectrascope.price_data import PriceSeries
from spectrascope.technical_indicators import IndicatorError
from spectrascope.technical_report import (
    TechnicalAnalyzer,
    TechnicalReport,
    print_technical_report,
)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_SYMBOL: str = "DEMO"
DEFAULT_BARS: int = 252
DEFAULT_SEED: int = 7
DEFAULT_START_PRICE: float = 100.0


# =============================================================================
# DISPLAY COMPONENTS
# =============================================================================

def print_section_header(title: str, char: str = "═") -> None:
    """Print a formatted section header."""
    width = 79
    print()
    print(char * width)
    print(f"  {title}")
    print(char * width)
    print()


# =============================================================================
# DATA LOADING
# =============================================================================

def generate_synthetic_series(
    symbol: str = DEFAULT_SYMBOL,
    bars: int = DEFAULT_BARS,
    seed: int = DEFAULT_SEED,
    start_price: float = DEFAULT_START_PRICE
) -> PriceSeries:
    """
    Build a reproducible daily OHLCV random walk.

    Log returns are drawn from N(0.0004, 0.015); highs and lows straddle
    the open/close range and volume is lognormal around one million.
    """
    rng = np.random.default_rng(seed)
    returns = rng.normal(0.0004, 0.015, size=bars)
    close = start_price * np.exp(np.cumsum(returns))
    open_ = np.concatenate(([start_price], close[:-1]))

    spread = np.abs(rng.normal(0.0, 0.006, size=bars)) * close
    high = np.maximum(open_, close) + spread
    low = np.minimum(open_, close) - spread
    volume = rng.lognormal(mean=np.log(1_000_000), sigma=0.3, size=bars).round()

    frame = pd.DataFrame(
        {"open": open_, "high": high, "low": low, "close": close, "volume": volume},
        index=pd.bdate_range(end=pd.Timestamp.today().normalize(), periods=bars, name="date"),
    )
    return PriceSeries(frame, symbol=symbol)


def load_series(args: argparse.Namespace, logger: logging.Logger) -> PriceSeries:
    if args.input:
        series = PriceSeries.from_csv(args.input, symbol=args.symbol)
    else:
        logger.info(f"Generating {args.bars} synthetic bars (seed={args.seed})")
        series = generate_synthetic_series(symbol=args.symbol, bars=args.bars, seed=args.seed)
    logger.info(f"{series.symbol}: {len(series):,} bars loaded")
    return series


# =============================================================================
# ANALYSIS
# =============================================================================

def run_analysis(
    series: PriceSeries,
    current_price: Optional[float],
    logger: logging.Logger
) -> Optional[TechnicalReport]:
    """
    Execute the technical analysis for one symbol.

    Parameters
    ----------
    series : PriceSeries
        Validated price history
    current_price : float, optional
        Latest quote; the last close is used when omitted
    logger : logging.Logger
        Logger instance for progress reporting

    Returns
    -------
    Optional[TechnicalReport]
        The report, or None when the history cannot support the analysis
    """
    print_section_header("TECHNICAL ANALYSIS")

    try:
        report = TechnicalAnalyzer().analyze(series, current_price=current_price)
    except IndicatorError as e:
        logger.error(f"Not enough data for analysis: {e}")
        return None

    print_technical_report(report)
    return report


def save_report(report: TechnicalReport, output: Path, logger: logging.Logger) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w") as f:
        json.dump(report.to_dict(), f, indent=2)
    logger.info(f"Saved: {output}")


# =============================================================================
# MAIN
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SpectraScope technical analysis demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run_demo.py --synthetic
    python run_demo.py --input data/aapl.csv --symbol AAPL --output outputs/aapl.json
        """
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--input", "-i",
        type=Path,
        help="CSV file with date/open/high/low/close/volume columns"
    )
    source.add_argument(
        "--synthetic",
        action="store_true",
        help="Use a seeded synthetic random walk instead of a file"
    )

    parser.add_argument(
        "--symbol", "-s",
        type=str,
        default=DEFAULT_SYMBOL,
        help=f"Ticker symbol (default: {DEFAULT_SYMBOL})"
    )
    parser.add_argument(
        "--price", "-p",
        type=float,
        default=None,
        help="Current price (default: last close)"
    )
    parser.add_argument(
        "--bars",
        type=int,
        default=DEFAULT_BARS,
        help=f"Synthetic bars to generate (default: {DEFAULT_BARS})"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=DEFAULT_SEED,
        help=f"Synthetic random seed (default: {DEFAULT_SEED})"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Write the report as JSON to this path"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for command-line execution.

    Returns
    -------
    int
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="  %(asctime)s │ %(levelname)s │ %(message)s",
        datefmt="%H:%M:%S"
    )
    logger = logging.getLogger(__name__)

    start_time = time.time()

    try:
        series = load_series(args, logger)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load price history: {e}")
        return 1

    report = run_analysis(series, args.price, logger)
    if report is None:
        return 1

    if args.output:
        try:
            save_report(report, args.output, logger)
        except OSError as e:
            logger.error(f"Failed to save report: {e}")
            return 1

    logger.info(f"Completed in {time.time() - start_time:.2f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
