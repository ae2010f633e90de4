"""
Shared price series for the report and CLI tests.
"""

from typing import Callable

import numpy as np
import pandas as pd
import pytest

from spectrascope.price_data import PriceSeries


def build_uptrend_series(bars: int = 60, symbol: str = "UP") -> PriceSeries:
    """Close rises by 1.0 per bar with a fixed 2.0 high-low range and flat volume."""
    close = 100.0 + np.arange(bars, dtype=float)
    frame = pd.DataFrame(
        {
            "open": close - 0.5,
            "high": close + 1.0,
            "low": close - 1.0,
            "close": close,
            "volume": np.full(bars, 1_000_000.0),
        },
        index=pd.bdate_range("2023-01-02", periods=bars, name="date"),
    )
    return PriceSeries(frame, symbol=symbol)


@pytest.fixture
def make_uptrend_series() -> Callable[..., PriceSeries]:
    return build_uptrend_series


@pytest.fixture
def uptrend_series() -> PriceSeries:
    return build_uptrend_series()


@pytest.fixture
def random_series() -> PriceSeries:
    """One trading year of a seeded lognormal random walk."""
    bars = 252
    rng = np.random.default_rng(3)
    close = 50.0 * np.exp(np.cumsum(rng.normal(0.0, 0.015, size=bars)))
    spread = np.abs(rng.normal(0.0, 0.005, size=bars)) * close
    frame = pd.DataFrame(
        {
            "open": close,
            "high": close + spread,
            "low": close - spread,
            "close": close,
            "volume": rng.lognormal(mean=13.0, sigma=0.3, size=bars),
        },
        index=pd.bdate_range("2022-01-03", periods=bars, name="date"),
    )
    return PriceSeries(frame, symbol="RND")
