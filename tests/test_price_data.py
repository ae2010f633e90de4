from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from spectrascope.price_data import OHLCV_COLUMNS, PricePoint, PriceSeries
from spectrascope.technical_indicators import InvalidInputError


def _records(n: int = 5):
    dates = pd.bdate_range("2024-01-01", periods=n)
    return [
        {
            "date": d.strftime("%Y-%m-%d"),
            "open": 100.0 + i,
            "high": 101.0 + i,
            "low": 99.0 + i,
            "close": 100.5 + i,
            "volume": 1000.0 * (i + 1),
        }
        for i, d in enumerate(dates)
    ]


def test_from_records_sorts_oldest_first() -> None:
    series = PriceSeries.from_records(list(reversed(_records())), symbol="AAPL")
    assert series.symbol == "AAPL"
    assert len(series) == 5
    assert series.dates == sorted(series.dates)
    np.testing.assert_allclose(series.closes, [100.5, 101.5, 102.5, 103.5, 104.5])
    assert series.last_close == pytest.approx(104.5)


def test_column_names_are_case_insensitive() -> None:
    frame = pd.DataFrame(_records()).rename(columns=str.title)
    series = PriceSeries.from_dataframe(frame)
    assert list(series.frame.columns) == OHLCV_COLUMNS
    assert series.frame.index.name == "date"


def test_extra_columns_are_ignored() -> None:
    frame = pd.DataFrame(_records())
    frame["adj_close"] = frame["close"]
    series = PriceSeries(frame)
    assert "adj_close" not in series.frame.columns


def test_missing_column_is_rejected() -> None:
    frame = pd.DataFrame(_records()).drop(columns=["volume"])
    with pytest.raises(InvalidInputError, match="volume"):
        PriceSeries(frame)


def test_non_finite_close_is_rejected() -> None:
    records = _records()
    records[2]["close"] = float("nan")
    with pytest.raises(InvalidInputError):
        PriceSeries.from_records(records)


def test_non_numeric_values_are_rejected() -> None:
    records = _records()
    records[1]["high"] = "n/a"
    with pytest.raises(InvalidInputError):
        PriceSeries.from_records(records)


def test_duplicate_dates_keep_last_bar() -> None:
    records = _records(3)
    duplicate = dict(records[1], close=999.0)
    series = PriceSeries.from_records(records + [duplicate])
    assert len(series) == 3
    assert series.closes[1] == 999.0


def test_timezone_is_dropped() -> None:
    frame = pd.DataFrame(_records())
    frame["date"] = pd.to_datetime(frame["date"]).dt.tz_localize("America/New_York")
    series = PriceSeries(frame)
    assert series.frame.index.tz is None


def test_accessors_return_copies() -> None:
    series = PriceSeries.from_records(_records())
    closes = series.closes
    closes[:] = 0.0
    assert series.last_close == pytest.approx(104.5)


def test_tail_returns_most_recent_bars() -> None:
    series = PriceSeries.from_records(_records(10), symbol="MSFT")
    recent = series.tail(3)
    assert len(recent) == 3
    assert recent.symbol == "MSFT"
    np.testing.assert_allclose(recent.closes, series.closes[-3:])


def test_last_close_of_empty_series_raises() -> None:
    empty = PriceSeries.from_records(_records()).tail(0)
    with pytest.raises(InvalidInputError):
        _ = empty.last_close


def test_points_rebuild_the_same_series() -> None:
    series = PriceSeries.from_records(_records())
    points = series.points()
    assert isinstance(points[0], PricePoint)
    assert points[0].to_dict()["date"] == "2024-01-01"

    rebuilt = PriceSeries.from_points(points)
    pd.testing.assert_frame_equal(rebuilt.frame, series.frame, check_freq=False)


def test_from_csv(tmp_path: Path) -> None:
    path = tmp_path / "prices.csv"
    pd.DataFrame(list(reversed(_records()))).rename(columns=str.upper).to_csv(path, index=False)

    series = PriceSeries.from_csv(path, symbol="TSLA")
    assert series.symbol == "TSLA"
    assert len(series) == 5
    np.testing.assert_allclose(series.volumes, [1000.0, 2000.0, 3000.0, 4000.0, 5000.0])
    np.testing.assert_allclose(series.highs - series.lows, 2.0)
