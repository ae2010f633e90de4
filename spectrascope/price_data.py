"""
Price Series Container

Normalizes OHLCV bars delivered by market-data collaborators into an
ascending, validated series that the indicator engine can consume as
parallel numpy arrays.

Providers disagree on column casing and on ordering (most return the most
recent bar first); PriceSeries always reorders oldest to newest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Union

import numpy as np
import pandas as pd

from spectrascope.technical_indicators import InvalidInputError

logger = logging.getLogger(__name__)

OHLCV_COLUMNS: List[str] = ["open", "high", "low", "close", "volume"]


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class PricePoint:
    """One trading bar."""
    date: pd.Timestamp
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "date": self.date.strftime("%Y-%m-%d"),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


# =============================================================================
# PRICE SERIES
# =============================================================================

class PriceSeries:
    """
    Ordered OHLCV history for one symbol.

    Usage
    -----
    >>> series = PriceSeries.from_csv("aapl.csv", symbol="AAPL")
    >>> rsi = calculate_rsi(series.closes)
    """

    def __init__(self, frame: pd.DataFrame, symbol: str = "UNKNOWN"):
        """
        Parameters
        ----------
        frame : pd.DataFrame
            OHLCV data indexed by date. Column names are matched
            case-insensitively; a `date` column is used as the index when
            the frame is not already date-indexed.
        symbol : str
            Ticker symbol (for reporting)
        """
        self.symbol = symbol
        self._frame = self._normalize(frame)
        logger.debug(f"{symbol}: loaded {len(self._frame)} bars")

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def from_dataframe(cls, frame: pd.DataFrame, symbol: str = "UNKNOWN") -> "PriceSeries":
        return cls(frame, symbol=symbol)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        symbol: str = "UNKNOWN"
    ) -> "PriceSeries":
        """Build from dicts with date/open/high/low/close/volume keys."""
        return cls(pd.DataFrame(list(records)), symbol=symbol)

    @classmethod
    def from_points(cls, points: Iterable[PricePoint], symbol: str = "UNKNOWN") -> "PriceSeries":
        return cls.from_records((point.to_dict() for point in points), symbol=symbol)

    @classmethod
    def from_csv(cls, path: Union[str, Path], symbol: str = "UNKNOWN") -> "PriceSeries":
        """Load a CSV with a date column plus OHLCV columns."""
        path = Path(path)
        logger.info(f"Loading price history from {path}")
        return cls(pd.read_csv(path), symbol=symbol)

    # -------------------------------------------------------------------------
    # Normalization
    # -------------------------------------------------------------------------

    @staticmethod
    def _normalize(frame: pd.DataFrame) -> pd.DataFrame:
        df = frame.copy()
        df.columns = [str(col).strip().lower() for col in df.columns]

        if "date" in df.columns:
            df = df.set_index("date")
        if not isinstance(df.index, pd.DatetimeIndex):
            try:
                df.index = pd.to_datetime(df.index)
            except (TypeError, ValueError) as exc:
                raise InvalidInputError(f"Could not parse bar dates: {exc}") from exc
        if df.index.tz is not None:
            df.index = df.index.tz_localize(None)
        df.index.name = "date"

        missing = [col for col in OHLCV_COLUMNS if col not in df.columns]
        if missing:
            raise InvalidInputError(f"Missing required columns: {missing}")

        df = df[OHLCV_COLUMNS].dropna(how="all")
        try:
            df = df.astype(float)
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"OHLCV columns must be numeric: {exc}") from exc

        if not np.isfinite(df["close"].to_numpy()).all():
            raise InvalidInputError("close column contains missing or non-finite values")

        duplicated = df.index.duplicated(keep="last")
        if duplicated.any():
            logger.warning(f"Dropping {int(duplicated.sum())} duplicate bar(s)")
            df = df[~duplicated]

        return df.sort_index()

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._frame)

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def dates(self) -> List[pd.Timestamp]:
        return list(self._frame.index)

    @property
    def closes(self) -> np.ndarray:
        return self._frame["close"].to_numpy(copy=True)

    @property
    def highs(self) -> np.ndarray:
        return self._frame["high"].to_numpy(copy=True)

    @property
    def lows(self) -> np.ndarray:
        return self._frame["low"].to_numpy(copy=True)

    @property
    def volumes(self) -> np.ndarray:
        return self._frame["volume"].to_numpy(copy=True)

    @property
    def last_close(self) -> float:
        if self._frame.empty:
            raise InvalidInputError(f"{self.symbol}: price series is empty")
        return float(self._frame["close"].iloc[-1])

    def tail(self, bars: int) -> "PriceSeries":
        """Most recent `bars` bars as a new series."""
        return PriceSeries(self._frame.tail(bars), symbol=self.symbol)

    def points(self) -> List[PricePoint]:
        return [
            PricePoint(
                date=date,
                open=row.open,
                high=row.high,
                low=row.low,
                close=row.close,
                volume=row.volume,
            )
            for date, row in zip(self._frame.index, self._frame.itertuples(index=False))
        ]
