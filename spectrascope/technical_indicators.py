"""
Technical Indicator Engine

Pure, deterministic indicator calculations over ordered OHLCV arrays
(oldest bar first). Every function validates its input before computing,
never mutates the caller's arrays and returns plain floats, lists, enums or
small frozen dataclasses that can be serialized to JSON.

INDICATOR FAMILIES
    Momentum
        - RSI: Wilder's Relative Strength Index [0-100]
        - Stochastic Oscillator: %K / %D [0-100]

    Trend
        - SMA / EMA (scalar and charting series)
        - MACD: line, signal line and histogram
        - ADX / DMI: simplified single-DX directional index

    Volatility
        - Bollinger Bands with bandwidth and %B
        - ATR: Wilder-smoothed Average True Range

    Volume
        - Volume ratio against the trailing average
        - OBV: On-Balance Volume with short-term trend

    Position
        - Price versus SMA20/50/200 and EMA12/26, golden/death cross

FAILURE POLICY
    Indicators with a hard mathematical minimum raise InsufficientDataError.
    EMA and MACD return empty series and zero scalars on short input because
    they are building blocks for other indicators and for charts.
    Mismatched array lengths and non-finite values raise InvalidInputError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, List, Sequence, Union

import numpy as np
import pandas as pd

from spectrascope.config import (
    DEFAULTS,
    THRESHOLDS,
    OBVTrend,
    Signal,
    TrendStrength,
    VolumeLevel,
)

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray, pd.Series]


# =============================================================================
# EXCEPTIONS
# =============================================================================

class IndicatorError(ValueError):
    """Base class for indicator input errors."""


class InsufficientDataError(IndicatorError):
    """Input is shorter than the indicator's mathematical minimum."""

    def __init__(self, indicator: str, required: int, actual: int):
        self.indicator = indicator
        self.required = required
        self.actual = actual
        super().__init__(
            f"Need at least {required} data points for {indicator} (got {actual})"
        )


class InvalidInputError(IndicatorError):
    """Malformed input: mismatched lengths, non-finite values, bad periods."""


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class MACDResult:
    """
    MACD scalars plus the full lines for charting.

    The histogram line is aligned with the tail of the MACD line:
    histogram_line[i] == macd_line[len(macd_line) - len(signal_line) + i]
    - signal_line[i].
    """
    macd: float
    signal: float
    histogram: float
    macd_line: List[float] = field(default_factory=list)
    signal_line: List[float] = field(default_factory=list)
    histogram_line: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class BollingerBandsResult:
    """Bollinger Bands for the latest window."""
    upper: float
    middle: float
    lower: float
    width: float                 # (upper - lower) / middle * 100
    percent_b: float             # (price - lower) / (upper - lower), 0.5 on flat bands


@dataclass(frozen=True)
class StochasticResult:
    k: float
    d: float


@dataclass(frozen=True)
class VolumeAnalysis:
    current: float
    average: float
    ratio: float
    level: VolumeLevel


@dataclass(frozen=True)
class OBVResult:
    current: float
    trend: OBVTrend
    values: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class ADXResult:
    """
    Directional movement summary.

    `adx` is the latest DX value rather than a smoothed average of DX; the
    trend thresholds downstream are calibrated against this figure.
    """
    adx: float
    plus_di: float
    minus_di: float
    trend: TrendStrength
    direction: Signal


@dataclass(frozen=True)
class PricePosition:
    """Where the latest close sits relative to the key moving averages."""
    price: float
    sma20: float
    sma50: float
    sma200: float
    ema12: float
    ema26: float
    above_sma20: bool
    above_sma50: bool
    above_sma200: bool
    above_ema12: bool
    above_ema26: bool
    golden_cross: bool           # SMA50 > SMA200
    death_cross: bool            # SMA50 < SMA200


# =============================================================================
# INPUT VALIDATION
# =============================================================================

def _as_array(values: ArrayLike, name: str) -> np.ndarray:
    """Convert input to a finite 1-D float array."""
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must contain numbers: {exc}") from exc

    if arr.ndim != 1:
        raise InvalidInputError(f"{name} must be one-dimensional, got shape {arr.shape}")
    if not np.isfinite(arr).all():
        raise InvalidInputError(f"{name} contains non-finite values")
    return arr


def _check_period(period: int, name: str) -> int:
    if isinstance(period, bool) or not isinstance(period, (int, np.integer)) or period < 1:
        raise InvalidInputError(f"{name} must be a positive integer, got {period!r}")
    return int(period)


def _require_length(arr: np.ndarray, required: int, indicator: str) -> None:
    if arr.size < required:
        raise InsufficientDataError(indicator, required, int(arr.size))


def _require_same_length(indicator: str, **arrays: np.ndarray) -> None:
    lengths = {name: arr.size for name, arr in arrays.items()}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{name}={size}" for name, size in lengths.items())
        raise InvalidInputError(f"{indicator} inputs must have the same length ({detail})")


# =============================================================================
# SMOOTHING PRIMITIVES
# =============================================================================

def _wilder_average(values: np.ndarray, period: int) -> float:
    """
    Wilder-smoothed average of `values`.

    Seeded with the simple mean of the first `period` values, then
    avg = (avg * (period - 1) + x) / period for the remainder, which is an
    exponential average with alpha = 1 / period.
    """
    seed = values[:period].mean()
    if values.size == period:
        return float(seed)

    seeded = pd.Series(np.concatenate(([seed], values[period:])))
    smoothed = seeded.ewm(alpha=1.0 / period, adjust=False).mean()
    return float(smoothed.iloc[-1])


def _ema_array(values: np.ndarray, period: int) -> np.ndarray:
    """SMA-seeded EMA; element 0 corresponds to values[period - 1]."""
    if values.size < period:
        return np.array([], dtype=float)

    seed = values[:period].mean()
    seeded = pd.Series(np.concatenate(([seed], values[period:])))
    return seeded.ewm(alpha=2.0 / (period + 1), adjust=False).mean().to_numpy()


def _true_range(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """True range for bars 1..n-1 (bar 0 has no previous close)."""
    prev_close = closes[:-1]
    return np.maximum.reduce([
        highs[1:] - lows[1:],
        np.abs(highs[1:] - prev_close),
        np.abs(lows[1:] - prev_close),
    ])


# =============================================================================
# MOMENTUM: RSI
# =============================================================================

def calculate_rsi(closes: ArrayLike, period: int = DEFAULTS.rsi_period) -> float:
    """
    Calculate Relative Strength Index using Wilder's smoothing.

    RSI = 100 - (100 / (1 + RS))
    where RS = Average Gain / Average Loss

    Parameters
    ----------
    closes : array-like
        Closing prices, oldest first
    period : int
        Lookback period (default: 14)

    Returns
    -------
    float
        RSI in [0, 100]; exactly 100 when there are no losses

    Raises
    ------
    InsufficientDataError
        Fewer than period + 1 closes
    """
    period = _check_period(period, "period")
    prices = _as_array(closes, "closes")
    _require_length(prices, period + 1, "RSI")

    delta = np.diff(prices)
    gains = np.where(delta > 0, delta, 0.0)
    losses = np.where(delta < 0, -delta, 0.0)

    avg_gain = _wilder_average(gains, period)
    avg_loss = _wilder_average(losses, period)

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    rsi = 100.0 - (100.0 / (1.0 + rs))
    logger.debug(f"RSI({period}) over {prices.size} closes = {rsi:.2f}")
    return float(rsi)


# =============================================================================
# TREND: MOVING AVERAGES
# =============================================================================

def calculate_sma_series(data: ArrayLike, period: int) -> List[float]:
    """
    Simple moving average for every complete window (for charting).

    Element i averages data[i : i + period]. Empty when data is shorter
    than the period.
    """
    period = _check_period(period, "period")
    values = _as_array(data, "data")
    if values.size < period:
        return []
    return pd.Series(values).rolling(window=period).mean().iloc[period - 1:].tolist()


def calculate_sma(data: ArrayLike, period: int) -> float:
    """
    Simple moving average of the trailing `period` values.

    Raises
    ------
    InsufficientDataError
        Fewer than `period` values
    """
    period = _check_period(period, "period")
    values = _as_array(data, "data")
    _require_length(values, period, f"SMA{period}")
    return float(values[-period:].mean())


def calculate_ema_series(data: ArrayLike, period: int) -> List[float]:
    """
    Calculate the EMA series for charting.

    Seeded with the SMA of the first `period` values, then
    ema = (value - ema) * multiplier + ema with multiplier = 2 / (period + 1).
    Element 0 corresponds to data[period - 1].

    Returns an empty list when data is shorter than the period.
    """
    period = _check_period(period, "period")
    values = _as_array(data, "data")
    return _ema_array(values, period).tolist()


def calculate_ema(data: ArrayLike, period: int) -> float:
    """Latest EMA value, or 0.0 when data is shorter than the period."""
    series = calculate_ema_series(data, period)
    return series[-1] if series else 0.0


# =============================================================================
# TREND: MACD
# =============================================================================

def calculate_macd(
    closes: ArrayLike,
    fast: int = DEFAULTS.macd_fast,
    slow: int = DEFAULTS.macd_slow,
    signal_period: int = DEFAULTS.macd_signal
) -> MACDResult:
    """
    Calculate MACD, Signal line, and Histogram.

    MACD = EMA(fast) - EMA(slow)
    Signal = EMA(MACD, signal_period)
    Histogram = MACD - Signal

    Parameters
    ----------
    closes : array-like
        Closing prices, oldest first
    fast, slow, signal_period : int
        Period parameters (default: 12 / 26 / 9)

    Returns
    -------
    MACDResult
        Latest scalars and the full lines. Short input yields empty lines
        and zero scalars instead of an error.
    """
    fast = _check_period(fast, "fast")
    slow = _check_period(slow, "slow")
    signal_period = _check_period(signal_period, "signal_period")
    if fast >= slow:
        raise InvalidInputError(f"fast period ({fast}) must be shorter than slow period ({slow})")

    prices = _as_array(closes, "closes")
    ema_fast = _ema_array(prices, fast)
    ema_slow = _ema_array(prices, slow)

    if ema_slow.size == 0:
        logger.debug(f"MACD needs {slow} closes, got {prices.size}; returning empty result")
        return MACDResult(macd=0.0, signal=0.0, histogram=0.0)

    # Both EMAs end on the latest bar; the fast one starts (slow - fast) bars earlier
    macd_line = ema_fast[slow - fast:] - ema_slow
    signal_line = _ema_array(macd_line, signal_period)
    histogram_line = macd_line[macd_line.size - signal_line.size:] - signal_line

    return MACDResult(
        macd=float(macd_line[-1]),
        signal=float(signal_line[-1]) if signal_line.size else 0.0,
        histogram=float(histogram_line[-1]) if histogram_line.size else 0.0,
        macd_line=macd_line.tolist(),
        signal_line=signal_line.tolist(),
        histogram_line=histogram_line.tolist(),
    )


# =============================================================================
# VOLATILITY: BOLLINGER BANDS
# =============================================================================

def calculate_bollinger_bands(
    closes: ArrayLike,
    period: int = DEFAULTS.bollinger_period,
    std_dev: float = DEFAULTS.bollinger_std_dev
) -> BollingerBandsResult:
    """
    Calculate Bollinger Bands over the trailing window.

    Middle = SMA(close, period)
    Upper = Middle + std_dev * StdDev(close, period)
    Lower = Middle - std_dev * StdDev(close, period)

    The standard deviation is the population deviation (ddof=0) of the same
    window. On a zero-variance window the three bands coincide and %B is
    reported as 0.5.

    Parameters
    ----------
    closes : array-like
        Closing prices, oldest first
    period : int
        Moving average period
    std_dev : float
        Standard deviation multiplier

    Returns
    -------
    BollingerBandsResult
    """
    period = _check_period(period, "period")
    if not np.isfinite(std_dev) or std_dev < 0:
        raise InvalidInputError(f"std_dev must be a non-negative number, got {std_dev!r}")

    prices = _as_array(closes, "closes")
    _require_length(prices, period, "Bollinger Bands")

    window = prices[-period:]
    if window.max() == window.min():
        # mean() can drift by one ulp on a constant window, leaving a
        # rounding-error sigma; pin the bands to the price instead
        middle = float(window[0])
        sigma = 0.0
    else:
        middle = float(window.mean())
        sigma = float(window.std(ddof=0))

    upper = middle + std_dev * sigma
    lower = middle - std_dev * sigma
    band_range = upper - lower

    width = band_range / middle * 100 if middle != 0 else 0.0
    price = float(prices[-1])
    percent_b = (price - lower) / band_range if band_range > 0 else 0.5

    return BollingerBandsResult(
        upper=upper,
        middle=middle,
        lower=lower,
        width=width,
        percent_b=percent_b,
    )


# =============================================================================
# MOMENTUM: STOCHASTIC OSCILLATOR
# =============================================================================

def calculate_stochastic(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    k_period: int = DEFAULTS.stochastic_k,
    d_period: int = DEFAULTS.stochastic_d
) -> StochasticResult:
    """
    Calculate the Stochastic Oscillator (%K and %D).

    %K = 100 * (Close - Lowest Low) / (Highest High - Lowest Low)
    %D = SMA(%K, d_period)

    A window whose highest high equals its lowest low yields %K = 50.
    %D averages the last d_period %K values, or all of them when fewer
    are available.
    """
    k_period = _check_period(k_period, "k_period")
    d_period = _check_period(d_period, "d_period")
    high = _as_array(highs, "highs")
    low = _as_array(lows, "lows")
    close = _as_array(closes, "closes")
    _require_same_length("Stochastic", highs=high, lows=low, closes=close)
    _require_length(close, k_period, "Stochastic")

    highest_high = pd.Series(high).rolling(window=k_period).max().to_numpy()[k_period - 1:]
    lowest_low = pd.Series(low).rolling(window=k_period).min().to_numpy()[k_period - 1:]
    range_hl = highest_high - lowest_low

    flat = range_hl == 0
    safe_range = np.where(flat, 1.0, range_hl)
    k_values = np.where(flat, 50.0, (close[k_period - 1:] - lowest_low) / safe_range * 100.0)

    return StochasticResult(
        k=float(k_values[-1]),
        d=float(k_values[-d_period:].mean()),
    )


# =============================================================================
# VOLUME: RELATIVE VOLUME
# =============================================================================

def analyze_volume(volumes: ArrayLike, period: int = DEFAULTS.volume_period) -> VolumeAnalysis:
    """
    Compare the latest volume with the average of the preceding `period` bars.

    ratio > 1.5 is high volume, ratio < 0.8 is low volume. A zero average
    gives a ratio of 0.
    """
    period = _check_period(period, "period")
    vol = _as_array(volumes, "volumes")
    _require_length(vol, period + 1, "volume analysis")

    current = float(vol[-1])
    average = float(vol[-period - 1:-1].mean())
    ratio = current / average if average > 0 else 0.0

    if ratio > THRESHOLDS.volume_high_ratio:
        level = VolumeLevel.HIGH
    elif ratio < THRESHOLDS.volume_low_ratio:
        level = VolumeLevel.LOW
    else:
        level = VolumeLevel.NORMAL

    return VolumeAnalysis(current=current, average=average, ratio=ratio, level=level)


# =============================================================================
# VOLATILITY: ATR
# =============================================================================

def calculate_atr(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    period: int = DEFAULTS.atr_period
) -> float:
    """
    Calculate Average True Range.

    TR = max(High - Low, |High - Prev Close|, |Low - Prev Close|)
    The first ATR is the simple mean of the first `period` true ranges,
    then Wilder smoothing is applied to the rest.

    Raises
    ------
    InsufficientDataError
        Fewer than period + 1 bars
    """
    period = _check_period(period, "period")
    high = _as_array(highs, "highs")
    low = _as_array(lows, "lows")
    close = _as_array(closes, "closes")
    _require_same_length("ATR", highs=high, lows=low, closes=close)
    _require_length(close, period + 1, "ATR")

    return _wilder_average(_true_range(high, low, close), period)


# =============================================================================
# VOLUME: OBV
# =============================================================================

def calculate_obv(closes: ArrayLike, volumes: ArrayLike) -> OBVResult:
    """
    Calculate On-Balance Volume.

    OBV starts at the first bar's volume, adds volume on up closes,
    subtracts it on down closes and is unchanged on flat closes.

    The trend compares the change over the last five OBV values with their
    mean magnitude: more than +5% is rising, less than -5% is falling.

    Parameters
    ----------
    closes : array-like
        Closing prices
    volumes : array-like
        Volume for the same bars

    Returns
    -------
    OBVResult
    """
    close = _as_array(closes, "closes")
    vol = _as_array(volumes, "volumes")
    _require_same_length("OBV", closes=close, volumes=vol)
    _require_length(close, 1, "OBV")

    direction = np.sign(np.diff(close))
    obv = np.concatenate(([vol[0]], vol[0] + np.cumsum(direction * vol[1:])))

    recent = obv[-DEFAULTS.obv_trend_window:]
    change = recent[-1] - recent[0]
    avg_obv = abs(recent.mean())
    change_pct = change / avg_obv * 100 if avg_obv > 0 else 0.0

    if change_pct > DEFAULTS.obv_trend_pct:
        trend = OBVTrend.RISING
    elif change_pct < -DEFAULTS.obv_trend_pct:
        trend = OBVTrend.FALLING
    else:
        trend = OBVTrend.FLAT

    return OBVResult(current=float(obv[-1]), trend=trend, values=obv.tolist())


# =============================================================================
# TREND: ADX / DMI
# =============================================================================

def calculate_adx(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    period: int = DEFAULTS.adx_period
) -> ADXResult:
    """
    Calculate ADX and Directional Movement indicators.

    +DM / -DM and true range are Wilder-smoothed over `period` to give
    +DI / -DI; DX = |+DI - -DI| / (+DI + -DI) * 100 is reported as ADX
    without the second smoothing pass of the textbook definition.

    A zero smoothed range gives DI values of 0; DI values that sum to 0
    give an ADX of 0.

    Raises
    ------
    InsufficientDataError
        Fewer than period * 2 bars
    """
    period = _check_period(period, "period")
    high = _as_array(highs, "highs")
    low = _as_array(lows, "lows")
    close = _as_array(closes, "closes")
    _require_same_length("ADX", highs=high, lows=low, closes=close)
    _require_length(close, period * 2, "ADX")

    up_move = high[1:] - high[:-1]
    down_move = low[:-1] - low[1:]

    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
    tr = _true_range(high, low, close)

    smoothed_tr = _wilder_average(tr, period)
    smoothed_plus = _wilder_average(plus_dm, period)
    smoothed_minus = _wilder_average(minus_dm, period)

    if smoothed_tr > 0:
        plus_di = smoothed_plus / smoothed_tr * 100.0
        minus_di = smoothed_minus / smoothed_tr * 100.0
    else:
        plus_di = minus_di = 0.0

    di_sum = plus_di + minus_di
    adx = abs(plus_di - minus_di) / di_sum * 100.0 if di_sum > 0 else 0.0

    if adx > DEFAULTS.adx_strong:
        trend = TrendStrength.STRONG
    elif adx > DEFAULTS.adx_weak:
        trend = TrendStrength.WEAK
    else:
        trend = TrendStrength.NONE

    if plus_di > minus_di and adx > DEFAULTS.adx_weak:
        direction = Signal.BULLISH
    elif minus_di > plus_di and adx > DEFAULTS.adx_weak:
        direction = Signal.BEARISH
    else:
        direction = Signal.NEUTRAL

    logger.debug(f"ADX({period}) = {adx:.2f} (+DI {plus_di:.2f}, -DI {minus_di:.2f})")
    return ADXResult(
        adx=float(adx),
        plus_di=float(plus_di),
        minus_di=float(minus_di),
        trend=trend,
        direction=direction,
    )


# =============================================================================
# PRICE POSITION
# =============================================================================

def analyze_price_position(closes: ArrayLike) -> PricePosition:
    """
    Analyze the latest close against SMA20/50/200 and EMA12/26.

    Any average whose window is longer than the history falls back to the
    current price, so the matching "above" flag is False and, with both
    SMA50 and SMA200 missing, neither cross is reported.
    """
    prices = _as_array(closes, "closes")
    _require_length(prices, 1, "price position")
    price = float(prices[-1])

    def sma_or_price(period: int) -> float:
        return calculate_sma(prices, period) if prices.size >= period else price

    def ema_or_price(period: int) -> float:
        return calculate_ema(prices, period) if prices.size >= period else price

    sma20 = sma_or_price(20)
    sma50 = sma_or_price(50)
    sma200 = sma_or_price(200)
    ema12 = ema_or_price(12)
    ema26 = ema_or_price(26)

    return PricePosition(
        price=price,
        sma20=sma20,
        sma50=sma50,
        sma200=sma200,
        ema12=ema12,
        ema26=ema26,
        above_sma20=price > sma20,
        above_sma50=price > sma50,
        above_sma200=price > sma200,
        above_ema12=price > ema12,
        above_ema26=price > ema26,
        golden_cross=sma50 > sma200,
        death_cross=sma50 < sma200,
    )


# =============================================================================
# SERIALIZATION
# =============================================================================

def to_serializable(value: Any) -> Any:
    """Recursively convert result dataclasses, enums and numpy scalars to JSON-ready values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serializable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_serializable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_serializable(item) for item in value]
    if isinstance(value, np.generic):
        return value.item()
    return value
