"""
Configuration Module for the SpectraScope Technical Core

This module centralizes the enumerations, default indicator periods and
classification thresholds used by the indicator engine, the signal
classifier and the technical report pipeline.

All "magic numbers" live here to ensure:
1. Single source of truth for every threshold
2. Easy review of boundaries without touching analysis code
3. Consistency between the engine, the classifiers and the report
"""

from dataclasses import dataclass
from enum import Enum


VERSION: str = "1.0.0"


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Signal(Enum):
    """Tri-state semantic signal produced by every classifier."""
    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"


class GlowEffect(Enum):
    """Highlight flag for extreme consensus among aggregated signals."""
    BULLISH = "glow-bullish"
    BEARISH = "glow-bearish"


class OBVTrend(Enum):
    """Short-term direction of On-Balance Volume."""
    RISING = "rising"
    FALLING = "falling"
    FLAT = "flat"


class TrendStrength(Enum):
    """ADX trend strength bucket."""
    STRONG = "strong"
    WEAK = "weak"
    NONE = "none"


class VolumeLevel(Enum):
    """Current volume relative to its trailing average."""
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class RSIZone(Enum):
    """RSI zone as shown on the indicator snapshot."""
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"
    OVERBOUGHT = "overbought"


class TrendDirection(Enum):
    """Price trend derived from moving-average position."""
    UPTREND = "uptrend"
    DOWNTREND = "downtrend"
    SIDEWAYS = "sideways"


# =============================================================================
# INDICATOR DEFAULTS
# =============================================================================

@dataclass(frozen=True)
class IndicatorDefaults:
    """Conventional lookback periods for each indicator."""

    rsi_period: int = 14

    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9

    bollinger_period: int = 20
    bollinger_std_dev: float = 2.0

    stochastic_k: int = 14
    stochastic_d: int = 3

    atr_period: int = 14
    adx_period: int = 14

    volume_period: int = 20
    obv_trend_window: int = 5
    obv_trend_pct: float = 5.0

    # ADX trend strength buckets
    adx_strong: float = 25.0
    adx_weak: float = 20.0


# =============================================================================
# CLASSIFIER THRESHOLDS
# =============================================================================

@dataclass(frozen=True)
class SignalThresholds:
    """
    Fixed boundaries used by the signal classifier.

    Every comparison is strict: a value sitting exactly on a boundary is
    neutral (RSI 30.0 is not oversold).
    """

    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0

    bollinger_lower_pct_b: float = 0.10
    bollinger_upper_pct_b: float = 0.90

    stochastic_oversold: float = 20.0
    stochastic_overbought: float = 80.0

    volume_high_ratio: float = 1.5
    volume_low_ratio: float = 0.8

    put_call_bullish: float = 0.7
    put_call_bearish: float = 1.0

    iv_rank_low: float = 30.0
    iv_rank_high: float = 70.0


@dataclass(frozen=True)
class AggregationThresholds:
    """Bullish-percentage cut-offs for the glow effect (inclusive)."""

    glow_bullish_pct: float = 80.0
    glow_bearish_pct: float = 20.0
    empty_percentage: float = 50.0


# =============================================================================
# REPORT SETTINGS
# =============================================================================

@dataclass(frozen=True)
class ReportSettings:
    """Settings for the per-symbol technical report."""

    # SMA50 is the longest hard requirement of the core signal set
    min_bars: int = 50
    long_term_bars: int = 200

    support_band_tolerance: float = 1.02
    resistance_band_tolerance: float = 0.98

    base_confidence: float = 60.0
    confidence_span: float = 35.0

    include_extended_signals: bool = True


# =============================================================================
# GLOBAL CONFIGURATION INSTANCES
# =============================================================================

DEFAULTS = IndicatorDefaults()
THRESHOLDS = SignalThresholds()
AGGREGATION = AggregationThresholds()
REPORT = ReportSettings()
