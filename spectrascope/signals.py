"""
Signal Classification and Aggregation

Maps raw indicator values onto the tri-state bullish / neutral / bearish
schema used by the dashboard, and folds any number of classified signals
into a single consensus score with a glow flag for extreme agreement.

Every classifier uses the fixed boundaries in config.THRESHOLDS. All
comparisons are strict, so a value sitting exactly on a boundary is neutral.
Labels and descriptions are display text; the `signal` field is the
contract.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

from spectrascope.config import (
    AGGREGATION,
    THRESHOLDS,
    GlowEffect,
    OBVTrend,
    Signal,
    TrendStrength,
)
from spectrascope.technical_indicators import ADXResult, InvalidInputError

logger = logging.getLogger(__name__)


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class SignalResult:
    """Classified, human-readable form of one indicator reading."""
    signal: Signal
    label: str
    description: str
    value: Optional[Union[float, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "signal": self.signal.value,
            "label": self.label,
            "description": self.description,
            "value": self.value,
        }


@dataclass(frozen=True)
class AggregateScore:
    """
    Consensus across a list of signals.

    `percentage` is the bullish share in [0, 100] (50 for an empty list);
    `glow_effect` flags consensus at or beyond the configured extremes.
    """
    bullish_count: int
    bearish_count: int
    neutral_count: int
    total: int
    percentage: float
    sentiment: Signal
    glow_effect: Optional[GlowEffect]
    label: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "bullish_count": self.bullish_count,
            "bearish_count": self.bearish_count,
            "neutral_count": self.neutral_count,
            "total": self.total,
            "percentage": self.percentage,
            "sentiment": self.sentiment.value,
            "glow_effect": self.glow_effect.value if self.glow_effect else None,
            "label": self.label,
        }


# =============================================================================
# MOMENTUM SIGNALS
# =============================================================================

def get_rsi_signal(rsi: float) -> SignalResult:
    """RSI < 30 is oversold (bullish), RSI > 70 is overbought (bearish)."""
    if rsi < THRESHOLDS.rsi_oversold:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Oversold",
            description=f"RSI at {rsi:.1f} indicates oversold conditions",
            value=rsi,
        )
    if rsi > THRESHOLDS.rsi_overbought:
        return SignalResult(
            signal=Signal.BEARISH,
            label="Overbought",
            description=f"RSI at {rsi:.1f} indicates overbought conditions",
            value=rsi,
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label="Neutral",
        description=f"RSI at {rsi:.1f} is in neutral territory",
        value=rsi,
    )


def get_stochastic_signal(k: float, d: Optional[float] = None) -> SignalResult:
    """%K < 20 is oversold (bullish), %K > 80 is overbought (bearish). %D is informational."""
    if k < THRESHOLDS.stochastic_oversold:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Oversold",
            description=f"Stochastic %K at {k:.1f} (oversold)",
            value=k,
        )
    if k > THRESHOLDS.stochastic_overbought:
        return SignalResult(
            signal=Signal.BEARISH,
            label="Overbought",
            description=f"Stochastic %K at {k:.1f} (overbought)",
            value=k,
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label="Neutral",
        description=f"Stochastic %K at {k:.1f}",
        value=k,
    )


# =============================================================================
# MACD SIGNALS
# =============================================================================

def get_macd_signal(histogram: float, prev_histogram: float) -> SignalResult:
    """
    Classify the MACD histogram by sign and direction.

    Positive and rising is bullish, negative and falling is bearish,
    anything else (including a zero or unchanged histogram) is mixed.
    """
    if histogram > 0 and histogram > prev_histogram:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Bullish",
            description="MACD histogram positive and rising",
            value=histogram,
        )
    if histogram < 0 and histogram < prev_histogram:
        return SignalResult(
            signal=Signal.BEARISH,
            label="Bearish",
            description="MACD histogram negative and falling",
            value=histogram,
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label="Neutral",
        description="MACD showing mixed signals",
        value=histogram,
    )


def get_macd_crossover_signal(
    macd: float,
    signal: float,
    prev_macd: float,
    prev_signal: float
) -> SignalResult:
    """Classify the MACD line against its signal line, flagging fresh crosses."""
    current_above = macd > signal
    prev_above = prev_macd > prev_signal

    if current_above and not prev_above:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Bullish Cross",
            description="MACD crossed above signal line",
        )
    if not current_above and prev_above:
        return SignalResult(
            signal=Signal.BEARISH,
            label="Bearish Cross",
            description="MACD crossed below signal line",
        )
    if current_above:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Above Signal",
            description="MACD above signal line",
        )
    return SignalResult(
        signal=Signal.BEARISH,
        label="Below Signal",
        description="MACD below signal line",
    )


# =============================================================================
# MOVING AVERAGE SIGNALS
# =============================================================================

def get_sma_signal(price: float, sma: float, period: int) -> SignalResult:
    """
    Price above its SMA is bullish, below is bearish, equal is neutral.

    The value is the signed percentage distance, e.g. "+10.0%".
    """
    if sma == 0:
        raise InvalidInputError(f"SMA{period} must be non-zero to compare against price")

    percent_diff = (price - sma) / sma * 100

    if price > sma:
        return SignalResult(
            signal=Signal.BULLISH,
            label=f"Above SMA{period}",
            description=f"Price {percent_diff:.1f}% above SMA{period}",
            value=f"+{percent_diff:.1f}%",
        )
    if price < sma:
        return SignalResult(
            signal=Signal.BEARISH,
            label=f"Below SMA{period}",
            description=f"Price {abs(percent_diff):.1f}% below SMA{period}",
            value=f"{percent_diff:.1f}%",
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label=f"At SMA{period}",
        description=f"Price at SMA{period}",
        value="0%",
    )


def get_cross_signal(sma50: float, sma200: float) -> SignalResult:
    """Golden cross (SMA50 > SMA200) is bullish, death cross is bearish."""
    if sma50 > sma200:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Golden Cross",
            description="SMA50 above SMA200 (bullish structure)",
        )
    if sma50 < sma200:
        return SignalResult(
            signal=Signal.BEARISH,
            label="Death Cross",
            description="SMA50 below SMA200 (bearish structure)",
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label="Converging",
        description="SMA50 and SMA200 converging",
    )


# =============================================================================
# VOLATILITY SIGNALS
# =============================================================================

def get_bollinger_signal(
    price: float,
    upper: float,
    middle: float,
    lower: float
) -> SignalResult:
    """
    Price near the lower band is bullish, near the upper band is bearish.

    Bullish when price <= lower or %B < 0.10; bearish when price >= upper
    or %B > 0.90. Zero-width bands carry no information and are neutral
    with %B reported as 50%.
    """
    if upper == lower:
        return SignalResult(
            signal=Signal.NEUTRAL,
            label="Flat Bands",
            description=f"Bollinger Bands have zero width around {middle:.2f}",
            value="50%",
        )

    percent_b = (price - lower) / (upper - lower)
    value = f"{percent_b * 100:.0f}%"

    if price <= lower or percent_b < THRESHOLDS.bollinger_lower_pct_b:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Lower Band",
            description="Price at/below lower Bollinger Band",
            value=value,
        )
    if price >= upper or percent_b > THRESHOLDS.bollinger_upper_pct_b:
        return SignalResult(
            signal=Signal.BEARISH,
            label="Upper Band",
            description="Price at/above upper Bollinger Band",
            value=value,
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label="Middle",
        description="Price within Bollinger Bands",
        value=value,
    )


# =============================================================================
# VOLUME SIGNALS
# =============================================================================

def get_volume_signal(ratio: float) -> SignalResult:
    """Volume above 150% of average is bullish interest, below 80% is bearish."""
    percent = f"{ratio * 100:.0f}"

    if ratio > THRESHOLDS.volume_high_ratio:
        return SignalResult(
            signal=Signal.BULLISH,
            label="High Volume",
            description=f"Volume at {percent}% of average (high interest)",
            value=f"{percent}%",
        )
    if ratio < THRESHOLDS.volume_low_ratio:
        return SignalResult(
            signal=Signal.BEARISH,
            label="Low Volume",
            description=f"Volume at {percent}% of average (low interest)",
            value=f"{percent}%",
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label="Normal",
        description=f"Volume at {percent}% of average",
        value=f"{percent}%",
    )


def get_obv_signal(trend: OBVTrend) -> SignalResult:
    """Rising OBV (accumulation) is bullish, falling OBV (distribution) is bearish."""
    trend = OBVTrend(trend)
    if trend is OBVTrend.RISING:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Rising",
            description="OBV trending up (accumulation)",
        )
    if trend is OBVTrend.FALLING:
        return SignalResult(
            signal=Signal.BEARISH,
            label="Falling",
            description="OBV trending down (distribution)",
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label="Flat",
        description="OBV flat (no clear accumulation/distribution)",
    )


# =============================================================================
# TREND STRENGTH SIGNAL
# =============================================================================

def get_adx_signal(adx: ADXResult) -> SignalResult:
    """Use the ADX direction as the signal; the label names the trend strength."""
    strength = "Strong" if adx.trend is TrendStrength.STRONG else "Weak"

    if adx.direction is Signal.BULLISH:
        label = f"{strength} Uptrend"
        description = f"ADX at {adx.adx:.1f} with +DI above -DI"
    elif adx.direction is Signal.BEARISH:
        label = f"{strength} Downtrend"
        description = f"ADX at {adx.adx:.1f} with -DI above +DI"
    else:
        label = "No Trend"
        description = f"ADX at {adx.adx:.1f} shows no directional trend"

    return SignalResult(
        signal=adx.direction,
        label=label,
        description=description,
        value=adx.adx,
    )


# =============================================================================
# OPTIONS SIGNALS
# =============================================================================

def get_put_call_signal(ratio: float) -> SignalResult:
    """Put/Call ratio < 0.7 is bullish, > 1.0 is bearish."""
    if ratio < THRESHOLDS.put_call_bullish:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Call Heavy",
            description=f"P/C ratio at {ratio:.2f} (bullish sentiment)",
            value=ratio,
        )
    if ratio > THRESHOLDS.put_call_bearish:
        return SignalResult(
            signal=Signal.BEARISH,
            label="Put Heavy",
            description=f"P/C ratio at {ratio:.2f} (bearish sentiment)",
            value=ratio,
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label="Balanced",
        description=f"P/C ratio at {ratio:.2f} (neutral)",
        value=ratio,
    )


def get_iv_rank_signal(iv_rank: float) -> SignalResult:
    """
    IV Rank below 30% means cheap options (bullish for buyers); above 70%
    means expensive options (bearish).
    """
    percent = f"{iv_rank:.0f}%"

    if iv_rank < THRESHOLDS.iv_rank_low:
        return SignalResult(
            signal=Signal.BULLISH,
            label="Low IV",
            description=f"IV Rank at {percent} (options cheap)",
            value=percent,
        )
    if iv_rank > THRESHOLDS.iv_rank_high:
        return SignalResult(
            signal=Signal.BEARISH,
            label="High IV",
            description=f"IV Rank at {percent} (options expensive)",
            value=percent,
        )
    return SignalResult(
        signal=Signal.NEUTRAL,
        label="Normal IV",
        description=f"IV Rank at {percent}",
        value=percent,
    )


# =============================================================================
# AGGREGATE SCORE
# =============================================================================

def _signal_of(item: Union[SignalResult, Signal, str]) -> Signal:
    if isinstance(item, SignalResult):
        return item.signal
    try:
        return Signal(item)
    except ValueError as exc:
        raise InvalidInputError(f"Not a signal: {item!r}") from exc


def calculate_aggregate_score(
    signals: Iterable[Union[SignalResult, Signal, str]]
) -> AggregateScore:
    """
    Fold a list of signals into a consensus score.

    Parameters
    ----------
    signals : iterable
        SignalResult objects (bare Signal members or their string values
        are accepted too)

    Returns
    -------
    AggregateScore
        Counts, bullish percentage (50 when empty), the sentiment whose
        count strictly exceeds both others (else neutral), the glow effect
        and a "{bullish}/{total} Bullish" label.
    """
    kinds = [_signal_of(item) for item in signals]

    bullish_count = kinds.count(Signal.BULLISH)
    bearish_count = kinds.count(Signal.BEARISH)
    neutral_count = kinds.count(Signal.NEUTRAL)
    total = len(kinds)

    if total > 0:
        percentage = 100.0 * bullish_count / total
    else:
        percentage = AGGREGATION.empty_percentage

    if bullish_count > bearish_count and bullish_count > neutral_count:
        sentiment = Signal.BULLISH
    elif bearish_count > bullish_count and bearish_count > neutral_count:
        sentiment = Signal.BEARISH
    else:
        sentiment = Signal.NEUTRAL

    glow_effect: Optional[GlowEffect] = None
    if percentage >= AGGREGATION.glow_bullish_pct:
        glow_effect = GlowEffect.BULLISH
    elif percentage <= AGGREGATION.glow_bearish_pct:
        glow_effect = GlowEffect.BEARISH

    return AggregateScore(
        bullish_count=bullish_count,
        bearish_count=bearish_count,
        neutral_count=neutral_count,
        total=total,
        percentage=percentage,
        sentiment=sentiment,
        glow_effect=glow_effect,
        label=f"{bullish_count}/{total} Bullish",
    )
