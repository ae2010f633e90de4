from __future__ import annotations

import pytest

from spectrascope.config import GlowEffect, OBVTrend, Signal, TrendStrength
from spectrascope.signals import (
    SignalResult,
    calculate_aggregate_score,
    get_adx_signal,
    get_bollinger_signal,
    get_cross_signal,
    get_iv_rank_signal,
    get_macd_crossover_signal,
    get_macd_signal,
    get_obv_signal,
    get_put_call_signal,
    get_rsi_signal,
    get_sma_signal,
    get_stochastic_signal,
    get_volume_signal,
)
from spectrascope.technical_indicators import ADXResult, InvalidInputError


def _result(kind: Signal) -> SignalResult:
    return SignalResult(signal=kind, label=kind.value.title(), description="")


# ---------------------------------------------------------------------------
# Threshold classifiers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "rsi, expected",
    [
        (25.0, Signal.BULLISH),
        (29.99, Signal.BULLISH),
        (30.0, Signal.NEUTRAL),
        (50.0, Signal.NEUTRAL),
        (70.0, Signal.NEUTRAL),
        (75.0, Signal.BEARISH),
    ],
)
def test_rsi_signal_boundaries(rsi: float, expected: Signal) -> None:
    assert get_rsi_signal(rsi).signal is expected


def test_rsi_signal_labels() -> None:
    assert get_rsi_signal(25).label == "Oversold"
    assert get_rsi_signal(75).label == "Overbought"
    assert get_rsi_signal(25).value == 25


@pytest.mark.parametrize(
    "k, expected",
    [(19.9, Signal.BULLISH), (20.0, Signal.NEUTRAL), (80.0, Signal.NEUTRAL), (80.1, Signal.BEARISH)],
)
def test_stochastic_signal_boundaries(k: float, expected: Signal) -> None:
    assert get_stochastic_signal(k, d=50.0).signal is expected


@pytest.mark.parametrize(
    "ratio, expected",
    [(0.5, Signal.BULLISH), (0.7, Signal.NEUTRAL), (1.0, Signal.NEUTRAL), (1.2, Signal.BEARISH)],
)
def test_put_call_signal_boundaries(ratio: float, expected: Signal) -> None:
    assert get_put_call_signal(ratio).signal is expected


@pytest.mark.parametrize(
    "iv_rank, expected",
    [(10.0, Signal.BULLISH), (30.0, Signal.NEUTRAL), (70.0, Signal.NEUTRAL), (85.0, Signal.BEARISH)],
)
def test_iv_rank_signal_boundaries(iv_rank: float, expected: Signal) -> None:
    assert get_iv_rank_signal(iv_rank).signal is expected


def test_iv_rank_value_is_whole_percent() -> None:
    assert get_iv_rank_signal(42.4).value == "42%"


@pytest.mark.parametrize(
    "ratio, expected, label",
    [
        (2.0, Signal.BULLISH, "High Volume"),
        (1.5, Signal.NEUTRAL, "Normal"),
        (0.8, Signal.NEUTRAL, "Normal"),
        (0.5, Signal.BEARISH, "Low Volume"),
    ],
)
def test_volume_signal(ratio: float, expected: Signal, label: str) -> None:
    result = get_volume_signal(ratio)
    assert result.signal is expected
    assert result.label == label


def test_volume_signal_value_is_percent_of_average() -> None:
    assert get_volume_signal(1.234).value == "123%"


# ---------------------------------------------------------------------------
# MACD
# ---------------------------------------------------------------------------

def test_macd_positive_and_rising_is_bullish() -> None:
    assert get_macd_signal(0.5, 0.2).signal is Signal.BULLISH


def test_macd_negative_and_falling_is_bearish() -> None:
    assert get_macd_signal(-0.5, -0.2).signal is Signal.BEARISH


@pytest.mark.parametrize(
    "histogram, prev",
    [(0.5, 0.8), (-0.5, -0.8), (0.0, -0.1), (0.0, 0.1), (0.3, 0.3)],
)
def test_macd_mixed_histogram_is_neutral(histogram: float, prev: float) -> None:
    result = get_macd_signal(histogram, prev)
    assert result.signal is Signal.NEUTRAL
    assert result.description == "MACD showing mixed signals"


def test_macd_crossover_signal() -> None:
    assert get_macd_crossover_signal(1.0, 0.5, 0.4, 0.5).label == "Bullish Cross"
    assert get_macd_crossover_signal(0.4, 0.5, 1.0, 0.5).label == "Bearish Cross"
    assert get_macd_crossover_signal(1.0, 0.5, 0.9, 0.5).label == "Above Signal"

    below = get_macd_crossover_signal(0.1, 0.5, 0.2, 0.5)
    assert below.label == "Below Signal"
    assert below.signal is Signal.BEARISH


# ---------------------------------------------------------------------------
# Moving averages
# ---------------------------------------------------------------------------

def test_sma_signal_above() -> None:
    result = get_sma_signal(110, 100, 20)
    assert result.signal is Signal.BULLISH
    assert result.label == "Above SMA20"
    assert result.value == "+10.0%"


def test_sma_signal_below() -> None:
    result = get_sma_signal(90, 100, 50)
    assert result.signal is Signal.BEARISH
    assert result.label == "Below SMA50"
    assert result.value == "-10.0%"


def test_sma_signal_equal_is_neutral() -> None:
    result = get_sma_signal(100, 100, 20)
    assert result.signal is Signal.NEUTRAL
    assert result.value == "0%"


def test_sma_signal_rejects_zero_average() -> None:
    with pytest.raises(InvalidInputError):
        get_sma_signal(100, 0, 20)


def test_cross_signal() -> None:
    assert get_cross_signal(110, 100).label == "Golden Cross"
    assert get_cross_signal(90, 100).label == "Death Cross"
    assert get_cross_signal(100, 100).signal is Signal.NEUTRAL


# ---------------------------------------------------------------------------
# Bollinger Bands
# ---------------------------------------------------------------------------

def test_bollinger_signal_near_lower_band() -> None:
    result = get_bollinger_signal(price=91, upper=110, middle=100, lower=90)
    assert result.signal is Signal.BULLISH
    assert result.value == "5%"


def test_bollinger_signal_below_lower_band() -> None:
    assert get_bollinger_signal(price=85, upper=110, middle=100, lower=90).signal is Signal.BULLISH


def test_bollinger_signal_near_upper_band() -> None:
    result = get_bollinger_signal(price=109, upper=110, middle=100, lower=90)
    assert result.signal is Signal.BEARISH
    assert result.label == "Upper Band"


def test_bollinger_signal_inside_bands() -> None:
    result = get_bollinger_signal(price=100, upper=110, middle=100, lower=90)
    assert result.signal is Signal.NEUTRAL
    assert result.value == "50%"


def test_bollinger_signal_flat_bands() -> None:
    result = get_bollinger_signal(price=100, upper=100, middle=100, lower=100)
    assert result.signal is Signal.NEUTRAL
    assert result.label == "Flat Bands"
    assert result.value == "50%"


# ---------------------------------------------------------------------------
# Volume trend and ADX
# ---------------------------------------------------------------------------

def test_obv_signal_accepts_enum_and_string() -> None:
    assert get_obv_signal(OBVTrend.RISING).signal is Signal.BULLISH
    assert get_obv_signal("falling").signal is Signal.BEARISH
    assert get_obv_signal(OBVTrend.FLAT).signal is Signal.NEUTRAL


def test_adx_signal_uses_direction() -> None:
    strong_up = ADXResult(adx=40.0, plus_di=30.0, minus_di=10.0,
                          trend=TrendStrength.STRONG, direction=Signal.BULLISH)
    weak_down = ADXResult(adx=22.0, plus_di=12.0, minus_di=20.0,
                          trend=TrendStrength.WEAK, direction=Signal.BEARISH)
    flat = ADXResult(adx=10.0, plus_di=15.0, minus_di=14.0,
                     trend=TrendStrength.NONE, direction=Signal.NEUTRAL)

    assert get_adx_signal(strong_up).label == "Strong Uptrend"
    assert get_adx_signal(weak_down).label == "Weak Downtrend"
    assert get_adx_signal(weak_down).signal is Signal.BEARISH
    assert get_adx_signal(flat).label == "No Trend"
    assert get_adx_signal(flat).value == 10.0


# ---------------------------------------------------------------------------
# Aggregate score
# ---------------------------------------------------------------------------

def test_aggregate_score_strong_bullish_consensus() -> None:
    signals = [_result(Signal.BULLISH)] * 4 + [_result(Signal.BEARISH)]
    score = calculate_aggregate_score(signals)
    assert score.bullish_count == 4
    assert score.bearish_count == 1
    assert score.neutral_count == 0
    assert score.total == 5
    assert score.percentage == pytest.approx(80.0)
    assert score.sentiment is Signal.BULLISH
    assert score.glow_effect is GlowEffect.BULLISH
    assert score.label == "4/5 Bullish"


def test_aggregate_score_bearish_consensus() -> None:
    signals = [Signal.BULLISH] + [Signal.BEARISH] * 3 + [Signal.NEUTRAL]
    score = calculate_aggregate_score(signals)
    assert score.percentage == pytest.approx(20.0)
    assert score.sentiment is Signal.BEARISH
    assert score.glow_effect is GlowEffect.BEARISH


def test_aggregate_score_without_clear_majority_is_neutral() -> None:
    score = calculate_aggregate_score(["bullish", "bullish", "bearish", "bearish", "neutral"])
    assert score.sentiment is Signal.NEUTRAL
    assert score.glow_effect is None
    assert score.percentage == pytest.approx(40.0)


def test_aggregate_score_of_empty_list() -> None:
    score = calculate_aggregate_score([])
    assert score.total == 0
    assert score.percentage == 50.0
    assert score.sentiment is Signal.NEUTRAL
    assert score.glow_effect is None
    assert score.label == "0/0 Bullish"


def test_aggregate_score_counts_sum_to_total() -> None:
    kinds = [Signal.BULLISH, Signal.NEUTRAL, Signal.NEUTRAL, Signal.BEARISH, Signal.BULLISH, Signal.NEUTRAL]
    score = calculate_aggregate_score(kinds)
    assert score.bullish_count + score.bearish_count + score.neutral_count == score.total
    assert 0.0 <= score.percentage <= 100.0
    assert score.sentiment is Signal.NEUTRAL


def test_aggregate_score_ignores_order_and_is_repeatable() -> None:
    kinds = [Signal.BULLISH, Signal.NEUTRAL, Signal.BEARISH, Signal.BULLISH,
             Signal.NEUTRAL, Signal.BULLISH, Signal.BEARISH]
    signals = [_result(kind) for kind in kinds]

    forward = calculate_aggregate_score(signals)
    assert calculate_aggregate_score(list(reversed(signals))) == forward
    assert calculate_aggregate_score(sorted(signals, key=lambda s: s.signal.value)) == forward
    assert calculate_aggregate_score(signals) == forward


@pytest.mark.parametrize("total", [1, 2, 3, 4, 5, 7, 9, 10])
def test_aggregate_score_glow_invariants(total: int) -> None:
    for bullish in range(total + 1):
        kinds = [Signal.BULLISH] * bullish + [Signal.BEARISH] * (total - bullish)
        score = calculate_aggregate_score(kinds)

        assert score.percentage == pytest.approx(100.0 * bullish / total)
        assert 0.0 <= score.percentage <= 100.0
        if score.percentage >= 80.0:
            assert score.glow_effect is GlowEffect.BULLISH
        elif score.percentage <= 20.0:
            assert score.glow_effect is GlowEffect.BEARISH
        else:
            assert score.glow_effect is None


def test_aggregate_score_rejects_unknown_signal() -> None:
    with pytest.raises(InvalidInputError):
        calculate_aggregate_score(["sideways"])


def test_aggregate_score_to_dict() -> None:
    payload = calculate_aggregate_score([Signal.BULLISH]).to_dict()
    assert payload["sentiment"] == "bullish"
    assert payload["glow_effect"] == "glow-bullish"
    assert payload["label"] == "1/1 Bullish"
