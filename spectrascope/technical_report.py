"""
Technical Intelligence Report

End-to-end technical analysis for one symbol: computes the indicator set
from a PriceSeries, classifies each reading, aggregates the signals and
derives the trend, support/resistance proximity, confidence and a short
narrative summary consumed by the dashboard and the scenario reports.

PIPELINE
    PriceSeries -> indicators -> List[SignalResult] -> AggregateScore
                -> TechnicalReport
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from spectrascope.config import (
    REPORT,
    VERSION,
    ReportSettings,
    RSIZone,
    Signal,
    THRESHOLDS,
    TrendDirection,
)
from spectrascope.price_data import PriceSeries
from spectrascope.signals import (
    AggregateScore,
    SignalResult,
    calculate_aggregate_score,
    get_adx_signal,
    get_bollinger_signal,
    get_cross_signal,
    get_macd_signal,
    get_obv_signal,
    get_rsi_signal,
    get_sma_signal,
    get_stochastic_signal,
    get_volume_signal,
)
from spectrascope.technical_indicators import (
    IndicatorError,
    InsufficientDataError,
    PricePosition,
    analyze_price_position,
    analyze_volume,
    calculate_adx,
    calculate_atr,
    calculate_bollinger_bands,
    calculate_ema,
    calculate_macd,
    calculate_obv,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    to_serializable,
)

logger = logging.getLogger(__name__)

SOURCE: str = "technical-analysis"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class TechnicalIndicators:
    """Snapshot of the latest indicator readings for display."""
    rsi: float
    rsi_zone: RSIZone
    macd: float
    macd_signal: float
    macd_histogram: float
    macd_trend: Signal
    sma20: float
    sma20_above: bool
    sma50: float
    sma50_above: bool
    ema12: float
    ema26: float
    bollinger_upper: float
    bollinger_middle: float
    bollinger_lower: float
    bollinger_percent_b: float
    atr: float
    volume_ratio: float
    sma200: Optional[float] = None
    sma200_above: Optional[bool] = None
    stochastic_k: Optional[float] = None
    stochastic_d: Optional[float] = None
    obv_trend: Optional[str] = None
    adx: Optional[float] = None


@dataclass(frozen=True)
class PriceContext:
    near_support: bool
    near_resistance: bool
    trend_direction: TrendDirection


@dataclass(frozen=True)
class TechnicalReportData:
    indicators: TechnicalIndicators
    signals: List[SignalResult]
    aggregate_score: AggregateScore
    price_context: PriceContext


@dataclass(frozen=True)
class TechnicalReport:
    """
    Complete technical report for one symbol.

    Confidence is an integer in [60, 95]: technical analysis alone never
    claims certainty.
    """
    symbol: str
    timestamp: str
    confidence: int
    data: TechnicalReportData
    summary: str
    source: str = SOURCE
    bars_analyzed: int = 0
    version: str = field(default=VERSION)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "symbol": self.symbol,
            "source": self.source,
            "timestamp": self.timestamp,
            "confidence": self.confidence,
            "bars_analyzed": self.bars_analyzed,
            "version": self.version,
            "summary": self.summary,
            "data": {
                "indicators": to_serializable(self.data.indicators),
                "signals": [signal.to_dict() for signal in self.data.signals],
                "aggregate_score": self.data.aggregate_score.to_dict(),
                "price_context": to_serializable(self.data.price_context),
            },
        }


# =============================================================================
# HELPERS
# =============================================================================

def classify_rsi_zone(rsi: float) -> RSIZone:
    if rsi < THRESHOLDS.rsi_oversold:
        return RSIZone.OVERSOLD
    if rsi > THRESHOLDS.rsi_overbought:
        return RSIZone.OVERBOUGHT
    return RSIZone.NEUTRAL


def determine_trend_direction(position: PricePosition) -> TrendDirection:
    """
    Trend from price position relative to SMA20 and SMA50.

    Above both is an uptrend and below both a downtrend, whether or not
    the golden/death cross confirms it; anything mixed is sideways.
    """
    if position.above_sma20 and position.above_sma50:
        return TrendDirection.UPTREND
    if not position.above_sma20 and not position.above_sma50:
        return TrendDirection.DOWNTREND
    return TrendDirection.SIDEWAYS


def calculate_technical_confidence(
    aggregate: AggregateScore,
    settings: ReportSettings = REPORT
) -> int:
    """Scale signal agreement into the 60-95 confidence range."""
    if aggregate.total == 0:
        return int(round(settings.base_confidence))

    agreeing = max(aggregate.bullish_count, aggregate.bearish_count)
    agreement_ratio = agreeing / aggregate.total
    return int(round(settings.base_confidence + agreement_ratio * settings.confidence_span))


def generate_technical_summary(symbol: str, data: TechnicalReportData) -> str:
    """Human-readable summary of the technical picture."""
    indicators = data.indicators
    aggregate = data.aggregate_score
    parts: List[str] = [
        f"{symbol} shows {aggregate.sentiment.value} signals ({aggregate.label})."
    ]

    if indicators.rsi_zone is RSIZone.OVERSOLD:
        parts.append(f"RSI at {indicators.rsi:.1f} indicates oversold conditions.")
    elif indicators.rsi_zone is RSIZone.OVERBOUGHT:
        parts.append(f"RSI at {indicators.rsi:.1f} suggests overbought conditions.")

    momentum = "bullish" if indicators.sma20_above else "bearish"
    parts.append(
        f"Price is in a {data.price_context.trend_direction.value} with {momentum} momentum."
    )

    if indicators.macd_trend is Signal.BULLISH:
        parts.append("MACD shows bullish momentum.")
    elif indicators.macd_trend is Signal.BEARISH:
        parts.append("MACD indicates bearish pressure.")

    return " ".join(parts)


# =============================================================================
# ANALYZER
# =============================================================================

class TechnicalAnalyzer:
    """
    Orchestrates indicator computation, classification and aggregation.

    Usage
    -----
    >>> analyzer = TechnicalAnalyzer()
    >>> report = analyzer.analyze(series, current_price=187.2)
    >>> print(report.data.aggregate_score.label)
    """

    def __init__(self, settings: ReportSettings = REPORT):
        self.settings = settings

    def analyze(
        self,
        series: PriceSeries,
        current_price: Optional[float] = None
    ) -> TechnicalReport:
        """
        Build the technical report for one symbol.

        Parameters
        ----------
        series : PriceSeries
            Price history, at least `settings.min_bars` bars
        current_price : float, optional
            Latest quote; defaults to the last close

        Returns
        -------
        TechnicalReport

        Raises
        ------
        InsufficientDataError
            History shorter than `settings.min_bars`
        """
        bars = len(series)
        if bars < self.settings.min_bars:
            raise InsufficientDataError("technical report", self.settings.min_bars, bars)

        closes = series.closes
        highs = series.highs
        lows = series.lows
        volumes = series.volumes
        price = float(current_price) if current_price is not None else float(closes[-1])

        # 1. Core indicators
        rsi = calculate_rsi(closes)
        macd = calculate_macd(closes)
        sma20 = calculate_sma(closes, 20)
        sma50 = calculate_sma(closes, 50)
        bollinger = calculate_bollinger_bands(closes)
        volume = analyze_volume(volumes)
        atr = calculate_atr(highs, lows, closes)
        position = analyze_price_position(closes)

        prev_histogram = macd.histogram_line[-2] if len(macd.histogram_line) >= 2 else 0.0

        signals: List[SignalResult] = [
            get_rsi_signal(rsi),
            get_macd_signal(macd.histogram, prev_histogram),
            get_sma_signal(price, sma20, 20),
            get_sma_signal(price, sma50, 50),
            get_bollinger_signal(price, bollinger.upper, bollinger.middle, bollinger.lower),
            get_volume_signal(volume.ratio),
        ]

        # 2. Extended indicators
        sma200: Optional[float] = None
        stochastic = obv = adx = None
        if self.settings.include_extended_signals:
            stochastic = calculate_stochastic(highs, lows, closes)
            obv = calculate_obv(closes, volumes)
            adx = calculate_adx(highs, lows, closes)
            signals.extend([
                get_stochastic_signal(stochastic.k, stochastic.d),
                get_obv_signal(obv.trend),
                get_adx_signal(adx),
            ])
            if bars >= self.settings.long_term_bars:
                sma200 = calculate_sma(closes, 200)
                signals.append(get_cross_signal(sma50, sma200))

        # 3. Aggregate and context
        aggregate = calculate_aggregate_score(signals)

        indicators = TechnicalIndicators(
            rsi=rsi,
            rsi_zone=classify_rsi_zone(rsi),
            macd=macd.macd,
            macd_signal=macd.signal,
            macd_histogram=macd.histogram,
            macd_trend=signals[1].signal,
            sma20=sma20,
            sma20_above=price > sma20,
            sma50=sma50,
            sma50_above=price > sma50,
            ema12=calculate_ema(closes, 12),
            ema26=calculate_ema(closes, 26),
            bollinger_upper=bollinger.upper,
            bollinger_middle=bollinger.middle,
            bollinger_lower=bollinger.lower,
            bollinger_percent_b=bollinger.percent_b,
            atr=atr,
            volume_ratio=volume.ratio,
            sma200=sma200,
            sma200_above=(price > sma200) if sma200 is not None else None,
            stochastic_k=stochastic.k if stochastic else None,
            stochastic_d=stochastic.d if stochastic else None,
            obv_trend=obv.trend.value if obv else None,
            adx=adx.adx if adx else None,
        )

        price_context = PriceContext(
            near_support=price <= bollinger.lower * self.settings.support_band_tolerance,
            near_resistance=price >= bollinger.upper * self.settings.resistance_band_tolerance,
            trend_direction=determine_trend_direction(position),
        )

        data = TechnicalReportData(
            indicators=indicators,
            signals=signals,
            aggregate_score=aggregate,
            price_context=price_context,
        )

        report = TechnicalReport(
            symbol=series.symbol,
            timestamp=datetime.now().isoformat(),
            confidence=calculate_technical_confidence(aggregate, self.settings),
            data=data,
            summary=generate_technical_summary(series.symbol, data),
            bars_analyzed=bars,
        )

        logger.info(
            f"{series.symbol}: {aggregate.label}, sentiment {aggregate.sentiment.value}, "
            f"confidence {report.confidence}"
        )
        return report


def gather_technical_intelligence(
    series: PriceSeries,
    current_price: Optional[float] = None,
    settings: ReportSettings = REPORT
) -> Optional[TechnicalReport]:
    """
    Run the analyzer, returning None when the history cannot support it.

    Callers show "Not enough data for analysis" for a None result.
    """
    try:
        return TechnicalAnalyzer(settings).analyze(series, current_price=current_price)
    except IndicatorError as exc:
        logger.warning(f"[Technical] Skipping {series.symbol}: {exc}")
        return None


# =============================================================================
# REPORT PRINTING
# =============================================================================

def print_technical_report(report: TechnicalReport) -> None:
    """
    Print a technical report to console.

    Parameters
    ----------
    report : TechnicalReport
        Output from TechnicalAnalyzer.analyze()
    """
    data = report.data
    aggregate = data.aggregate_score
    indicators = data.indicators

    print("\n" + "=" * 70)
    print("TECHNICAL ANALYSIS REPORT")
    print("=" * 70)
    print(f"Symbol: {report.symbol}")
    print(f"Bars analyzed: {report.bars_analyzed}")
    print(f"Generated: {report.timestamp}")
    print(f"Version: {report.version}")

    print("\n" + "-" * 70)
    print("OVERALL SIGNAL")
    print("-" * 70)
    print(f"Sentiment: {aggregate.sentiment.value.upper()} ({aggregate.label})")
    print(f"Bullish share: {aggregate.percentage:.0f}%")
    if aggregate.glow_effect:
        print(f"Highlight: {aggregate.glow_effect.value}")
    print(f"Confidence: {report.confidence}")
    print(f"Trend: {data.price_context.trend_direction.value}")
    if data.price_context.near_support:
        print("  ! Near lower Bollinger Band (support)")
    if data.price_context.near_resistance:
        print("  ! Near upper Bollinger Band (resistance)")

    print("\n" + "-" * 70)
    print("SIGNALS")
    print("-" * 70)
    for signal in data.signals:
        if isinstance(signal.value, float):
            value = f" [{signal.value:.2f}]"
        elif signal.value is not None:
            value = f" [{signal.value}]"
        else:
            value = ""
        print(f"  {signal.signal.value.upper():<8} {signal.label:<16}{value}")
        print(f"           -> {signal.description}")

    print("\n" + "-" * 70)
    print("KEY LEVELS")
    print("-" * 70)
    print(f"  SMA20: {indicators.sma20:.2f}   SMA50: {indicators.sma50:.2f}")
    if indicators.sma200 is not None:
        print(f"  SMA200: {indicators.sma200:.2f}")
    print(f"  Bollinger: {indicators.bollinger_lower:.2f} / "
          f"{indicators.bollinger_middle:.2f} / {indicators.bollinger_upper:.2f}")
    print(f"  ATR: {indicators.atr:.2f}")

    print("\n" + "-" * 70)
    print("SUMMARY")
    print("-" * 70)
    print(f"  {report.summary}")
    print("\n" + "=" * 70)
