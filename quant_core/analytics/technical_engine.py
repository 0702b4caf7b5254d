"""
Technical Analysis Engine
-------------------------
Single entry point over the indicator, level and pattern modules.
Every query accepts a bar series (DataFrame or sequence of OHLCVBar) and
returns fresh value objects; only ``analyze`` is cached.
"""
import logging
from typing import List, Optional

import pandas as pd

from config.settings import CACHE_TTL_SECONDS
from quant_core.analytics import patterns
from quant_core.analytics.indicators.adx import ADX, TRENDING_THRESHOLD
from quant_core.analytics.indicators.bollinger import BollingerBands
from quant_core.analytics.indicators.macd import MACD
from quant_core.analytics.indicators.moving_average import MovingAverage
from quant_core.analytics.indicators.rsi import RSI
from quant_core.analytics.indicators.stochastic import Stochastic, WilliamsR
from quant_core.analytics.indicators.volume import VolumeAnalysis
from quant_core.analytics.models import (
    BollingerBands as BollingerResult, ChartPattern, FibonacciLevels, IndicatorResult,
    MovingAverage as MovingAverageResult, Signal, SupportResistanceLevel, TechnicalScore,
    TechnicalSnapshot, VolumeAnalysis as VolumeResult,
)
from quant_core.analytics.series_math import sma
from quant_core.cache import TTLCache
from quant_core.clock import Clock
from quant_core.events import SeriesLike, as_frame, series_fingerprint

logger = logging.getLogger(__name__)

MIN_SCORE_BARS = 20

# Composite score weights
TREND_WEIGHT = 0.3
MOMENTUM_WEIGHT = 0.3
VOLATILITY_WEIGHT = 0.2
VOLUME_WEIGHT = 0.2


def _clamp_score(score: float) -> float:
    return min(100.0, max(0.0, score))


class TechnicalAnalysisEngine:
    """
    Computes oscillators, trend and volatility indicators, volume flow,
    price levels, chart/candlestick patterns and a composite 0-100 score.
    """

    def __init__(self, cache: Optional[TTLCache] = None, clock: Optional[Clock] = None):
        self.cache = cache or TTLCache(ttl_seconds=CACHE_TTL_SECONDS, clock=clock)

    # ------------------------------------------------------------------
    # Oscillators and trend
    # ------------------------------------------------------------------

    def rsi(self, series: SeriesLike, period: int = 14) -> IndicatorResult:
        return RSI(period).evaluate(as_frame(series))

    def macd(self, series: SeriesLike, fast: int = 12, slow: int = 26, signal: int = 9) -> IndicatorResult:
        return MACD(fast, slow, signal).evaluate(as_frame(series))

    def macd_series(self, series: SeriesLike, fast: int = 12, slow: int = 26, signal: int = 9) -> pd.DataFrame:
        return MACD(fast, slow, signal).calculate(as_frame(series))

    def stochastic(self, series: SeriesLike, k: int = 14, d: int = 3) -> IndicatorResult:
        return Stochastic(k, d).evaluate(as_frame(series))

    def williams_r(self, series: SeriesLike, period: int = 14) -> IndicatorResult:
        return WilliamsR(period).evaluate(as_frame(series))

    def adx(self, series: SeriesLike, period: int = 14) -> IndicatorResult:
        return ADX(period).evaluate(as_frame(series))

    def adx_components(self, series: SeriesLike, period: int = 14) -> pd.DataFrame:
        return ADX(period).calculate(as_frame(series))

    def moving_average(self, series: SeriesLike, period: int = 20, kind: str = "sma") -> MovingAverageResult:
        return MovingAverage(period, kind).calculate(as_frame(series))

    # ------------------------------------------------------------------
    # Volatility and volume
    # ------------------------------------------------------------------

    def bollinger_bands(self, series: SeriesLike, period: int = 20,
                        std_dev_multiplier: float = 2.0) -> BollingerResult:
        return BollingerBands(period, std_dev_multiplier).calculate(as_frame(series))

    def volume_analysis(self, series: SeriesLike) -> VolumeResult:
        return VolumeAnalysis().calculate(as_frame(series))

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def support_resistance(self, series: SeriesLike, lookback: int = 50) -> List[SupportResistanceLevel]:
        return patterns.support_resistance(as_frame(series), lookback)

    def fibonacci_levels(self, series: SeriesLike, lookback: int = 50) -> FibonacciLevels:
        return patterns.fibonacci_levels(as_frame(series), lookback)

    def chart_patterns(self, series: SeriesLike) -> List[ChartPattern]:
        return patterns.chart_patterns(as_frame(series))

    def candlestick_patterns(self, series: SeriesLike) -> List[ChartPattern]:
        return patterns.candlestick_patterns(as_frame(series))

    # ------------------------------------------------------------------
    # Composite score
    # ------------------------------------------------------------------

    def technical_score(self, series: SeriesLike) -> TechnicalScore:
        """
        Weighted blend of trend (30%), momentum (30%), volatility (20%) and
        volume (20%) sub-scores, each clamped to [0, 100] first.
        """
        df = as_frame(series)
        if len(df) < MIN_SCORE_BARS:
            return TechnicalScore(overall=50, trend=50, momentum=50, volatility=50, volume=50)

        indicators = self._core_indicators(df)
        bands = BollingerBands().calculate(df)
        volume = VolumeAnalysis().calculate(df)
        return self._score(df, indicators, bands, volume)

    def analyze(self, series: SeriesLike, symbol: Optional[str] = None) -> TechnicalSnapshot:
        """Every indicator, level, pattern and the score for one series."""
        df = as_frame(series)
        key = ("technical_snapshot", symbol) + series_fingerprint(df)
        return self.cache.get_or_compute(key, lambda: self._snapshot(df))

    def _snapshot(self, df: pd.DataFrame) -> TechnicalSnapshot:
        indicators = self._core_indicators(df)
        bands = BollingerBands().calculate(df)
        volume = VolumeAnalysis().calculate(df)
        if len(df) < MIN_SCORE_BARS:
            score = TechnicalScore(overall=50, trend=50, momentum=50, volatility=50, volume=50)
        else:
            score = self._score(df, indicators, bands, volume)

        return TechnicalSnapshot(
            indicators=indicators,
            bollinger=bands,
            volume=volume,
            support_resistance=patterns.support_resistance(df),
            fibonacci=patterns.fibonacci_levels(df),
            chart_patterns=patterns.chart_patterns(df),
            candlestick_patterns=patterns.candlestick_patterns(df),
            score=score,
        )

    @staticmethod
    def _core_indicators(df: pd.DataFrame) -> dict:
        return {
            'rsi': RSI().evaluate(df),
            'macd': MACD().evaluate(df),
            'stochastic': Stochastic().evaluate(df),
            'williams_r': WilliamsR().evaluate(df),
            'adx': ADX().evaluate(df),
        }

    def _score(self, df: pd.DataFrame, indicators: dict, bands: BollingerResult,
               volume: VolumeResult) -> TechnicalScore:
        trend = _clamp_score(self._trend_score(df, indicators['adx']))
        momentum = _clamp_score(self._momentum_score(indicators))
        volatility = _clamp_score(self._volatility_score(df, bands))
        volume_score = _clamp_score(self._volume_score(volume))

        overall = (
            trend * TREND_WEIGHT
            + momentum * MOMENTUM_WEIGHT
            + volatility * VOLATILITY_WEIGHT
            + volume_score * VOLUME_WEIGHT
        )

        logger.debug(
            f"Technical score {overall:.1f} (trend={trend}, momentum={momentum}, "
            f"volatility={volatility}, volume={volume_score})"
        )

        return TechnicalScore(
            overall=round(overall),
            trend=round(trend),
            momentum=round(momentum),
            volatility=round(volatility),
            volume=round(volume_score),
            components={result.name: result.strength for result in indicators.values()},
        )

    @staticmethod
    def _trend_score(df: pd.DataFrame, adx: IndicatorResult) -> float:
        closes = df['close'].to_numpy(dtype=float)
        price = closes[-1]
        sma20 = sma(closes, 20).last
        sma50 = sma(closes, 50).last

        score = 50.0
        if sma20 is not None and price > sma20:
            score += 10
        if sma50 is not None and price > sma50:
            score += 10
        if sma20 is not None and sma50 is not None and sma20 > sma50:
            score += 10

        # ADX only says a trend exists; the DI pair gives its direction
        if adx.value > TRENDING_THRESHOLD and not adx.insufficient_data:
            if adx.signal == Signal.BUY:
                score += 15
            elif adx.signal == Signal.SELL:
                score -= 15
        return score

    @staticmethod
    def _momentum_score(indicators: dict) -> float:
        score = 50.0
        for key, weight in (('rsi', 15), ('macd', 20), ('stochastic', 10)):
            signal = indicators[key].signal
            if signal == Signal.BUY:
                score += weight
            elif signal == Signal.SELL:
                score -= weight
        return score

    @staticmethod
    def _volatility_score(df: pd.DataFrame, bands: BollingerResult) -> float:
        score = 50.0
        if bands.insufficient_data:
            return score

        price = float(df['close'].iloc[-1])
        upper, lower = bands.upper.last, bands.lower.last
        width = upper - lower
        position = (price - lower) / width if width > 0 else 0.5

        if position > 0.8 or position < 0.2:
            score -= 20  # riding a band
        else:
            score += 10
        if bands.squeeze:
            score += 20
        return score

    @staticmethod
    def _volume_score(volume: VolumeResult) -> float:
        score = 50.0
        if volume.signal == Signal.BUY:
            score += 25
        elif volume.signal == Signal.SELL:
            score -= 25
        return score + volume.strength * 0.25
