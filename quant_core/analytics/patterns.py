"""
Price Structure Recognition
---------------------------
Support/resistance clustering, Fibonacci retracements, chart patterns and
candlestick patterns.

Chart and candlestick detectors are rule-based flags with a fixed confidence
per pattern type, not statistically fitted probabilities. Pattern indices are
positions inside the trailing slice each detector inspects.
"""
import logging
from typing import List, NamedTuple, Optional

import numpy as np
import pandas as pd

from quant_core.analytics.models import (
    ChartPattern, FibonacciLevel, FibonacciLevels, LevelType, PatternType,
    SupportResistanceLevel,
)
from quant_core.analytics.series_math import relative_change
from quant_core.errors import enforce_positive_period

logger = logging.getLogger(__name__)

LEVEL_TOLERANCE = 0.02
FIB_RATIOS = (0.0, 0.236, 0.382, 0.5, 0.618, 0.786, 1.0)
CANDLE_LOOKBACK = 10
MIN_PATTERN_BARS = 20


class Extremum(NamedTuple):
    price: float
    index: int


# ---------------------------------------------------------------------------
# Local extrema
# ---------------------------------------------------------------------------

def find_peaks(highs: np.ndarray, distance: int) -> List[Extremum]:
    """Bars whose high strictly exceeds the ``distance`` bars on each side."""
    peaks = []
    for i in range(distance, len(highs) - distance):
        left = highs[i - distance:i]
        right = highs[i + 1:i + 1 + distance]
        if (highs[i] > left).all() and (highs[i] > right).all():
            peaks.append(Extremum(float(highs[i]), i))
    return peaks


def find_troughs(lows: np.ndarray, distance: int) -> List[Extremum]:
    """Bars whose low strictly undercuts the ``distance`` bars on each side."""
    troughs = []
    for i in range(distance, len(lows) - distance):
        left = lows[i - distance:i]
        right = lows[i + 1:i + 1 + distance]
        if (lows[i] < left).all() and (lows[i] < right).all():
            troughs.append(Extremum(float(lows[i]), i))
    return troughs


def group_levels(points: List[Extremum], tolerance: float = LEVEL_TOLERANCE) -> List[List[Extremum]]:
    """Greedy clustering: each unused point collects later points within tolerance of it."""
    groups = []
    used = set()
    for i, anchor in enumerate(points):
        if i in used:
            continue
        group = [anchor]
        used.add(i)
        for j in range(i + 1, len(points)):
            if j in used or anchor.price == 0:
                continue
            if abs(anchor.price - points[j].price) / anchor.price <= tolerance:
                group.append(points[j])
                used.add(j)
        groups.append(group)
    return groups


# ---------------------------------------------------------------------------
# Levels
# ---------------------------------------------------------------------------

def support_resistance(df: pd.DataFrame, lookback: int = 50) -> List[SupportResistanceLevel]:
    enforce_positive_period("lookback", lookback)
    if len(df) < lookback:
        return []

    recent = df.iloc[-lookback:]
    highs = find_peaks(recent['high'].to_numpy(dtype=float), 2)
    lows = find_troughs(recent['low'].to_numpy(dtype=float), 2)

    levels = []
    for points, level_type in ((highs, LevelType.RESISTANCE), (lows, LevelType.SUPPORT)):
        for group in group_levels(points):
            if len(group) < 2:
                continue
            levels.append(SupportResistanceLevel(
                price=float(np.mean([p.price for p in group])),
                type=level_type,
                strength=float(min(100, len(group) * 25)),
                touches=len(group),
            ))

    return sorted(levels, key=lambda level: level.strength, reverse=True)


def fibonacci_levels(df: pd.DataFrame, lookback: int = 50) -> FibonacciLevels:
    """
    Retracements between the absolute high and low of the window.
    Ratios below 0.5 are tagged resistance and the rest support; this is a
    fixed convention, not a judgement of trend direction.
    """
    enforce_positive_period("lookback", lookback)
    if len(df) < lookback:
        return FibonacciLevels(high=0.0, low=0.0, levels=[])

    recent = df.iloc[-lookback:]
    high = float(recent['high'].max())
    low = float(recent['low'].min())
    price_range = high - low

    levels = [
        FibonacciLevel(
            ratio=ratio,
            price=high - price_range * ratio,
            type=LevelType.RESISTANCE if ratio < 0.5 else LevelType.SUPPORT,
        )
        for ratio in FIB_RATIOS
    ]
    return FibonacciLevels(high=high, low=low, levels=levels)


# ---------------------------------------------------------------------------
# Chart patterns
# ---------------------------------------------------------------------------

def _is_flat(prices: List[float], tolerance: float) -> bool:
    if len(prices) < 2:
        return False
    avg = float(np.mean(prices))
    if avg == 0:
        return False
    return all(abs(p - avg) / avg <= tolerance for p in prices)


def _is_rising(prices: List[float]) -> bool:
    return len(prices) >= 2 and all(b > a for a, b in zip(prices, prices[1:]))


def _is_falling(prices: List[float]) -> bool:
    return len(prices) >= 2 and all(b < a for a, b in zip(prices, prices[1:]))


def detect_head_and_shoulders(df: pd.DataFrame) -> Optional[ChartPattern]:
    recent = df.iloc[-min(50, len(df)):]
    peaks = find_peaks(recent['high'].to_numpy(dtype=float), 5)
    if len(peaks) < 3:
        return None

    left, head, right = peaks[-3:]
    if not (head.price > left.price and head.price > right.price):
        return None

    # Shoulders within 5% of each other
    if left.price == 0 or abs(left.price - right.price) / left.price >= 0.05:
        return None

    neckline = (left.price + right.price) / 2
    return ChartPattern(
        name="Head and Shoulders",
        type=PatternType.BEARISH,
        confidence=0.7,
        start_index=left.index,
        end_index=right.index,
        target_price=neckline - (head.price - neckline),
        description="Bearish reversal pattern with head higher than shoulders",
    )


def detect_triangle(df: pd.DataFrame) -> Optional[ChartPattern]:
    recent = df.iloc[-min(30, len(df)):]
    highs = find_peaks(recent['high'].to_numpy(dtype=float), 3)
    lows = find_troughs(recent['low'].to_numpy(dtype=float), 3)
    if len(highs) < 2 or len(lows) < 2:
        return None

    high_prices = [h.price for h in highs]
    low_prices = [l.price for l in lows]
    start = min(highs[0].index, lows[0].index)
    end = max(highs[-1].index, lows[-1].index)

    if _is_flat(high_prices, 0.02) and _is_rising(low_prices):
        return ChartPattern(
            name="Ascending Triangle",
            type=PatternType.BULLISH,
            confidence=0.6,
            start_index=start,
            end_index=end,
            description="Bullish continuation pattern with horizontal resistance",
        )

    if _is_falling(high_prices) and _is_flat(low_prices, 0.02):
        return ChartPattern(
            name="Descending Triangle",
            type=PatternType.BEARISH,
            confidence=0.6,
            start_index=start,
            end_index=end,
            description="Bearish continuation pattern with horizontal support",
        )

    return None


def detect_flag(df: pd.DataFrame) -> Optional[ChartPattern]:
    """Strong move over the first 7 of the last 15 bars, then a tight drift."""
    if len(df) < 15:
        return None

    prices = df['close'].to_numpy(dtype=float)[-15:]
    pole = relative_change(prices[:7])
    flag = relative_change(prices[8:])

    if abs(pole) > 0.05 and abs(flag) < 0.02:
        bullish = pole > 0
        return ChartPattern(
            name="Flag",
            type=PatternType.BULLISH if bullish else PatternType.BEARISH,
            confidence=0.5,
            start_index=0,
            end_index=len(prices) - 1,
            description=f"{'Bullish' if bullish else 'Bearish'} flag pattern - continuation expected",
        )
    return None


def detect_double_top_bottom(df: pd.DataFrame) -> Optional[ChartPattern]:
    recent = df.iloc[-min(40, len(df)):]
    peaks = find_peaks(recent['high'].to_numpy(dtype=float), 5)
    troughs = find_troughs(recent['low'].to_numpy(dtype=float), 5)

    if len(peaks) >= 2:
        first, second = peaks[-2:]
        if first.price != 0 and abs(first.price - second.price) / first.price < 0.03:
            return ChartPattern(
                name="Double Top",
                type=PatternType.BEARISH,
                confidence=0.65,
                start_index=first.index,
                end_index=second.index,
                description="Bearish reversal pattern with two similar peaks",
            )

    if len(troughs) >= 2:
        first, second = troughs[-2:]
        if first.price != 0 and abs(first.price - second.price) / first.price < 0.03:
            return ChartPattern(
                name="Double Bottom",
                type=PatternType.BULLISH,
                confidence=0.65,
                start_index=first.index,
                end_index=second.index,
                description="Bullish reversal pattern with two similar troughs",
            )

    return None


CHART_DETECTORS = (
    detect_head_and_shoulders,
    detect_triangle,
    detect_flag,
    detect_double_top_bottom,
)


def chart_patterns(df: pd.DataFrame) -> List[ChartPattern]:
    if len(df) < MIN_PATTERN_BARS:
        return []
    patterns = []
    for detector in CHART_DETECTORS:
        pattern = detector(df)
        if pattern is not None:
            patterns.append(pattern)
    logger.debug(f"Chart patterns found: {[p.name for p in patterns]}")
    return patterns


# ---------------------------------------------------------------------------
# Candlesticks
# ---------------------------------------------------------------------------

def _candle_parts(candle):
    body = abs(candle.close - candle.open)
    lower_shadow = min(candle.open, candle.close) - candle.low
    upper_shadow = candle.high - max(candle.open, candle.close)
    return body, lower_shadow, upper_shadow


def is_doji(candle) -> bool:
    total_range = candle.high - candle.low
    if total_range == 0:
        return True
    return abs(candle.close - candle.open) / total_range < 0.1


def is_hammer(candle) -> bool:
    body, lower_shadow, upper_shadow = _candle_parts(candle)
    return lower_shadow > body * 2 and upper_shadow < body * 0.5


def is_shooting_star(candle) -> bool:
    body, lower_shadow, upper_shadow = _candle_parts(candle)
    return upper_shadow > body * 2 and lower_shadow < body * 0.5


def is_bullish_engulfing(prev, current) -> bool:
    return (prev.close < prev.open
            and current.close > current.open
            and current.open < prev.close
            and current.close > prev.open)


def is_bearish_engulfing(prev, current) -> bool:
    return (prev.close > prev.open
            and current.close < current.open
            and current.open > prev.close
            and current.close < prev.open)


def candlestick_patterns(df: pd.DataFrame) -> List[ChartPattern]:
    if len(df) < 3:
        return []

    recent = list(df.iloc[-CANDLE_LOOKBACK:].itertuples(index=False))
    patterns = []

    for i in range(2, len(recent)):
        current, prev = recent[i], recent[i - 1]

        if is_doji(current):
            patterns.append(ChartPattern(
                name="Doji", type=PatternType.NEUTRAL, confidence=0.6,
                start_index=i, end_index=i,
                description="Indecision candle - potential reversal",
            ))
        if is_hammer(current):
            patterns.append(ChartPattern(
                name="Hammer", type=PatternType.BULLISH, confidence=0.7,
                start_index=i, end_index=i,
                description="Bullish reversal candle with long lower shadow",
            ))
        if is_shooting_star(current):
            patterns.append(ChartPattern(
                name="Shooting Star", type=PatternType.BEARISH, confidence=0.7,
                start_index=i, end_index=i,
                description="Bearish reversal candle with long upper shadow",
            ))
        if is_bullish_engulfing(prev, current):
            patterns.append(ChartPattern(
                name="Bullish Engulfing", type=PatternType.BULLISH, confidence=0.8,
                start_index=i - 1, end_index=i,
                description="Bullish reversal pattern - large green candle engulfs red candle",
            ))
        if is_bearish_engulfing(prev, current):
            patterns.append(ChartPattern(
                name="Bearish Engulfing", type=PatternType.BEARISH, confidence=0.8,
                start_index=i - 1, end_index=i,
                description="Bearish reversal pattern - large red candle engulfs green candle",
            ))

    return patterns
