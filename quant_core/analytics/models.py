"""
Analytical Snapshots & Models
-----------------------------
Immutable representations of indicator states and chart structure.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Optional

from quant_core.analytics.series_math import AlignedSeries


class Signal(Enum):
    BUY = "buy"
    SELL = "sell"
    NEUTRAL = "neutral"


class PatternType(Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class LevelType(Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"


@dataclass(frozen=True)
class IndicatorResult:
    name: str
    value: float
    signal: Signal
    strength: float  # 0 to 100
    description: str
    insufficient_data: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not 0.0 <= self.strength <= 100.0:
            raise ValueError(f"Strength must be between 0 and 100, got {self.strength}")


@dataclass(frozen=True)
class MovingAverage:
    period: int
    kind: str
    values: AlignedSeries
    current: Optional[float]
    signal: Signal


@dataclass(frozen=True)
class BollingerBands:
    upper: AlignedSeries
    middle: AlignedSeries
    lower: AlignedSeries
    bandwidth: AlignedSeries
    squeeze: bool
    signal: Signal
    description: str = ""

    @property
    def insufficient_data(self) -> bool:
        return self.middle.empty


@dataclass(frozen=True)
class VolumeAnalysis:
    vpt: List[float]
    obv: List[float]
    volume_ma: AlignedSeries
    signal: Signal
    strength: float
    description: str = ""


@dataclass(frozen=True)
class SupportResistanceLevel:
    price: float
    type: LevelType
    strength: float
    touches: int


@dataclass(frozen=True)
class FibonacciLevel:
    ratio: float
    price: float
    type: LevelType


@dataclass(frozen=True)
class FibonacciLevels:
    high: float
    low: float
    levels: List[FibonacciLevel]


@dataclass(frozen=True)
class ChartPattern:
    name: str
    type: PatternType
    confidence: float  # 0.0 to 1.0, fixed per pattern type
    start_index: int
    end_index: int
    description: str
    target_price: Optional[float] = None


@dataclass(frozen=True)
class TechnicalScore:
    overall: float  # 0 to 100
    trend: float
    momentum: float
    volatility: float
    volume: float
    components: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class TechnicalSnapshot:
    """Every indicator, level and pattern for one series, computed together."""
    indicators: Dict[str, IndicatorResult]
    bollinger: BollingerBands
    volume: VolumeAnalysis
    support_resistance: List[SupportResistanceLevel]
    fibonacci: FibonacciLevels
    chart_patterns: List[ChartPattern]
    candlestick_patterns: List[ChartPattern]
    score: TechnicalScore
