"""
Sentiment Models
----------------
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List


class SentimentLabel(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class ImpactLevel(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class NewsSource:
    name: str
    credibility: float  # 0 to 1
    bias: float  # -1 (bearish) to +1 (bullish)
    weight: float  # influence in trend aggregation


@dataclass(frozen=True)
class SentimentScore:
    score: float  # -1 to +1
    magnitude: float  # 0 to 1
    confidence: float  # 0 to 1
    label: SentimentLabel


NEUTRAL_SENTIMENT = SentimentScore(score=0.0, magnitude=0.0, confidence=0.0, label=SentimentLabel.NEUTRAL)


@dataclass(frozen=True)
class NewsImpact:
    level: ImpactLevel
    score: float  # 0 to 100
    factors: List[str] = field(default_factory=list)
    price_impact: float = 0.0  # expected move in percent, within +/-5


@dataclass(frozen=True)
class SentimentTrendPoint:
    timestamp: int  # start of the hourly bucket, epoch milliseconds
    sentiment: float
    volume: int  # article count
    impact: float  # mean impact score
