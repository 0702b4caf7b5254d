"""
Prediction Models
-----------------
Value objects produced by the prediction ensemble and its backtester.
Price projections are heuristic scalings of a class probability, not
calibrated regressions.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np


class Direction(Enum):
    # Declaration order breaks ensemble vote ties
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"

    @property
    def sign(self) -> int:
        return {Direction.UP: 1, Direction.DOWN: -1}.get(self, 0)


@dataclass(frozen=True)
class Horizon:
    name: str
    price_multiplier: float
    lookahead_bars: int


@dataclass(frozen=True)
class ModelFeatures:
    prices: np.ndarray  # 20, min-max scaled
    volumes: np.ndarray  # 20, min-max scaled
    technical: np.ndarray  # 5
    sentiment: np.ndarray  # 10
    market: np.ndarray  # 5

    def flatten(self) -> np.ndarray:
        return np.concatenate([self.prices, self.volumes, self.technical, self.sentiment, self.market])


@dataclass(frozen=True)
class ModelOutput:
    """Single network verdict over [down, neutral, up]."""
    direction: Direction
    probability: float
    confidence: float
    probabilities: np.ndarray


@dataclass(frozen=True)
class PredictionResult:
    horizon: str
    price: float
    direction: Direction
    probability: float  # 0 to 1
    confidence: float  # 0 to 1
    current_price: float
    votes: Dict[Direction, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ProbabilityPoint:
    price: float
    probability: float  # standard normal density at the point's z-score


@dataclass(frozen=True)
class RiskReward:
    risk: float  # percent, at least 5
    reward: float  # percent, at least 5
    ratio: float


@dataclass(frozen=True)
class ModelPerformance:
    mae: float  # mean absolute relative price error
    rmse: float
    accuracy: float  # directional hit rate
    sharpe_ratio: float
    max_drawdown: float


@dataclass(frozen=True)
class Trade:
    timestamp: int
    action: str  # 'buy' | 'sell'
    price: float
    trade_return: float  # realized return of the position this trade closed, 0 if none


@dataclass(frozen=True)
class BacktestResult:
    total_return: float
    win_rate: float
    avg_win: float
    avg_loss: float
    max_drawdown: float
    sharpe_ratio: float
    trades: List[Trade]
    final_equity: float
    performance: Optional[ModelPerformance] = None
