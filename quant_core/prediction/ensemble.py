"""
Prediction Ensemble
-------------------
Per-horizon ensembles of three independently initialized FeedForwardScorer
instances combined by fixed vote weights.

The ensemble direction is the class with the largest weighted vote total,
ties going to the earliest Direction member. Projected prices scale a fixed
per-horizon multiplier by the weighted probability; this is a heuristic,
not a statistically validated forecast.
"""
import logging
import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from config.settings import CACHE_TTL_SECONDS
from quant_core.analytics.technical_engine import TechnicalAnalysisEngine
from quant_core.cache import TTLCache
from quant_core.clock import Clock
from quant_core.events import NewsItem, SeriesLike, as_frame, series_fingerprint
from quant_core.prediction import backtest as backtesting
from quant_core.prediction.features import FEATURE_COUNT, FeatureExtractor
from quant_core.prediction.models import (
    BacktestResult, Direction, Horizon, ModelFeatures, PredictionResult, ProbabilityPoint, RiskReward,
)
from quant_core.prediction.network import DOWN, NEUTRAL, UP, FeedForwardScorer, Trainer, WeightNudgeTrainer
from quant_core.sentiment.scorer import SentimentImpactScorer

logger = logging.getLogger(__name__)

HORIZONS = {
    '1d': Horizon('1d', price_multiplier=0.02, lookahead_bars=1),
    '1w': Horizon('1w', price_multiplier=0.05, lookahead_bars=5),
    '1m': Horizon('1m', price_multiplier=0.10, lookahead_bars=21),
    '3m': Horizon('3m', price_multiplier=0.20, lookahead_bars=63),
}
HIDDEN_SIZES = (100, 80, 120)
ENSEMBLE_WEIGHTS = (0.4, 0.3, 0.3)

TRAINING_LOOKBACK = 50
TARGET_MOVE = 0.01

MIN_RISK_REWARD_PCT = 5.0


class PredictionEnsemble:
    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        cache: Optional[TTLCache] = None,
        clock: Optional[Clock] = None,
        technical_engine: Optional[TechnicalAnalysisEngine] = None,
        sentiment_scorer: Optional[SentimentImpactScorer] = None,
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.cache = cache or TTLCache(ttl_seconds=CACHE_TTL_SECONDS, clock=clock)
        self.features = FeatureExtractor(
            technical_engine or TechnicalAnalysisEngine(clock=clock),
            sentiment_scorer or SentimentImpactScorer(clock=clock),
        )
        self.weights = ENSEMBLE_WEIGHTS
        self.models: Dict[str, List[FeedForwardScorer]] = {
            name: [FeedForwardScorer(FEATURE_COUNT, hidden, 3, rng=self.rng) for hidden in HIDDEN_SIZES]
            for name in HORIZONS
        }
        self._generation = 0

    def extract_features(self, series: SeriesLike, sentiment_items: Optional[Sequence[NewsItem]] = None,
                         market_series: Optional[SeriesLike] = None) -> ModelFeatures:
        return self.features.extract(series, sentiment_items, market_series)

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(
        self,
        series: SeriesLike,
        horizons: Sequence[str] = ('1d', '1w', '1m'),
        symbol: Optional[str] = None,
        sentiment_items: Optional[Sequence[NewsItem]] = None,
        market_series: Optional[SeriesLike] = None,
        use_cache: bool = True,
    ) -> List[PredictionResult]:
        df = as_frame(series)
        if len(df) == 0:
            logger.warning("Prediction requested on an empty series")
            return []

        def compute():
            features = self.extract_features(df, sentiment_items, market_series).flatten()
            current_price = float(df['close'].iloc[-1])
            return [self._combine(name, features, current_price) for name in horizons if self._known(name)]

        if not use_cache:
            return compute()

        key = (("prediction", symbol, tuple(horizons), self._generation)
               + series_fingerprint(df)
               + (tuple(item.id for item in sentiment_items or ()),)
               + (series_fingerprint(as_frame(market_series)) if market_series is not None else ()))
        return self.cache.get_or_compute(key, compute)

    def _known(self, horizon: str) -> bool:
        if horizon not in self.models:
            logger.warning(f"Unknown horizon '{horizon}' skipped; expected one of {list(HORIZONS)}")
            return False
        return True

    def _combine(self, horizon: str, features: np.ndarray, current_price: float) -> PredictionResult:
        votes = {direction: 0.0 for direction in Direction}
        confidence = 0.0
        probability = 0.0

        for model, weight in zip(self.models[horizon], self.weights):
            output = model.predict(features)
            votes[output.direction] += weight
            confidence += output.confidence * weight
            probability += output.probability * weight

        # max() keeps the first maximal key, so ties follow Direction order
        direction = max(votes, key=votes.get)
        change = HORIZONS[horizon].price_multiplier * direction.sign * probability

        return PredictionResult(
            horizon=horizon,
            price=current_price * (1 + change),
            direction=direction,
            probability=probability,
            confidence=confidence,
            current_price=current_price,
            votes=votes,
        )

    # ------------------------------------------------------------------
    # Training and evaluation
    # ------------------------------------------------------------------

    def training_samples(self, series: SeriesLike, horizon: str, lookback: int = TRAINING_LOOKBACK,
                         feature_cache: Optional[dict] = None) -> list:
        """(features, one-hot [down, neutral, up]) pairs labelled by a +/-1% move over the horizon."""
        df = as_frame(series)
        closes = df['close'].to_numpy(dtype=float)
        ahead = HORIZONS[horizon].lookahead_bars
        feature_cache = feature_cache if feature_cache is not None else {}

        samples = []
        for i in range(lookback - 1, len(df) - ahead):
            if closes[i] == 0:
                continue
            if i not in feature_cache:
                feature_cache[i] = self.extract_features(df.iloc[i + 1 - lookback:i + 1]).flatten()
            samples.append((feature_cache[i], self._target((closes[i + ahead] - closes[i]) / closes[i])))
        return samples

    @staticmethod
    def _target(change: float) -> np.ndarray:
        target = np.zeros(3)
        if change > TARGET_MOVE:
            target[UP] = 1.0
        elif change < -TARGET_MOVE:
            target[DOWN] = 1.0
        else:
            target[NEUTRAL] = 1.0
        return target

    def retrain(self, series: SeriesLike, trainer: Optional[Trainer] = None) -> Dict[str, float]:
        """Trains every model on the series; returns the final mean loss per horizon."""
        df = as_frame(series)
        logger.info(f"Retraining prediction models on {len(df)} bars")

        trainer = trainer or WeightNudgeTrainer(rng=self.rng)
        features_by_index = {}
        final_losses = {}

        for name in HORIZONS:
            samples = self.training_samples(df, name, feature_cache=features_by_index)
            if not samples:
                logger.warning(f"Not enough history to train horizon {name}")
                continue

            losses = [model.train(samples, trainer) for model in self.models[name]]
            final_losses[name] = float(np.mean([l[-1] for l in losses if l]))

        self._generation += 1
        self.cache.clear()
        logger.info(f"Model retraining completed: {final_losses}")
        return final_losses

    def backtest(self, series: SeriesLike, start_index: int = 100, strategy: str = 'ml_signals') -> BacktestResult:
        return backtesting.run_backtest(self, series, start_index, strategy)

    # ------------------------------------------------------------------
    # Presentation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def probability_distribution(prediction: PredictionResult) -> List[ProbabilityPoint]:
        """Standard normal densities at z = -3..3 (step 0.2) around the predicted price."""
        sigma = prediction.price * (1 - prediction.confidence) * 0.2
        points = []
        for step in range(-15, 16):
            z = step * 0.2
            points.append(ProbabilityPoint(
                price=prediction.price + z * sigma,
                probability=math.exp(-0.5 * z * z) / math.sqrt(2 * math.pi),
            ))
        return points

    @staticmethod
    def risk_reward(current_price: float, prediction: PredictionResult) -> RiskReward:
        expected = (prediction.price - current_price) / current_price * 100 if current_price else 0.0
        risk = abs(min(expected, -MIN_RISK_REWARD_PCT))
        reward = max(expected, MIN_RISK_REWARD_PCT)
        return RiskReward(risk=risk, reward=reward, ratio=reward / risk)
