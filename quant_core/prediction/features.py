"""
Feature Extraction
------------------
Builds the fixed-length network input from a bar series, optional news and
an optional benchmark series. Only bars, news and benchmark data at or before
the last bar's timestamp are used.

Layout (60 values):
    20 prices    min-max scaled over the window
    20 volumes   min-max scaled over the window
     5 technical RSI/100, MACD/price, %K/100, ADX/100, Bollinger bandwidth/100
    10 sentiment most recent news scores
     5 market    benchmark 5-bar return, annualized volatility, correlation
                 with the asset, trend slope relative to price, RSI/100

Short groups are left-padded with zeros.
"""
import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from quant_core.analytics.indicators.rsi import RSI
from quant_core.analytics.series_math import correlation, min_max_normalize, relative_change, trend_slope
from quant_core.analytics.technical_engine import TechnicalAnalysisEngine
from quant_core.events import NewsItem, SeriesLike, as_frame
from quant_core.prediction.models import ModelFeatures
from quant_core.risk import statistics
from quant_core.sentiment.scorer import SentimentImpactScorer

logger = logging.getLogger(__name__)

FEATURE_WINDOW = 50
PRICE_FEATURES = 20
VOLUME_FEATURES = 20
TECHNICAL_FEATURES = 5
SENTIMENT_FEATURES = 10
MARKET_FEATURES = 5
FEATURE_COUNT = PRICE_FEATURES + VOLUME_FEATURES + TECHNICAL_FEATURES + SENTIMENT_FEATURES + MARKET_FEATURES


def left_pad(values: Sequence[float], size: int) -> np.ndarray:
    arr = np.asarray(values, dtype=float)[-size:] if size else np.array([])
    return np.concatenate([np.zeros(size - len(arr)), arr])


class FeatureExtractor:
    def __init__(self, technical_engine: Optional[TechnicalAnalysisEngine] = None,
                 sentiment_scorer: Optional[SentimentImpactScorer] = None,
                 window: int = FEATURE_WINDOW):
        self.technical_engine = technical_engine or TechnicalAnalysisEngine()
        self.sentiment_scorer = sentiment_scorer or SentimentImpactScorer()
        self.window = window

    def extract(self, series: SeriesLike, sentiment_items: Optional[Sequence[NewsItem]] = None,
                market_series: Optional[SeriesLike] = None) -> ModelFeatures:
        df = as_frame(series).iloc[-self.window:].reset_index(drop=True)
        if len(df) < self.window:
            logger.debug(f"Feature window has {len(df)} of {self.window} bars; slices are zero-padded")

        as_of = int(df['timestamp'].iloc[-1]) if len(df) else None
        return ModelFeatures(
            prices=left_pad(min_max_normalize(df['close'].to_numpy(dtype=float)[-PRICE_FEATURES:]), PRICE_FEATURES),
            volumes=left_pad(min_max_normalize(df['volume'].to_numpy(dtype=float)[-VOLUME_FEATURES:]), VOLUME_FEATURES),
            technical=self._technical(df),
            sentiment=self._sentiment(sentiment_items, as_of),
            market=self._market(df, market_series, as_of),
        )

    def _technical(self, df: pd.DataFrame) -> np.ndarray:
        if len(df) == 0:
            return np.zeros(TECHNICAL_FEATURES)

        engine = self.technical_engine
        price = float(df['close'].iloc[-1])
        macd = engine.macd(df).value
        bandwidth = engine.bollinger_bands(df).bandwidth.last
        return np.array([
            engine.rsi(df).value / 100,
            macd / price if price else 0.0,
            engine.stochastic(df).value / 100,
            engine.adx(df).value / 100,
            (bandwidth or 0.0) / 100,
        ])

    def _sentiment(self, items: Optional[Sequence[NewsItem]], as_of: Optional[int]) -> np.ndarray:
        if not items or as_of is None:
            return np.zeros(SENTIMENT_FEATURES)
        visible = sorted((i for i in items if i.published_at <= as_of), key=lambda i: i.published_at)
        scores = [self.sentiment_scorer.item_sentiment(item) for item in visible[-SENTIMENT_FEATURES:]]
        return left_pad(scores, SENTIMENT_FEATURES)

    def _market(self, df: pd.DataFrame, market_series: Optional[SeriesLike], as_of: Optional[int]) -> np.ndarray:
        if market_series is None or as_of is None:
            return np.zeros(MARKET_FEATURES)

        market = as_frame(market_series)
        market = market[market['timestamp'] <= as_of].iloc[-self.window:].reset_index(drop=True)
        if len(market) < 2:
            return np.zeros(MARKET_FEATURES)

        closes = market['close'].to_numpy(dtype=float)
        market_returns = statistics.calculate_returns(closes)
        asset_returns, benchmark_returns = statistics.paired_returns(df, market)
        price = closes[-1]

        return np.array([
            relative_change(closes[-6:]),
            statistics.volatility(market_returns),
            correlation(asset_returns, benchmark_returns),
            trend_slope(closes[-20:]) / price if price else 0.0,
            RSI().evaluate(market).value / 100,
        ])
