"""
Sentiment Impact Scorer
-----------------------
Lexicon-based text sentiment, keyword-tier news impact, hourly sentiment
trends and sentiment/price correlation.

Sentiment blends three passes: generic word polarity (30%), weighted
financial phrases (50%) and a contextual pass that boosts the generic score
for market topics and damps it for hedged or speculative wording (20%).
"""
import hashlib
import logging
import re
from collections import defaultdict
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence

from config.settings import CACHE_TTL_SECONDS, SENTIMENT_CACHE_TTL_SECONDS
from quant_core.analytics.series_math import correlation
from quant_core.cache import TTLCache
from quant_core.clock import Clock, RealTimeClock
from quant_core.events import NewsItem, SeriesLike, as_frame
from quant_core.risk.statistics import calculate_returns
from quant_core.sentiment.lexicon import (
    DEFAULT_CREDIBILITY, FINANCIAL_KEYWORDS, HEDGING_TERMS, IMPACT_KEYWORDS, NEGATIVE_WORDS, NEWS_SOURCES,
    POSITIVE_WORDS, SPECULATIVE_TERMS, TOPIC_BOOSTS,
)
from quant_core.sentiment.models import (
    NEUTRAL_SENTIMENT, ImpactLevel, NewsImpact, SentimentLabel, SentimentScore, SentimentTrendPoint,
)

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
RECENCY_WINDOW_HOURS = 24
RECENCY_FLOOR = 0.3
MAX_PRICE_IMPACT_PCT = 5.0

LABEL_THRESHOLD = 0.1
HIGH_IMPACT = 50
MEDIUM_IMPACT = 20

_TOKEN = re.compile(r"[a-z0-9']+")


@lru_cache(maxsize=None)
def _phrase_pattern(phrase: str) -> re.Pattern:
    return re.compile(r"\b" + re.escape(phrase) + r"\b")


def _mentions(text: str, phrase: str) -> bool:
    return _phrase_pattern(phrase).search(text) is not None


def _mentions_any(text: str, phrases: Iterable[str]) -> bool:
    return any(_mentions(text, p) for p in phrases)


def _clip(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _label(score: float, threshold: float = LABEL_THRESHOLD) -> SentimentLabel:
    if score > threshold:
        return SentimentLabel.POSITIVE
    if score < -threshold:
        return SentimentLabel.NEGATIVE
    return SentimentLabel.NEUTRAL


def _label_value(label: Optional[str]) -> float:
    return {'positive': 1.0, 'negative': -1.0}.get((label or '').lower(), 0.0)


def credibility(source: str) -> float:
    known = NEWS_SOURCES.get(source)
    return known.credibility if known else DEFAULT_CREDIBILITY


class SentimentImpactScorer:
    def __init__(self, cache: Optional[TTLCache] = None, clock: Optional[Clock] = None):
        self.clock = clock or RealTimeClock()
        self.cache = cache or TTLCache(ttl_seconds=CACHE_TTL_SECONDS, clock=self.clock)
        self.sentiment_cache = TTLCache(ttl_seconds=SENTIMENT_CACHE_TTL_SECONDS, clock=self.clock)

    # ------------------------------------------------------------------
    # Text sentiment
    # ------------------------------------------------------------------

    def analyze_sentiment(self, text: str) -> SentimentScore:
        if not text or not text.strip():
            return NEUTRAL_SENTIMENT
        key = hashlib.sha256(text.encode('utf-8')).hexdigest()
        return self.sentiment_cache.get_or_compute(key, lambda: self._analyze(text))

    def _analyze(self, text: str) -> SentimentScore:
        lower = text.lower()
        words = _TOKEN.findall(lower)

        basic = self._basic(words)
        financial = self._financial(lower, len(words))
        contextual = self._contextual(lower, basic)

        score = basic.score * 0.3 + financial.score * 0.5 + contextual.score * 0.2
        return SentimentScore(
            score=_clip(score),
            magnitude=max(basic.magnitude, financial.magnitude, contextual.magnitude),
            confidence=basic.confidence * 0.3 + financial.confidence * 0.5 + contextual.confidence * 0.2,
            label=_label(score),
        )

    @staticmethod
    def _basic(words: List[str]) -> SentimentScore:
        score = 0.0
        matches = 0
        for word in words:
            if word in POSITIVE_WORDS:
                score += 0.1
                matches += 1
            elif word in NEGATIVE_WORDS:
                score -= 0.1
                matches += 1

        return SentimentScore(
            score=_clip(score),
            magnitude=min(1.0, matches * 0.1),
            confidence=min(1.0, matches / len(words) * 10) if words else 0.0,
            label=_label(score, 0.0),
        )

    @staticmethod
    def _financial(lower: str, word_count: int) -> SentimentScore:
        score = 0.0
        magnitude = 0.0
        matches = 0
        for phrase, weight in FINANCIAL_KEYWORDS.items():
            if _mentions(lower, phrase):
                score += weight * 0.1
                magnitude += abs(weight) * 0.1
                matches += 1

        # Longer texts dilute individual phrases
        normalized = score / max(1.0, word_count / 50)
        return SentimentScore(
            score=_clip(normalized),
            magnitude=min(1.0, magnitude),
            confidence=min(1.0, matches / max(1.0, word_count / 20)),
            label=_label(normalized),
        )

    @staticmethod
    def _contextual(lower: str, basic: SentimentScore) -> SentimentScore:
        multiplier = 1.0
        for phrases, boost in TOPIC_BOOSTS:
            if _mentions_any(lower, phrases):
                multiplier *= boost

        adjusted = basic.score * multiplier
        for phrases, damping in (HEDGING_TERMS, SPECULATIVE_TERMS):
            if _mentions_any(lower, phrases):
                adjusted *= damping

        return SentimentScore(
            score=_clip(adjusted),
            magnitude=min(1.0, basic.magnitude * multiplier),
            confidence=basic.confidence,
            label=_label(adjusted),
        )

    # ------------------------------------------------------------------
    # News impact
    # ------------------------------------------------------------------

    def item_sentiment(self, item: NewsItem) -> float:
        """Numeric sentiment of a news item: explicit score, then label, then text analysis."""
        if item.sentiment_score is not None:
            return float(item.sentiment_score)
        if item.sentiment:
            return _label_value(item.sentiment)
        return self.analyze_sentiment(f"{item.title} {item.summary}").score

    def _direction(self, item: NewsItem) -> float:
        """Sign of the item's sentiment, in the same precedence as item_sentiment."""
        if item.sentiment_score is not None:
            return float((item.sentiment_score > 0) - (item.sentiment_score < 0))
        if item.sentiment:
            return _label_value(item.sentiment)
        return _label_value(self.analyze_sentiment(f"{item.title} {item.summary}").label.value)

    def calculate_news_impact(self, item: NewsItem) -> NewsImpact:
        return self.cache.get_or_compute(("news_impact", item.id), lambda: self._impact(item))

    def _impact(self, item: NewsItem) -> NewsImpact:
        text = f"{item.title} {item.summary}".lower()
        score = 0.0
        factors = []

        for tier, (points, vocabulary) in IMPACT_KEYWORDS.items():
            for keyword in vocabulary:
                if _mentions(text, keyword):
                    score += points
                    factors.append(f"{tier} impact: {keyword}")

        source = NEWS_SOURCES.get(item.source)
        if source:
            score *= source.credibility
            factors.append(f"Source credibility: {source.credibility * 100:.0f}%")
        else:
            score *= DEFAULT_CREDIBILITY
            factors.append(f"Source credibility: {DEFAULT_CREDIBILITY * 100:.0f}% (unrated source: {item.source})")

        hours_old = max(0.0, (self.clock.now_ms() - item.published_at) / HOUR_MS)
        score *= max(RECENCY_FLOOR, 1 - hours_old / RECENCY_WINDOW_HOURS)

        if score >= HIGH_IMPACT:
            level = ImpactLevel.HIGH
        elif score >= MEDIUM_IMPACT:
            level = ImpactLevel.MEDIUM
        else:
            level = ImpactLevel.LOW

        direction = self._direction(item)

        score = min(100.0, score)
        return NewsImpact(
            level=level,
            score=score,
            factors=factors,
            price_impact=score / 100 * direction * MAX_PRICE_IMPACT_PCT,
        )

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def sentiment_trend(self, items: Sequence[NewsItem], symbol: Optional[str] = None) -> List[SentimentTrendPoint]:
        """
        Hourly buckets of news sentiment, weighted by source influence.
        Buckets without any rated source fall back to a simple average.
        """
        buckets = defaultdict(list)
        for item in items:
            buckets[item.published_at // HOUR_MS * HOUR_MS].append(item)

        trend = []
        for timestamp in sorted(buckets):
            bucket = buckets[timestamp]
            sentiments = [self.item_sentiment(item) for item in bucket]
            weights = [NEWS_SOURCES[item.source].weight if item.source in NEWS_SOURCES else 0.0
                       for item in bucket]
            total_weight = sum(weights)

            if total_weight > 0:
                sentiment = sum(s * w for s, w in zip(sentiments, weights)) / total_weight
            else:
                sentiment = sum(sentiments) / len(sentiments)

            trend.append(SentimentTrendPoint(
                timestamp=timestamp,
                sentiment=sentiment,
                volume=len(bucket),
                impact=sum(self.calculate_news_impact(item).score for item in bucket) / len(bucket),
            ))

        logger.debug(f"Sentiment trend for {symbol}: {len(items)} items in {len(trend)} hourly buckets")
        return trend

    def filter_by_relevance(
        self,
        items: Sequence[NewsItem],
        symbol: str,
        min_credibility: float = 0.6,
        min_impact: float = 10,
    ) -> List[NewsItem]:
        relevant = []
        for item in items:
            mentioned = (
                symbol in item.relevant_symbols
                or _mentions(item.title.lower(), symbol.lower())
                or _mentions(item.summary.lower(), symbol.lower())
            )
            if not mentioned:
                continue
            if credibility(item.source) < min_credibility:
                continue
            if self.calculate_news_impact(item).score < min_impact:
                continue
            relevant.append(item)
        return relevant

    def sentiment_price_correlation(self, trend: Sequence[SentimentTrendPoint], price_series: SeriesLike) -> float:
        """
        Pearson correlation between bucket sentiment and the bar-over-bar
        price change observed within one hour of the bucket. 0 with fewer
        than two aligned pairs.
        """
        df = as_frame(price_series)
        if len(trend) < 2 or len(df) < 2:
            return 0.0

        timestamps = df['timestamp'].to_numpy()[1:]
        changes = calculate_returns(df['close'].to_numpy(dtype=float))

        sentiments, moves = [], []
        for point in trend:
            for ts, change in zip(timestamps, changes):
                if abs(int(ts) - point.timestamp) < HOUR_MS:
                    sentiments.append(point.sentiment)
                    moves.append(change)
                    break

        if len(sentiments) < 2:
            return 0.0
        return correlation(sentiments, moves)
