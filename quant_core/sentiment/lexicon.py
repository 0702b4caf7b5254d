"""
Sentiment Lexicon
-----------------
Keyword tables for the lexicon-based sentiment scorer and the news impact
model. Keys are lowercase; multi-word phrases match on word boundaries.
"""
from quant_core.sentiment.models import NewsSource

NEWS_SOURCES = {
    'Reuters': NewsSource('Reuters', credibility=0.95, bias=0.0, weight=1.0),
    'Bloomberg': NewsSource('Bloomberg', credibility=0.92, bias=0.1, weight=0.95),
    'Wall Street Journal': NewsSource('WSJ', credibility=0.90, bias=0.05, weight=0.9),
    'Financial Times': NewsSource('FT', credibility=0.88, bias=0.0, weight=0.85),
    'CNBC': NewsSource('CNBC', credibility=0.75, bias=0.15, weight=0.7),
    'MarketWatch': NewsSource('MarketWatch', credibility=0.70, bias=0.1, weight=0.65),
    'Yahoo Finance': NewsSource('Yahoo', credibility=0.65, bias=0.0, weight=0.6),
    'Seeking Alpha': NewsSource('SeekingAlpha', credibility=0.60, bias=0.2, weight=0.5),
}
DEFAULT_CREDIBILITY = 0.5

# Generic polarity words, matched as whole tokens
POSITIVE_WORDS = frozenset([
    'good', 'great', 'excellent', 'positive', 'strong', 'growth', 'increase', 'up', 'high', 'best',
])
NEGATIVE_WORDS = frozenset([
    'bad', 'poor', 'negative', 'weak', 'decline', 'decrease', 'down', 'low', 'worst', 'loss',
])

FINANCIAL_KEYWORDS = {
    # positive
    'earnings beat': 2.0,
    'revenue growth': 1.8,
    'profit surge': 2.0,
    'strong performance': 1.5,
    'bullish': 1.8,
    'upgrade': 1.6,
    'outperform': 1.4,
    'buy rating': 1.7,
    'dividend increase': 1.3,
    'market share gain': 1.4,
    'innovation': 1.2,
    'expansion': 1.1,
    'partnership': 1.0,
    'acquisition': 1.2,
    'breakthrough': 1.6,
    'record high': 1.8,
    'exceeds expectations': 1.9,
    'strong demand': 1.4,
    'cost reduction': 1.2,
    'efficiency gains': 1.3,
    # negative
    'earnings miss': -2.0,
    'revenue decline': -1.8,
    'loss': -1.6,
    'bearish': -1.8,
    'downgrade': -1.6,
    'underperform': -1.4,
    'sell rating': -1.7,
    'dividend cut': -1.5,
    'market share loss': -1.4,
    'lawsuit': -1.3,
    'investigation': -1.4,
    'scandal': -1.8,
    'bankruptcy': -2.0,
    'layoffs': -1.2,
    'restructuring': -1.1,
    'debt concerns': -1.3,
    'regulatory issues': -1.4,
    'competition': -0.8,
    'supply chain': -1.0,
    'inflation impact': -1.1,
}

# (trigger phrases, multiplier) applied to the generic score
TOPIC_BOOSTS = [
    (('market', 'economy'), 1.2),
    (('fed', 'federal reserve'), 1.3),
    (('earnings', 'quarterly'), 1.4),
    (('today', 'now', 'current'), 1.1),
]
HEDGING_TERMS = (('however', 'but', 'although'), 0.7)
SPECULATIVE_TERMS = (('expect', 'forecast', 'predict'), 0.8)

# Impact tier -> (points per match, vocabulary)
IMPACT_KEYWORDS = {
    'High': (30, ['earnings', 'merger', 'acquisition', 'bankruptcy', 'fda approval', 'lawsuit', 'investigation']),
    'Medium': (15, ['revenue', 'guidance', 'partnership', 'expansion', 'layoffs', 'restructuring']),
    'Low': (5, ['analyst', 'rating', 'price target', 'conference', 'interview', 'commentary']),
}
