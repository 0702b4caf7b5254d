"""Whole-engine scenarios over synthetic series."""
import numpy as np
import pytest

from quant_core.analytics.technical_engine import TechnicalAnalysisEngine
from quant_core.events import Holding, NewsItem
from quant_core.prediction.ensemble import PredictionEnsemble
from quant_core.prediction.models import Direction
from quant_core.prediction.network import GradientTrainer
from quant_core.risk.engine import RiskAssessmentEngine
from quant_core.sentiment.models import ImpactLevel
from quant_core.sentiment.scorer import SentimentImpactScorer


def test_rising_market(rising_series, replay_clock):
    engine = TechnicalAnalysisEngine(clock=replay_clock)

    for end in range(200, 301, 20):
        assert engine.rsi(rising_series.iloc[:end]).value > 70

    histogram = engine.macd_series(rising_series)['histogram']
    assert (histogram.iloc[100:] > 0).all()
    assert engine.technical_score(rising_series).trend > 50

    ensemble = PredictionEnsemble(rng=np.random.default_rng(42), clock=replay_clock, technical_engine=engine)
    ensemble.retrain(rising_series, GradientTrainer(learning_rate=0.1, epochs=300))
    shortest = ensemble.predict(rising_series, horizons=('1d',))[0]

    assert shortest.direction == Direction.UP
    assert shortest.price > shortest.current_price
    assert 0 <= shortest.probability <= 1


def test_flat_single_holding_portfolio(flat_series, replay_clock):
    result = RiskAssessmentEngine(clock=replay_clock).assess_portfolio_risk(
        [Holding(symbol='A', weight=1.0, series=flat_series)]
    )
    assert result.total_risk == 0
    assert result.diversification_benefit == 0
    assert result.correlation_matrix.loc['A', 'A'] == 1.0


def test_news_from_unrated_source(replay_clock):
    item = NewsItem(id='n1', title='Regulator opens investigation', summary='Shares slide on the news',
                    source='Unknown Wire', published_at=replay_clock.now_ms())
    impact = SentimentImpactScorer(clock=replay_clock).calculate_news_impact(item)

    assert impact.score == pytest.approx(30 * 0.5)
    assert impact.level == ImpactLevel.LOW
    assert any('Unknown Wire' in factor for factor in impact.factors)


def test_full_pipeline_on_random_walk(random_walk_series, replay_clock, rng):
    risk = RiskAssessmentEngine(clock=replay_clock, rng=rng)
    metrics = risk.assess_stock_risk(random_walk_series, symbol='RW')
    daily_returns = risk.calculate_returns(random_walk_series)
    simulation = risk.monte_carlo(float(random_walk_series['close'].iloc[-1]),
                                  float(np.mean(daily_returns) * 252), metrics.volatility,
                                  horizon_days=21, num_paths=500)

    assert metrics.cvar95 >= metrics.var95 >= 0
    assert simulation.percentiles['5%'] <= simulation.percentiles['50%'] <= simulation.percentiles['95%']
    assert len(simulation.scenarios) == 100

    snapshot = TechnicalAnalysisEngine(clock=replay_clock).analyze(random_walk_series, symbol='RW')
    assert 0 <= snapshot.score.overall <= 100

    predictions = PredictionEnsemble(rng=rng, clock=replay_clock).predict(random_walk_series, symbol='RW')
    assert [p.horizon for p in predictions] == ['1d', '1w', '1m']
    assert all(p.direction in Direction for p in predictions)
