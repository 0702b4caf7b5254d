import numpy as np
import pytest

from quant_core.analytics.models import Signal
from quant_core.analytics.technical_engine import TechnicalAnalysisEngine
from quant_core.cache import TTLCache
from quant_core.errors import InvalidParameterError
from quant_core.events import OHLCVBar


@pytest.fixture
def engine(replay_clock):
    return TechnicalAnalysisEngine(cache=TTLCache(ttl_seconds=300, clock=replay_clock))


def to_bars(df):
    return [OHLCVBar(int(r.timestamp), r.open, r.high, r.low, r.close, r.volume)
            for r in df.itertuples(index=False)]


def test_score_defaults_to_50_on_short_series(engine, series_factory):
    score = engine.technical_score(series_factory(np.linspace(10, 12, 19)))
    assert (score.overall, score.trend, score.momentum, score.volatility, score.volume) == (50, 50, 50, 50, 50)


def test_uptrend_scores_trend_high(engine, rising_series):
    score = engine.technical_score(rising_series)
    assert score.trend == 95
    assert 0 <= score.overall <= 100
    assert set(score.components) == {"RSI", "MACD", "Stochastic", "Williams %R", "ADX"}


def test_sub_scores_are_clamped(engine, random_walk_series):
    score = engine.technical_score(random_walk_series)
    for value in (score.overall, score.trend, score.momentum, score.volatility, score.volume):
        assert 0 <= value <= 100


def test_bar_sequence_and_frame_agree(engine, random_walk_series):
    from_frame = engine.rsi(random_walk_series)
    from_bars = engine.rsi(to_bars(random_walk_series))
    assert from_frame.value == pytest.approx(from_bars.value)


def test_analyze_is_cached_per_series(engine, random_walk_series):
    first = engine.analyze(random_walk_series, symbol="ACME")
    second = engine.analyze(random_walk_series, symbol="ACME")
    assert first is second
    assert engine.cache.hits == 1

    longer = engine.analyze(random_walk_series.iloc[:-1], symbol="ACME")
    assert longer is not first


def test_analyze_distinguishes_series_with_matching_endpoints(engine, replay_clock, lookalike_series):
    calm, wild = lookalike_series
    calm_snapshot = engine.analyze(calm)
    wild_snapshot = engine.analyze(wild)

    assert wild_snapshot is not calm_snapshot
    assert wild_snapshot.score == TechnicalAnalysisEngine(clock=replay_clock).analyze(wild).score


def test_analyze_snapshot_contents(engine, rising_series):
    snapshot = engine.analyze(rising_series)
    assert snapshot.indicators['adx'].signal == Signal.BUY
    assert snapshot.bollinger.upper.last >= snapshot.bollinger.lower.last
    assert len(snapshot.fibonacci.levels) == 7
    assert snapshot.score == engine.technical_score(rising_series)


def test_rejects_unordered_timestamps(engine, random_walk_series):
    shuffled = random_walk_series.iloc[::-1]
    with pytest.raises(InvalidParameterError, match="strictly increasing"):
        engine.rsi(shuffled)


def test_rejects_missing_columns(engine, random_walk_series):
    with pytest.raises(InvalidParameterError, match="missing required columns"):
        engine.rsi(random_walk_series.drop(columns=['volume']))


def test_macd_series_and_adx_components(engine, random_walk_series):
    assert list(engine.macd_series(random_walk_series).columns) == ['macd', 'signal', 'histogram']
    assert list(engine.adx_components(random_walk_series).columns) == ['plus_di', 'minus_di', 'dx', 'adx']


def test_moving_average_kinds(engine, rising_series):
    assert len(engine.moving_average(rising_series, 20, "sma").values) == len(rising_series) - 19
    assert len(engine.moving_average(rising_series, 20, "ema").values) == len(rising_series)
