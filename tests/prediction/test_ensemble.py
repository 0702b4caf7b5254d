import numpy as np
import pytest

from quant_core.cache import TTLCache
from quant_core.prediction.ensemble import HORIZONS, PredictionEnsemble
from quant_core.prediction.features import FEATURE_COUNT
from quant_core.prediction.models import Direction, ModelOutput, PredictionResult


@pytest.fixture
def ensemble(replay_clock):
    return PredictionEnsemble(rng=np.random.default_rng(42), clock=replay_clock)


def prediction(price, confidence=0.5, current=100.0):
    return PredictionResult(horizon='1d', price=price, direction=Direction.UP, probability=0.6,
                            confidence=confidence, current_price=current)


def test_features_have_fixed_layout(ensemble, random_walk_series):
    features = ensemble.extract_features(random_walk_series)
    flat = features.flatten()
    assert flat.shape == (FEATURE_COUNT,)
    assert features.prices.min() == 0.0 and features.prices.max() == 1.0
    assert np.all(features.sentiment == 0) and np.all(features.market == 0)


def test_short_series_is_zero_padded(ensemble, series_factory):
    features = ensemble.extract_features(series_factory([10.0, 11.0, 12.0]))
    assert features.prices.shape == (20,)
    assert np.all(features.prices[:17] == 0)


def test_predictions_are_deterministic_per_seed(replay_clock, random_walk_series):
    a = PredictionEnsemble(rng=np.random.default_rng(9), clock=replay_clock).predict(random_walk_series)
    b = PredictionEnsemble(rng=np.random.default_rng(9), clock=replay_clock).predict(random_walk_series)
    assert [(p.direction, p.price) for p in a] == [(p.direction, p.price) for p in b]


def test_predict_shape(ensemble, random_walk_series):
    results = ensemble.predict(random_walk_series, horizons=('1d', '1w', '1m', '3m'))
    assert [r.horizon for r in results] == ['1d', '1w', '1m', '3m']
    last = float(random_walk_series['close'].iloc[-1])
    for result in results:
        assert result.current_price == last
        assert 0 <= result.probability <= 1
        assert 0 <= result.confidence <= 1
        assert sum(result.votes.values()) == pytest.approx(1.0)
        move = abs(result.price / last - 1)
        assert move <= HORIZONS[result.horizon].price_multiplier + 1e-12


def test_unknown_horizon_is_skipped(ensemble, random_walk_series, caplog):
    results = ensemble.predict(random_walk_series, horizons=('1d', '5y'))
    assert [r.horizon for r in results] == ['1d']
    assert "Unknown horizon '5y'" in caplog.text


def test_empty_series_predicts_nothing(ensemble, series_factory):
    assert ensemble.predict(series_factory([])) == []


def test_predictions_cached_until_retrain(replay_clock, series_factory):
    ensemble = PredictionEnsemble(rng=np.random.default_rng(1), cache=TTLCache(clock=replay_clock),
                                  clock=replay_clock)
    series = series_factory(100.0 * 1.01 ** np.arange(80))
    first = ensemble.predict(series, symbol="ACME")
    assert ensemble.predict(series, symbol="ACME") is first

    losses = ensemble.retrain(series)
    assert set(losses) == {'1d', '1w', '1m'}  # 80 bars cannot label 3m targets
    assert ensemble.predict(series, symbol="ACME") is not first


def test_training_targets_follow_future_move(ensemble, rising_series):
    samples = ensemble.training_samples(rising_series.iloc[:70], '1d')
    assert len(samples) == 70 - 1 - 49
    assert all(target.tolist() == [0.0, 0.0, 1.0] for _, target in samples)


def test_probability_distribution():
    points = PredictionEnsemble.probability_distribution(prediction(110.0, confidence=0.5))
    assert len(points) == 31
    assert points[15].price == pytest.approx(110.0)
    assert points[15].probability == pytest.approx(1 / np.sqrt(2 * np.pi))
    assert points[0].price == pytest.approx(110.0 - 3 * 110.0 * 0.5 * 0.2)
    assert points[0].probability == pytest.approx(points[-1].probability)


def test_risk_reward_floors():
    small = PredictionEnsemble.risk_reward(100.0, prediction(102.0))
    assert (small.risk, small.reward, small.ratio) == (5.0, 5.0, 1.0)

    large = PredictionEnsemble.risk_reward(100.0, prediction(120.0))
    assert large.reward == pytest.approx(20.0)
    assert large.ratio == pytest.approx(4.0)

    loss = PredictionEnsemble.risk_reward(100.0, prediction(90.0))
    assert loss.risk == pytest.approx(10.0)
    assert loss.reward == 5.0


class FixedOutput:
    def __init__(self, direction, probability, confidence):
        self.output = ModelOutput(direction, probability, confidence, np.zeros(3))

    def predict(self, features):
        return self.output


def test_direction_follows_weighted_votes_not_mean_probability(ensemble):
    # one confident UP model at weight 0.4 against two hesitant DOWN models at 0.3 each
    ensemble.models['1d'] = [
        FixedOutput(Direction.UP, 0.9, 0.8),
        FixedOutput(Direction.DOWN, 0.4, 0.1),
        FixedOutput(Direction.DOWN, 0.4, 0.1),
    ]
    result = ensemble._combine('1d', np.zeros(FEATURE_COUNT), 100.0)

    assert result.direction == Direction.DOWN
    assert result.votes[Direction.UP] == pytest.approx(0.4)
    assert result.votes[Direction.DOWN] == pytest.approx(0.6)
    assert result.probability == pytest.approx(0.4 * 0.9 + 0.3 * 0.4 + 0.3 * 0.4)
    assert result.confidence == pytest.approx(0.4 * 0.8 + 0.3 * 0.1 + 0.3 * 0.1)
    assert result.price == pytest.approx(100.0 * (1 - 0.02 * 0.6))


def test_vote_ties_go_to_up(ensemble):
    ensemble.weights = (0.5, 0.5, 0.0)
    ensemble.models['1d'] = [
        FixedOutput(Direction.DOWN, 0.5, 0.5),
        FixedOutput(Direction.UP, 0.5, 0.5),
        FixedOutput(Direction.NEUTRAL, 0.5, 0.5),
    ]
    assert ensemble._combine('1d', np.zeros(FEATURE_COUNT), 100.0).direction == Direction.UP


def test_predictions_cached_per_series_content(ensemble, lookalike_series):
    calm, wild = lookalike_series
    calm_predictions = ensemble.predict(calm, symbol="ACME")
    wild_predictions = ensemble.predict(wild, symbol="ACME")

    assert wild_predictions is not calm_predictions
    assert wild_predictions == ensemble.predict(wild, symbol="ACME", use_cache=False)
