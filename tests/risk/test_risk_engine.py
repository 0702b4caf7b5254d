import numpy as np
import pytest

from quant_core.cache import TTLCache
from quant_core.errors import InvalidParameterError
from quant_core.events import FundamentalProfile, Holding
from quant_core.risk.engine import RiskAssessmentEngine
from quant_core.risk.models import EconomicIndicators


@pytest.fixture
def engine(replay_clock, rng):
    return RiskAssessmentEngine(cache=TTLCache(ttl_seconds=300, clock=replay_clock), clock=replay_clock, rng=rng)


@pytest.fixture
def market_returns():
    return np.random.default_rng(11).normal(0.0005, 0.01, 200)


def prices_from_returns(returns, start=100.0):
    return start * np.concatenate([[1.0], np.cumprod(1 + np.asarray(returns))])


class TestStockRisk:
    def test_without_benchmark_beta_is_one(self, engine, random_walk_series):
        metrics = engine.assess_stock_risk(random_walk_series)
        assert metrics.beta == 1.0
        assert metrics.cvar95 >= metrics.var95 >= 0
        assert metrics.var99 >= metrics.var95
        assert 0 <= metrics.max_drawdown < 1

    def test_beta_against_benchmark(self, engine, series_factory, market_returns):
        market = series_factory(prices_from_returns(market_returns))
        asset = series_factory(prices_from_returns(2 * market_returns))
        assert engine.assess_stock_risk(asset, market_series=market).beta == pytest.approx(2.0)

    def test_results_are_cached(self, engine, random_walk_series):
        first = engine.assess_stock_risk(random_walk_series, symbol="ACME")
        assert engine.assess_stock_risk(random_walk_series, symbol="ACME") is first

    def test_cache_keys_cover_every_bar(self, engine, replay_clock, lookalike_series):
        calm, wild = lookalike_series
        calm_metrics = engine.assess_stock_risk(calm)
        wild_metrics = engine.assess_stock_risk(wild)

        assert wild_metrics == RiskAssessmentEngine(clock=replay_clock).assess_stock_risk(wild)
        assert wild_metrics.volatility > calm_metrics.volatility

    def test_beta_pairs_bars_by_timestamp(self, engine, series_factory, market_returns):
        market = series_factory(prices_from_returns(market_returns))
        asset = series_factory(prices_from_returns(2 * market_returns[:150]))
        # benchmark runs 50 bars past the asset
        assert engine.assess_stock_risk(asset, market_series=market).beta == pytest.approx(2.0)

    def test_liquidity_and_credit_defaults(self, engine, rising_series):
        metrics = engine.assess_stock_risk(rising_series)
        # constant volume, unknown market cap -> small-cap tier only
        assert metrics.liquidity_risk == pytest.approx(0.6 * 0.4)
        assert metrics.credit_risk == pytest.approx(0.25 * 0.6 + 0.25 * 0.4)

    def test_profile_feeds_liquidity_and_credit(self, engine, rising_series):
        profile = FundamentalProfile(market_cap=50e9, debt_to_equity=4.0, current_ratio=0.5)
        metrics = engine.assess_stock_risk(rising_series, profile=profile)
        assert metrics.liquidity_risk == pytest.approx(0.1 * 0.4)
        assert metrics.credit_risk == pytest.approx(1.0 * 0.6 + 0.75 * 0.4)

    def test_short_series_is_neutral(self, engine, series_factory):
        metrics = engine.assess_stock_risk(series_factory([100.0]))
        assert (metrics.var95, metrics.volatility, metrics.sharpe_ratio, metrics.max_drawdown) == (0, 0, 0, 0)


class TestPortfolioRisk:
    def test_single_flat_holding(self, engine, flat_series):
        result = engine.assess_portfolio_risk([Holding("A", 1.0, flat_series)])
        assert result.total_risk == 0.0
        assert result.diversification_benefit == 0.0
        assert result.risk_contribution == {"A": 1.0}
        assert result.optimal_weights == {"A": 1.0}

    def test_empty_portfolio(self, engine):
        result = engine.assess_portfolio_risk([])
        assert result.total_risk == 0.0
        assert result.correlation_matrix.empty
        assert result.risk_contribution == {} and result.optimal_weights == {}

    def test_correlation_matrix_shape(self, engine, series_factory, market_returns, random_walk_series):
        holdings = [
            Holding("A", 0.5, series_factory(prices_from_returns(market_returns))),
            Holding("B", 0.3, series_factory(prices_from_returns(-market_returns))),
            Holding("C", 0.2, random_walk_series),
        ]
        matrix = engine.correlation_matrix(holdings)
        assert list(matrix.index) == ["A", "B", "C"]
        assert np.allclose(matrix.to_numpy(), matrix.to_numpy().T)
        assert np.allclose(np.diag(matrix.to_numpy()), 1.0)
        assert matrix.loc["A", "B"] == pytest.approx(-1.0)

    def test_quadratic_form_and_contributions(self, engine, series_factory, random_walk_series, market_returns):
        holdings = [
            Holding("A", 0.6, series_factory(prices_from_returns(market_returns))),
            Holding("B", 0.4, random_walk_series),
        ]
        result = engine.assess_portfolio_risk(holdings)

        returns = [engine.calculate_returns(h.series) for h in holdings]
        n = min(len(r) for r in returns)
        vols = [engine.volatility(r[-n:]) for r in returns]
        rho = result.correlation_matrix.loc["A", "B"]
        variance = (0.6 * vols[0]) ** 2 + (0.4 * vols[1]) ** 2 + 2 * 0.6 * 0.4 * vols[0] * vols[1] * rho

        assert result.total_risk == pytest.approx(np.sqrt(variance))
        assert sum(result.risk_contribution.values()) == pytest.approx(1.0)
        assert result.diversification_benefit >= 0

    def test_inverse_volatility_weights(self, engine, series_factory, market_returns):
        holdings = [
            Holding("LOW", 0.5, series_factory(prices_from_returns(market_returns))),
            Holding("HIGH", 0.5, series_factory(prices_from_returns(2 * market_returns))),
        ]
        weights = engine.assess_portfolio_risk(holdings).optimal_weights
        assert weights["LOW"] == pytest.approx(2 / 3)
        assert weights["HIGH"] == pytest.approx(1 / 3)

    def test_duplicate_symbols_rejected(self, engine, flat_series):
        with pytest.raises(InvalidParameterError, match="Duplicate symbols"):
            engine.assess_portfolio_risk([Holding("A", 0.5, flat_series), Holding("A", 0.5, flat_series)])


class TestMarketRisk:
    def test_defaults_without_context(self, engine, random_walk_series):
        risk = engine.assess_market_risk(random_walk_series)
        assert risk.market_correlation == 0.0
        assert risk.sector_risk == 0.25
        assert risk.economic_risk == pytest.approx((0.1 + 0.09 + 0.05 + 0.2 + 0.4) * 0.2)
        assert risk.geopolitical_risk == 0.25
        assert risk.currency_risk == 0.1
        assert risk.interest_rate_risk == pytest.approx(0.5 / 3)

    def test_profile_and_benchmark(self, engine, series_factory, market_returns):
        market = series_factory(prices_from_returns(market_returns))
        risk = engine.assess_market_risk(
            market, market_series=market, profile=FundamentalProfile(sector="Energy", debt_to_equity=6.0),
        )
        assert risk.market_correlation == pytest.approx(1.0)
        assert risk.sector_risk == 0.35
        assert risk.interest_rate_risk == 1.0

    def test_correlation_pairs_bars_by_timestamp(self, engine, series_factory, market_returns):
        market = series_factory(prices_from_returns(market_returns))
        risk = engine.assess_market_risk(market.iloc[:120], market_series=market)
        assert risk.market_correlation == pytest.approx(1.0)

    def test_economic_risk_is_capped(self):
        stressed = EconomicIndicators(interest_rates=0.5, inflation=0.3, gdp_growth=-0.1,
                                      unemployment_rate=0.3, vix_level=80)
        assert RiskAssessmentEngine.economic_risk(stressed) == 1.0


def test_stress_scenarios_scale_with_beta(engine, random_walk_series):
    metrics = engine.assess_stock_risk(random_walk_series)
    scenarios = {s.name: s for s in engine.stress_scenarios(random_walk_series, metrics)}
    assert set(scenarios) == {"Market Crash", "Market Correction", "Interest Rate Shock", "Bull Rally", "Sector Rotation"}
    assert scenarios["Market Crash"].price_impact == pytest.approx(-0.30 * metrics.beta)
    assert scenarios["Bull Rally"].price_impact > 0
    assert all(s.impact >= 0 for s in scenarios.values())


def test_engine_monte_carlo_uses_injected_rng(replay_clock):
    a = RiskAssessmentEngine(clock=replay_clock, rng=np.random.default_rng(3)).monte_carlo(100, 0.1, 0.2, 10, 100)
    b = RiskAssessmentEngine(clock=replay_clock, rng=np.random.default_rng(3)).monte_carlo(100, 0.1, 0.2, 10, 100)
    assert a.percentiles == b.percentiles


def test_engine_alerts_use_clock(engine, replay_clock, series_factory):
    crash = series_factory([100, 60, 30, 35, 20, 25, 10])
    alerts = engine.generate_alerts(engine.assess_stock_risk(crash))
    assert alerts
    assert all(alert.timestamp == replay_clock.now_ms() for alert in alerts)
