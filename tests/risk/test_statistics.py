import math

import numpy as np
import pytest

from quant_core.errors import InvalidParameterError
from quant_core.risk import statistics


def test_calculate_returns():
    assert list(statistics.calculate_returns([100, 110, 99])) == pytest.approx([0.1, -0.1])
    assert len(statistics.calculate_returns([100])) == 0
    assert list(statistics.calculate_returns([0, 5])) == [0.0]


class TestValueAtRisk:
    returns = np.linspace(-0.05, 0.05, 101)

    def test_historical_cutoff(self):
        # floor(0.05 * 101) = rank 5
        assert statistics.value_at_risk(self.returns, 0.95) == pytest.approx(0.045)

    def test_square_root_of_time(self):
        one_day = statistics.value_at_risk(self.returns, 0.95)
        assert statistics.value_at_risk(self.returns, 0.95, 10) == pytest.approx(one_day * math.sqrt(10))

    def test_cvar_includes_cutoff_rank(self):
        assert statistics.conditional_value_at_risk(self.returns, 0.95) == pytest.approx(0.0475)

    def test_no_losses_floors_at_zero(self):
        gains = [0.01, 0.02, 0.03]
        assert statistics.value_at_risk(gains) == 0.0
        assert statistics.conditional_value_at_risk(gains) == 0.0

    def test_empty_returns(self):
        assert statistics.value_at_risk([]) == 0.0
        assert statistics.conditional_value_at_risk([]) == 0.0

    @pytest.mark.parametrize("confidence", [0.0, 1.0, 1.5, -0.1])
    def test_confidence_must_be_open_interval(self, confidence):
        with pytest.raises(InvalidParameterError, match="confidence"):
            statistics.value_at_risk(self.returns, confidence)

    @pytest.mark.parametrize("seed", range(5))
    def test_cvar_at_least_var(self, seed):
        returns = np.random.default_rng(seed).normal(0, 0.02, 500)
        var95 = statistics.value_at_risk(returns, 0.95)
        assert var95 >= 0
        assert statistics.conditional_value_at_risk(returns, 0.95) >= var95


def test_sharpe_ratio():
    assert statistics.sharpe_ratio([0.01, 0.03], risk_free_rate=0.0) == pytest.approx(2.0)
    assert statistics.sharpe_ratio([0.25, 0.25, 0.25]) == 0.0
    daily_rf = 0.0252 / 252
    assert statistics.sharpe_ratio([0.01, 0.03], risk_free_rate=0.0252) == pytest.approx((0.02 - daily_rf) / 0.01)


def test_beta():
    market = [0.01, -0.02, 0.03, 0.005]
    assert statistics.beta([2 * r for r in market], market) == pytest.approx(2.0)
    assert statistics.beta([0.01, 0.02], [0.01]) == 1.0
    assert statistics.beta([0.01, 0.02], [0.01, 0.01]) == 1.0


def test_volatility_is_annualized():
    assert statistics.volatility([0.01, -0.01]) == pytest.approx(0.01 * math.sqrt(252))
    assert statistics.volatility([]) == 0.0


def test_max_drawdown():
    assert statistics.max_drawdown([100, 120, 90, 130, 65]) == pytest.approx(0.5)
    assert statistics.max_drawdown([1, 2, 3]) == 0.0
    assert statistics.max_drawdown([]) == 0.0

    curve = statistics.drawdown_curve([100, 120, 90])
    assert list(curve.columns) == ['value', 'peak', 'drawdown']
    assert curve['drawdown'].iloc[-1] == pytest.approx(0.25)


def test_paired_returns_join_on_timestamp(series_factory):
    asset = series_factory([100.0, 999.0, 110.0, 121.0])
    market = series_factory([50.0, 55.0, 60.5, 66.55], start_ms=asset['timestamp'].iloc[1])
    # shared bars: asset 999/110/121 against market 50/55/60.5
    asset_returns, market_returns = statistics.paired_returns(asset, market)
    assert list(asset_returns) == pytest.approx([110 / 999 - 1, 0.1])
    assert list(market_returns) == pytest.approx([0.1, 0.1])


def test_paired_returns_without_overlap(series_factory):
    asset = series_factory([1.0, 2.0])
    market = series_factory([1.0, 2.0], start_ms=asset['timestamp'].iloc[-1] + 1)
    asset_returns, market_returns = statistics.paired_returns(asset, market)
    assert len(asset_returns) == 0 and len(market_returns) == 0
