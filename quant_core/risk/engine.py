"""
Risk Assessment Engine
----------------------
Facade over the return statistics, portfolio math, Monte Carlo simulation
and alerting. Stateless apart from an injectable result cache.

Portfolio "optimal weights" are an inverse-volatility heuristic, not a
mean-variance solve.
"""
import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from config.settings import CACHE_TTL_SECONDS, TRADING_DAYS
from quant_core.analytics.series_math import correlation
from quant_core.cache import TTLCache
from quant_core.clock import Clock, RealTimeClock
from quant_core.errors import InvalidParameterError
from quant_core.events import FundamentalProfile, Holding, SeriesLike, as_frame, series_fingerprint
from quant_core.risk import alerts, monte_carlo as mc, statistics
from quant_core.risk.models import (
    EconomicIndicators, MarketRisk, MonteCarloResult, PortfolioRisk, RiskAlert, RiskMetrics, RiskScenario,
)

logger = logging.getLogger(__name__)

SECTOR_RISK = {
    'Technology': 0.25,
    'Healthcare': 0.20,
    'Financial': 0.30,
    'Energy': 0.35,
    'Utilities': 0.15,
    'Consumer': 0.22,
    'Industrial': 0.25,
}
DEFAULT_SECTOR_RISK = 0.25
CURRENCY_RISK = 0.1

DEFAULT_DEBT_TO_EQUITY = 0.5
DEFAULT_CURRENT_RATIO = 1.5

LARGE_CAP = 10_000_000_000
MID_CAP = 2_000_000_000

# (name, probability, market move, description); moves scale by beta
MARKET_SCENARIOS = [
    ("Market Crash", 0.05, -0.30, "Broad sell-off comparable to a systemic crisis"),
    ("Market Correction", 0.15, -0.10, "Ordinary pullback of the broad market"),
    ("Interest Rate Shock", 0.10, -0.08, "Unexpected tightening reprices equities"),
    ("Bull Rally", 0.25, 0.15, "Sustained risk-on advance of the broad market"),
]
SECTOR_ROTATION_PROBABILITY = 0.20


class RiskAssessmentEngine:
    """
    Tail-risk statistics, portfolio decomposition, market context and
    simulated outcome distributions for bar series.
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        clock: Optional[Clock] = None,
        rng: Optional[np.random.Generator] = None,
        economic: Optional[EconomicIndicators] = None,
    ):
        self.clock = clock or RealTimeClock()
        self.cache = cache or TTLCache(ttl_seconds=CACHE_TTL_SECONDS, clock=self.clock)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.economic = economic or EconomicIndicators()

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def calculate_returns(self, series: SeriesLike) -> np.ndarray:
        return statistics.calculate_returns(as_frame(series)['close'].to_numpy(dtype=float))

    def value_at_risk(self, returns: Sequence[float], confidence: float = 0.95, horizon_days: int = 1) -> float:
        return statistics.value_at_risk(returns, confidence, horizon_days)

    def conditional_value_at_risk(self, returns: Sequence[float], confidence: float = 0.95) -> float:
        return statistics.conditional_value_at_risk(returns, confidence)

    def sharpe_ratio(self, returns: Sequence[float], risk_free_rate: Optional[float] = None) -> float:
        if risk_free_rate is None:
            return statistics.sharpe_ratio(returns)
        return statistics.sharpe_ratio(returns, risk_free_rate)

    def beta(self, asset_returns: Sequence[float], market_returns: Sequence[float]) -> float:
        return statistics.beta(asset_returns, market_returns)

    def volatility(self, returns: Sequence[float]) -> float:
        return statistics.volatility(returns)

    def max_drawdown(self, prices: Sequence[float]) -> float:
        return statistics.max_drawdown(prices)

    # ------------------------------------------------------------------
    # Single asset
    # ------------------------------------------------------------------

    def assess_stock_risk(
        self,
        series: SeriesLike,
        market_series: Optional[SeriesLike] = None,
        profile: Optional[FundamentalProfile] = None,
        symbol: Optional[str] = None,
    ) -> RiskMetrics:
        df = as_frame(series)
        market_df = as_frame(market_series) if market_series is not None else None
        key = ("stock_risk", symbol) + series_fingerprint(df)
        if market_df is not None:
            key += series_fingerprint(market_df)
        key += (profile,)
        return self.cache.get_or_compute(key, lambda: self._stock_risk(df, market_df, profile))

    def _stock_risk(self, df: pd.DataFrame, market_df: Optional[pd.DataFrame],
                    profile: Optional[FundamentalProfile]) -> RiskMetrics:
        closes = df['close'].to_numpy(dtype=float)
        returns = statistics.calculate_returns(closes)

        if market_df is not None:
            asset_beta = statistics.beta(*statistics.paired_returns(df, market_df))
        else:
            asset_beta = 1.0

        if len(returns) < 2:
            logger.warning(f"Risk assessment on {len(df)} bars; statistics fall back to neutral values")

        return RiskMetrics(
            var95=statistics.value_at_risk(returns, 0.95),
            var99=statistics.value_at_risk(returns, 0.99),
            cvar95=statistics.conditional_value_at_risk(returns, 0.95),
            sharpe_ratio=statistics.sharpe_ratio(returns),
            beta=asset_beta,
            volatility=statistics.volatility(returns),
            max_drawdown=statistics.max_drawdown(closes),
            liquidity_risk=self.liquidity_risk(df, profile),
            credit_risk=self.credit_risk(profile),
        )

    @staticmethod
    def liquidity_risk(df: pd.DataFrame, profile: Optional[FundamentalProfile] = None) -> float:
        """Volume-change volatility (60%) blended with a market-cap tier (40%), capped at 1."""
        volumes = df['volume'].to_numpy(dtype=float)
        volume_volatility = statistics.volatility(statistics.calculate_returns(volumes))

        market_cap = profile.market_cap if profile and profile.market_cap else 0.0
        if market_cap > LARGE_CAP:
            cap_factor = 0.1
        elif market_cap > MID_CAP:
            cap_factor = 0.3
        else:
            cap_factor = 0.6
        return min(1.0, volume_volatility * 0.6 + cap_factor * 0.4)

    @staticmethod
    def credit_risk(profile: Optional[FundamentalProfile] = None) -> float:
        debt_to_equity = (profile.debt_to_equity if profile else None) or DEFAULT_DEBT_TO_EQUITY
        current_ratio = (profile.current_ratio if profile else None) or DEFAULT_CURRENT_RATIO

        debt_risk = min(1.0, debt_to_equity / 2.0)
        ratio_risk = max(0.0, (2.0 - current_ratio) / 2.0)
        return min(1.0, debt_risk * 0.6 + ratio_risk * 0.4)

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    def _holding_returns(self, holdings: List[Holding]) -> pd.DataFrame:
        symbols = [h.symbol for h in holdings]
        if len(set(symbols)) != len(symbols):
            raise InvalidParameterError(f"Duplicate symbols in holdings: {symbols}")

        returns = [self.calculate_returns(h.series) for h in holdings]
        length = min(len(r) for r in returns)
        return pd.DataFrame({s: r[len(r) - length:] for s, r in zip(symbols, returns)}, columns=symbols)

    def correlation_matrix(self, holdings: List[Holding]) -> pd.DataFrame:
        """Pairwise return correlations over the common trailing window; unit diagonal."""
        if not holdings:
            return pd.DataFrame()
        returns = self._holding_returns(holdings)
        return self._correlation_from_returns(returns)

    @staticmethod
    def _correlation_from_returns(returns: pd.DataFrame) -> pd.DataFrame:
        symbols = list(returns.columns)
        matrix = pd.DataFrame(np.eye(len(symbols)), index=symbols, columns=symbols)
        for i, a in enumerate(symbols):
            for b in symbols[i + 1:]:
                rho = correlation(returns[a].to_numpy(), returns[b].to_numpy())
                matrix.loc[a, b] = rho
                matrix.loc[b, a] = rho
        return matrix

    def assess_portfolio_risk(self, holdings: List[Holding]) -> PortfolioRisk:
        """
        Quadratic-form portfolio volatility, diversification benefit,
        normalized marginal risk contributions and inverse-volatility weights.
        """
        if not holdings:
            return PortfolioRisk(
                total_risk=0.0,
                diversification_benefit=0.0,
                correlation_matrix=pd.DataFrame(),
                risk_contribution={},
                optimal_weights={},
            )

        returns = self._holding_returns(holdings)
        corr = self._correlation_from_returns(returns)
        symbols = list(returns.columns)
        weights = np.array([h.weight for h in holdings], dtype=float)
        vols = np.array([statistics.volatility(returns[s].to_numpy()) for s in symbols])

        covariance = np.outer(vols, vols) * corr.to_numpy()
        marginal = covariance @ weights
        variance = max(0.0, float(weights @ marginal))
        total_risk = float(np.sqrt(variance))
        weighted_avg_vol = float(weights @ vols)

        if weighted_avg_vol > 0:
            diversification = (weighted_avg_vol - total_risk) / weighted_avg_vol
        else:
            diversification = 0.0

        if variance > 0:
            contributions = weights * marginal / variance
        else:
            logger.warning(f"Zero-volatility portfolio {symbols}; risk attributed by weight")
            total_weight = weights.sum()
            if total_weight != 0:
                contributions = weights / total_weight
            else:
                contributions = np.full(len(symbols), 1.0 / len(symbols))

        return PortfolioRisk(
            total_risk=total_risk,
            diversification_benefit=float(diversification),
            correlation_matrix=corr,
            risk_contribution={s: float(c) for s, c in zip(symbols, contributions)},
            optimal_weights=self._inverse_volatility_weights(symbols, vols),
        )

    @staticmethod
    def _inverse_volatility_weights(symbols: List[str], vols: np.ndarray) -> Dict[str, float]:
        zero_vol = vols == 0
        if zero_vol.any():
            # A riskless asset takes the whole allocation, split among its peers
            share = 1.0 / zero_vol.sum()
            return {s: (share if z else 0.0) for s, z in zip(symbols, zero_vol)}
        inverse = 1.0 / vols
        return {s: float(w) for s, w in zip(symbols, inverse / inverse.sum())}

    # ------------------------------------------------------------------
    # Market context
    # ------------------------------------------------------------------

    def assess_market_risk(
        self,
        series: SeriesLike,
        market_series: Optional[SeriesLike] = None,
        profile: Optional[FundamentalProfile] = None,
        economic: Optional[EconomicIndicators] = None,
    ) -> MarketRisk:
        economic = economic or self.economic
        if market_series is not None:
            market_correlation = correlation(*statistics.paired_returns(as_frame(series), as_frame(market_series)))
        else:
            market_correlation = 0.0

        sector = profile.sector if profile else None
        debt_to_equity = (profile.debt_to_equity if profile else None) or DEFAULT_DEBT_TO_EQUITY

        return MarketRisk(
            market_correlation=market_correlation,
            sector_risk=SECTOR_RISK.get(sector, DEFAULT_SECTOR_RISK),
            economic_risk=self.economic_risk(economic),
            geopolitical_risk=economic.geopolitical_risk,
            currency_risk=CURRENCY_RISK,
            interest_rate_risk=min(1.0, debt_to_equity / 3.0),
        )

    @staticmethod
    def economic_risk(economic: EconomicIndicators) -> float:
        factors = (
            economic.interest_rates * 2,
            economic.inflation * 3,
            max(0.0, (0.03 - economic.gdp_growth) * 10),
            economic.unemployment_rate * 5,
            min(1.0, economic.vix_level / 50),
        )
        return min(1.0, sum(f * 0.2 for f in factors))

    def stress_scenarios(self, series: SeriesLike, metrics: Optional[RiskMetrics] = None) -> List[RiskScenario]:
        """Fixed shock table scaled by the asset's beta, plus an idiosyncratic sector rotation."""
        df = as_frame(series)
        metrics = metrics or self.assess_stock_risk(df)
        price = float(df['close'].iloc[-1]) if len(df) else 0.0

        scenarios = []
        for name, probability, move, description in MARKET_SCENARIOS:
            price_impact = move * metrics.beta
            scenarios.append(RiskScenario(
                name=name,
                probability=probability,
                impact=abs(price_impact),
                description=f"{description}; price to {price * (1 + price_impact):.2f}",
                price_impact=price_impact,
            ))

        # One-month one-sigma idiosyncratic move
        rotation = -metrics.volatility * np.sqrt(21 / TRADING_DAYS)
        scenarios.append(RiskScenario(
            name="Sector Rotation",
            probability=SECTOR_ROTATION_PROBABILITY,
            impact=abs(float(rotation)),
            description=f"Capital rotates out of the sector; price to {price * (1 + rotation):.2f}",
            price_impact=float(rotation),
        ))
        return scenarios

    # ------------------------------------------------------------------
    # Simulation and alerts
    # ------------------------------------------------------------------

    def monte_carlo(
        self,
        initial_price: float,
        expected_return: float,
        volatility: float,
        horizon_days: int = 252,
        num_paths: int = 10000,
        max_scenarios: int = 100,
        workers: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> MonteCarloResult:
        return mc.monte_carlo(
            initial_price, expected_return, volatility, horizon_days, num_paths,
            rng=rng if rng is not None else self.rng,
            max_scenarios=max_scenarios,
            workers=workers,
        )

    def generate_alerts(self, metrics: RiskMetrics, thresholds: Optional[Dict[str, float]] = None) -> List[RiskAlert]:
        return alerts.generate_alerts(metrics, thresholds, clock=self.clock)
