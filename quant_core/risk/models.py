"""
Risk Models
-----------
Immutable results of risk assessment. Ratios and returns are fractional
(0.05 = 5%).
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

import numpy as np
import pandas as pd


class AlertLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class RiskMetrics:
    var95: float
    var99: float
    cvar95: float
    sharpe_ratio: float
    beta: float
    volatility: float
    max_drawdown: float
    liquidity_risk: float
    credit_risk: float


@dataclass(frozen=True)
class PortfolioRisk:
    total_risk: float
    diversification_benefit: float
    correlation_matrix: pd.DataFrame  # N x N, symmetric, unit diagonal
    risk_contribution: Dict[str, float]  # sums to 1
    optimal_weights: Dict[str, float]  # inverse-volatility, sums to 1


@dataclass(frozen=True)
class EconomicIndicators:
    interest_rates: float = 0.05
    inflation: float = 0.03
    gdp_growth: float = 0.025
    unemployment_rate: float = 0.04
    vix_level: float = 20.0
    geopolitical_risk: float = 0.25


@dataclass(frozen=True)
class MarketRisk:
    market_correlation: float
    sector_risk: float
    economic_risk: float
    geopolitical_risk: float
    currency_risk: float
    interest_rate_risk: float


@dataclass(frozen=True)
class RiskScenario:
    name: str
    probability: float
    impact: float  # fractional portfolio impact
    description: str
    price_impact: float  # signed fractional price move


@dataclass(frozen=True)
class RiskAlert:
    level: AlertLevel
    type: str
    message: str
    timestamp: int  # epoch milliseconds
    threshold: float
    current_value: float


@dataclass(frozen=True)
class MonteCarloResult:
    scenarios: np.ndarray  # sample of simulated paths, shape (paths, horizon + 1)
    percentiles: Dict[str, float]  # terminal-price quantiles keyed '5%', '25%', ...
    expected_return: float
    risk_metrics: RiskMetrics
    terminal_prices: np.ndarray = field(repr=False, default_factory=lambda: np.array([]))
