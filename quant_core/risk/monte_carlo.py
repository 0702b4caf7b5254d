"""
Monte Carlo Price Simulation
----------------------------
Geometric path simulation: every step multiplies the price by
``1 + expected_return / 252 + z * volatility / sqrt(252)`` with ``z`` a
Box-Muller normal draw. This is a lognormal-returns approximation, not a
calibrated model.

``workers > 1`` partitions paths across a thread pool. Each partition gets a
child generator seeded from the parent ``rng`` up front, so a seeded run is
reproducible for a given worker count.
"""
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np

from config.settings import TRADING_DAYS
from quant_core.analytics.series_math import random_normals
from quant_core.errors import enforce_non_negative, enforce_positive, enforce_positive_period
from quant_core.risk.models import MonteCarloResult, RiskMetrics
from quant_core.risk.statistics import conditional_value_at_risk, sharpe_ratio, value_at_risk

logger = logging.getLogger(__name__)

PERCENTILES = (0.05, 0.25, 0.50, 0.75, 0.95)


def simulate_paths(initial_price: float, expected_return: float, volatility: float,
                   horizon_days: int, num_paths: int, rng: np.random.Generator) -> np.ndarray:
    """Array of shape (num_paths, horizon_days + 1); column 0 is the initial price."""
    shocks = random_normals(rng, (num_paths, horizon_days)) * volatility / math.sqrt(TRADING_DAYS)
    growth = 1.0 + expected_return / TRADING_DAYS + shocks
    paths = np.empty((num_paths, horizon_days + 1))
    paths[:, 0] = initial_price
    paths[:, 1:] = initial_price * np.cumprod(growth, axis=1)
    return paths


def _simulate_parallel(initial_price, expected_return, volatility, horizon_days, num_paths, rng, workers):
    sizes = [num_paths // workers + (1 if i < num_paths % workers else 0) for i in range(workers)]
    sizes = [s for s in sizes if s > 0]
    seeds = rng.integers(0, 2 ** 63 - 1, size=len(sizes))

    with ThreadPoolExecutor(max_workers=len(sizes)) as executor:
        futures = [
            executor.submit(simulate_paths, initial_price, expected_return, volatility,
                            horizon_days, size, np.random.default_rng(int(seed)))
            for size, seed in zip(sizes, seeds)
        ]
        return np.vstack([f.result() for f in futures])


def _mean_path_drawdown(paths: np.ndarray) -> float:
    peaks = np.maximum.accumulate(paths, axis=1)
    with np.errstate(divide='ignore', invalid='ignore'):
        drawdowns = np.where(peaks > 0, (peaks - paths) / peaks, 0.0)
    return float(drawdowns.max(axis=1).mean())


def monte_carlo(
    initial_price: float,
    expected_return: float,
    volatility: float,
    horizon_days: int = 252,
    num_paths: int = 10000,
    rng: Optional[np.random.Generator] = None,
    max_scenarios: int = 100,
    workers: Optional[int] = None,
) -> MonteCarloResult:
    enforce_positive("initial_price", initial_price)
    enforce_non_negative("volatility", volatility)
    enforce_positive_period("horizon_days", horizon_days)
    enforce_positive_period("num_paths", num_paths)
    rng = rng if rng is not None else np.random.default_rng()

    if workers and workers > 1:
        paths = _simulate_parallel(initial_price, expected_return, volatility,
                                   horizon_days, num_paths, rng, workers)
    else:
        paths = simulate_paths(initial_price, expected_return, volatility,
                               horizon_days, num_paths, rng)

    terminal = paths[:, -1]
    sorted_terminal = np.sort(terminal)
    percentiles = {
        f"{int(round(q * 100))}%": float(sorted_terminal[min(num_paths - 1, int(math.floor(q * num_paths)))])
        for q in PERCENTILES
    }

    terminal_returns = (terminal - initial_price) / initial_price
    risk_metrics = RiskMetrics(
        var95=value_at_risk(terminal_returns, 0.95),
        var99=value_at_risk(terminal_returns, 0.99),
        cvar95=conditional_value_at_risk(terminal_returns, 0.95),
        sharpe_ratio=sharpe_ratio(terminal_returns),
        beta=1.0,
        volatility=volatility,
        max_drawdown=_mean_path_drawdown(paths),
        liquidity_risk=0.0,
        credit_risk=0.0,
    )

    logger.debug(
        f"Monte Carlo: {num_paths} paths x {horizon_days} days, "
        f"median terminal {percentiles['50%']:.2f}"
    )

    return MonteCarloResult(
        scenarios=paths[:max_scenarios],
        percentiles=percentiles,
        expected_return=expected_return,
        risk_metrics=risk_metrics,
        terminal_prices=terminal,
    )
