"""
Return Statistics
-----------------
Pure estimators over daily return series. Every estimator degrades to a
neutral value on empty or degenerate input instead of raising.
"""
import math
from typing import Sequence

import numpy as np
import pandas as pd

from config.settings import RISK_FREE_RATE, TRADING_DAYS
from quant_core.analytics.series_math import covariance, stddev
from quant_core.errors import enforce_confidence_level, enforce_positive


def calculate_returns(closes: Sequence[float]) -> np.ndarray:
    """Simple day-over-day returns; a zero previous close yields a 0 return."""
    prices = np.asarray(closes, dtype=float)
    if len(prices) < 2:
        return np.array([])
    prev = prices[:-1]
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(prev != 0, (prices[1:] - prev) / prev, 0.0)


def _tail_index(n: int, confidence: float) -> int:
    return min(n - 1, int(math.floor((1 - confidence) * n)))


def value_at_risk(returns: Sequence[float], confidence: float = 0.95, horizon_days: int = 1) -> float:
    """
    Historical-simulation VaR as a positive loss fraction.

    Scaled by sqrt(horizon_days), which assumes i.i.d. daily returns.
    A return distribution with no losses at the cutoff reports 0.
    """
    enforce_confidence_level(confidence)
    enforce_positive("horizon_days", horizon_days)
    sorted_returns = np.sort(np.asarray(returns, dtype=float))
    if len(sorted_returns) == 0:
        return 0.0
    cutoff = sorted_returns[_tail_index(len(sorted_returns), confidence)]
    return max(0.0, float(-cutoff * math.sqrt(horizon_days)))


def conditional_value_at_risk(returns: Sequence[float], confidence: float = 0.95) -> float:
    """Mean loss over the tail up to and including the VaR cutoff rank."""
    enforce_confidence_level(confidence)
    sorted_returns = np.sort(np.asarray(returns, dtype=float))
    if len(sorted_returns) == 0:
        return 0.0
    tail = sorted_returns[:_tail_index(len(sorted_returns), confidence) + 1]
    return max(0.0, float(-tail.mean()))


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = RISK_FREE_RATE) -> float:
    """Daily Sharpe ratio against the annual risk-free rate de-annualized by 252."""
    arr = np.asarray(returns, dtype=float)
    if len(arr) == 0:
        return 0.0
    vol = stddev(arr)
    if vol == 0:
        return 0.0
    return float((arr.mean() - risk_free_rate / TRADING_DAYS) / vol)


def beta(asset_returns: Sequence[float], market_returns: Sequence[float]) -> float:
    """cov(asset, market) / var(market); 1.0 when undefined."""
    asset = np.asarray(asset_returns, dtype=float)
    market = np.asarray(market_returns, dtype=float)
    if len(asset) != len(market) or len(asset) == 0:
        return 1.0
    market_variance = covariance(market, market)
    if market_variance == 0:
        return 1.0
    return covariance(asset, market) / market_variance


def volatility(returns: Sequence[float]) -> float:
    """Annualized volatility, population stddev times sqrt(252)."""
    return stddev(returns) * math.sqrt(TRADING_DAYS)


def drawdown_curve(prices: Sequence[float]) -> pd.DataFrame:
    """
    Returns the value series, its running peak and the fractional drawdown
    below that peak at every point.
    """
    values = pd.Series(np.asarray(prices, dtype=float))
    peaks = values.expanding(min_periods=1).max()
    drawdowns = ((peaks - values) / peaks.where(peaks > 0)).fillna(0.0)
    return pd.DataFrame({
        'value': values,
        'peak': peaks,
        'drawdown': drawdowns
    })


def max_drawdown(prices: Sequence[float]) -> float:
    """Largest peak-to-trough decline as a fraction of the running peak."""
    if len(prices) == 0:
        return 0.0
    return float(max(0.0, drawdown_curve(prices)['drawdown'].max()))


def paired_returns(asset: pd.DataFrame, market: pd.DataFrame):
    """
    Asset and benchmark returns over the bars both series share.

    Bars are joined on timestamp before differencing, so a bar missing from
    either calendar drops out instead of shifting the pairing.
    """
    joined = asset[['timestamp', 'close']].merge(
        market[['timestamp', 'close']], on='timestamp', suffixes=('_asset', '_market')
    ).sort_values('timestamp')
    return (
        calculate_returns(joined['close_asset'].to_numpy(dtype=float)),
        calculate_returns(joined['close_market'].to_numpy(dtype=float)),
    )
