"""
Walk-Forward Backtest
---------------------
Replays a series bar by bar from ``start_index``. At each bar the ensemble
sees only the bars up to and including it; positions open and close at that
bar's close. Realized returns are booked when a position closes, and any
position still open is closed on the last bar.

Strategies:
    ml_signals - single long/short position flipped on confident 1d calls
    buy_hold   - long from start_index to the end
"""
import logging
import math
from typing import List, TYPE_CHECKING

import numpy as np

from quant_core.errors import InvalidParameterError, enforce_non_negative
from quant_core.events import SeriesLike, as_frame
from quant_core.prediction.models import BacktestResult, Direction, ModelPerformance, Trade
from quant_core.risk import statistics

if TYPE_CHECKING:
    from quant_core.prediction.ensemble import PredictionEnsemble

logger = logging.getLogger(__name__)

INITIAL_CASH = 10000.0
CONFIDENCE_GATE = 0.6
STRATEGIES = ('ml_signals', 'buy_hold')


class Account:
    """Cash plus a signed share count; shorts credit their sale proceeds to cash."""

    def __init__(self, cash: float):
        self.cash = cash
        self.shares = 0.0
        self.entry_price = 0.0

    @property
    def position(self) -> int:
        return int(np.sign(self.shares))

    def value(self, price: float) -> float:
        return self.cash + self.shares * price

    def open(self, side: int, price: float):
        equity = self.value(price)
        self.shares = side * equity / price
        self.cash = equity - self.shares * price
        self.entry_price = price

    def close(self, price: float) -> float:
        realized = self.position * (price - self.entry_price) / self.entry_price
        self.cash += self.shares * price
        self.shares = 0.0
        return realized


def _mean_std(values: List[float]):
    if not values:
        return 0.0, 0.0
    arr = np.asarray(values, dtype=float)
    return float(arr.mean()), float(arr.std())


def _performance(predicted: List[float], actual: List[float], hits: List[bool],
                 signal_returns: List[float]) -> ModelPerformance:
    if not actual:
        return ModelPerformance(mae=0.0, rmse=0.0, accuracy=0.0, sharpe_ratio=0.0, max_drawdown=0.0)

    errors = (np.asarray(predicted) - np.asarray(actual)) / np.asarray(actual)
    mean, std = _mean_std(signal_returns)
    curve = np.cumprod(1 + np.asarray(signal_returns))
    return ModelPerformance(
        mae=float(np.mean(np.abs(errors))),
        rmse=float(math.sqrt(np.mean(errors ** 2))),
        accuracy=float(np.mean(hits)),
        sharpe_ratio=mean / std if std > 0 else 0.0,
        max_drawdown=statistics.max_drawdown(np.concatenate([[1.0], curve])),
    )


def run_backtest(ensemble: 'PredictionEnsemble', series: SeriesLike, start_index: int = 100,
                 strategy: str = 'ml_signals') -> BacktestResult:
    if strategy not in STRATEGIES:
        raise InvalidParameterError(f"Unknown strategy '{strategy}'; expected one of {STRATEGIES}")
    enforce_non_negative("start_index", start_index)

    df = as_frame(series)
    closes = df['close'].to_numpy(dtype=float)
    timestamps = df['timestamp'].to_numpy()

    account = Account(INITIAL_CASH)
    trades: List[Trade] = []
    realized: List[float] = []
    equity = [INITIAL_CASH]

    predicted, actual, hits, signal_returns = [], [], [], []

    for i in range(start_index, len(df) - 1):
        price = closes[i]
        if price <= 0:
            continue

        if strategy == 'buy_hold':
            if account.position == 0:
                account.open(1, price)
                trades.append(Trade(int(timestamps[i]), 'buy', price, 0.0))
        else:
            prediction = ensemble.predict(df.iloc[:i + 1], ('1d',), use_cache=False)[0]

            next_price = closes[i + 1]
            if next_price > 0:
                move = (next_price - price) / price
                predicted.append(prediction.price)
                actual.append(next_price)
                hits.append(prediction.direction.sign == int(np.sign(move)))
                signal_returns.append(prediction.direction.sign * move)

            side = prediction.direction.sign
            if prediction.confidence > CONFIDENCE_GATE and side != 0 and account.position != side:
                had_position = account.position != 0
                trade_return = account.close(price) if had_position else 0.0
                if had_position:
                    realized.append(trade_return)
                account.open(side, price)
                trades.append(Trade(int(timestamps[i]), 'buy' if side > 0 else 'sell', price, trade_return))

        equity.append(account.value(price))

    if account.position != 0:
        side = account.position
        final_price = closes[-1]
        trade_return = account.close(final_price)
        realized.append(trade_return)
        trades.append(Trade(int(timestamps[-1]), 'sell' if side > 0 else 'buy', final_price, trade_return))

    final_equity = account.value(closes[-1]) if len(closes) else INITIAL_CASH
    equity.append(final_equity)

    wins = [r for r in realized if r > 0]
    losses = [r for r in realized if r < 0]
    mean, std = _mean_std(realized)

    result = BacktestResult(
        total_return=(final_equity - INITIAL_CASH) / INITIAL_CASH,
        win_rate=len(wins) / len(realized) if realized else 0.0,
        avg_win=float(np.mean(wins)) if wins else 0.0,
        avg_loss=float(abs(np.mean(losses))) if losses else 0.0,
        max_drawdown=statistics.max_drawdown(equity),
        sharpe_ratio=mean / std if std > 0 else 0.0,
        trades=trades,
        final_equity=final_equity,
        performance=_performance(predicted, actual, hits, signal_returns) if strategy == 'ml_signals' else None,
    )
    logger.info(
        f"Backtest {strategy}: {len(trades)} trades, return {result.total_return:.2%}, "
        f"win rate {result.win_rate:.0%}"
    )
    return result
