"""
Relative Strength Index (RSI)
"""
import numpy as np
import pandas as pd

from quant_core.analytics.indicators.base import BaseIndicator
from quant_core.analytics.models import IndicatorResult, Signal
from quant_core.errors import enforce_positive_period

# Loss floor so a series with no down moves stays finite
MIN_AVG_LOSS = 0.0001

OVERBOUGHT = 70.0
OVERSOLD = 30.0


class RSI(BaseIndicator):
    """
    Wilder RSI. Average gain/loss are seeded with the plain mean of the first
    ``period`` changes, then smoothed as ``(avg * (period - 1) + new) / period``.
    """

    def __init__(self, period: int = 14):
        enforce_positive_period("period", period)
        super().__init__("RSI")
        self.period = period

    def calculate(self, df: pd.DataFrame, **kwargs) -> pd.Series:
        closes = df['close'].to_numpy(dtype=float)
        out = np.full(len(closes), np.nan)
        if len(closes) < self.period + 1:
            return pd.Series(out, index=df.index)

        changes = np.diff(closes)
        gains = np.where(changes > 0, changes, 0.0)
        losses = np.where(changes < 0, -changes, 0.0)

        avg_gain = gains[:self.period].mean()
        avg_loss = losses[:self.period].mean()
        out[self.period] = self._rsi(avg_gain, avg_loss)

        for i in range(self.period, len(changes)):
            avg_gain = (avg_gain * (self.period - 1) + gains[i]) / self.period
            avg_loss = (avg_loss * (self.period - 1) + losses[i]) / self.period
            out[i + 1] = self._rsi(avg_gain, avg_loss)

        return pd.Series(out, index=df.index)

    @staticmethod
    def _rsi(avg_gain: float, avg_loss: float) -> float:
        rs = avg_gain / max(avg_loss, MIN_AVG_LOSS)
        return 100.0 - (100.0 / (1.0 + rs))

    def evaluate(self, df: pd.DataFrame) -> IndicatorResult:
        if len(df) < self.period + 1:
            return self._neutral(50.0)

        current = float(self.calculate(df).iloc[-1])

        if current > OVERBOUGHT:
            signal, label = Signal.SELL, "Overbought"
            strength = (current - OVERBOUGHT) / (100.0 - OVERBOUGHT) * 100.0
        elif current < OVERSOLD:
            signal, label = Signal.BUY, "Oversold"
            strength = (OVERSOLD - current) / OVERSOLD * 100.0
        else:
            signal, label, strength = Signal.NEUTRAL, "Neutral", 0.0

        return IndicatorResult(
            name=self.name,
            value=current,
            signal=signal,
            strength=min(100.0, max(0.0, strength)),
            description=f"RSI({self.period}): {current:.2f} - {label}",
        )
