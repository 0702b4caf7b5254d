"""
Stochastic Oscillator and Williams %R
"""
import numpy as np
import pandas as pd

from quant_core.analytics.indicators.base import BaseIndicator
from quant_core.analytics.models import IndicatorResult, Signal
from quant_core.analytics.series_math import sma
from quant_core.errors import enforce_positive_period


def _rolling_extremes(df: pd.DataFrame, period: int):
    highest = df['high'].rolling(window=period).max()
    lowest = df['low'].rolling(window=period).min()
    return highest, lowest


class Stochastic(BaseIndicator):
    """%K over a rolling window of ``k`` bars, %D = SMA(%K, d)."""

    def __init__(self, k_period: int = 14, d_period: int = 3):
        enforce_positive_period("k_period", k_period)
        enforce_positive_period("d_period", d_period)
        super().__init__("Stochastic")
        self.k_period = k_period
        self.d_period = d_period

    def calculate(self, df: pd.DataFrame, **kwargs) -> pd.DataFrame:
        highest, lowest = _rolling_extremes(df, self.k_period)
        price_range = highest - lowest
        k = (df['close'] - lowest) / price_range.replace(0, np.nan) * 100
        # A flat window has no position inside its range; read it as mid-range
        k = k.where(price_range.isna() | (price_range != 0), 50.0)

        k_values = k.dropna().to_numpy()
        d = sma(k_values, self.d_period).to_series(len(k_values))
        d.index = k.dropna().index
        return pd.DataFrame({'k': k, 'd': d.reindex(df.index)}, index=df.index)

    def evaluate(self, df: pd.DataFrame) -> IndicatorResult:
        if len(df) < self.k_period:
            return self._neutral(50.0)

        lines = self.calculate(df)
        current_k = float(lines['k'].iloc[-1])
        current_d = lines['d'].iloc[-1]
        current_d = 50.0 if pd.isna(current_d) else float(current_d)

        if current_k > 80:
            signal, strength = Signal.SELL, (current_k - 80) * 5
        elif current_k < 20:
            signal, strength = Signal.BUY, (20 - current_k) * 5
        else:
            signal, strength = Signal.NEUTRAL, 0.0

        return IndicatorResult(
            name=self.name,
            value=current_k,
            signal=signal,
            strength=min(100.0, max(0.0, strength)),
            description=f"Stochastic %K: {current_k:.2f}, %D: {current_d:.2f}",
            metadata={"d": current_d},
        )


class WilliamsR(BaseIndicator):
    """Stochastic mirrored onto a -100..0 scale."""

    def __init__(self, period: int = 14):
        enforce_positive_period("period", period)
        super().__init__("Williams %R")
        self.period = period

    def calculate(self, df: pd.DataFrame, **kwargs) -> pd.Series:
        highest, lowest = _rolling_extremes(df, self.period)
        price_range = highest - lowest
        wr = (highest - df['close']) / price_range.replace(0, np.nan) * -100
        return wr.where(price_range.isna() | (price_range != 0), -50.0)

    def evaluate(self, df: pd.DataFrame) -> IndicatorResult:
        if len(df) < self.period:
            return self._neutral(-50.0)

        current = float(self.calculate(df).iloc[-1])

        if current > -20:
            signal, strength = Signal.SELL, (current + 20) * 5
        elif current < -80:
            signal, strength = Signal.BUY, (-80 - current) * 5
        else:
            signal, strength = Signal.NEUTRAL, 0.0

        return IndicatorResult(
            name=self.name,
            value=current,
            signal=signal,
            strength=min(100.0, max(0.0, strength)),
            description=f"Williams %R: {current:.2f}%",
        )
