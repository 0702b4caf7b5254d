import numpy as np
import pandas as pd

from quant_core.analytics.indicators.base import BaseIndicator
from quant_core.analytics.models import IndicatorResult, Signal
from quant_core.analytics.series_math import ema
from quant_core.errors import enforce_positive_period

TRENDING_THRESHOLD = 25.0


class ADX(BaseIndicator):
    """
    Average Directional Index (ADX)
    Measures the strength of a trend, not its direction.
    Values > 25 indicate a trending market; direction comes from +DI vs -DI.
    """
    def __init__(self, period: int = 14):
        enforce_positive_period("period", period)
        super().__init__("ADX")
        self.period = period

    def calculate(self, df: pd.DataFrame, **kwargs) -> pd.DataFrame:
        """
        Calculates +DI, -DI, DX and ADX for the given DataFrame.
        Expected columns: 'high', 'low', 'close'
        Row 0 has no previous bar and is NaN.
        """
        columns = ['plus_di', 'minus_di', 'dx', 'adx']
        if len(df) < 2:
            return pd.DataFrame(np.nan, index=df.index, columns=columns)

        high = df['high'].to_numpy(dtype=float)
        low = df['low'].to_numpy(dtype=float)
        close = df['close'].to_numpy(dtype=float)

        # 1. TR, +DM, -DM
        tr = np.maximum.reduce([
            high[1:] - low[1:],
            np.abs(high[1:] - close[:-1]),
            np.abs(low[1:] - close[:-1]),
        ])
        up_move = high[1:] - high[:-1]
        down_move = low[:-1] - low[1:]
        plus_dm = np.where(up_move > down_move, np.maximum(up_move, 0.0), 0.0)
        minus_dm = np.where(down_move > up_move, np.maximum(down_move, 0.0), 0.0)

        # 2. Smooth TR, +DM, -DM
        smoothed_tr = ema(tr, self.period).values
        smoothed_plus = ema(plus_dm, self.period).values
        smoothed_minus = ema(minus_dm, self.period).values

        # 3. +DI, -DI (zero true range means no movement at all)
        with np.errstate(divide='ignore', invalid='ignore'):
            plus_di = np.where(smoothed_tr > 0, smoothed_plus / smoothed_tr * 100, 0.0)
            minus_di = np.where(smoothed_tr > 0, smoothed_minus / smoothed_tr * 100, 0.0)

            # 4. DX and ADX
            di_sum = plus_di + minus_di
            dx = np.where(di_sum > 0, np.abs(plus_di - minus_di) / di_sum * 100, 0.0)
        adx = ema(dx, self.period).values

        body = np.column_stack([plus_di, minus_di, dx, adx])
        out = np.vstack([np.full((1, 4), np.nan), body])
        return pd.DataFrame(out, index=df.index, columns=columns)

    def evaluate(self, df: pd.DataFrame) -> IndicatorResult:
        if len(df) < self.period + 1:
            return self._neutral(TRENDING_THRESHOLD)

        latest = self.calculate(df).iloc[-1]
        current = float(latest['adx'])
        plus_di = float(latest['plus_di'])
        minus_di = float(latest['minus_di'])
        trending = current > TRENDING_THRESHOLD

        signal = Signal.NEUTRAL
        if trending and plus_di > minus_di:
            signal = Signal.BUY
        elif trending and minus_di > plus_di:
            signal = Signal.SELL

        return IndicatorResult(
            name=self.name,
            value=current,
            signal=signal,
            strength=min(100.0, max(0.0, current)),
            description=f"ADX: {current:.2f} - {'Strong Trend' if trending else 'Weak Trend'}",
            metadata={"plus_di": plus_di, "minus_di": minus_di, "trending": trending},
        )
