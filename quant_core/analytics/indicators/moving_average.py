"""
Simple / Exponential / Weighted Moving Average
"""
import pandas as pd

from quant_core.analytics.indicators.base import BaseIndicator
from quant_core.analytics.models import IndicatorResult, MovingAverage as MovingAverageResult, Signal
from quant_core.analytics.series_math import sma, ema, wma
from quant_core.errors import InvalidParameterError, enforce_positive_period

_KINDS = {"sma": sma, "ema": ema, "wma": wma}


class MovingAverage(BaseIndicator):
    def __init__(self, period: int = 20, kind: str = "sma"):
        enforce_positive_period("period", period)
        if kind not in _KINDS:
            raise InvalidParameterError(f"Unknown moving average kind {kind!r}; expected one of {list(_KINDS)}")
        super().__init__(f"{kind.upper()}_{period}")
        self.period = period
        self.kind = kind

    def calculate(self, df: pd.DataFrame, **kwargs) -> MovingAverageResult:
        closes = df['close'].to_numpy(dtype=float)
        values = _KINDS[self.kind](closes, self.period)
        current = values.last

        signal = Signal.NEUTRAL
        if current is not None and len(closes):
            if closes[-1] > current:
                signal = Signal.BUY
            elif closes[-1] < current:
                signal = Signal.SELL

        return MovingAverageResult(
            period=self.period,
            kind=self.kind,
            values=values,
            current=current,
            signal=signal,
        )

    def evaluate(self, df: pd.DataFrame) -> IndicatorResult:
        average = self.calculate(df)
        if average.current is None:
            return self._neutral(0.0)

        price = float(df['close'].iloc[-1])
        distance = abs(price - average.current) / average.current * 100 if average.current else 0.0
        return IndicatorResult(
            name=self.name,
            value=average.current,
            signal=average.signal,
            strength=min(100.0, distance * 10),
            description=f"{self.name} {average.current:.2f}, price {distance:.1f}% away",
        )
