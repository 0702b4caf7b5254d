"""
Moving Average Convergence Divergence (MACD)
"""
import pandas as pd

from quant_core.analytics.indicators.base import BaseIndicator
from quant_core.analytics.models import IndicatorResult, Signal
from quant_core.analytics.series_math import ema
from quant_core.errors import enforce_positive_period


class MACD(BaseIndicator):
    def __init__(self, fast: int = 12, slow: int = 26, signal: int = 9):
        for name, value in (("fast", fast), ("slow", slow), ("signal", signal)):
            enforce_positive_period(name, value)
        super().__init__("MACD")
        self.fast = fast
        self.slow = slow
        self.signal = signal

    def calculate(self, df: pd.DataFrame, **kwargs) -> pd.DataFrame:
        closes = df['close'].to_numpy(dtype=float)
        # EMA is full-length, so the lines align index-for-index with closes
        macd_line = ema(closes, self.fast).values - ema(closes, self.slow).values
        signal_line = ema(macd_line, self.signal).values
        histogram = macd_line - signal_line
        return pd.DataFrame({
            'macd': macd_line,
            'signal': signal_line,
            'histogram': histogram
        }, index=df.index)

    def evaluate(self, df: pd.DataFrame) -> IndicatorResult:
        if len(df) < self.slow:
            return self._neutral(0.0)

        lines = self.calculate(df)
        current_macd = float(lines['macd'].iloc[-1])
        current_signal = float(lines['signal'].iloc[-1])
        current_hist = float(lines['histogram'].iloc[-1])
        previous_hist = float(lines['histogram'].iloc[-2]) if len(lines) > 1 else 0.0

        # Only a histogram zero-crossing fires, never a standing MACD > signal
        signal = Signal.NEUTRAL
        strength = 0.0
        if current_macd > current_signal and previous_hist < 0 < current_hist:
            signal = Signal.BUY
            strength = min(100.0, abs(current_hist) * 100)
        elif current_macd < current_signal and previous_hist > 0 > current_hist:
            signal = Signal.SELL
            strength = min(100.0, abs(current_hist) * 100)

        return IndicatorResult(
            name=self.name,
            value=current_macd,
            signal=signal,
            strength=strength,
            description=(
                f"MACD: {current_macd:.4f}, Signal: {current_signal:.4f}, "
                f"Histogram: {current_hist:.4f}"
            ),
            metadata={"signal_line": current_signal, "histogram": current_hist},
        )
