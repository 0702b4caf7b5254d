"""
Bollinger Bands
"""
import numpy as np
import pandas as pd

from quant_core.analytics.indicators.base import BaseIndicator
from quant_core.analytics.models import BollingerBands as BollingerResult, IndicatorResult, Signal
from quant_core.analytics.series_math import AlignedSeries, sma
from quant_core.errors import enforce_positive_period, enforce_non_negative

# Mean bandwidth (%) of the last SQUEEZE_LOOKBACK periods below this is a squeeze
SQUEEZE_THRESHOLD = 10.0
SQUEEZE_LOOKBACK = 10


class BollingerBands(BaseIndicator):
    def __init__(self, period: int = 20, std_dev_multiplier: float = 2.0):
        enforce_positive_period("period", period)
        enforce_non_negative("std_dev_multiplier", std_dev_multiplier)
        super().__init__("Bollinger Bands")
        self.period = period
        self.std_dev_multiplier = std_dev_multiplier

    def calculate(self, df: pd.DataFrame, **kwargs) -> BollingerResult:
        closes = df['close'].astype(float)
        offset = self.period - 1
        middle = sma(closes.to_numpy(), self.period)

        if middle.empty:
            empty = AlignedSeries(np.array([]), offset)
            return BollingerResult(
                upper=empty, middle=empty, lower=empty, bandwidth=empty,
                squeeze=False, signal=Signal.NEUTRAL,
                description=f"{self.name}: Insufficient data",
            )

        # Population stddev of the trailing window
        std = closes.rolling(window=self.period).std(ddof=0).to_numpy()[offset:]
        std = np.nan_to_num(std, nan=0.0).clip(min=0.0)
        upper = middle.values + std * self.std_dev_multiplier
        lower = middle.values - std * self.std_dev_multiplier
        with np.errstate(divide='ignore', invalid='ignore'):
            bandwidth = np.where(middle.values != 0, (upper - lower) / middle.values * 100, 0.0)

        recent_bandwidth = bandwidth[-SQUEEZE_LOOKBACK:]
        squeeze = bool(recent_bandwidth.mean() < SQUEEZE_THRESHOLD)

        current_price = float(closes.iloc[-1])
        signal = Signal.NEUTRAL
        if current_price <= lower[-1]:
            signal = Signal.BUY
        elif current_price >= upper[-1]:
            signal = Signal.SELL

        return BollingerResult(
            upper=AlignedSeries(upper, offset),
            middle=middle,
            lower=AlignedSeries(lower, offset),
            bandwidth=AlignedSeries(bandwidth, offset),
            squeeze=squeeze,
            signal=signal,
            description=(
                f"Bollinger({self.period}, {self.std_dev_multiplier}): "
                f"upper {upper[-1]:.2f}, middle {middle.last:.2f}, lower {lower[-1]:.2f}"
                f"{' - Squeeze' if squeeze else ''}"
            ),
        )

    def evaluate(self, df: pd.DataFrame) -> IndicatorResult:
        bands = self.calculate(df)
        if bands.middle.empty:
            return self._neutral(0.0)

        return IndicatorResult(
            name=self.name,
            value=float(bands.bandwidth.last),
            signal=bands.signal,
            strength=0.0 if bands.signal == Signal.NEUTRAL else 100.0,
            description=bands.description,
            metadata={'squeeze': bands.squeeze},
        )
