"""
Volume Price Trend / On Balance Volume
"""
import numpy as np
import pandas as pd

from quant_core.analytics.indicators.base import BaseIndicator
from quant_core.analytics.models import IndicatorResult, Signal, VolumeAnalysis as VolumeResult
from quant_core.analytics.series_math import AlignedSeries, sma

VOLUME_MA_PERIOD = 20
RECENT_BARS = 5


class VolumeAnalysis(BaseIndicator):
    def __init__(self, ma_period: int = VOLUME_MA_PERIOD, recent_bars: int = RECENT_BARS):
        super().__init__("Volume")
        self.ma_period = ma_period
        self.recent_bars = recent_bars

    def calculate(self, df: pd.DataFrame, **kwargs) -> VolumeResult:
        if len(df) < 2:
            return VolumeResult(
                vpt=[], obv=[],
                volume_ma=AlignedSeries(np.array([]), self.ma_period - 1),
                signal=Signal.NEUTRAL, strength=0.0,
                description=f"{self.name}: Insufficient data",
            )

        closes = df['close'].to_numpy(dtype=float)
        volumes = df['volume'].to_numpy(dtype=float)

        prev_close = closes[:-1]
        with np.errstate(divide='ignore', invalid='ignore'):
            price_change = np.where(prev_close != 0, (closes[1:] - prev_close) / prev_close, 0.0)
        vpt = np.concatenate([[0.0], np.cumsum(volumes[1:] * price_change)])

        direction = np.sign(closes[1:] - prev_close)
        obv = np.concatenate([[volumes[0]], volumes[0] + np.cumsum(direction * volumes[1:])])

        volume_ma = sma(volumes, self.ma_period)
        ratio = self._ratio(volumes, volume_ma)

        signal = Signal.NEUTRAL
        strength = 0.0
        if ratio > 1.5:
            signal = Signal.BUY
            strength = min(100.0, (ratio - 1) * 50)
        elif ratio < 0.7:
            signal = Signal.SELL
            strength = min(100.0, (1 - ratio) * 50)

        return VolumeResult(
            vpt=vpt.tolist(),
            obv=obv.tolist(),
            volume_ma=volume_ma,
            signal=signal,
            strength=strength,
            description=f"Volume ratio {ratio:.2f} (recent {self.recent_bars} bars vs {self.ma_period}-bar average)",
        )

    def _ratio(self, volumes: np.ndarray, volume_ma: AlignedSeries) -> float:
        """Recent mean volume over the moving average; the recent mean stands in while the average is unfilled."""
        recent_volume = float(volumes[-self.recent_bars:].mean())
        avg_volume = volume_ma.last if not volume_ma.empty else recent_volume
        return recent_volume / avg_volume if avg_volume else 1.0

    def evaluate(self, df: pd.DataFrame) -> IndicatorResult:
        analysis = self.calculate(df)
        if len(df) < 2:
            return self._neutral(1.0)

        volumes = df['volume'].to_numpy(dtype=float)
        return IndicatorResult(
            name=self.name,
            value=self._ratio(volumes, analysis.volume_ma),
            signal=analysis.signal,
            strength=analysis.strength,
            description=analysis.description,
        )
