"""
Base Indicator Class
"""
from abc import ABC, abstractmethod
import pandas as pd

from quant_core.analytics.models import IndicatorResult, Signal


class BaseIndicator(ABC):
    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def calculate(self, df: pd.DataFrame, **kwargs):
        """
        Calculate the indicator value(s).

        Args:
            df: Input OHLCV DataFrame, time ascending
            **kwargs: Additional parameters for the calculation

        Returns:
            Series or DataFrame aligned to ``df``'s index, NaN where the
            look-back window is not yet filled
        """
        pass

    @abstractmethod
    def evaluate(self, df: pd.DataFrame) -> IndicatorResult:
        """Latest value of the indicator with its buy/sell/neutral reading."""
        pass

    def _neutral(self, value: float) -> IndicatorResult:
        """Result for a series too short for the look-back window."""
        return IndicatorResult(
            name=self.name,
            value=value,
            signal=Signal.NEUTRAL,
            strength=0.0,
            description=f"{self.name}: Insufficient data",
            insufficient_data=True,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
