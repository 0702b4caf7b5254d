"""
Series Math
-----------
Numeric primitives shared by every engine.

Alignment convention: SMA and WMA only produce values once a full window of
history exists, so their output is shorter than the input by ``period - 1``.
EMA produces one value per input element. Both are returned as
``AlignedSeries`` which carries the input index of its first value, so callers
never have to track the offset by hand.
"""
import math
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

from quant_core.errors import enforce_positive_period


@dataclass(frozen=True)
class AlignedSeries:
    """Indicator values right-aligned to an input series.

    ``values[0]`` corresponds to input index ``offset``.
    """
    values: np.ndarray
    offset: int = 0

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[float]:
        return iter(self.values.tolist())

    def __getitem__(self, item):
        return self.values[item]

    @property
    def empty(self) -> bool:
        return len(self.values) == 0

    @property
    def last(self) -> Optional[float]:
        return float(self.values[-1]) if len(self.values) else None

    def at(self, input_index: int) -> Optional[float]:
        """Value aligned with ``input_index`` of the source series, if any."""
        i = input_index - self.offset
        if 0 <= i < len(self.values):
            return float(self.values[i])
        return None

    def to_series(self, length: int) -> pd.Series:
        """Expands to a Series of the input's length, NaN before the offset."""
        out = np.full(length, np.nan)
        out[self.offset:self.offset + len(self.values)] = self.values
        return pd.Series(out)


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def sma(values: Sequence[float], period: int) -> AlignedSeries:
    enforce_positive_period("period", period)
    arr = _as_array(values)
    if len(arr) < period:
        return AlignedSeries(np.array([]), period - 1)
    rolled = pd.Series(arr).rolling(window=period).mean().to_numpy()
    return AlignedSeries(rolled[period - 1:], period - 1)


def wma(values: Sequence[float], period: int) -> AlignedSeries:
    """Linearly weighted moving average, newest value weighted ``period``."""
    enforce_positive_period("period", period)
    arr = _as_array(values)
    if len(arr) < period:
        return AlignedSeries(np.array([]), period - 1)
    weights = np.arange(1, period + 1, dtype=float)
    windows = sliding_window_view(arr, period)
    return AlignedSeries(windows @ weights / weights.sum(), period - 1)


def ema(values: Sequence[float], period: int) -> AlignedSeries:
    """
    Exponential moving average with multiplier ``2 / (period + 1)``.

    The first output is seeded with the simple average of the first
    ``min(period, len)`` values; every later element recurs from it, so the
    output has one value per input element.
    """
    enforce_positive_period("period", period)
    arr = _as_array(values)
    if len(arr) == 0:
        return AlignedSeries(np.array([]), 0)

    multiplier = 2.0 / (period + 1)
    out = np.empty(len(arr))
    out[0] = arr[:min(period, len(arr))].mean()
    for i in range(1, len(arr)):
        out[i] = arr[i] * multiplier + out[i - 1] * (1 - multiplier)
    return AlignedSeries(out, 0)


def mean(values: Sequence[float]) -> float:
    arr = _as_array(values)
    return float(arr.mean()) if len(arr) else 0.0


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation (divides by N)."""
    arr = _as_array(values)
    if len(arr) == 0:
        return 0.0
    return float(np.sqrt(np.mean((arr - arr.mean()) ** 2)))


def covariance(x: Sequence[float], y: Sequence[float]) -> float:
    """Population covariance; 0 for empty or mismatched inputs."""
    a, b = _as_array(x), _as_array(y)
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    return float(np.mean((a - a.mean()) * (b - b.mean())))


def correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation; 0 for empty, mismatched or zero-variance inputs."""
    a, b = _as_array(x), _as_array(y)
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    da, db = a - a.mean(), b - b.mean()
    denominator = math.sqrt(float(np.sum(da * da) * np.sum(db * db)))
    if denominator == 0:
        return 0.0
    return float(np.clip(np.sum(da * db) / denominator, -1.0, 1.0))


def trend_slope(values: Sequence[float]) -> float:
    """Least-squares slope of values against their index."""
    arr = _as_array(values)
    if len(arr) < 2:
        return 0.0
    x = np.arange(len(arr), dtype=float)
    var_x = np.mean((x - x.mean()) ** 2)
    return float(np.mean((x - x.mean()) * (arr - arr.mean())) / var_x)


def relative_change(values: Sequence[float]) -> float:
    """(last - first) / first; 0 for fewer than two values or a zero base."""
    arr = _as_array(values)
    if len(arr) < 2 or arr[0] == 0:
        return 0.0
    return float((arr[-1] - arr[0]) / arr[0])


def min_max_normalize(values: Sequence[float]) -> np.ndarray:
    """Scales to [0, 1]; a zero-range input maps to all zeros."""
    arr = _as_array(values)
    if len(arr) == 0:
        return arr
    lo, hi = arr.min(), arr.max()
    if hi - lo == 0:
        return np.zeros(len(arr))
    return (arr - lo) / (hi - lo)


def random_normal(rng: Optional[np.random.Generator] = None) -> float:
    """Standard normal draw via the Box-Muller transform."""
    rng = rng if rng is not None else np.random.default_rng()
    u = 1.0 - rng.random()  # (0, 1]
    v = 1.0 - rng.random()
    return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)


def random_normals(rng: Optional[np.random.Generator], size) -> np.ndarray:
    """Vectorized Box-Muller draws of the given shape."""
    rng = rng if rng is not None else np.random.default_rng()
    u = 1.0 - rng.random(size)
    v = 1.0 - rng.random(size)
    return np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v)
