"""
Standardized Input Contracts
----------------------------
Frozen dataclasses for the data the engines consume.
"""

import hashlib
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Sequence, Union

import pandas as pd

from quant_core.errors import InvalidParameterError

OHLCV_COLUMNS = ['timestamp', 'open', 'high', 'low', 'close', 'volume']


@dataclass(frozen=True)
class OHLCVBar:
    timestamp: int  # epoch milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class NewsItem:
    id: str
    title: str
    summary: str
    source: str
    published_at: int  # epoch milliseconds
    sentiment: Optional[str] = None  # 'positive' | 'negative' | 'neutral'
    sentiment_score: Optional[float] = None
    relevant_symbols: List[str] = field(default_factory=list)
    url: Optional[str] = None


@dataclass(frozen=True)
class FundamentalProfile:
    """Balance-sheet and classification context for a single asset."""
    market_cap: Optional[float] = None
    debt_to_equity: Optional[float] = None
    current_ratio: Optional[float] = None
    quick_ratio: Optional[float] = None
    sector: Optional[str] = None
    currency: str = "USD"


SeriesLike = Union[pd.DataFrame, Sequence[OHLCVBar]]


@dataclass(frozen=True)
class Holding:
    symbol: str
    weight: float
    series: SeriesLike
    profile: Optional[FundamentalProfile] = None


def bars_to_frame(bars: Sequence[OHLCVBar]) -> pd.DataFrame:
    """Converts a sequence of bars into an OHLCV DataFrame."""
    if len(bars) == 0:
        return pd.DataFrame({col: pd.Series(dtype=float) for col in OHLCV_COLUMNS})
    return pd.DataFrame([asdict(bar) for bar in bars], columns=OHLCV_COLUMNS)


def as_frame(series: SeriesLike) -> pd.DataFrame:
    """
    Normalizes a bar series into a validated OHLCV DataFrame.

    Accepts either a DataFrame with OHLCV columns or a sequence of OHLCVBar.
    Timestamps must be strictly increasing; every indicator depends on it.
    """
    if isinstance(series, pd.DataFrame):
        missing = [col for col in OHLCV_COLUMNS if col not in series.columns]
        if missing:
            raise InvalidParameterError(f"Series missing required columns: {missing}")
        df = series.reset_index(drop=True)
    else:
        df = bars_to_frame(list(series))

    if len(df) > 1 and not df['timestamp'].diff().iloc[1:].gt(0).all():
        raise InvalidParameterError("Series timestamps must be strictly increasing")
    return df


def series_fingerprint(df: pd.DataFrame) -> tuple:
    """Identity of a bar frame for cache keys: its length and a digest of every OHLCV value."""
    values = pd.util.hash_pandas_object(df[OHLCV_COLUMNS].astype(float), index=False).to_numpy()
    return (len(df), hashlib.sha256(values.tobytes()).hexdigest())
