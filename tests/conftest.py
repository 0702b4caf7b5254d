import pytest
import numpy as np
import pandas as pd
from datetime import datetime

from quant_core.clock import ReplayClock
from quant_core.events import OHLCV_COLUMNS

DAY_MS = 86_400_000
START_MS = 1_735_689_600_000  # 2025-01-01 00:00 UTC


def make_series(closes, volumes=None, start_ms=START_MS, step_ms=DAY_MS, spread=0.005):
    """OHLCV frame where each bar opens at the previous close."""
    closes = np.asarray(closes, dtype=float)
    opens = np.concatenate([[closes[0]], closes[:-1]]) if len(closes) else closes
    highs = np.maximum(opens, closes) * (1 + spread)
    lows = np.minimum(opens, closes) * (1 - spread)
    if volumes is None:
        volumes = np.full(len(closes), 1_000_000.0)
    return pd.DataFrame({
        'timestamp': start_ms + np.arange(len(closes), dtype=np.int64) * step_ms,
        'open': opens,
        'high': highs,
        'low': lows,
        'close': closes,
        'volume': np.asarray(volumes, dtype=float),
    }, columns=OHLCV_COLUMNS)


@pytest.fixture
def series_factory():
    return make_series


@pytest.fixture
def rising_series():
    # 300 bars, +2% per bar, constant volume
    return make_series(100.0 * 1.02 ** np.arange(300))


@pytest.fixture
def falling_series():
    return make_series(100.0 * 0.99 ** np.arange(120))


@pytest.fixture
def flat_series():
    return make_series(np.full(60, 50.0), spread=0.0)


@pytest.fixture
def random_walk_series():
    rng = np.random.default_rng(7)
    closes = 100.0 * np.cumprod(1 + rng.normal(0.0005, 0.015, 250))
    volumes = rng.integers(500_000, 2_000_000, 250)
    return make_series(closes, volumes)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def replay_clock():
    return ReplayClock(datetime(2025, 1, 1, 9, 15))


@pytest.fixture
def lookalike_series():
    """Calm ramp and wild oscillation sharing length, timestamps, first and last close."""
    calm = np.linspace(100.0, 110.0, 60)
    wild = 110.0 + 40.0 * np.sin(np.linspace(0.0, 6 * np.pi, 60))
    wild[0], wild[-1] = 100.0, 110.0
    return make_series(calm), make_series(wild)
