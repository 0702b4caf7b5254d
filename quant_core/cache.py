"""
Thread-Safe TTL Cache
=====================

Keyed store for transient engine results. Entries are immutable value
objects; they are replaced on recomputation and never mutated in place, so
the only races are insert/evict races whose worst case is a duplicate
computation.

Usage:
    cache = TTLCache(ttl_seconds=300)
    metrics = cache.get_or_compute(("risk", "AAPL"), lambda: engine.compute(...))
"""

import threading
import logging
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from quant_core.clock import Clock, RealTimeClock

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """RLock-guarded map of (value, inserted_at) with per-cache time-to-live."""

    def __init__(self, ttl_seconds: float = 300.0, clock: Optional[Clock] = None, max_entries: int = 1024):
        self.ttl_seconds = ttl_seconds
        self.clock = clock or RealTimeClock()
        self.max_entries = max_entries
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def _now(self) -> float:
        return self.clock.now().timestamp()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return default
            value, inserted_at = entry
            if self._now() - inserted_at >= self.ttl_seconds:
                del self._entries[key]
                self.misses += 1
                return default
            self.hits += 1
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            if len(self._entries) >= self.max_entries and key not in self._entries:
                self._evict_expired()
                if len(self._entries) >= self.max_entries:
                    # Drop the oldest insertion
                    oldest = min(self._entries, key=lambda k: self._entries[k][1])
                    del self._entries[oldest]
            self._entries[key] = (value, self._now())

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """Returns the cached value or computes, stores and returns a fresh one."""
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            logger.debug(f"Cache hit: {key}")
            return value
        logger.debug(f"Cache miss: {key}")
        # Computed outside the lock; concurrent misses may both compute.
        value = compute()
        self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _evict_expired(self) -> None:
        now = self._now()
        expired = [k for k, (_, ts) in self._entries.items() if now - ts >= self.ttl_seconds]
        for k in expired:
            del self._entries[k]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING
