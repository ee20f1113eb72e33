"""
Small key/value cache with time-based freshness.

Used for per-date contextual factors (weather TTL) and for the analytics
summary. Staleness can be forced explicitly so callers can react to new data
without waiting for the TTL to run out.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class _CacheItem(Generic[V]):
    value: V
    stored_at: float
    stale: bool = False


class TTLCache(Generic[V]):
    """
    Thread-safe TTL cache.

    Args:
        ttl: Freshness window in seconds.
        clock: Monotonic time source (seconds); injectable for tests.
        max_size: Optional cap; the oldest items are evicted first.
    """

    def __init__(
        self,
        ttl: float,
        clock: Optional[Callable[[], float]] = None,
        name: str = "cache",
        max_size: Optional[int] = None,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl = ttl
        self.name = name
        self.max_size = max_size
        self._clock = clock or time.monotonic
        self._items: Dict[Hashable, _CacheItem[V]] = {}
        self._lock = threading.Lock()

    def _is_expired(self, item: _CacheItem[V], now: float) -> bool:
        return item.stale or now - item.stored_at >= self.ttl

    def get(self, key: Hashable) -> Optional[V]:
        """Returns the cached value, or None when missing, expired or marked stale."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            if self._is_expired(item, self._clock()):
                del self._items[key]
                logger.debug(f"[CACHE] {self.name}: expired {key!r}")
                return None
            return item.value

    def set(self, key: Hashable, value: V) -> None:
        """Stores value, dropping expired items and evicting the oldest beyond max_size."""
        with self._lock:
            now = self._clock()
            expired = [k for k, item in self._items.items() if self._is_expired(item, now)]
            for k in expired:
                del self._items[k]
            self._items.pop(key, None)
            self._items[key] = _CacheItem(value=value, stored_at=now)
            if self.max_size is not None:
                while len(self._items) > self.max_size:
                    oldest = next(iter(self._items))
                    del self._items[oldest]
                    logger.debug(f"[CACHE] {self.name}: evicted {oldest!r}")

    def get_or_compute(self, key: Hashable, compute: Callable[[], V]) -> V:
        """
        Returns the fresh cached value or computes and stores a new one.

        The computation runs outside the lock so independent keys never wait
        on each other.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        value = compute()
        if value is not None:
            self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._items.pop(key, None)

    def mark_stale(self, key: Optional[Hashable] = None) -> None:
        """Flags one key (or every key when None) for recomputation on next access."""
        with self._lock:
            if key is None:
                for item in self._items.values():
                    item.stale = True
                return
            item = self._items.get(key)
            if item is not None:
                item.stale = True

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
