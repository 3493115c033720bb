# services/ttl_cache.py
from __future__ import annotations

import time
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

V = TypeVar("V")

Clock = Callable[[], float]


class TTLCache(Generic[V]):
    """
    Small time-to-live map. Entries expire `ttl_seconds` after they were set.

    The clock is injectable so tests can move time forward without sleeping.
    Expired entries are dropped on read and swept on every write. With
    `maxsize`, a write into a full cache evicts the oldest entry.
    """

    def __init__(self, ttl_seconds: float, clock: Clock = time.monotonic, maxsize: Optional[int] = None):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        if maxsize is not None and maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self.ttl_seconds = float(ttl_seconds)
        self.maxsize = maxsize
        self._clock = clock
        # insertion order == write order, so the first key is the oldest
        self._data: Dict[Hashable, Tuple[float, V]] = {}

    def _fresh(self, ts: float, now: float) -> bool:
        return now - ts < self.ttl_seconds

    def _sweep(self, now: float) -> None:
        expired = [k for k, (ts, _) in self._data.items() if not self._fresh(ts, now)]
        for k in expired:
            del self._data[k]

    def get(self, key: Hashable) -> Optional[V]:
        hit = self._data.get(key)
        if hit is None:
            return None
        ts, value = hit
        if self._fresh(ts, self._clock()):
            return value
        self._data.pop(key, None)
        return None

    def set(self, key: Hashable, value: V) -> None:
        now = self._clock()
        self._sweep(now)
        self._data.pop(key, None)
        if self.maxsize is not None:
            while len(self._data) >= self.maxsize:
                del self._data[next(iter(self._data))]
        self._data[key] = (now, value)

    def invalidate(self, key: Hashable) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for ts, _ in self._data.values() if self._fresh(ts, now))

    @property
    def stored(self) -> int:
        """Entries physically held, expired ones included."""
        return len(self._data)
