"""TTL + LRU cache for weather grids.

Owned by a ``PredictionOrchestrator`` instance; there is no module-level
cache. The clock is injectable so expiry can be tested without sleeping.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, Hashable, TypeVar

from balloonpath.contracts.weather import WeatherWindow

logger = logging.getLogger(__name__)

V = TypeVar("V")

# Window boundaries are rounded to this many seconds / meters / degrees
_TIME_ROUND_S = 600
_ALTITUDE_ROUND_M = 500.0
_COORD_DECIMALS = 2


def window_key(source: str, window: WeatherWindow) -> tuple:
    """Cache key: nearby windows for the same source share an entry."""
    start = int(window.start.timestamp()) // _TIME_ROUND_S
    end = -(-int(window.end.timestamp()) // _TIME_ROUND_S)
    return (
        source,
        start,
        end,
        round(window.latitude, _COORD_DECIMALS),
        round(window.longitude, _COORD_DECIMALS),
        int(window.min_altitude // _ALTITUDE_ROUND_M),
        int(-(-window.max_altitude // _ALTITUDE_ROUND_M)),
    )


class TTLCache(Generic[V]):
    """Bounded cache: entries expire after ``ttl_s`` and the least recently
    used entry is evicted beyond ``max_entries``."""

    def __init__(
        self,
        ttl_s: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[float, V]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> V | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            stored_at, value = entry
            if self._clock() - stored_at > self.ttl_s:
                del self._entries[key]
                self.misses += 1
                logger.debug("Cache entry expired: %s", key)
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def put(self, key: Hashable, value: V) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache entry evicted: %s", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
