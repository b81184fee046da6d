# In-process store: cachetools TLRUCache with per-entry expiry.
# Used when REDIS_URL is empty. Counters are per-process, so quotas only hold
# for a single worker. No method awaits, so each call is atomic on the loop.
#
# Counters live apart from values: `capacity` bounds the value cache only, and
# counters leave only when their TTL runs out.

from __future__ import annotations

import math
import time
from collections.abc import Callable

from cachetools import TLRUCache  # type: ignore[import-untyped]


def _expires_at(_key: str, entry: tuple[str, float], _now: float) -> float:
    return entry[1]


class MemoryStore:
    """KeyValueStore backed by bounded in-memory TLRU caches."""

    backend = "memory"

    def __init__(self, capacity: int = 10_000, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: TLRUCache[str, tuple[str, float]] = TLRUCache(
            maxsize=capacity, ttu=_expires_at, timer=clock
        )
        self._counters: TLRUCache[str, tuple[str, float]] = TLRUCache(
            maxsize=math.inf, ttu=_expires_at, timer=clock
        )

    async def get(self, key: str) -> str | None:
        entry = self._counters.get(key) or self._data.get(key)
        if entry is None:
            return None
        return entry[0]

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._counters.pop(key, None)
        self._data[key] = (value, self._clock() + ttl_seconds)

    async def incr(self, key: str, ttl_seconds: int) -> int:
        entry = self._counters.get(key)
        count = int(entry[0]) + 1 if entry is not None else 1
        self._counters[key] = (str(count), self._clock() + ttl_seconds)
        return count

    async def decr(self, key: str) -> int:
        entry = self._counters.get(key)
        if entry is None:
            return 0
        count = max(0, int(entry[0]) - 1)
        self._counters[key] = (str(count), entry[1])
        return count

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._data.clear()
        self._counters.clear()

    def __len__(self) -> int:
        return len(self._data) + len(self._counters)
