# ─────────────────────────────────────────────────────────────────────────────
# Key-value store Protocol — shared by the quota limiter and the cache
# ─────────────────────────────────────────────────────────────────────────────
# The store owns all state that outlives a request: quota counters and cache
# entries. Implementations raise StoreError for any backend failure.
# ─────────────────────────────────────────────────────────────────────────────

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Async key-value store with TTLs and atomic counters."""

    @property
    def backend(self) -> str: ...

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def incr(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment ``key`` and (re)apply its TTL. Returns the new value."""
        ...

    async def decr(self, key: str) -> int: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...
