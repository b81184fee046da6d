# ─────────────────────────────────────────────────────────────────────────────
# Sliding-window quota — N requests per (route, client) per window
# ─────────────────────────────────────────────────────────────────────────────
# Weighted two-window counter: the previous fixed window's count is scaled by
# how much of it still overlaps the trailing window, then added to the current
# window's count. Only INCR/DECR/EXPIRE are needed, so atomicity comes from the
# store, not from in-process locks.
#
# Increment first, check second: concurrent callers each see a distinct count,
# so at most `limit` of them are admitted. Rejected hits are refunded.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from adlab.exceptions import RateLimiterUnavailableError, StoreError
from adlab.store.base import KeyValueStore

logger = structlog.get_logger(__name__)

DEFAULT_PREFIXES: Mapping[str, str] = {
    "generate": "adgen-ratelimit",
    "inspect": "adinsp-ratelimit",
}


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reset_at: datetime
    limit: int
    remaining: int


class SlidingWindowLimiter:
    """Admission control keyed by (route_id, client_key)."""

    def __init__(
        self,
        store: KeyValueStore,
        limit: int = 3,
        window_seconds: int = 86_400,
        *,
        fail_open: bool = False,
        prefixes: Mapping[str, str] = DEFAULT_PREFIXES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1 or window_seconds < 1:
            raise ValueError("limit and window_seconds must be positive")
        self._store = store
        self._limit = limit
        self._window = window_seconds
        self._fail_open = fail_open
        self._prefixes = dict(prefixes)
        self._clock = clock

    def _key(self, route_id: str, client_key: str, window_index: int) -> str:
        prefix = self._prefixes.get(route_id, f"{route_id}-ratelimit")
        return f"{prefix}:{client_key}:{window_index}"

    async def check(self, route_id: str, client_key: str) -> RateLimitDecision:
        """Count this request and decide whether it is admitted.

        Raises RateLimiterUnavailableError when the store fails and the
        limiter is fail-closed.
        """
        now = self._clock()
        window_index = int(now // self._window)
        reset_at = datetime.fromtimestamp((window_index + 1) * self._window, tz=UTC)
        current_key = self._key(route_id, client_key, window_index)
        previous_key = self._key(route_id, client_key, window_index - 1)

        try:
            current = await self._store.incr(current_key, ttl_seconds=self._window * 2 + 1)
            previous = int(await self._store.get(previous_key) or 0)
        except StoreError as e:
            return self._on_store_failure(route_id, reset_at, e)

        overlap = 1.0 - (now % self._window) / self._window
        estimate = math.floor(previous * overlap) + current

        if estimate > self._limit:
            try:
                await self._store.decr(current_key)
            except StoreError:
                logger.warning("quota_refund_failed", route=route_id, key=current_key)
            return RateLimitDecision(
                allowed=False, reset_at=reset_at, limit=self._limit, remaining=0
            )

        return RateLimitDecision(
            allowed=True,
            reset_at=reset_at,
            limit=self._limit,
            remaining=self._limit - estimate,
        )

    def _on_store_failure(
        self, route_id: str, reset_at: datetime, error: StoreError
    ) -> RateLimitDecision:
        logger.error(
            "quota_store_unavailable",
            route=route_id,
            error=error.message,
            policy="fail_open" if self._fail_open else "fail_closed",
        )
        if not self._fail_open:
            raise RateLimiterUnavailableError("Rate limiter unavailable") from error
        return RateLimitDecision(
            allowed=True, reset_at=reset_at, limit=self._limit, remaining=self._limit
        )
