# Cache-or-compute over the shared KeyValueStore.
# Store reads/writes are best-effort: read failures count as misses, write
# failures are logged and swallowed. Only shape-validated provider output is
# ever written. self._in_flight (opt-in) coalesces concurrent misses per key.

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

import structlog
from opentelemetry import trace
from pydantic import BaseModel, ValidationError

from adlab.exceptions import ProviderContractError, StoreError
from adlab.providers.protocol import Completion
from adlab.services.metrics import PipelineMetrics
from adlab.store.base import KeyValueStore

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class Resolution(Generic[T]):
    value: T
    cache: Literal["hit", "miss"]
    completion: Completion | None = None


class CacheResolver:
    """Look up a key; on miss compute, validate, store, return."""

    def __init__(
        self,
        store: KeyValueStore,
        metrics: PipelineMetrics | None = None,
        *,
        coalesce: bool = False,
    ) -> None:
        self._store = store
        self._metrics = metrics
        self._coalesce = coalesce
        self._in_flight: dict[str, asyncio.Future[Resolution[BaseModel]]] = {}

    def _record(self, route: str, event: str) -> None:
        if self._metrics:
            self._metrics.record(route, event)

    async def resolve(
        self,
        key: str,
        compute: Callable[[], Awaitable[Completion]],
        ttl_seconds: int,
        shape: type[T],
        *,
        route: str = "default",
    ) -> Resolution[T]:
        """Return the cached value for ``key`` or compute and cache it.

        Raises whatever ``compute`` raises, and ProviderContractError when its
        output does not validate against ``shape``. Neither case writes.
        """
        cached = await self._lookup(key, shape, route)
        if cached is not None:
            self._record(route, "cache_hits")
            return Resolution(value=cached, cache="hit")
        self._record(route, "cache_misses")

        if not self._coalesce:
            return await self._compute_and_store(key, compute, ttl_seconds, shape, route)

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.debug("cache_coalescing", key=key, route=route)
            self._record(route, "coalesced")
            return await asyncio.shield(pending)  # type: ignore[return-value]

        future: asyncio.Future[Resolution[BaseModel]] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            result = await self._compute_and_store(key, compute, ttl_seconds, shape, route)
        except BaseException as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited future doesn't warn on GC.
            future.exception()
            raise
        else:
            future.set_result(result)  # type: ignore[arg-type]
            return result
        finally:
            self._in_flight.pop(key, None)

    async def _lookup(self, key: str, shape: type[T], route: str) -> T | None:
        with tracer.start_as_current_span("cache_lookup"):
            try:
                raw = await self._store.get(key)
            except StoreError as e:
                self._record(route, "cache_read_errors")
                logger.warning("cache_read_failed", key=key, route=route, error=e.message)
                return None
        if raw is None:
            logger.debug("cache_miss", key=key, route=route)
            return None
        try:
            return shape.model_validate_json(raw)
        except ValidationError:
            self._record(route, "cache_read_errors")
            logger.warning("cache_entry_invalid", key=key, route=route)
            return None

    async def _compute_and_store(
        self,
        key: str,
        compute: Callable[[], Awaitable[Completion]],
        ttl_seconds: int,
        shape: type[T],
        route: str,
    ) -> Resolution[T]:
        completion = await compute()
        value = self._parse(completion, shape, route)

        with tracer.start_as_current_span("cache_write"):
            try:
                await self._store.set(key, value.model_dump_json(by_alias=True), ttl_seconds)
            except StoreError as e:
                self._record(route, "cache_write_errors")
                logger.warning("cache_write_failed", key=key, route=route, error=e.message)

        return Resolution(value=value, cache="miss", completion=completion)

    @staticmethod
    def _parse(completion: Completion, shape: type[T], route: str) -> T:
        try:
            return shape.model_validate_json(completion.text)
        except ValidationError as e:
            not_json = any(err["type"] == "json_invalid" for err in e.errors())
            logger.error(
                "provider_response_malformed",
                route=route,
                shape=shape.__name__,
                reason="not_json" if not_json else "missing_fields",
                errors=e.error_count(),
                content_preview=completion.text[:200],
            )
            reason = "content is not JSON" if not_json else f"content is not a valid {shape.__name__}"
            raise ProviderContractError(route, reason) from e
