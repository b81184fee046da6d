"""Key-value stores — Protocol, Redis and in-memory implementations."""

import structlog

from adlab.config import Settings
from adlab.store.base import KeyValueStore
from adlab.store.memory import MemoryStore
from adlab.store.redis_store import RedisStore

logger = structlog.get_logger(__name__)


def create_store(settings: Settings) -> KeyValueStore:
    """Redis when REDIS_URL is set, otherwise a per-process MemoryStore."""
    if settings.redis_url:
        logger.info("store_redis", timeout_s=settings.redis_timeout_seconds)
        return RedisStore.from_url(settings.redis_url, settings.redis_timeout_seconds)
    logger.warning(
        "store_memory_only",
        reason="REDIS_URL not set",
        hint="Quotas and cache are per-process; do not run multiple workers.",
    )
    return MemoryStore(capacity=settings.memory_store_capacity)


__all__ = ["KeyValueStore", "MemoryStore", "RedisStore", "create_store"]
