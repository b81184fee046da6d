# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────


from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration sourced from environment variables.

    Uses pydantic-settings v2 (separate package from pydantic).
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env")

    # ── Key-value store ──────────────────────────────────────────────────────
    # Empty string = in-process MemoryStore (single worker, dev / test only).
    redis_url: str = ""
    redis_timeout_seconds: float = 2.0
    memory_store_capacity: int = 10_000

    # ── Provider ─────────────────────────────────────────────────────────────
    # SecretStr keeps the key out of logs and repr().
    openai_api_key: SecretStr = SecretStr("")
    openai_base_url: str = ""  # Empty = SDK default endpoint
    openai_model: str = "gpt-4"
    provider_timeout_seconds: float = 10.0
    provider_max_retries: int = 2

    # Product tuning: more randomness for copy, less for grading.
    generation_temperature: float = 0.7
    generation_max_tokens: int = 1000
    inspection_temperature: float = 0.3
    inspection_max_tokens: int = 1500

    # ── Quota (per route, per client) ────────────────────────────────────────
    quota_limit: int = 3
    quota_window_seconds: int = 86_400
    quota_fail_open: bool = False  # False = reject when the store is unreachable
    upgrade_url: str = "/pricing"

    # Coarse per-IP flood guard in front of both endpoints (slowapi format).
    http_rate_limit: str = "120/minute"

    # ── Cache ────────────────────────────────────────────────────────────────
    generation_cache_ttl_seconds: int = 3_600
    inspection_cache_ttl_seconds: int = 86_400
    cache_key_digest: bool = False  # True = sha256 keys instead of base64
    coalesce_inflight: bool = False

    # ── Security ─────────────────────────────────────────────────────────────
    # Comma-separated origins for CORS. Empty string = deny all cross-origin.
    allowed_origins: str = ""

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
