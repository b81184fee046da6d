# FastAPI application factory with lifespan management.
# Entrypoint: uvicorn adlab.main:create_app --factory --host 0.0.0.0 --port 8080

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from adlab.cache.resolver import CacheResolver
from adlab.config import get_settings
from adlab.exceptions import register_exception_handlers
from adlab.logging_config import configure_logging
from adlab.middleware import RequestContextMiddleware
from adlab.providers import OpenAIAdProvider
from adlab.rate_limit import limiter
from adlab.routes import ads, health
from adlab.routes import prometheus as prometheus_routes
from adlab.services.metrics import PipelineMetrics
from adlab.services.pipeline import AdPipeline
from adlab.services.quota import SlidingWindowLimiter
from adlab.store import create_store

logger = structlog.get_logger(__name__)


def _parse_retry_after(rate_limit: str) -> int:
    """Extract window duration from slowapi rate limit string."""
    windows = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}
    try:
        _, window = rate_limit.strip().split("/")
        return windows.get(window.strip(), 60)
    except (ValueError, AttributeError):
        return 60


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Flood-guard 429, same body shape as the quota rejection."""
    settings = get_settings()
    retry_after = _parse_retry_after(settings.http_rate_limit)
    logger.warning(
        "http_rate_limit_exceeded",
        path=request.url.path,
        method=request.method,
        detail=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "reset": (datetime.now(UTC) + timedelta(seconds=retry_after)).isoformat(),
            "upgradeUrl": settings.upgrade_url,
        },
        headers={"Retry-After": str(retry_after)},
    )


if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider


def _configure_otel(exporter_type: str) -> "TracerProvider | None":
    """Configure OpenTelemetry tracing (console only)."""
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    if exporter_type != "console":
        logger.warning("unknown_otel_exporter", exporter=exporter_type)
        return None

    from opentelemetry.sdk.trace.export import ConsoleSpanExporter

    provider = TracerProvider()
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    from opentelemetry import trace

    trace.set_tracer_provider(provider)
    logger.info("otel_configured", exporter=exporter_type)
    return provider


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the store, quota limiter, cache resolver and provider; close them on exit."""
    settings = get_settings()

    otel_provider = None
    otel_exporter = os.environ.get("OTEL_EXPORTER", "")
    if otel_exporter:
        otel_provider = _configure_otel(otel_exporter)

    store = create_store(settings)
    metrics = PipelineMetrics()
    quota = SlidingWindowLimiter(
        store,
        settings.quota_limit,
        settings.quota_window_seconds,
        fail_open=settings.quota_fail_open,
    )
    resolver = CacheResolver(store, metrics, coalesce=settings.coalesce_inflight)
    provider = OpenAIAdProvider.from_settings(settings)

    app.state.settings = settings
    app.state.store = store
    app.state.metrics = metrics
    app.state.ad_pipeline = AdPipeline(quota, resolver, provider, settings, metrics=metrics)

    logger.info(
        "adlab_started",
        store_backend=store.backend,
        provider=provider.name,
        model=settings.openai_model,
        quota_limit=settings.quota_limit,
        quota_fail_open=settings.quota_fail_open,
    )

    yield

    if otel_provider is not None:
        otel_provider.shutdown()

    await provider.close()
    await store.close()


def _parse_origins(allowed_origins: str) -> list[str]:
    """Parse comma-separated CORS origins. Empty string → deny all."""
    if not allowed_origins.strip():
        logger.warning(
            "cors_no_origins_configured",
            hint="Set ALLOWED_ORIGINS env var. Cross-origin requests will be rejected.",
        )
        return []
    return [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]


def create_app() -> FastAPI:
    """Application factory. Invoked by: uvicorn adlab.main:create_app --factory"""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="AdLab",
        description="Ad copy generation and inspection API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    # Middleware order (Starlette applies in reverse): CORS → RequestContext
    app.add_middleware(RequestContextMiddleware)

    origins = _parse_origins(settings.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(ads.router, tags=["ads"])
    app.include_router(prometheus_routes.router, tags=["prometheus"])

    return app
