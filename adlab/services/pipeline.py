# Request pipeline shared by /generate and /inspect:
# quota → validation → cache key → cache-or-compute (provider on miss).
# Returns a PipelineOutcome; exceptions.render_outcome() maps it to HTTP.

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, cast

import structlog
from opentelemetry import trace
from pydantic import BaseModel

from adlab.cache.resolver import CacheResolver, Resolution
from adlab.config import Settings
from adlab.exceptions import (
    AdLabError,
    ProviderContractError,
    ProviderError,
    RateLimiterUnavailableError,
    RateLimitExceededError,
)
from adlab.providers.prompts import build_generation_prompt, build_inspection_prompt
from adlab.providers.protocol import AdCopyProvider, Completion, CompletionParams
from adlab.schemas import AdAnalysis, AdGenerationRequest, AdInspectionRequest, AdsPayload
from adlab.services.cache_keys import GENERATION_NAMESPACE, INSPECTION_NAMESPACE, derive_key
from adlab.services.metrics import PipelineMetrics
from adlab.services.quota import SlidingWindowLimiter
from adlab.services.validation import validate_payload

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class RouteConfig:
    """Everything that differs between the two endpoints."""

    route_id: str
    namespace: str
    request_model: type[BaseModel]
    result_model: type[BaseModel]
    cache_ttl_seconds: int
    params: CompletionParams
    limit_message: str
    failure_message: str


@dataclass(frozen=True)
class PipelineOutcome:
    """Either a success body or an error; never both."""

    body: dict[str, Any] | None = None
    error: AdLabError | None = None
    failure_message: str | None = None


def generation_route(settings: Settings) -> RouteConfig:
    return RouteConfig(
        route_id="generate",
        namespace=GENERATION_NAMESPACE,
        request_model=AdGenerationRequest,
        result_model=AdsPayload,
        cache_ttl_seconds=settings.generation_cache_ttl_seconds,
        params=CompletionParams(
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
        ),
        limit_message="Free limit reached!",
        failure_message="Generation failed",
    )


def inspection_route(settings: Settings) -> RouteConfig:
    return RouteConfig(
        route_id="inspect",
        namespace=INSPECTION_NAMESPACE,
        request_model=AdInspectionRequest,
        result_model=AdAnalysis,
        cache_ttl_seconds=settings.inspection_cache_ttl_seconds,
        params=CompletionParams(
            temperature=settings.inspection_temperature,
            max_tokens=settings.inspection_max_tokens,
        ),
        limit_message="Analysis limit reached!",
        failure_message="Analysis failed",
    )


class AdPipeline:
    """Stateless per request; all shared state lives in the store."""

    def __init__(
        self,
        limiter: SlidingWindowLimiter,
        resolver: CacheResolver,
        provider: AdCopyProvider,
        settings: Settings,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._limiter = limiter
        self._resolver = resolver
        self._provider = provider
        self._settings = settings
        self._metrics = metrics
        self._generation = generation_route(settings)
        self._inspection = inspection_route(settings)

    def _record(self, route: str, event: str) -> None:
        if self._metrics:
            self._metrics.record(route, event)

    async def generate(self, client_key: str, raw_body: bytes) -> PipelineOutcome:
        """POST /generate: ad variations for a campaign brief."""
        route = self._generation

        def compute_for(request: BaseModel) -> Callable[[], Awaitable[Completion]]:
            spec = build_generation_prompt(cast(AdGenerationRequest, request), route.params)
            return lambda: self._provider.generate(spec)

        return await self._run(route, client_key, raw_body, compute_for, self._render_ads)

    async def inspect(self, client_key: str, raw_body: bytes) -> PipelineOutcome:
        """POST /inspect: grade and critique a submitted ad."""
        route = self._inspection

        def compute_for(request: BaseModel) -> Callable[[], Awaitable[Completion]]:
            spec = build_inspection_prompt(cast(AdInspectionRequest, request), route.params)
            return lambda: self._provider.analyze(spec)

        return await self._run(route, client_key, raw_body, compute_for, self._render_analysis)

    async def _run(
        self,
        route: RouteConfig,
        client_key: str,
        raw_body: bytes,
        compute_for: Callable[[BaseModel], Callable[[], Awaitable[Completion]]],
        render: Callable[[Resolution[Any]], dict[str, Any]],
    ) -> PipelineOutcome:
        start = time.perf_counter()
        self._record(route.route_id, "requests")
        with tracer.start_as_current_span(f"pipeline.{route.route_id}") as span:
            try:
                outcome = await self._run_stages(route, client_key, raw_body, compute_for, render)
            except AdLabError as e:
                outcome = PipelineOutcome(error=e, failure_message=route.failure_message)
            span.set_attribute("outcome", "ok" if outcome.error is None else outcome.error.code)
        if self._metrics:
            self._metrics.record_latency((time.perf_counter() - start) * 1000)
        return outcome

    async def _run_stages(
        self,
        route: RouteConfig,
        client_key: str,
        raw_body: bytes,
        compute_for: Callable[[BaseModel], Callable[[], Awaitable[Completion]]],
        render: Callable[[Resolution[Any]], dict[str, Any]],
    ) -> PipelineOutcome:
        # 1. Admission
        try:
            decision = await self._limiter.check(route.route_id, client_key)
        except RateLimiterUnavailableError:
            self._record(route.route_id, "store_errors")
            raise
        if not decision.allowed:
            self._record(route.route_id, "rate_limited")
            return PipelineOutcome(
                error=RateLimitExceededError(
                    route.limit_message, decision.reset_at, self._settings.upgrade_url
                )
            )

        # 2. Validation
        validation = validate_payload(raw_body, route.request_model)
        if validation.error is not None or validation.value is None:
            self._record(route.route_id, "validation_failures")
            return PipelineOutcome(error=validation.error)
        request = validation.value

        # 3. Cache key
        key = derive_key(request, route.namespace, digest=self._settings.cache_key_digest)

        # 4. Cache-or-compute
        try:
            resolution = await self._resolver.resolve(
                key,
                compute_for(request),
                route.cache_ttl_seconds,
                route.result_model,
                route=route.route_id,
            )
        except ProviderError as e:
            event = (
                "provider_contract_errors"
                if isinstance(e, ProviderContractError)
                else "provider_transport_errors"
            )
            self._record(route.route_id, event)
            logger.error(
                "provider_failed",
                route=route.route_id,
                code=e.code,
                reason=e.reason,
                remaining_quota=decision.remaining,
            )
            return PipelineOutcome(error=e, failure_message=route.failure_message)

        logger.info(
            "pipeline_resolved",
            route=route.route_id,
            cache=resolution.cache,
            remaining_quota=decision.remaining,
        )
        return PipelineOutcome(body=render(resolution))

    @staticmethod
    def _meta(resolution: Resolution[Any]) -> dict[str, Any]:
        meta: dict[str, Any] = {"cache": resolution.cache}
        if resolution.completion is not None:
            meta["model"] = resolution.completion.model
            if resolution.completion.total_tokens is not None:
                meta["tokens"] = resolution.completion.total_tokens
        return meta

    def _render_ads(self, resolution: Resolution[Any]) -> dict[str, Any]:
        payload = resolution.value.model_dump(mode="json", by_alias=True, exclude_none=True)
        return {"ads": payload["ads"], "meta": self._meta(resolution)}

    def _render_analysis(self, resolution: Resolution[Any]) -> dict[str, Any]:
        analysis = resolution.value.model_dump(mode="json", by_alias=True, exclude_none=True)
        meta = self._meta(resolution)
        if resolution.cache == "miss":
            meta["analyzedAt"] = datetime.now(UTC).isoformat()
        return {"analysis": analysis, "meta": meta}
