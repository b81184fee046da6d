# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────

import json
import os
from typing import Any

import pytest
from fastapi.testclient import TestClient

from adlab.cache.resolver import CacheResolver
from adlab.config import Settings
from adlab.exceptions import StoreError
from adlab.main import create_app
from adlab.providers.protocol import Completion, PromptSpec
from adlab.rate_limit import limiter
from adlab.services.metrics import PipelineMetrics
from adlab.services.pipeline import AdPipeline
from adlab.services.quota import SlidingWindowLimiter
from adlab.store.memory import MemoryStore

# ─── Canned payloads ─────────────────────────────────────────────────────────

SCENARIO_REQUEST: dict[str, Any] = {
    "targetAudience": "Busy moms aged 25 40 yrs",
    "goal": "Increase signups fast",
    "uniqueSellingPoint": "Only app with live coaching",
    "contextDescription": "We help moms build healthy routines in 10 minutes a day with proven plans.",
    "brandVoice": "Friendly",
    "keyEmotion": "Trust",
    "adFormat": "Single Image",
    "industry": "Health",
    "preferredCTA": "Sign Up",
    "visualDirection": "Lifestyle",
}

INSPECTION_REQUEST: dict[str, Any] = {
    "headline": "Get fit in 10 minutes",
    "body": "Short daily workouts designed by certified coaches for busy parents.",
    "cta": "Sign Up",
    "offerDescription": "First month free, cancel anytime.",
    "adType": "facebook",
    "industry": "Health",
}

ADS_JSON = json.dumps(
    {
        "ads": [
            {
                "type": "Single Image",
                "headline": "Your 10-minute reset",
                "primary_text": "Join thousands of moms building routines that stick.",
                "cta": "Sign Up",
                "visual_suggestion": "Mom stretching in a sunny kitchen",
            },
            {"type": "Single Image", "headline": "Coaching, live", "cta": "Sign Up"},
            {"type": "Single Image", "headline": "Healthy, not hard", "cta": "Sign Up"},
        ]
    }
)

ANALYSIS_JSON = json.dumps(
    {
        "grade": "B+",
        "headlineGrade": "A",
        "bodyGrade": "B",
        "ctaGrade": "B",
        "summary": "Clear offer, generic CTA.",
        "suggestions": ["Quantify the result", "Add urgency to the CTA"],
        "predictedCTR": "Medium",
        "attentionScore": 7,
        "complianceCheck": "No health claims detected",
    }
)


class FakeProvider:
    """AdCopyProvider returning canned text; records every prompt it sees."""

    name = "fake"

    def __init__(
        self,
        generate_text: str = ADS_JSON,
        analyze_text: str = ANALYSIS_JSON,
        error: Exception | None = None,
    ) -> None:
        self.generate_text = generate_text
        self.analyze_text = analyze_text
        self.error = error
        self.calls: list[tuple[str, PromptSpec]] = []
        self.closed = False

    async def generate(self, spec: PromptSpec) -> Completion:
        self.calls.append(("generate", spec))
        if self.error is not None:
            raise self.error
        return Completion(text=self.generate_text, model="gpt-4", total_tokens=321)

    async def analyze(self, spec: PromptSpec) -> Completion:
        self.calls.append(("analyze", spec))
        if self.error is not None:
            raise self.error
        return Completion(text=self.analyze_text, model="gpt-4", total_tokens=456)

    async def close(self) -> None:
        self.closed = True


class FailingStore:
    """KeyValueStore whose every data operation raises StoreError."""

    backend = "failing"

    async def get(self, key: str) -> str | None:
        raise StoreError("connection refused")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise StoreError("connection refused")

    async def incr(self, key: str, ttl_seconds: int) -> int:
        raise StoreError("connection refused")

    async def decr(self, key: str) -> int:
        raise StoreError("connection refused")

    async def ping(self) -> bool:
        return False

    async def close(self) -> None:
        return None


class FakeClock:
    """Manually advanced clock, usable as both wall and monotonic time."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ─── Fixtures ────────────────────────────────────────────────────────────────


@pytest.fixture
def test_settings() -> Settings:
    """Settings for testing — in-memory store, no real provider."""
    return Settings(
        redis_url="",
        openai_api_key="sk-test",
        log_json=False,
        log_level="DEBUG",
    )


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore(capacity=1_000)


@pytest.fixture
def metrics() -> PipelineMetrics:
    return PipelineMetrics()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


def build_pipeline(
    store: Any,
    provider: Any,
    settings: Settings,
    metrics: PipelineMetrics | None = None,
    *,
    fail_open: bool = False,
) -> AdPipeline:
    """Wire an AdPipeline the same way the lifespan does."""
    quota = SlidingWindowLimiter(
        store,
        settings.quota_limit,
        settings.quota_window_seconds,
        fail_open=fail_open,
    )
    resolver = CacheResolver(store, metrics, coalesce=settings.coalesce_inflight)
    return AdPipeline(quota, resolver, provider, settings, metrics=metrics)


@pytest.fixture
def pipeline(
    memory_store: MemoryStore,
    fake_provider: FakeProvider,
    test_settings: Settings,
    metrics: PipelineMetrics,
) -> AdPipeline:
    return build_pipeline(memory_store, fake_provider, test_settings, metrics)


@pytest.fixture
def client(
    test_settings: Settings,
    memory_store: MemoryStore,
    metrics: PipelineMetrics,
    pipeline: AdPipeline,
) -> TestClient:
    """FastAPI TestClient with test dependencies on app.state.

    The lifespan does not run (no ``with`` block), so no OpenAI client or
    Redis connection is created; app.state is populated directly.
    """
    from adlab.config import get_settings

    get_settings.cache_clear()
    limiter.reset()

    env_overrides = {
        "LOG_JSON": "false",
        "LOG_LEVEL": "DEBUG",
        "ALLOWED_ORIGINS": "*",
    }
    for k, v in env_overrides.items():
        os.environ[k] = v

    try:
        app = create_app()
        client = TestClient(app)

        app.state.settings = test_settings
        app.state.store = memory_store
        app.state.metrics = metrics
        app.state.ad_pipeline = pipeline

        return client
    finally:
        for k in env_overrides:
            os.environ.pop(k, None)
        get_settings.cache_clear()
