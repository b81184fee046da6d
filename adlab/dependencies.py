# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → Depends() injects.
# No global clients. Every dependency is explicit in endpoint signatures.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from adlab.services.metrics import PipelineMetrics
from adlab.services.pipeline import AdPipeline
from adlab.store.base import KeyValueStore


def get_store(request: Request) -> KeyValueStore:
    """Inject the KeyValueStore into endpoints via Depends()."""
    return request.app.state.store  # type: ignore[no-any-return]


def get_metrics(request: Request) -> PipelineMetrics:
    """Inject PipelineMetrics into endpoints via Depends()."""
    return request.app.state.metrics  # type: ignore[no-any-return]


def get_ad_pipeline(request: Request) -> AdPipeline:
    """Inject AdPipeline into endpoints via Depends()."""
    return request.app.state.ad_pipeline  # type: ignore[no-any-return]
