# ─────────────────────────────────────────────────────────────────────────────
# Health Check Routes — liveness, readiness, metrics
# ─────────────────────────────────────────────────────────────────────────────
#   /health        → Liveness probe. Near-zero cost, always 200.
#   /health/ready  → Readiness probe. Pings the key-value store; 503 if the
#                    store is unreachable so the instance gets no traffic.
#   /metrics       → Pipeline counters and latency (JSON).
# ─────────────────────────────────────────────────────────────────────────────

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from adlab.dependencies import get_metrics, get_store
from adlab.schemas import LivenessResponse, ReadinessResponse
from adlab.services.metrics import PipelineMetrics
from adlab.store.base import KeyValueStore

router = APIRouter()


@router.get("/health", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe. No deps, no I/O."""
    return LivenessResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness(store: KeyValueStore = Depends(get_store)) -> JSONResponse:
    """Readiness probe — can this instance reach its store?"""
    connected = await store.ping()
    response = ReadinessResponse(
        status="ready" if connected else "not_ready",
        store_backend=store.backend,
        store_connected=connected,
    )
    return JSONResponse(
        status_code=200 if connected else 503,
        content=response.model_dump(),
    )


@router.get("/metrics")
async def metrics_endpoint(
    metrics: PipelineMetrics = Depends(get_metrics),
) -> dict[str, Any]:
    """Pipeline metrics — per-route events, hit rate, latency."""
    return metrics.to_dict()
