# ─────────────────────────────────────────────────────────────────────────────
# Prometheus Metrics Endpoint — text exposition format
# ─────────────────────────────────────────────────────────────────────────────
# GET /metrics/prometheus → text/plain Prometheus format
# Bridges PipelineMetrics → prometheus-client gauges.
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CollectorRegistry, Gauge, generate_latest

from adlab.dependencies import get_metrics
from adlab.services.metrics import EVENTS, PipelineMetrics

router = APIRouter()

# ── Prometheus metrics (custom registry to avoid default process metrics) ─────

_registry = CollectorRegistry()

_route_events = Gauge(
    "adlab_route_events",
    "Pipeline events since process start, per route",
    ["route", "event"],
    registry=_registry,
)

_cache_hit_ratio = Gauge(
    "adlab_cache_hit_ratio",
    "Cache hit ratio (0.0–1.0)",
    registry=_registry,
)

_latency_p95 = Gauge(
    "adlab_request_latency_p95_ms",
    "95th percentile pipeline latency over the last 1000 requests",
    registry=_registry,
)

_uptime = Gauge(
    "adlab_uptime_seconds",
    "Seconds since the metrics collector was created",
    registry=_registry,
)


def _sync_metrics(metrics: PipelineMetrics) -> None:
    """Sync PipelineMetrics data into Prometheus gauges."""
    data = metrics.to_dict()

    for route, events in data["routes"].items():
        for event in EVENTS:
            _route_events.labels(route=route, event=event).set(events.get(event, 0))

    _cache_hit_ratio.set(data["cache_hit_rate"])
    _latency_p95.set(data["latency_p95_ms"])
    _uptime.set(data["uptime_seconds"])


@router.get("/metrics/prometheus")
async def prometheus_metrics(
    metrics: PipelineMetrics = Depends(get_metrics),
) -> Response:
    """Prometheus text exposition format metrics endpoint."""
    _sync_metrics(metrics)
    return Response(
        content=generate_latest(_registry),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
