# ─────────────────────────────────────────────────────────────────────────────
# Pipeline Metrics — per-route event counters and latency tracking
# ─────────────────────────────────────────────────────────────────────────────
# Counts what the request pipeline sees: admissions, quota rejections,
# validation failures, cache hits/misses, provider and store errors.
# Exposed via GET /metrics (JSON) and GET /metrics/prometheus.
#
# Bounded: latency history uses deque(maxlen=1000), auto-evicts oldest.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any

EVENTS: tuple[str, ...] = (
    "requests",
    "cache_hits",
    "cache_misses",
    "rate_limited",
    "validation_failures",
    "provider_transport_errors",
    "provider_contract_errors",
    "cache_read_errors",
    "cache_write_errors",
    "store_errors",
    "coalesced",
)


@dataclass
class PipelineMetrics:
    """Thread-safe request pipeline metrics."""

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _counts: Counter[tuple[str, str]] = field(default_factory=Counter, repr=False)

    # Bounded -- only keeps last 1000 latencies, oldest auto-evicted
    _latency_history: deque[float] = field(default_factory=lambda: deque(maxlen=1000), repr=False)
    _start_time: float = field(default_factory=time.time, repr=False)

    def record(self, route: str, event: str, count: int = 1) -> None:
        """Increment ``event`` for ``route``."""
        if event not in EVENTS:
            raise ValueError(f"Unknown metrics event: {event}")
        with self._lock:
            self._counts[(route, event)] += count

    def record_latency(self, latency_ms: float) -> None:
        with self._lock:
            self._latency_history.append(latency_ms)

    def count(self, route: str, event: str) -> int:
        with self._lock:
            return self._counts[(route, event)]

    def total(self, event: str) -> int:
        with self._lock:
            return sum(n for (_, ev), n in self._counts.items() if ev == event)

    def by_route(self) -> dict[str, dict[str, int]]:
        with self._lock:
            routes: dict[str, dict[str, int]] = {}
            for (route, event), n in self._counts.items():
                routes.setdefault(route, dict.fromkeys(EVENTS, 0))[event] = n
            return routes

    def to_dict(self) -> dict[str, Any]:
        """Serialize metrics for the /metrics endpoint."""
        routes = self.by_route()
        hits = self.total("cache_hits")
        misses = self.total("cache_misses")
        with self._lock:
            latencies = sorted(self._latency_history)
        n = len(latencies)
        return {
            "requests_total": self.total("requests"),
            "cache_hits": hits,
            "cache_misses": misses,
            "cache_hit_rate": round(hits / max(hits + misses, 1), 3),
            "rate_limited": self.total("rate_limited"),
            "errors_total": sum(
                self.total(ev)
                for ev in ("provider_transport_errors", "provider_contract_errors", "store_errors")
            ),
            "routes": routes,
            "latency_p50_ms": round(latencies[n // 2], 1) if n else 0,
            "latency_p95_ms": round(latencies[int(n * 0.95)], 1) if n else 0,
            "latency_mean_ms": round(sum(latencies) / n, 1) if n else 0,
            "uptime_seconds": int(time.time() - self._start_time),
        }
