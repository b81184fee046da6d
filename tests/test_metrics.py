# ─────────────────────────────────────────────────────────────────────────────
# PipelineMetrics tests — per-route counters, aggregates, latency
# ─────────────────────────────────────────────────────────────────────────────

import threading

import pytest

from adlab.services.metrics import EVENTS, PipelineMetrics


class TestCounters:
    def test_record_and_count(self):
        metrics = PipelineMetrics()
        metrics.record("generate", "requests")
        metrics.record("generate", "requests", count=2)
        assert metrics.count("generate", "requests") == 3
        assert metrics.count("inspect", "requests") == 0

    def test_unknown_event_rejected(self):
        with pytest.raises(ValueError, match="Unknown metrics event"):
            PipelineMetrics().record("generate", "cache_hit")

    def test_total_spans_routes(self):
        metrics = PipelineMetrics()
        metrics.record("generate", "cache_hits")
        metrics.record("inspect", "cache_hits", count=4)
        assert metrics.total("cache_hits") == 5

    def test_by_route_fills_every_event(self):
        metrics = PipelineMetrics()
        metrics.record("inspect", "rate_limited")
        routes = metrics.by_route()
        assert set(routes) == {"inspect"}
        assert set(routes["inspect"]) == set(EVENTS)
        assert routes["inspect"]["rate_limited"] == 1
        assert routes["inspect"]["requests"] == 0

    def test_thread_safety(self):
        metrics = PipelineMetrics()

        def work():
            for _ in range(1_000):
                metrics.record("generate", "requests")

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert metrics.count("generate", "requests") == 8_000


class TestToDict:
    def test_hit_rate(self):
        metrics = PipelineMetrics()
        metrics.record("generate", "cache_hits", count=3)
        metrics.record("generate", "cache_misses")
        assert metrics.to_dict()["cache_hit_rate"] == 0.75

    def test_errors_total(self):
        metrics = PipelineMetrics()
        metrics.record("generate", "provider_transport_errors")
        metrics.record("inspect", "provider_contract_errors")
        metrics.record("inspect", "store_errors")
        metrics.record("inspect", "cache_write_errors")
        assert metrics.to_dict()["errors_total"] == 3

    def test_latency_percentiles(self):
        metrics = PipelineMetrics()
        for ms in range(1, 101):
            metrics.record_latency(float(ms))
        data = metrics.to_dict()
        assert data["latency_p50_ms"] == 51.0
        assert data["latency_p95_ms"] == 96.0
        assert data["latency_mean_ms"] == 50.5

    def test_latency_history_is_bounded(self):
        metrics = PipelineMetrics()
        for _ in range(1_500):
            metrics.record_latency(1.0)
        assert len(metrics._latency_history) == 1_000
