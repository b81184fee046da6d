# ─────────────────────────────────────────────────────────────────────────────
# Health Endpoint Tests — liveness, readiness, metrics
# ─────────────────────────────────────────────────────────────────────────────
# Demonstrates: dirty-equals (declarative assertions)
# ─────────────────────────────────────────────────────────────────────────────

from conftest import SCENARIO_REQUEST, FailingStore
from dirty_equals import IsDict, IsInstance, IsNonNegative, IsStr


class TestLivenessProbe:
    """GET /health — near-zero cost, always 200."""

    def test_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200

    def test_minimal_body(self, client):
        """Liveness should return only a status field — nothing heavy."""
        assert client.get("/health").json() == {"status": "ok"}

    def test_works_with_broken_store(self, client):
        client.app.state.store = FailingStore()
        assert client.get("/health").status_code == 200


class TestReadinessProbe:
    """GET /health/ready — pings the key-value store."""

    def test_returns_200_when_store_reachable(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200

    def test_response_shape(self, client):
        data = client.get("/health/ready").json()
        assert data == {
            "status": IsStr(regex=r"ready|not_ready"),
            "store_backend": "memory",
            "store_connected": True,
        }

    def test_returns_503_when_store_unreachable(self, client):
        client.app.state.store = FailingStore()
        response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json() == {
            "status": "not_ready",
            "store_backend": "failing",
            "store_connected": False,
        }


class TestMetricsEndpoint:
    """GET /metrics — pipeline counters as JSON."""

    def test_fresh_metrics_shape(self, client):
        data = client.get("/metrics").json()
        assert data == {
            "requests_total": 0,
            "cache_hits": 0,
            "cache_misses": 0,
            "cache_hit_rate": 0,
            "rate_limited": 0,
            "errors_total": 0,
            "routes": {},
            "latency_p50_ms": IsNonNegative,
            "latency_p95_ms": IsNonNegative,
            "latency_mean_ms": IsNonNegative,
            "uptime_seconds": IsNonNegative,
        }

    def test_counts_after_traffic(self, client):
        headers = {"X-Forwarded-For": "198.51.100.20"}
        for _ in range(4):
            client.post("/generate", json=SCENARIO_REQUEST, headers=headers)

        data = client.get("/metrics").json()
        assert data["requests_total"] == 4
        assert data["cache_hits"] == 2
        assert data["cache_misses"] == 1
        assert data["rate_limited"] == 1
        assert data["routes"]["generate"] == IsDict(requests=4, rate_limited=1).settings(partial=True)
        assert data["latency_p95_ms"] == IsNonNegative


class TestPrometheusEndpoint:
    """GET /metrics/prometheus — text exposition format."""

    def test_content_type(self, client):
        response = client.get("/metrics/prometheus")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")

    def test_exports_route_events(self, client):
        client.post(
            "/generate", json=SCENARIO_REQUEST, headers={"X-Forwarded-For": "198.51.100.21"}
        )
        text = client.get("/metrics/prometheus").text
        assert "adlab_cache_hit_ratio" in text
        assert 'adlab_route_events{route="generate",event="requests"}' in text

    def test_body_is_text(self, client):
        assert client.get("/metrics/prometheus").text == IsInstance(str)
