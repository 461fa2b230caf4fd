"""
Unit tests for the cache observability router.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mediacache.cache.manager import CacheOrchestrator
from mediacache.cache.memory import MemoryTier
from mediacache.monitoring.prometheus_exporter import (
    create_prometheus_router,
    render_prometheus_text,
)


@pytest.fixture
def client(orchestrator: CacheOrchestrator) -> TestClient:
    app = FastAPI()
    app.include_router(create_prometheus_router(orchestrator))
    return TestClient(app)


@pytest.mark.unit
class TestRenderPrometheusText:
    """Text exposition format."""

    def test_counts_by_tier(self):
        orchestrator = CacheOrchestrator(memory=MemoryTier(max_entries=5, ttl_seconds=60))
        orchestrator._stats.update(memory_hits=4, shared_hits=2, misses=3)

        text = render_prometheus_text(orchestrator.get_stats())

        assert 'mediacache_resolve_total{tier="memory"} 4' in text
        assert 'mediacache_resolve_total{tier="shared"} 2' in text
        assert 'mediacache_resolve_total{tier="miss"} 3' in text
        assert "# TYPE mediacache_resolve_total counter" in text
        assert "mediacache_shared_enabled 0" in text
        assert text.endswith("\n")


@pytest.mark.unit
class TestPrometheusRouter:
    """HTTP endpoints."""

    @pytest.mark.asyncio
    async def test_metrics_endpoint(self, client, orchestrator, shared_tier):
        shared_tier.fail_reads = True
        await orchestrator.resolve("k", lambda: 1)
        await orchestrator.flush()

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'mediacache_resolve_total{tier="miss"} 1' in response.text
        assert "mediacache_shared_unavailable_total 1" in response.text
        assert "mediacache_memory_entries 1" in response.text

    def test_cache_stats_endpoint(self, client):
        response = client.get("/cache/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["misses"] == 0
        assert body["shared_enabled"] is True
        assert body["shared_info"] == {"enabled": True}
        assert "memory" in body
