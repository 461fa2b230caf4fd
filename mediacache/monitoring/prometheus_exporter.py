"""
Prometheus metrics exporter for mediacache.

Exposes GET /metrics in Prometheus text exposition format and
GET /cache/stats as JSON for the orchestrator passed in.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Response

from mediacache.cache.manager import CacheOrchestrator

logger = logging.getLogger(__name__)

# (metric name, type, help, stats key)
_ORCHESTRATOR_METRICS = [
    ("mediacache_shared_unavailable_total", "counter",
     "Shared tier lookups that failed and were treated as misses", "shared_unavailable"),
    ("mediacache_shared_write_failures_total", "counter",
     "Shared tier writes that failed", "shared_write_failures"),
    ("mediacache_loader_failures_total", "counter",
     "Loader invocations that raised", "loader_failures"),
    ("mediacache_pending_shared_writes", "gauge",
     "Shared tier writes still in flight", "pending_shared_writes"),
]


def render_prometheus_text(stats: Dict[str, Any]) -> str:
    """Format orchestrator stats as Prometheus text exposition."""
    lines: List[str] = [
        "# HELP mediacache_resolve_total Resolved requests by serving tier",
        "# TYPE mediacache_resolve_total counter",
        f'mediacache_resolve_total{{tier="memory"}} {stats["memory_hits"]}',
        f'mediacache_resolve_total{{tier="shared"}} {stats["shared_hits"]}',
        f'mediacache_resolve_total{{tier="miss"}} {stats["misses"]}',
    ]

    for name, metric_type, help_text, key in _ORCHESTRATOR_METRICS:
        lines.append(f"# HELP {name} {help_text}")
        lines.append(f"# TYPE {name} {metric_type}")
        lines.append(f"{name} {stats[key]}")

    lines.append("# HELP mediacache_memory_entries Entries held by the memory tier")
    lines.append("# TYPE mediacache_memory_entries gauge")
    lines.append(f'mediacache_memory_entries {stats["memory"]["entry_count"]}')
    lines.append("# HELP mediacache_memory_evictions_total LRU evictions from the memory tier")
    lines.append("# TYPE mediacache_memory_evictions_total counter")
    lines.append(f'mediacache_memory_evictions_total {stats["memory"]["evictions"]}')
    lines.append("# HELP mediacache_shared_enabled Whether a shared tier is configured")
    lines.append("# TYPE mediacache_shared_enabled gauge")
    lines.append(f'mediacache_shared_enabled {int(stats["shared_enabled"])}')

    return "\n".join(lines) + "\n"


def create_prometheus_router(orchestrator: CacheOrchestrator) -> APIRouter:
    """
    Create FastAPI router for cache observability endpoints.

    Args:
        orchestrator: The orchestrator whose counters are exported.
    """
    router = APIRouter(tags=["monitoring"])

    @router.get("/metrics")
    async def prometheus_metrics() -> Response:
        """Prometheus text exposition format."""
        return Response(
            content=render_prometheus_text(orchestrator.get_stats()),
            media_type="text/plain; charset=utf-8",
        )

    @router.get("/cache/stats")
    async def cache_stats() -> Dict[str, Any]:
        """Detailed cache statistics, including shared store info."""
        stats = orchestrator.get_stats()
        stats["shared_info"] = await orchestrator.shared.get_info()
        return stats

    return router
