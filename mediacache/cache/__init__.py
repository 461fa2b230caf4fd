"""
mediacache caching layer

Two-tier read-through cache for upstream media lookups:
- In-process LRU tier with TTL
- Optional shared Redis tier
- Orchestrator reporting which tier served each request
"""

from mediacache.cache.base import (
    CACHE_HEADER,
    CacheError,
    CacheStats,
    ConfigurationError,
    LoaderFailure,
    ResolveResult,
    SharedTierUnavailable,
    TierLabel,
    TierResult,
)
from mediacache.cache.keys import build_cache_key
from mediacache.cache.memory import MemoryTier
from mediacache.cache.redis_cache import (
    DisabledSharedTier,
    RedisSharedTier,
    SharedTier,
    build_shared_tier,
)
from mediacache.cache.manager import CacheOrchestrator, close_orchestrator, get_orchestrator
from mediacache.cache.decorators import cached

__all__ = [
    "CACHE_HEADER",
    "CacheError",
    "CacheStats",
    "ConfigurationError",
    "LoaderFailure",
    "ResolveResult",
    "SharedTierUnavailable",
    "TierLabel",
    "TierResult",
    "build_cache_key",
    "MemoryTier",
    "SharedTier",
    "DisabledSharedTier",
    "RedisSharedTier",
    "build_shared_tier",
    "CacheOrchestrator",
    "get_orchestrator",
    "close_orchestrator",
    "cached",
]
