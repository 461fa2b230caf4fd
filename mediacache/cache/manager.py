"""
Read-through orchestration over the memory and shared tiers.
"""

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Mapping, Optional, Set, Union

from mediacache.cache.base import ResolveResult, TierLabel, require_positive
from mediacache.cache.keys import DEFAULT_NAMESPACE, build_cache_key
from mediacache.cache.memory import MemoryTier
from mediacache.cache.redis_cache import DisabledSharedTier, SharedTier, build_shared_tier

if TYPE_CHECKING:
    from mediacache.config import CacheSettings

logger = logging.getLogger(__name__)

Loader = Callable[[], Union[Any, Awaitable[Any]]]


class CacheOrchestrator:
    """
    Two-tier read-through cache.

    Lookup order per call:
    1. Memory tier hit -> returned immediately, loader untouched.
    2. Shared tier hit -> promoted into the memory tier and returned.
    3. Otherwise the loader runs; its result is written to the shared tier
       in the background and to the memory tier before returning.

    Shared tier failures are treated as misses. Loader errors propagate
    unchanged and nothing is cached for them.

    Concurrent misses on the same key each run the loader; there is no
    request coalescing, and the last writer's value is what stays cached.
    """

    def __init__(
        self,
        memory: Optional[MemoryTier] = None,
        shared: Optional[SharedTier] = None,
        shared_ttl_seconds: int = 1800,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        self.memory = memory if memory is not None else MemoryTier()
        self.shared = shared if shared is not None else DisabledSharedTier()
        self.shared_ttl_seconds = require_positive("shared_tier.ttl_seconds", shared_ttl_seconds)
        self.namespace = namespace
        self._pending_writes: Set[asyncio.Task] = set()
        self._stats = {
            "memory_hits": 0,
            "shared_hits": 0,
            "misses": 0,
            "shared_unavailable": 0,
            "shared_write_failures": 0,
            "loader_failures": 0,
        }

    @classmethod
    def from_config(cls, settings: "CacheSettings") -> "CacheOrchestrator":
        """Build tiers from settings. Raises ConfigurationError on bad values."""
        memory = MemoryTier(
            max_entries=settings.local_tier.max_entries,
            ttl_seconds=settings.local_tier.ttl_seconds,
            cleanup_interval_seconds=settings.local_tier.cleanup_interval_seconds,
        )
        return cls(
            memory=memory,
            shared=build_shared_tier(settings.shared_tier),
            shared_ttl_seconds=settings.shared_tier.ttl_seconds,
            namespace=settings.namespace,
        )

    async def initialize(self) -> None:
        """Connect the shared tier and start the memory sweep."""
        await self.shared.connect()
        await self.memory.start()

    async def shutdown(self) -> None:
        """Flush pending shared writes and release resources."""
        await self.flush()
        await self.memory.stop()
        await self.shared.close()

    async def flush(self) -> None:
        """Wait for in-flight shared tier writes to finish."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    def build_key(self, route: str, params: Optional[Mapping[str, Any]] = None) -> str:
        return build_cache_key(route, params, namespace=self.namespace)

    async def resolve_route(
        self,
        route: str,
        params: Optional[Mapping[str, Any]],
        loader: Loader,
    ) -> ResolveResult:
        """Resolve a logical request given as route name and parameter bag."""
        return await self.resolve(self.build_key(route, params), loader)

    async def resolve(self, key: str, loader: Loader) -> ResolveResult:
        """
        Return the cached value for ``key`` or load, store and return it.

        Returns:
            (value, tier) where tier records which tier produced the value

        Raises:
            Exception: Whatever the loader raised, unchanged
        """
        local = self.memory.lookup(key)
        if local.is_hit:
            logger.debug(f"CACHE HIT (memory): {key}")
            self._stats["memory_hits"] += 1
            return ResolveResult(local.value, TierLabel.MEMORY)

        shared = await self.shared.get(key)
        if shared.is_hit:
            logger.debug(f"CACHE HIT (shared): {key}")
            self.memory.set(key, shared.value)
            self._stats["shared_hits"] += 1
            return ResolveResult(shared.value, TierLabel.SHARED)

        if shared.is_unavailable and self.shared.enabled:
            self._stats["shared_unavailable"] += 1

        logger.debug(f"CACHE MISS: {key}")
        try:
            value = loader()
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            self._stats["loader_failures"] += 1
            logger.info(f"Loader failed for {key}, not caching: {e}")
            raise

        self._stats["misses"] += 1
        if self.shared.enabled:
            self._schedule_shared_write(key, value)
        self.memory.set(key, value)
        return ResolveResult(value, TierLabel.MISS)

    def _schedule_shared_write(self, key: str, value: Any) -> None:
        """Populate the shared tier without delaying the caller."""
        task = asyncio.create_task(self._write_shared(key, value))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write_shared(self, key: str, value: Any) -> None:
        if not await self.shared.set(key, value, self.shared_ttl_seconds):
            self._stats["shared_write_failures"] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get orchestrator and per-tier statistics."""
        total = self._stats["memory_hits"] + self._stats["shared_hits"] + self._stats["misses"]
        hits = self._stats["memory_hits"] + self._stats["shared_hits"]
        return {
            **self._stats,
            "hit_rate_percent": round(hits / total * 100, 1) if total else 0.0,
            "pending_shared_writes": len(self._pending_writes),
            "shared_enabled": self.shared.enabled,
            "memory": self.memory.stats.to_dict(),
            "shared": self.shared.stats.to_dict(),
        }


# Global orchestrator instance
_orchestrator: Optional[CacheOrchestrator] = None


async def get_orchestrator(configure_logging: bool = False) -> CacheOrchestrator:
    """
    Get or create the process-wide orchestrator from the loaded config.

    Args:
        configure_logging: Apply the ``logging`` section of the settings to the
            root logger when the orchestrator is first created. Applications
            call this once at startup; library callers leave logging alone.
    """
    global _orchestrator
    if _orchestrator is None:
        from mediacache.config import get_config
        from mediacache.utils.logging_setup import setup_logging_from_config

        settings = get_config()
        if configure_logging:
            setup_logging_from_config(settings.logging)

        orchestrator = CacheOrchestrator.from_config(settings)
        await orchestrator.initialize()
        _orchestrator = orchestrator
    return _orchestrator


async def close_orchestrator() -> None:
    """Shut down the process-wide orchestrator, if one was created."""
    global _orchestrator
    if _orchestrator is not None:
        await _orchestrator.shutdown()
        _orchestrator = None
