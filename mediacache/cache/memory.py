"""
In-memory LRU tier with TTL support.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Optional

from mediacache.cache.base import CacheStats, TierResult, require_positive

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A single cache entry with metadata."""
    key: str
    value: Any
    stored_at: float
    ttl: int

    @property
    def expires_at(self) -> float:
        return self.stored_at + self.ttl

    def is_expired(self, now: float) -> bool:
        """Check if entry has expired."""
        return now >= self.expires_at

    def ttl_remaining(self, now: float) -> int:
        """Get remaining TTL in seconds."""
        return max(0, int(self.expires_at - now))


class MemoryTier:
    """
    Thread-safe in-process LRU cache with a fixed per-entry TTL.

    Features:
    - LRU eviction when max entries reached
    - Time-based expiration, removed lazily on lookup
    - Optional periodic sweep of expired entries

    Operations are synchronous and only touch the in-memory map, so they are
    safe to call from the event loop.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        ttl_seconds: int = 1800,
        cleanup_interval_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = require_positive("local_tier.max_entries", max_entries)
        self.ttl_seconds = require_positive("local_tier.ttl_seconds", ttl_seconds)
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self.stats = CacheStats()
        self._clock = clock
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = Lock()
        self._cleanup_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: str) -> bool:
        """Membership test that leaves recency ordering untouched."""
        with self._lock:
            entry = self._cache.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    async def start(self) -> None:
        """Start background cleanup task."""
        if self._cleanup_task is None and self.cleanup_interval_seconds > 0:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop(self) -> None:
        """Stop background cleanup task."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        """Periodically clean up expired entries."""
        while True:
            await asyncio.sleep(self.cleanup_interval_seconds)
            removed = self.purge_expired()
            if removed:
                logger.debug(f"Purged {removed} expired memory entries")

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired_keys = [
                key for key, entry in self._cache.items()
                if entry.is_expired(now)
            ]
            for key in expired_keys:
                del self._cache[key]
            self.stats.expirations += len(expired_keys)
            self.stats.entry_count = len(self._cache)
        return len(expired_keys)

    def lookup(self, key: str) -> TierResult:
        """Look up a key, refreshing its recency on a hit."""
        with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                self.stats.misses += 1
                return TierResult.miss()

            if entry.is_expired(self._clock()):
                del self._cache[key]
                self.stats.expirations += 1
                self.stats.misses += 1
                self.stats.entry_count = len(self._cache)
                return TierResult.miss()

            # Move to end (most recently used)
            self._cache.move_to_end(key)
            self.stats.hits += 1
            return TierResult.hit(entry.value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value, or ``default`` when absent or expired."""
        result = self.lookup(key)
        return result.value if result.is_hit else default

    def set(self, key: str, value: Any) -> None:
        """Insert or replace a value, evicting the LRU entry when full."""
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl=self.ttl_seconds,
        )

        with self._lock:
            # Remove old entry if exists
            self._cache.pop(key, None)

            while len(self._cache) >= self.max_entries:
                evicted, _ = self._cache.popitem(last=False)
                self.stats.evictions += 1
                logger.debug(f"Evicted LRU memory entry: {evicted}")

            self._cache[key] = entry
            self.stats.sets += 1
            self.stats.entry_count = len(self._cache)

    def ttl_remaining(self, key: str) -> Optional[int]:
        """Seconds until ``key`` expires, or None when absent."""
        now = self._clock()
        with self._lock:
            entry = self._cache.get(key)
            if entry is None or entry.is_expired(now):
                return None
            return entry.ttl_remaining(now)
