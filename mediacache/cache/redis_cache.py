"""
Shared tier backed by Redis, plus the null tier used when Redis is not configured.
"""

import json
import logging
import zlib
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

import redis.asyncio as aioredis

from mediacache.cache.base import (
    CacheStats,
    SharedTierUnavailable,
    TierResult,
    require_positive,
)

if TYPE_CHECKING:
    from mediacache.config import SharedTierConfig

logger = logging.getLogger(__name__)

PLAIN_MARKER = b"J"
COMPRESSED_MARKER = b"Z"


def serialize(value: Any, compression_threshold: int = 0) -> bytes:
    """Encode a value as marker-prefixed JSON, compressing large payloads."""
    data = json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    if compression_threshold > 0 and len(data) > compression_threshold:
        compressed = zlib.compress(data)
        if len(compressed) < len(data) * 0.9:  # Only if 10%+ savings
            return COMPRESSED_MARKER + compressed

    return PLAIN_MARKER + data


def deserialize(data: bytes) -> Any:
    """Decode bytes produced by :func:`serialize`."""
    marker, payload = data[0:1], data[1:]
    if marker == COMPRESSED_MARKER:
        payload = zlib.decompress(payload)
    elif marker != PLAIN_MARKER:
        raise ValueError(f"Unknown payload marker: {marker!r}")
    return json.loads(payload.decode("utf-8"))


class SharedTier(ABC):
    """
    Networked key/value tier.

    Every operation may fail independently of whether the data exists.
    Failures are reported, never raised: ``get`` returns an UNAVAILABLE
    result and ``set`` returns False.
    """

    enabled = True

    def __init__(self) -> None:
        self.stats = CacheStats()

    @abstractmethod
    async def get(self, key: str) -> TierResult:
        """Fetch and decode the value stored under ``key``."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Encode ``value`` and store it with an explicit expiry."""

    async def connect(self) -> bool:
        return True

    async def close(self) -> None:
        pass

    async def get_info(self) -> Dict[str, Any]:
        return {"enabled": self.enabled}


class DisabledSharedTier(SharedTier):
    """Null tier used when no shared store endpoint is configured."""

    enabled = False

    async def get(self, key: str) -> TierResult:
        return TierResult.unavailable(SharedTierUnavailable("shared tier disabled"))

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        return False


class RedisSharedTier(SharedTier):
    """
    Redis-based shared tier for multi-process deployments.

    Values are stored as JSON so that any instance can read entries written
    by another. Expiry is enforced by Redis itself (``SET key value EX ttl``).
    """

    def __init__(
        self,
        url: str,
        prefix: str = "mediacache:",
        socket_timeout: float = 2.0,
        compression_threshold: int = 1024,
        client: Optional[aioredis.Redis] = None,
    ):
        super().__init__()
        self.url = url
        self.prefix = prefix
        self.compression_threshold = compression_threshold
        self._client = client if client is not None else aioredis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=False,
        )

    def _make_key(self, key: str) -> str:
        """Create prefixed key."""
        return f"{self.prefix}{key}"

    async def connect(self) -> bool:
        """Check the store is reachable. A failed ping leaves the tier in place."""
        try:
            await self._client.ping()
            logger.info(f"Connected to shared tier at {self.url}")
            return True
        except Exception as e:
            logger.warning(f"Shared tier at {self.url} unreachable, continuing: {e}")
            return False

    async def close(self) -> None:
        """Disconnect from Redis."""
        await self._client.aclose()

    async def get(self, key: str) -> TierResult:
        try:
            data = await self._client.get(self._make_key(key))
        except Exception as e:
            self.stats.errors += 1
            logger.warning(f"Shared tier read failed for {key}: {e}")
            return TierResult.unavailable(
                SharedTierUnavailable(f"read failed for {key}", original_error=e)
            )

        if data is None:
            self.stats.misses += 1
            return TierResult.miss()

        try:
            value = deserialize(data)
        except (ValueError, zlib.error) as e:
            self.stats.errors += 1
            logger.warning(f"Discarding undecodable shared entry {key}: {e}")
            return TierResult.unavailable(
                SharedTierUnavailable(f"undecodable entry for {key}", original_error=e)
            )

        self.stats.hits += 1
        return TierResult.hit(value)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            data = serialize(value, self.compression_threshold)
            await self._client.set(self._make_key(key), data, ex=ttl_seconds)
        except Exception as e:
            self.stats.errors += 1
            logger.warning(f"Shared tier write failed for {key}: {e}")
            return False

        self.stats.sets += 1
        return True

    async def get_info(self) -> Dict[str, Any]:
        """Get Redis server info."""
        try:
            info = await self._client.info()
            return {
                "enabled": True,
                "connected": True,
                "redis_version": info.get("redis_version"),
                "used_memory_human": info.get("used_memory_human"),
                "connected_clients": info.get("connected_clients"),
            }
        except Exception as e:
            return {"enabled": True, "connected": False, "error": str(e)}


def build_shared_tier(config: "SharedTierConfig") -> SharedTier:
    """Return a Redis tier when an endpoint is configured, else the null tier."""
    require_positive("shared_tier.ttl_seconds", config.ttl_seconds)
    if not config.endpoint:
        logger.info("Shared tier not configured, using memory tier only")
        return DisabledSharedTier()
    return RedisSharedTier(
        config.endpoint,
        prefix=config.prefix,
        socket_timeout=config.socket_timeout,
        compression_threshold=config.compression_threshold,
    )
