"""
mediacache Test Configuration

Shared fixtures and configuration for all tests.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator
from unittest.mock import AsyncMock

import pytest

from mediacache.cache.base import SharedTierUnavailable, TierResult
from mediacache.cache.manager import CacheOrchestrator
from mediacache.cache.memory import MemoryTier
from mediacache.cache.redis_cache import SharedTier, deserialize, serialize


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemorySharedTier(SharedTier):
    """Shared tier stand-in that stores encoded bytes in a dict."""

    def __init__(self):
        super().__init__()
        self.data: Dict[str, bytes] = {}
        self.ttls: Dict[str, int] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.set_calls = 0

    def seed(self, key: str, value: Any, ttl_seconds: int = 60) -> None:
        self.data[key] = serialize(value)
        self.ttls[key] = ttl_seconds

    async def get(self, key: str) -> TierResult:
        if self.fail_reads:
            self.stats.errors += 1
            return TierResult.unavailable(SharedTierUnavailable("connection refused"))
        if key not in self.data:
            self.stats.misses += 1
            return TierResult.miss()
        self.stats.hits += 1
        return TierResult.hit(deserialize(self.data[key]))

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        self.set_calls += 1
        if self.fail_writes:
            self.stats.errors += 1
            return False
        self.data[key] = serialize(value)
        self.ttls[key] = ttl_seconds
        self.stats.sets += 1
        return True


# ============ Tier Fixtures ============


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_tier(clock: FakeClock) -> MemoryTier:
    """Memory tier with a small capacity and a controllable clock."""
    return MemoryTier(max_entries=10, ttl_seconds=30, clock=clock)


@pytest.fixture
def shared_tier() -> InMemorySharedTier:
    return InMemorySharedTier()


@pytest.fixture
def orchestrator(memory_tier: MemoryTier, shared_tier: InMemorySharedTier) -> CacheOrchestrator:
    return CacheOrchestrator(memory=memory_tier, shared=shared_tier, shared_ttl_seconds=120)


@pytest.fixture
def mock_redis_client() -> AsyncMock:
    """Mock redis.asyncio client."""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock(return_value=None)
    return client


# ============ Temporary File Fixtures ============


@pytest.fixture(scope="function")
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="function")
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_file = temp_dir / "mediacache.yaml"
    config_content = """
namespace: "tmdb"
local_tier:
  max_entries: 500
  ttl_seconds: 600
shared_tier:
  endpoint: "redis://cache.internal:6379/2"
  ttl_seconds: 3600
logging:
  level: "DEBUG"
"""
    config_file.write_text(config_content)
    return config_file


# ============ Environment Fixtures ============


@pytest.fixture(autouse=True)
def clean_environment():
    """Clean environment variables for each test."""
    # Save current environment
    original_env = os.environ.copy()

    # Remove mediacache-specific vars
    for key in list(os.environ.keys()):
        if key.startswith("MEDIACACHE_"):
            del os.environ[key]

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


# ============ Markers ============


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "slow: Slow tests")
