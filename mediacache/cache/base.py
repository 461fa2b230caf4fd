"""
Cache tier interface types, results and errors.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional


CACHE_HEADER = "X-Cache"


class CacheError(Exception):
    """Base class for caching layer errors."""


class ConfigurationError(CacheError):
    """Invalid tier configuration detected at construction time."""


class SharedTierUnavailable(CacheError):
    """Network, protocol or decoding failure talking to the shared tier."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class LoaderFailure(CacheError):
    """Upstream fetch failed while resolving a route."""

    def __init__(
        self,
        message: str,
        route: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.route = route
        self.original_error = original_error


class TierLabel(str, Enum):
    """Which tier ultimately produced a resolved value."""
    MEMORY = "memory"
    SHARED = "shared"
    MISS = "miss"

    @property
    def header_value(self) -> str:
        """Value reported in the X-Cache response header."""
        return _HEADER_VALUES[self]


_HEADER_VALUES = {
    TierLabel.MEMORY: "HIT-MEMORY",
    TierLabel.SHARED: "HIT-REDIS",
    TierLabel.MISS: "MISS",
}


class TierStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class TierResult:
    """
    Outcome of a single tier lookup.

    A shared tier distinguishes a missing key (MISS) from a store it could
    not talk to (UNAVAILABLE). The local tier only ever reports HIT or MISS.
    """
    status: TierStatus
    value: Any = None
    error: Optional[Exception] = None

    @classmethod
    def hit(cls, value: Any) -> "TierResult":
        return cls(TierStatus.HIT, value=value)

    @classmethod
    def miss(cls) -> "TierResult":
        return cls(TierStatus.MISS)

    @classmethod
    def unavailable(cls, error: Exception) -> "TierResult":
        return cls(TierStatus.UNAVAILABLE, error=error)

    @property
    def is_hit(self) -> bool:
        return self.status is TierStatus.HIT

    @property
    def is_unavailable(self) -> bool:
        return self.status is TierStatus.UNAVAILABLE


class ResolveResult(NamedTuple):
    """Resolved value together with the tier that produced it."""
    value: Any
    tier: TierLabel


@dataclass
class CacheStats:
    """Per-tier cache statistics."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0
    expirations: int = 0
    errors: int = 0
    entry_count: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "errors": self.errors,
            "hit_rate": round(self.hit_rate, 2),
            "entry_count": self.entry_count,
        }


def require_positive(name: str, value: int) -> int:
    """Reject non-positive tier settings."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
    return value
