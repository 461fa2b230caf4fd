"""
Deterministic cache key construction.
"""

import hashlib
import json
from typing import Any, Mapping, Optional


DEFAULT_NAMESPACE = "tmdb"
MAX_KEY_LENGTH = 200


def _normalize(value: Any) -> Any:
    """Drop None entries from mappings, recursively."""
    if isinstance(value, Mapping):
        return {
            str(k): _normalize(v)
            for k, v in value.items()
            if v is not None
        }
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def build_cache_key(
    route: str,
    params: Optional[Mapping[str, Any]] = None,
    namespace: str = DEFAULT_NAMESPACE,
) -> str:
    """
    Build a cache key from a route name and its parameter bag.

    Parameters whose value is None are omitted, so a request that leaves an
    optional parameter out and one that passes it as None share a key.
    Parameter order never affects the result.

    Usage:
        build_cache_key("info", {"id": "1399", "type": "tv"})
        # -> 'tmdb:info:{"id":"1399","type":"tv"}'
    """
    normalized = _normalize(params or {})
    encoded = json.dumps(
        normalized,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    key = f"{namespace}:{route}:{encoded}"

    # Hash long keys
    if len(key) > MAX_KEY_LENGTH:
        digest = hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:32]
        return f"{namespace}:{route}:{digest}"

    return key
