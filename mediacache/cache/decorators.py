"""
Decorator for routing provider calls through the read-through cache.
"""

import functools
import inspect
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from mediacache.cache.base import ResolveResult
from mediacache.cache.manager import CacheOrchestrator, get_orchestrator


def cached(
    route: str,
    orchestrator: Optional[CacheOrchestrator] = None,
    key_params: Optional[Sequence[str]] = None,
) -> Callable:
    """
    Decorator to resolve an async provider function through the cache.

    Args:
        route: Route name used as part of the cache key
        orchestrator: Orchestrator to use (defaults to the process-wide one)
        key_params: Only these arguments form the key (defaults to all)

    Usage:
        @cached("info")
        async def fetch_media_info(id: str, type: str, provider: str = None):
            return await tmdb.fetch_media_info(id, type)

        value = await fetch_media_info("1399", "tv")
        value, tier = await fetch_media_info.resolve_with_tier("1399", "tv")
    """
    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"@cached requires an async function, got {func.__name__}")

        sig = inspect.signature(func)

        def build_params(*args, **kwargs) -> Dict[str, Any]:
            # Bind arguments to parameter names
            bound = sig.bind(*args, **kwargs)
            bound.apply_defaults()

            params = {}
            for name, value in bound.arguments.items():
                if name in ("self", "cls"):
                    continue
                if key_params is not None and name not in key_params:
                    continue
                kind = sig.parameters[name].kind
                if kind is inspect.Parameter.VAR_KEYWORD:
                    params.update(value)
                elif kind is inspect.Parameter.VAR_POSITIONAL:
                    params[name] = list(value)
                else:
                    params[name] = value
            return params

        async def _orchestrator() -> CacheOrchestrator:
            return orchestrator if orchestrator is not None else await get_orchestrator()

        async def build_key(*args, **kwargs) -> str:
            return (await _orchestrator()).build_key(route, build_params(*args, **kwargs))

        async def resolve_with_tier(*args, **kwargs) -> ResolveResult:
            cache = await _orchestrator()
            return await cache.resolve_route(
                route,
                build_params(*args, **kwargs),
                lambda: func(*args, **kwargs),
            )

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            result = await resolve_with_tier(*args, **kwargs)
            return result.value

        wrapper.cache_key_builder = build_key
        wrapper.resolve_with_tier = resolve_with_tier
        return wrapper

    return decorator
