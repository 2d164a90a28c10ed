import logging
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence

from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend
from fastapi_cache.decorator import cache

from core.config import settings

logger = logging.getLogger(__name__)

def init_cache() -> None:
    """Set up the in-memory backend for cached service responses."""
    FastAPICache.init(
        backend=InMemoryBackend(),
        prefix=settings.cache["prefix"]
    )
    logger.info(f"Response cache initialized with prefix {settings.cache['prefix']}")

def call_key(namespace: str, key_params: Sequence[str], call_kwargs: Mapping[str, Any]) -> str:
    """Cache key built from the named keyword arguments of a call.

    Enums key by value and absent arguments by "all", so
    get_stations_geojson(kind=StationKind.BUOY) keys as "stations_geojson:buoy".
    """
    parts = [namespace]
    for param in key_params:
        value = call_kwargs.get(param)
        if isinstance(value, Enum):
            value = value.value
        parts.append("all" if value is None else str(value))
    return ":".join(parts)

def cached(
    namespace: str,
    key_params: Sequence[str] = (),
    expire: Optional[int] = None
) -> Callable:
    """Cache a service coroutine keyed on the listed keyword arguments.

    The TTL falls back to the namespace entry of settings.get_cache_ttl(). Does
    nothing when caching is disabled.
    """
    def key_builder(func, namespace: str = "", *args, **kwargs) -> str:
        return call_key(namespace, key_params, kwargs.get("kwargs") or {})

    def decorator(func):
        if not settings.cache["enabled"]:
            return func

        ttl = expire if expire is not None else settings.get_cache_ttl().get(namespace)
        return cache(
            expire=ttl,
            namespace=namespace,
            key_builder=key_builder
        )(func)

    return decorator
