"""Builds the configured cache backend."""

from __future__ import annotations

from typing import Literal

import structlog

from resolvarr.domain.ports.cache import CachePort

from .diskcache_adapter import DiskcacheAdapter
from .memory_adapter import MemoryCacheAdapter
from .redis_adapter import RedisAdapter

log = structlog.get_logger(__name__)

CacheBackend = Literal["none", "memory", "diskcache", "redis"]

# Redis multiplexes commands over a pool; disk writes are serialized.
_REDIS_MAX_CONCURRENT = 50


def create_cache(
    backend: CacheBackend = "none",
    *,
    directory: str = "./.cache/resolvarr",
    redis_url: str = "redis://localhost:6379/0",
    key_prefix: str = "resolvarr:",
    ttl_seconds: int = 3600,
    max_concurrent: int = 10,
) -> CachePort | None:
    """Return an unopened adapter for *backend*, or None for ``"none"``.

    ``max_concurrent`` bounds diskcache operations only.

    Raises:
        ValueError: unknown backend name.
    """
    cache: CachePort | None
    if backend == "none":
        cache = None
    elif backend == "memory":
        cache = MemoryCacheAdapter(ttl_seconds=ttl_seconds)
    elif backend == "diskcache":
        cache = DiskcacheAdapter(
            directory=directory,
            ttl_seconds=ttl_seconds,
            max_concurrent=max_concurrent,
        )
    elif backend == "redis":
        cache = RedisAdapter(
            url=redis_url,
            ttl_seconds=ttl_seconds,
            max_concurrent=_REDIS_MAX_CONCURRENT,
            key_prefix=key_prefix,
        )
    else:
        raise ValueError(
            f"Unknown cache backend: {backend!r}. "
            "Must be 'none', 'memory', 'diskcache' or 'redis'."
        )

    log.info("cache_backend_selected", backend=backend, default_ttl=ttl_seconds)
    return cache
