"""In-process cache adapter - dict-backed, for tests and single-node setups."""

from __future__ import annotations

import time
from typing import Any

import structlog

from .codec import decode, encode

log = structlog.get_logger(__name__)

# Evict expired entries every N set() calls
_EVICT_INTERVAL = 500


class _CacheEntry:
    """Time-bounded cache entry holding a JSON-encoded value."""

    __slots__ = ("raw", "expires_at")

    def __init__(self, raw: str, ttl: int) -> None:
        self.raw = raw
        self.expires_at = time.monotonic() + ttl

    @property
    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


class MemoryCacheAdapter:
    """Async-compatible in-memory cache.

    Values are stored JSON-encoded so callers get the same round-trip
    semantics (and the same serialization errors) as the Redis and
    diskcache backends. Expiry uses ``time.monotonic``.

    Args:
        ttl_seconds: Default TTL for `set()` without explicit value.
        max_entries: Oldest entries are dropped beyond this size.
    """

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 10_000) -> None:
        self.default_ttl = ttl_seconds
        self._max_entries = max_entries
        self._entries: dict[str, _CacheEntry] = {}
        self._set_count = 0

    async def __aenter__(self) -> MemoryCacheAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._entries.clear()

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            log.debug("cache_miss", key=key)
            return None
        if entry.is_expired:
            del self._entries[key]
            log.debug("cache_expired", key=key)
            return None
        log.debug("cache_hit", key=key)
        return decode(key, entry.raw)

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        expire_time = ttl if ttl is not None else self.default_ttl
        raw = encode(key, value)

        # Re-insert so insertion order tracks recency for size eviction
        self._entries.pop(key, None)
        self._entries[key] = _CacheEntry(raw, expire_time)
        log.debug("cache_set", key=key, ttl=expire_time, size_bytes=len(raw))

        self._set_count += 1
        if self._set_count % _EVICT_INTERVAL == 0:
            self._evict_expired()
        self._enforce_max_size()

    async def delete(self, key: str) -> bool:
        deleted = self._entries.pop(key, None) is not None
        log.debug("cache_delete", key=key, deleted=deleted)
        return deleted

    async def exists(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired

    async def clear(self) -> None:
        self._entries.clear()
        log.warning("cache_cleared", backend="memory")

    def _evict_expired(self) -> None:
        expired = [k for k, v in self._entries.items() if v.is_expired]
        for k in expired:
            del self._entries[k]
        log.debug("memory_cache_evict", evicted=len(expired), size=len(self._entries))

    def _enforce_max_size(self) -> None:
        if len(self._entries) <= self._max_entries:
            return
        excess = len(self._entries) - self._max_entries
        for k in list(self._entries.keys())[:excess]:
            del self._entries[k]
