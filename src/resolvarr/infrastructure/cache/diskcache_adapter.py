"""SQLite-backed result cache (diskcache), shared by workers on one host."""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import structlog
from diskcache import Cache as DiskCache
from diskcache import Timeout as DiskCacheTimeout

from resolvarr.domain.exceptions import CacheBackendError

from .codec import decode, encode

log = structlog.get_logger(__name__)

_BACKEND_ERRORS = (sqlite3.Error, DiskCacheTimeout, OSError)

T = TypeVar("T")


class DiskcacheAdapter:
    """``CachePort`` on top of ``diskcache.Cache``.

    diskcache is synchronous, so every call runs in a worker thread behind
    a semaphore (SQLite serializes writers anyway). Entries expire inside
    diskcache; values are JSON strings.

    Args:
        directory: Cache directory holding the SQLite file.
        ttl_seconds: Lifetime used when ``set()`` gets no ``ttl``.
        max_concurrent: Upper bound on parallel disk operations.
    """

    def __init__(
        self,
        directory: str | Path = "./.cache/resolvarr",
        ttl_seconds: int = 3600,
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self.default_ttl = ttl_seconds
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> DiskcacheAdapter:
        if self._cache is None:
            try:
                self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            except _BACKEND_ERRORS as e:
                raise CacheBackendError(
                    f"cannot open diskcache at {self.directory}: {e}"
                ) from e
            log.info(
                "diskcache_opened",
                directory=str(self.directory),
                default_ttl=self.default_ttl,
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is None:
            return
        cache, self._cache = self._cache, None
        await asyncio.to_thread(cache.close)
        log.info("diskcache_closed", directory=str(self.directory))

    def _require_cache(self) -> DiskCache:
        if self._cache is None:
            raise RuntimeError("DiskcacheAdapter used before 'async with' opened it")
        return self._cache

    async def _call(self, op: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        async with self._semaphore:
            try:
                return await asyncio.to_thread(fn, *args, **kwargs)
            except _BACKEND_ERRORS as e:
                raise CacheBackendError(f"diskcache {op} failed: {e}") from e

    async def get(self, key: str) -> Any | None:
        cache = self._require_cache()
        raw = await self._call("get", cache.get, key, default=None)
        log.debug("cache_get", key=key, hit=raw is not None)
        return decode(key, raw)

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        cache = self._require_cache()
        raw = encode(key, value)
        expire = self.default_ttl if ttl is None else ttl
        await self._call("set", cache.set, key, raw, expire=expire)
        log.debug("cache_set", key=key, ttl=expire, size_bytes=len(raw))

    async def delete(self, key: str) -> bool:
        if self._cache is None:
            return False
        return bool(await self._call("delete", self._cache.delete, key))

    async def exists(self, key: str) -> bool:
        if self._cache is None:
            return False
        # Cache.__contains__ honours expiry.
        return await self._call("exists", self._cache.__contains__, key)

    async def clear(self) -> None:
        if self._cache is None:
            return
        removed = await self._call("clear", self._cache.clear)
        log.warning("cache_cleared", directory=str(self.directory), removed=removed)
