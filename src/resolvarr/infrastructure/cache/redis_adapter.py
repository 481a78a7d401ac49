"""Redis-backed result cache, shared across processes and hosts."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any, TypeVar

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from resolvarr.domain.exceptions import CacheBackendError

from .codec import decode, encode

log = structlog.get_logger(__name__)

T = TypeVar("T")


class RedisAdapter:
    """``CachePort`` on ``redis.asyncio``.

    Entries are written with ``SET key value EX ttl`` under ``key_prefix``
    so several deployments can share one database. Every command failure
    is raised as ``CacheBackendError``; the result cache turns that into a
    pass-through call.

    Args:
        url: Redis URL (e.g. ``redis://localhost:6379/0``).
        ttl_seconds: Lifetime used when ``set()`` gets no ``ttl``.
        max_concurrent: Upper bound on in-flight commands.
        key_prefix: Namespace prepended to every key.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        ttl_seconds: int = 3600,
        max_concurrent: int = 50,
        key_prefix: str = "resolvarr:",
    ) -> None:
        self.url = url
        self.default_ttl = ttl_seconds
        self.key_prefix = key_prefix
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> RedisAdapter:
        if self._client is not None:
            return self
        self._client = Redis.from_url(self.url, encoding="utf-8", decode_responses=True)
        # An unreachable server at startup is reported; commands fail later.
        try:
            await self._client.ping()
        except RedisError as e:
            log.warning("redis_ping_failed", url=self.url, error=str(e))
        else:
            log.info("redis_connected", url=self.url, key_prefix=self.key_prefix)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.aclose()
        log.info("redis_closed", url=self.url)

    def _require_client(self) -> Redis:
        if self._client is None:
            raise RuntimeError("RedisAdapter used before 'async with' opened it")
        return self._client

    async def _call(self, command: str, pending: Awaitable[T]) -> T:
        async with self._semaphore:
            try:
                return await pending
            except RedisError as e:
                raise CacheBackendError(f"redis {command} failed: {e}") from e

    async def get(self, key: str) -> Any | None:
        client = self._require_client()
        raw = await self._call("GET", client.get(self.key_prefix + key))
        log.debug("cache_get", key=key, hit=raw is not None)
        return decode(key, raw)

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        client = self._require_client()
        raw = encode(key, value)
        expire = self.default_ttl if ttl is None else ttl
        await self._call("SET", client.set(self.key_prefix + key, raw, ex=expire))
        log.debug("cache_set", key=key, ttl=expire, size_bytes=len(raw))

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        removed = await self._call("DEL", self._client.delete(self.key_prefix + key))
        return removed > 0

    async def exists(self, key: str) -> bool:
        if self._client is None:
            return False
        found = await self._call("EXISTS", self._client.exists(self.key_prefix + key))
        return found > 0

    async def clear(self) -> None:
        """Remove this deployment's keys only (``key_prefix*``)."""
        if self._client is None:
            return
        client = self._client
        removed = 0
        async with self._semaphore:
            try:
                async for name in client.scan_iter(match=f"{self.key_prefix}*"):
                    removed += await client.delete(name)
            except RedisError as e:
                raise CacheBackendError(f"redis clear failed: {e}") from e
        log.warning("cache_cleared", backend="redis", removed=removed)
