"""TTL memoization on top of an optional CachePort backend."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

import structlog

from resolvarr.domain.exceptions import CacheBackendError
from resolvarr.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

T = TypeVar("T")

Producer = Callable[[], Awaitable[T]]


class _KeyLock:
    """Per-key lock plus the number of tasks currently holding or awaiting it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class _Codec(Generic[T]):
    __slots__ = ("encode", "decode")

    def __init__(
        self,
        encode: Callable[[T], Any] | None,
        decode: Callable[[Any], T] | None,
    ) -> None:
        self.encode = encode or (lambda v: v)
        self.decode = decode or (lambda v: v)


class ResultCache:
    """Read-through cache: return a live entry or compute, store and return.

    - ``backend=None`` turns every call into a plain ``await producer()``.
    - Backend failures (``CacheBackendError``) are logged as warnings and
      the call degrades to pass-through; a request never fails because
      of the cache.
    - ``cacheable`` decides per value whether it is stored. Callers use it
      to keep failed resolutions out of the cache.
    - ``encode``/``decode`` convert between the producer's value and the
      JSON-serializable form kept in the backend. An entry ``decode``
      rejects (``KeyError``/``TypeError``/``ValueError``) is a miss and
      gets overwritten.
    - With ``single_flight=True`` concurrent misses for the same key in this
      process wait for the first producer instead of running their own.
      Separate processes sharing one Redis may still compute twice.
    """

    def __init__(self, backend: CachePort | None, *, single_flight: bool = True) -> None:
        self._backend = backend
        self._single_flight = single_flight
        self._locks: dict[str, _KeyLock] = {}

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    async def fetch(
        self,
        key: str,
        producer: Producer[T],
        ttl_seconds: int,
        *,
        cacheable: Callable[[T], bool] | None = None,
        encode: Callable[[T], Any] | None = None,
        decode: Callable[[Any], T] | None = None,
    ) -> T:
        """Return the cached value for *key* or compute it with *producer*."""
        if self._backend is None:
            return await producer()

        codec: _Codec[T] = _Codec(encode, decode)

        cached = await self._safe_get(key)
        if cached is not None:
            hit = self._decode(key, cached, codec)
            if hit is not None:
                return hit

        if not self._single_flight:
            return await self._compute(key, producer, ttl_seconds, cacheable, codec)

        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyLock()
        entry.users += 1
        try:
            waited = entry.lock.locked()
            async with entry.lock:
                if waited:
                    cached = await self._safe_get(key)
                    if cached is not None:
                        hit = self._decode(key, cached, codec)
                        if hit is not None:
                            log.debug("cache_single_flight_hit", key=key)
                            return hit
                return await self._compute(
                    key, producer, ttl_seconds, cacheable, codec
                )
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(key, None)

    async def _compute(
        self,
        key: str,
        producer: Producer[T],
        ttl_seconds: int,
        cacheable: Callable[[T], bool] | None,
        codec: _Codec[T],
    ) -> T:
        value = await producer()
        if value is None:
            return value
        if cacheable is not None and not cacheable(value):
            log.debug("cache_skip_uncacheable", key=key)
            return value
        await self._safe_set(key, codec.encode(value), ttl_seconds)
        return value

    @staticmethod
    def _decode(key: str, cached: Any, codec: _Codec[T]) -> T | None:
        """Decode a stored entry; an entry of the wrong shape reads as a miss."""
        try:
            return codec.decode(cached)
        except (KeyError, TypeError, ValueError) as e:
            log.warning("cache_value_corrupt", key=key, error=str(e))
            return None

    async def _safe_get(self, key: str) -> Any | None:
        assert self._backend is not None
        try:
            return await self._backend.get(key)
        except CacheBackendError as e:
            log.warning("cache_backend_unavailable", op="get", key=key, error=str(e))
            return None

    async def _safe_set(self, key: str, value: Any, ttl_seconds: int) -> None:
        assert self._backend is not None
        try:
            await self._backend.set(key, value, ttl=ttl_seconds)
        except CacheBackendError as e:
            log.warning("cache_backend_unavailable", op="set", key=key, error=str(e))
