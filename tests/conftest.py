"""Shared test fixtures for the Resolvarr test suite."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from resolvarr.application.result_cache import ResultCache
from resolvarr.application.use_cases import ResolutionEngine
from resolvarr.domain.entities import Manifest, ProviderDescriptor, SourceEntry
from resolvarr.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from resolvarr.infrastructure.providers.registry import StaticProviderRegistry

# ---------------------------------------------------------------------------
# Fake provider adapters
# ---------------------------------------------------------------------------


class FakeAdapter:
    """Scripted ProviderAdapterPort.

    ``behaviors`` maps an operation name to either a return value, an
    exception instance (raised) or an async callable (awaited with the
    call's arguments).
    """

    def __init__(self, name: str, behaviors: dict[str, Any]) -> None:
        self._name = name
        self._behaviors = behaviors
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def _run(self, op: str, *args: Any) -> Any:
        self.calls.append((op, args))
        behavior = self._behaviors.get(op)
        if isinstance(behavior, BaseException):
            raise behavior
        if callable(behavior):
            return await behavior(*args)
        return behavior

    async def fetch_episode_sources(self, episode_id, server=None, variant=None):
        return await self._run("fetch_episode_sources", episode_id, server, variant)

    async def fetch_episodes_list(self, content_id, variant=None):
        return await self._run("fetch_episodes_list", content_id, variant)

    async def fetch_info(self, content_id, variant=None):
        return await self._run("fetch_info", content_id, variant)

    async def search(self, query, page=1):
        return await self._run("search", query, page)

    async def fetch_trending(self, page=1, per_page=20):
        return await self._run("fetch_trending", page, per_page)

    async def fetch_popular(self, page=1, per_page=20):
        return await self._run("fetch_popular", page, per_page)

    async def fetch_servers(self, episode_id):
        return await self._run("fetch_servers", episode_id)

    async def aclose(self) -> None:
        self.closed = True


class FakeAdapterFactory:
    """AdapterFactory building one FakeAdapter per attempt."""

    def __init__(self, behaviors: dict[str, dict[str, Any]]) -> None:
        self.behaviors = behaviors
        self.built: list[FakeAdapter] = []

    def __call__(self, descriptor: ProviderDescriptor) -> FakeAdapter:
        adapter = FakeAdapter(descriptor.name, self.behaviors.get(descriptor.name, {}))
        self.built.append(adapter)
        return adapter

    @property
    def invoked(self) -> list[str]:
        return [a.name for a in self.built]


def build_manifest(*urls: str, flag: bool | None = None) -> Manifest:
    return Manifest(
        sources=tuple(SourceEntry(url=u, is_playable_flag=flag) for u in urls)
    )


@pytest.fixture()
def fake_factory() -> Callable[[dict[str, dict[str, Any]]], FakeAdapterFactory]:
    """Return a builder: ``fake_factory({"zoro": {...}})``."""
    return FakeAdapterFactory


@pytest.fixture()
def manifest_of() -> Callable[..., Manifest]:
    return build_manifest


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> StaticProviderRegistry:
    """Registry with the built-in catalogue (anime order: zoro, gogoanime)."""
    return StaticProviderRegistry()


@pytest.fixture()
def memory_cache() -> MemoryCacheAdapter:
    return MemoryCacheAdapter(ttl_seconds=60)


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """AsyncMock CachePort: always misses."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=False)
    cache.exists = AsyncMock(return_value=False)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache


# ---------------------------------------------------------------------------
# Application fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_engine(
    registry: StaticProviderRegistry,
) -> Callable[..., ResolutionEngine]:
    """Build a ResolutionEngine around a fake factory and optional cache."""

    def _make(
        factory: FakeAdapterFactory,
        *,
        cache: Any = None,
        attempt_timeout: float = 1.0,
        **kwargs: Any,
    ) -> ResolutionEngine:
        return ResolutionEngine(
            registry=registry,
            adapter_factory=factory,
            result_cache=ResultCache(cache),
            attempt_timeout=attempt_timeout,
            **kwargs,
        )

    return _make
