"""Port for upstream provider adapters."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from resolvarr.domain.entities.resolution import (
    Manifest,
    ProviderDescriptor,
    Variant,
)


@runtime_checkable
class ProviderAdapterPort(Protocol):
    """Fetches content from one upstream source.

    Implementations raise ``ProviderError`` (or any exception) on transport,
    parse or upstream failures, and may raise ``NoPlayableSourcesError``
    when an episode has no streamable source. The engine records every
    exception as a failed attempt and tries the next candidate.

    Instances may hold per-session state (cookies, rate-limit counters) and
    are therefore built per attempt and closed with ``aclose()`` afterwards.
    """

    @property
    def name(self) -> str:
        """Provider name this adapter talks to (e.g. 'zoro')."""
        ...

    async def fetch_episode_sources(
        self,
        episode_id: str,
        server: str | None = None,
        variant: Variant | None = None,
    ) -> Manifest: ...

    async def fetch_episodes_list(
        self,
        content_id: str,
        variant: Variant | None = None,
    ) -> list[dict[str, Any]]: ...

    async def fetch_info(
        self,
        content_id: str,
        variant: Variant | None = None,
    ) -> dict[str, Any]: ...

    async def search(self, query: str, page: int = 1) -> list[dict[str, Any]]: ...

    async def fetch_trending(
        self, page: int = 1, per_page: int = 20
    ) -> list[dict[str, Any]]: ...

    async def fetch_popular(
        self, page: int = 1, per_page: int = 20
    ) -> list[dict[str, Any]]: ...

    async def fetch_servers(self, episode_id: str) -> list[dict[str, Any]]:
        """Streaming servers offering *episode_id* (name and url per entry)."""
        ...

    async def aclose(self) -> None: ...


# Builds a fresh adapter for a descriptor. Called once per attempt.
AdapterFactory = Callable[[ProviderDescriptor], ProviderAdapterPort]
