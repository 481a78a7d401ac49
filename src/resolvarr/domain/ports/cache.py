"""Port for the key/value store behind the result cache."""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """Async key/value store with per-entry expiry.

    Values are JSON-serializable (manifests, episode lists, info and search
    payloads). A missing or expired key reads as ``None``. Unreachable
    backends and unserializable values raise ``CacheBackendError``.

    Adapters are opened and closed as async context managers.
    """

    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        """Store *value* for *ttl* seconds (adapter default when None)."""
        ...

    async def delete(self, key: str) -> bool:
        """True when an entry was removed."""
        ...

    async def exists(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    async def aclose(self) -> None: ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
