"""Shared fixtures for integration tests.

These tests use real infrastructure components (DiskcacheAdapter,
GatewayProviderAdapter, load_config) with mocked HTTP via respx.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from resolvarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter


@pytest.fixture()
async def diskcache(tmp_path: Path) -> DiskcacheAdapter:
    """Real DiskcacheAdapter backed by tmp_path (auto-cleaned)."""
    adapter = DiskcacheAdapter(
        directory=tmp_path / "cache",
        ttl_seconds=3600,
        max_concurrent=5,
    )
    async with adapter:
        yield adapter


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove RESOLVARR_* and CACHE_* variables inherited from the shell."""
    for key in list(os.environ):
        if key.startswith(("RESOLVARR_", "CACHE_")):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
