"""Tests for create_app(): lifespan wiring, health and readiness probes."""

from __future__ import annotations

from unittest.mock import patch

from fastapi.testclient import TestClient

from resolvarr.application.result_cache import ResultCache
from resolvarr.application.use_cases import ResolutionEngine
from resolvarr.domain.entities import ContentDomain
from resolvarr.domain.exceptions import CacheBackendError
from resolvarr.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from resolvarr.infrastructure.config import AppConfig
from resolvarr.interfaces.app import create_app


def _config(**cache: object) -> AppConfig:
    return AppConfig.model_validate(
        {"cache": {"backend": "memory", **cache}, "gateway_url": "http://gw.test"}
    )


class TestProbes:
    def test_healthz_reports_cache(self) -> None:
        with TestClient(create_app(_config())) as client:
            resp = client.get("/api/v1/healthz")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "cache": True}

    def test_readyz_after_startup(self) -> None:
        with TestClient(create_app(_config())) as client:
            resp = client.get("/api/v1/readyz")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ready"}

    def test_readyz_before_startup(self) -> None:
        # No context manager: lifespan never runs.
        client = TestClient(create_app(_config()))

        resp = client.get("/api/v1/readyz")

        assert resp.status_code == 503

    def test_cache_disabled(self) -> None:
        with TestClient(create_app(_config(backend="none"))) as client:
            resp = client.get("/api/v1/healthz")

        assert resp.json()["cache"] is False


class TestLifespan:
    def test_wires_engine_and_registry(self) -> None:
        app = create_app(_config())
        with TestClient(app):
            assert isinstance(app.state.engine, ResolutionEngine)
            assert isinstance(app.state.result_cache, ResultCache)
            assert isinstance(app.state.cache, MemoryCacheAdapter)
            assert app.state.registry.default_order(ContentDomain.ANIME) == (
                "zoro",
                "gogoanime",
            )

    def test_unreachable_cache_disables_caching(self) -> None:
        app = create_app(_config())
        with patch.object(
            MemoryCacheAdapter,
            "__aenter__",
            side_effect=CacheBackendError("unreachable"),
        ):
            with TestClient(app) as client:
                resp = client.get("/api/v1/healthz")

        assert app.state.cache is None
        assert resp.json()["cache"] is False
        assert app.state.lifecycle.is_ready is False  # drained on shutdown

    def test_provider_order_from_config(self) -> None:
        config = AppConfig.model_validate(
            {"providers": {"anime": {"default_order": ["gogoanime"]}}}
        )
        app = create_app(config)
        with TestClient(app) as client:
            resp = client.get("/api/v1/providers?type=anime")

        flags = {p["name"]: p["enabled"] for p in resp.json()["providers"]}
        assert flags["gogoanime"] is True
        assert flags["zoro"] is False
