"""Tests for GET /api/v1/providers."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from resolvarr.infrastructure.providers.registry import StaticProviderRegistry
from resolvarr.interfaces.api.providers.router import router


def _client(registry: StaticProviderRegistry) -> TestClient:
    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.state.registry = registry
    return TestClient(app)


class TestListProviders:
    def test_lists_anime_with_enabled_flag(
        self, registry: StaticProviderRegistry
    ) -> None:
        resp = _client(registry).get("/api/v1/providers?type=ANIME")

        assert resp.status_code == 200
        body = resp.json()
        assert body["type"] == "ANIME"
        flags = {p["name"]: p["enabled"] for p in body["providers"]}
        assert flags["zoro"] is True
        assert flags["gogoanime"] is True
        assert flags["animeowl"] is False

    def test_lowercase_type_accepted(self, registry: StaticProviderRegistry) -> None:
        resp = _client(registry).get("/api/v1/providers?type=light_novels")

        assert resp.status_code == 200
        assert resp.json()["type"] == "LIGHT_NOVELS"

    def test_empty_domain(self, registry: StaticProviderRegistry) -> None:
        resp = _client(registry).get("/api/v1/providers?type=comics")

        assert resp.status_code == 200
        assert resp.json()["providers"] == []

    def test_missing_type(self, registry: StaticProviderRegistry) -> None:
        resp = _client(registry).get("/api/v1/providers")

        assert resp.status_code == 400
        assert "ANIME" in resp.json()["message"]

    def test_invalid_type(self, registry: StaticProviderRegistry) -> None:
        resp = _client(registry).get("/api/v1/providers?type=podcasts")

        assert resp.status_code == 400
        message = resp.json()["message"]
        assert "podcasts" in message
        assert "LIGHT_NOVELS" in message
