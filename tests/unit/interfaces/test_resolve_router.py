"""Tests for the resolution endpoints (watch, episodes, info, search, listings)."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from resolvarr.domain.entities import ContentDomain, Manifest, ResolutionRequest
from resolvarr.domain.exceptions import ProviderError
from resolvarr.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from resolvarr.interfaces.api.resolve.router import router


def _make_app(engine: Any) -> FastAPI:
    """Create a minimal FastAPI app with the resolve router."""
    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.state.engine = engine
    return app


class TestWatch:
    def test_fallback_success_reports_provider(
        self, fake_factory, manifest_of, make_engine
    ) -> None:
        factory = fake_factory(
            {
                "zoro": {"fetch_episode_sources": ProviderError("boom")},
                "gogoanime": {
                    "fetch_episode_sources": manifest_of("http://cdn/ep1.m3u8")
                },
            }
        )
        client = TestClient(_make_app(make_engine(factory)))

        resp = client.get("/api/v1/anime/watch/ep-1")

        assert resp.status_code == 200
        body = resp.json()
        assert body["providerUsed"] == "gogoanime"
        assert body["sources"] == [{"url": "http://cdn/ep1.m3u8"}]
        assert resp.headers["X-Cache"] == "MISS"

    def test_exhaustion_is_404_with_errors(self, fake_factory, make_engine) -> None:
        factory = fake_factory(
            {
                "zoro": {"fetch_episode_sources": ProviderError("zoro down")},
                "gogoanime": {"fetch_episode_sources": ProviderError("gogo down")},
            }
        )
        client = TestClient(_make_app(make_engine(factory)))

        resp = client.get("/api/v1/anime/watch/ep-1")

        assert resp.status_code == 404
        body = resp.json()
        assert body["message"] == "No playable source found from available providers"
        assert body["triedProviders"] == ["zoro", "gogoanime"]
        assert body["errors"] == [
            {"provider": "zoro", "error": "zoro down"},
            {"provider": "gogoanime", "error": "gogo down"},
        ]

    def test_invalid_server_is_400_without_attempts(
        self, fake_factory, make_engine
    ) -> None:
        factory = fake_factory({})
        client = TestClient(_make_app(make_engine(factory)))

        resp = client.get("/api/v1/anime/watch/ep-1?server=notaserver")

        assert resp.status_code == 400
        assert "notaserver" in resp.json()["message"]
        assert factory.built == []

    def test_unknown_domain_is_400(self, fake_factory, make_engine) -> None:
        client = TestClient(_make_app(make_engine(fake_factory({}))))

        resp = client.get("/api/v1/podcasts/watch/ep-1")

        assert resp.status_code == 400
        assert "podcasts" in resp.json()["message"]

    def test_query_flags_reach_the_engine(self) -> None:
        engine = MagicMock()
        engine.resolve = AsyncMock(side_effect=RuntimeError("stop"))
        client = TestClient(_make_app(engine))

        client.get("/api/v1/anime/watch/ep-1?provider=Zoro&server=vidcloud&dub=true")

        req: ResolutionRequest = engine.resolve.call_args[0][0]
        assert req.domain is ContentDomain.ANIME
        assert req.provider_hint == "Zoro"
        assert req.server_hint == "vidcloud"
        assert req.variant.dub is True

    def test_dub_only_true_or_one(self) -> None:
        engine = MagicMock()
        engine.resolve = AsyncMock(side_effect=RuntimeError("stop"))
        client = TestClient(_make_app(engine))

        client.get("/api/v1/anime/watch/ep-1?dub=yes&provider=")

        req: ResolutionRequest = engine.resolve.call_args[0][0]
        assert req.variant.dub is False
        assert req.provider_hint is None

    def test_unexpected_error_is_500(self) -> None:
        engine = MagicMock()
        engine.resolve = AsyncMock(side_effect=RuntimeError("bug"))
        client = TestClient(_make_app(engine))

        resp = client.get("/api/v1/anime/watch/ep-1")

        assert resp.status_code == 500
        assert resp.json() == {"message": "Internal server error"}

    def test_second_request_served_from_cache(
        self, fake_factory, manifest_of, make_engine
    ) -> None:
        factory = fake_factory(
            {"zoro": {"fetch_episode_sources": manifest_of("http://cdn/a.mp4")}}
        )
        engine = make_engine(factory, cache=MemoryCacheAdapter())
        client = TestClient(_make_app(engine))

        first = client.get("/api/v1/anime/watch/ep-1")
        second = client.get("/api/v1/anime/watch/ep-1")

        assert first.headers["X-Cache"] == "MISS"
        assert second.headers["X-Cache"] == "HIT"
        assert second.json() == first.json()
        assert factory.invoked == ["zoro"]

    def test_extra_source_fields_survive_the_cache(
        self, fake_factory, make_engine
    ) -> None:
        sources = [
            {"url": "http://cdn/a.mpd", "isDASH": True, "type": "dash"},
            {"url": "http://cdn/a.m3u8", "isM3U8": True},
        ]
        factory = fake_factory(
            {
                "zoro": {
                    "fetch_episode_sources": Manifest.from_payload({"sources": sources})
                }
            }
        )
        engine = make_engine(factory, cache=MemoryCacheAdapter())
        client = TestClient(_make_app(engine))

        first = client.get("/api/v1/anime/watch/ep-1")
        second = client.get("/api/v1/anime/watch/ep-1")

        assert first.json()["sources"] == sources
        assert second.headers["X-Cache"] == "HIT"
        assert second.json()["sources"] == sources


class TestEpisodesInfoSearch:
    def test_episodes(self, fake_factory, make_engine) -> None:
        factory = fake_factory(
            {
                "zoro": {"fetch_episodes_list": []},
                "gogoanime": {"fetch_episodes_list": [{"id": "ep-1", "number": 1}]},
            }
        )
        client = TestClient(_make_app(make_engine(factory)))

        resp = client.get("/api/v1/anime/episodes/one-piece?fetchFiller=1")

        assert resp.status_code == 200
        assert resp.json() == {
            "providerUsed": "gogoanime",
            "episodes": [{"id": "ep-1", "number": 1}],
        }
        variant = factory.built[0].calls[0][1][1]
        assert variant.fetch_filler is True

    def test_episodes_exhausted(self, fake_factory, make_engine) -> None:
        factory = fake_factory(
            {"zoro": {"fetch_episodes_list": []}, "gogoanime": {"fetch_episodes_list": []}}
        )
        client = TestClient(_make_app(make_engine(factory)))

        resp = client.get("/api/v1/anime/episodes/one-piece")

        assert resp.status_code == 404
        assert resp.json()["message"] == "No episodes found from available providers"

    def test_info_merges_provider_used(self, fake_factory, make_engine) -> None:
        factory = fake_factory({"zoro": {"fetch_info": {"id": "one-piece", "title": "OP"}}})
        client = TestClient(_make_app(make_engine(factory)))

        resp = client.get("/api/v1/anime/info/one-piece")

        assert resp.status_code == 200
        assert resp.json() == {"id": "one-piece", "title": "OP", "providerUsed": "zoro"}

    def test_search(self, fake_factory, make_engine) -> None:
        factory = fake_factory({"zoro": {"search": [{"id": "one-piece"}]}})
        client = TestClient(_make_app(make_engine(factory)))

        resp = client.get("/api/v1/anime/search/one piece?page=2")

        assert resp.status_code == 200
        assert resp.json() == {
            "providerUsed": "zoro",
            "currentPage": 2,
            "results": [{"id": "one-piece"}],
        }
        assert factory.built[0].calls == [("search", ("one piece", 2))]

    def test_search_invalid_page_is_400(self, fake_factory, make_engine) -> None:
        client = TestClient(_make_app(make_engine(fake_factory({}))))

        resp = client.get("/api/v1/anime/search/naruto?page=0")

        assert resp.status_code == 400


class TestListingsAndServers:
    def test_trending_passes_paging(self, fake_factory, make_engine) -> None:
        factory = fake_factory({"zoro": {"fetch_trending": [{"id": "frieren"}]}})
        client = TestClient(_make_app(make_engine(factory)))

        resp = client.get("/api/v1/anime/trending?page=3&perPage=5")

        assert resp.status_code == 200
        assert resp.json() == {
            "providerUsed": "zoro",
            "currentPage": 3,
            "results": [{"id": "frieren"}],
        }
        assert factory.built[0].calls == [("fetch_trending", (3, 5))]

    def test_popular_second_request_is_a_hit(
        self, fake_factory, make_engine
    ) -> None:
        factory = fake_factory({"zoro": {"fetch_popular": [{"id": "naruto"}]}})
        engine = make_engine(factory, cache=MemoryCacheAdapter())
        client = TestClient(_make_app(engine))

        first = client.get("/api/v1/anime/popular")
        second = client.get("/api/v1/anime/popular")

        assert first.headers["X-Cache"] == "MISS"
        assert second.headers["X-Cache"] == "HIT"
        assert factory.invoked == ["zoro"]

    def test_trending_invalid_per_page_is_400(
        self, fake_factory, make_engine
    ) -> None:
        client = TestClient(_make_app(make_engine(fake_factory({}))))

        resp = client.get("/api/v1/anime/trending?perPage=0")

        assert resp.status_code == 400

    def test_servers_with_fallback(self, fake_factory, make_engine) -> None:
        factory = fake_factory(
            {
                "zoro": {"fetch_servers": ProviderError("zoro down")},
                "gogoanime": {"fetch_servers": [{"name": "vidstreaming"}]},
            }
        )
        client = TestClient(_make_app(make_engine(factory)))

        resp = client.get("/api/v1/anime/servers/ep-1")

        assert resp.status_code == 200
        assert resp.json() == {
            "providerUsed": "gogoanime",
            "servers": [{"name": "vidstreaming"}],
        }

    def test_servers_exhausted(self, fake_factory, make_engine) -> None:
        client = TestClient(_make_app(make_engine(fake_factory({}))))

        resp = client.get("/api/v1/anime/servers/ep-1?provider=gogoanime")

        assert resp.status_code == 404
        body = resp.json()
        assert body["message"] == "No servers found from available providers"
        assert body["triedProviders"] == ["gogoanime", "zoro"]
