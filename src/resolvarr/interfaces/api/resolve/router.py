"""Resolution endpoints: sources, episodes, info, search, listings, servers."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from resolvarr.application.use_cases import ResolutionEngine
from resolvarr.domain.entities import (
    ContentDomain,
    ResolutionFailure,
    ResolutionRequest,
    ResolutionResult,
    Variant,
)
from resolvarr.domain.exceptions import UnknownDomainError, ValidationError
from resolvarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["resolve"])

_NO_SOURCES_MESSAGE = "No playable source found from available providers"
_NO_EPISODES_MESSAGE = "No episodes found from available providers"
_NO_INFO_MESSAGE = "No info found from available providers"
_NO_RESULTS_MESSAGE = "No results found from available providers"
_NO_SERVERS_MESSAGE = "No servers found from available providers"


def _parse_flag(raw: str | None) -> bool:
    """Only ``"true"`` and ``"1"`` enable a flag."""
    return raw in ("true", "1")


def _parse_domain(raw: str) -> ContentDomain:
    try:
        return ContentDomain.parse(raw)
    except ValueError:
        raise UnknownDomainError(raw) from None


def _engine(request: Request) -> ResolutionEngine:
    state = cast(AppState, request.app.state)
    return state.engine


def _bad_request(exc: ValidationError) -> JSONResponse:
    return JSONResponse({"message": str(exc)}, status_code=400)


def _internal_error(endpoint: str, **context: Any) -> JSONResponse:
    log.error("resolve_endpoint_failed", endpoint=endpoint, exc_info=True, **context)
    return JSONResponse({"message": "Internal server error"}, status_code=500)


def _exhausted(message: str, failure: ResolutionFailure) -> JSONResponse:
    return JSONResponse({"message": message, **failure.to_payload()}, status_code=404)


def _respond(
    result: ResolutionResult,
    failure_message: str,
    body: Any,
) -> JSONResponse:
    if isinstance(result, ResolutionFailure):
        return _exhausted(failure_message, result)
    return JSONResponse(
        body(result),
        status_code=200,
        headers={"X-Cache": "HIT" if result.from_cache else "MISS"},
    )


@router.get("/{domain}/watch/{episode_id}")
async def watch(
    request: Request,
    domain: str,
    episode_id: str,
    provider: str | None = None,
    server: str | None = None,
    dub: str | None = None,
) -> JSONResponse:
    """Resolve playable sources for one episode with provider fallback."""
    try:
        req = ResolutionRequest(
            content_id=episode_id,
            domain=_parse_domain(domain),
            provider_hint=provider or None,
            server_hint=server or None,
            variant=Variant(dub=_parse_flag(dub)),
        )
        result = await _engine(request).resolve(req)
    except ValidationError as e:
        return _bad_request(e)
    except Exception:
        return _internal_error("watch", episode_id=episode_id)

    return _respond(
        result,
        _NO_SOURCES_MESSAGE,
        lambda r: {"providerUsed": r.provider_used, **r.manifest.to_payload()},
    )


@router.get("/{domain}/episodes/{content_id}")
async def episodes(
    request: Request,
    domain: str,
    content_id: str,
    provider: str | None = None,
    dub: str | None = None,
    fetch_filler: str | None = Query(default=None, alias="fetchFiller"),
) -> JSONResponse:
    """Fetch the episode list; empty lists fall through to the next provider."""
    try:
        req = ResolutionRequest(
            content_id=content_id,
            domain=_parse_domain(domain),
            provider_hint=provider or None,
            variant=Variant(dub=_parse_flag(dub), fetch_filler=_parse_flag(fetch_filler)),
        )
        result = await _engine(request).fetch_episodes(req)
    except ValidationError as e:
        return _bad_request(e)
    except Exception:
        return _internal_error("episodes", content_id=content_id)

    return _respond(
        result,
        _NO_EPISODES_MESSAGE,
        lambda r: {"providerUsed": r.provider_used, "episodes": r.value},
    )


@router.get("/{domain}/info/{content_id}")
async def info(
    request: Request,
    domain: str,
    content_id: str,
    provider: str | None = None,
    dub: str | None = None,
    fetch_filler: str | None = Query(default=None, alias="fetchFiller"),
) -> JSONResponse:
    """Fetch content metadata with provider fallback."""
    try:
        req = ResolutionRequest(
            content_id=content_id,
            domain=_parse_domain(domain),
            provider_hint=provider or None,
            variant=Variant(dub=_parse_flag(dub), fetch_filler=_parse_flag(fetch_filler)),
        )
        result = await _engine(request).fetch_info(req)
    except ValidationError as e:
        return _bad_request(e)
    except Exception:
        return _internal_error("info", content_id=content_id)

    return _respond(
        result,
        _NO_INFO_MESSAGE,
        lambda r: {**r.value, "providerUsed": r.provider_used},
    )


@router.get("/{domain}/search/{query}")
async def search(
    request: Request,
    domain: str,
    query: str,
    provider: str | None = None,
    page: int = Query(default=1),
) -> JSONResponse:
    """Search providers; the first one with results wins."""
    try:
        result = await _engine(request).search(
            _parse_domain(domain), query, page=page, provider_hint=provider or None
        )
    except ValidationError as e:
        return _bad_request(e)
    except Exception:
        return _internal_error("search", query=query)

    return _respond(
        result,
        _NO_RESULTS_MESSAGE,
        lambda r: {
            "providerUsed": r.provider_used,
            "currentPage": page,
            "results": r.value,
        },
    )


def _listing_body(page: int) -> Any:
    return lambda r: {
        "providerUsed": r.provider_used,
        "currentPage": page,
        "results": r.value,
    }


@router.get("/{domain}/trending")
async def trending(
    request: Request,
    domain: str,
    provider: str | None = None,
    page: int = Query(default=1),
    per_page: int = Query(default=20, alias="perPage"),
) -> JSONResponse:
    """Trending titles from the first provider with a non-empty listing."""
    try:
        result = await _engine(request).trending(
            _parse_domain(domain),
            page=page,
            per_page=per_page,
            provider_hint=provider or None,
        )
    except ValidationError as e:
        return _bad_request(e)
    except Exception:
        return _internal_error("trending", page=page)

    return _respond(result, _NO_RESULTS_MESSAGE, _listing_body(page))


@router.get("/{domain}/popular")
async def popular(
    request: Request,
    domain: str,
    provider: str | None = None,
    page: int = Query(default=1),
    per_page: int = Query(default=20, alias="perPage"),
) -> JSONResponse:
    try:
        result = await _engine(request).popular(
            _parse_domain(domain),
            page=page,
            per_page=per_page,
            provider_hint=provider or None,
        )
    except ValidationError as e:
        return _bad_request(e)
    except Exception:
        return _internal_error("popular", page=page)

    return _respond(result, _NO_RESULTS_MESSAGE, _listing_body(page))


@router.get("/{domain}/servers/{episode_id}")
async def servers(
    request: Request,
    domain: str,
    episode_id: str,
    provider: str | None = None,
) -> JSONResponse:
    """List streaming servers for one episode with provider fallback."""
    try:
        req = ResolutionRequest(
            content_id=episode_id,
            domain=_parse_domain(domain),
            provider_hint=provider or None,
        )
        result = await _engine(request).servers(req)
    except ValidationError as e:
        return _bad_request(e)
    except Exception:
        return _internal_error("servers", episode_id=episode_id)

    return _respond(
        result,
        _NO_SERVERS_MESSAGE,
        lambda r: {"providerUsed": r.provider_used, "servers": r.value},
    )
