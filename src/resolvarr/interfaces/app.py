"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from resolvarr.infrastructure.config import AppConfig
from resolvarr.infrastructure.lifecycle import ServiceLifecycle
from resolvarr.interfaces.api.providers.router import router as providers_router
from resolvarr.interfaces.api.resolve.router import router as resolve_router
from resolvarr.interfaces.app_state import AppState
from resolvarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)

API_PREFIX = "/api/v1"

probes = APIRouter(tags=["probes"])


@probes.get("/healthz")
async def healthz(request: Request) -> dict[str, str | bool]:
    """Liveness: 200 while the process runs; reports whether caching is on."""
    result_cache = getattr(request.app.state, "result_cache", None)
    return {
        "status": "ok",
        "cache": bool(result_cache is not None and result_cache.enabled),
    }


@probes.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Readiness: 503 before startup completes and while draining."""
    lifecycle: ServiceLifecycle = request.app.state.lifecycle
    if lifecycle.is_ready:
        return JSONResponse({"status": "ready"})
    return JSONResponse({"status": "not_ready"}, status_code=503)


def _install_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        lifecycle: ServiceLifecycle = request.app.state.lifecycle
        lifecycle.request_started()
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            lifecycle.request_finished()
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                query=str(request.url.query),
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
                client_host=request.client.host if request.client else None,
            )


def create_app(config: AppConfig) -> FastAPI:
    """Create the app with configuration only.

    Cache, registry and engine are built in ``lifespan()``.
    """
    app = FastAPI(
        title="Resolvarr",
        description="Provider fallback and result cache for streaming sources",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config
    app.state.lifecycle = ServiceLifecycle()

    for router in (probes, providers_router, resolve_router):
        app.include_router(router, prefix=API_PREFIX)
    _install_request_logging(app)

    return app
