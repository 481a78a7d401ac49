"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import structlog
from fastapi import FastAPI

from resolvarr.application.result_cache import ResultCache
from resolvarr.application.use_cases import ResolutionEngine
from resolvarr.domain.exceptions import CacheBackendError
from resolvarr.domain.ports import AdapterFactory, CachePort
from resolvarr.infrastructure.cache import create_cache
from resolvarr.infrastructure.config.schema import AppConfig
from resolvarr.infrastructure.providers import (
    GatewayAdapterFactory,
    StaticProviderRegistry,
)
from resolvarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

_DRAIN_TIMEOUT_SECONDS = 10.0


def build_registry(config: AppConfig) -> StaticProviderRegistry:
    """Provider registry with the configured order and base URL overrides."""
    overrides = {
        domain: order
        for domain in config.providers.domains
        if (order := config.providers.order_for(domain)) is not None
    }
    return StaticProviderRegistry(
        order_overrides=overrides,
        base_urls=config.providers.base_urls(),
    )


def build_adapter_factory(config: AppConfig) -> GatewayAdapterFactory:
    return GatewayAdapterFactory(
        gateway_url=config.gateway_url,
        timeout=config.http_timeout_seconds,
        user_agent=config.http_user_agent,
    )


def build_engine(
    config: AppConfig,
    *,
    registry: StaticProviderRegistry,
    adapter_factory: AdapterFactory,
    result_cache: ResultCache,
) -> ResolutionEngine:
    return ResolutionEngine(
        registry=registry,
        adapter_factory=adapter_factory,
        result_cache=result_cache,
        attempt_timeout=config.resolution.attempt_timeout_seconds,
        sources_ttl=config.resolution.sources_ttl_seconds,
        search_ttl=config.resolution.search_ttl_seconds,
    )


async def open_cache(config: AppConfig) -> CachePort | None:
    """Create and open the configured backend; None disables caching.

    An unreachable backend disables caching instead of failing startup.
    """
    cache = create_cache(
        backend=config.cache.backend,
        directory=str(config.cache.directory),
        redis_url=config.cache.redis_url,
        key_prefix=config.cache.key_prefix,
        ttl_seconds=config.cache.ttl_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    if cache is None:
        log.warning("cache_disabled", reason="backend=none")
        return None
    try:
        await cache.__aenter__()
    except CacheBackendError as e:
        log.warning("cache_disabled", backend=config.cache.backend, error=str(e))
        return None
    log.info("cache_initialized", backend=config.cache.backend)
    return cache


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Cache backend + result cache
        2. Provider registry (fails fast on a bad default order)
        3. Adapter factory (one gateway client per attempt)
        4. Resolution engine
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Cache
    state.cache = await open_cache(config)
    state.result_cache = ResultCache(
        state.cache, single_flight=config.cache.single_flight
    )

    try:
        # 2) Provider registry
        state.registry = build_registry(config)

        # 3) + 4) Adapters and engine
        adapter_factory = build_adapter_factory(config)
        state.engine = build_engine(
            config,
            registry=state.registry,
            adapter_factory=adapter_factory,
            result_cache=state.result_cache,
        )
        log.info(
            "resolution_engine_initialized",
            gateway_url=adapter_factory.gateway_url,
            attempt_timeout=config.resolution.attempt_timeout_seconds,
        )

        state.lifecycle.mark_ready()
        log.info("app_startup_complete")

        yield
    finally:
        await state.lifecycle.drain(timeout=_DRAIN_TIMEOUT_SECONDS)

        if state.cache is not None:
            await state.cache.aclose()
            log.info("cache_closed")

        log.info("app_shutdown_complete")
