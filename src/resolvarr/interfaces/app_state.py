"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.datastructures import State

from resolvarr.infrastructure.config import AppConfig
from resolvarr.infrastructure.lifecycle import ServiceLifecycle

if TYPE_CHECKING:
    from resolvarr.application.result_cache import ResultCache
    from resolvarr.application.use_cases import ResolutionEngine
    from resolvarr.domain.ports import CachePort, ProviderRegistryPort


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure (cache is None when disabled or unreachable)
    cache: CachePort | None
    result_cache: ResultCache

    # Domain Ports
    registry: ProviderRegistryPort

    # Application Services
    engine: ResolutionEngine

    # Readiness + request draining
    lifecycle: ServiceLifecycle
