"""Resolution engine: ordered provider fallback with result caching."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import structlog

from resolvarr.application.error_aggregator import ErrorAggregator
from resolvarr.application.result_cache import ResultCache
from resolvarr.application.ttl_policy import (
    SEARCH_TTL,
    SOURCES_TTL,
    TRENDING_TTL,
    episodes_ttl,
)
from resolvarr.domain.entities import (
    AttemptFailure,
    AttemptSuccess,
    ContentDomain,
    FailureKind,
    Manifest,
    ProviderDescriptor,
    ResolutionAttempt,
    ResolutionFailure,
    ResolutionRequest,
    ResolutionResult,
    ResolutionSuccess,
    StreamingServer,
)
from resolvarr.domain.entities.resolution import (
    OP_FETCH_EPISODE_SOURCES,
    OP_FETCH_EPISODES_LIST,
    OP_FETCH_INFO,
    OP_FETCH_POPULAR,
    OP_FETCH_SERVERS,
    OP_FETCH_TRENDING,
    OP_SEARCH,
)
from resolvarr.domain.exceptions import (
    InvalidServerError,
    NoPlayableSourcesError,
    ProviderNotFoundError,
    ProviderTimeoutError,
    ValidationError,
)
from resolvarr.domain.ports import AdapterFactory, ProviderAdapterPort, ProviderRegistryPort

log = structlog.get_logger(__name__)

_SERVER_VALUES = frozenset(s.value for s in StreamingServer)

# Calls one adapter operation.
AdapterCall = Callable[[ProviderAdapterPort], Awaitable[Any]]
# Returns a failure when the adapter's value is not usable, else None.
UsabilityCheck = Callable[[Any], "AttemptFailure | None"]


def _check_manifest(value: Any) -> AttemptFailure | None:
    if not isinstance(value, Manifest):
        return AttemptFailure(
            FailureKind.PROVIDER_ERROR,
            f"Adapter returned {type(value).__name__}, expected Manifest",
        )
    if not value.has_playable:
        return AttemptFailure(FailureKind.NO_PLAYABLE_SOURCES, "No playable sources")
    return None


def _check_episodes(value: Any) -> AttemptFailure | None:
    if not value:
        return AttemptFailure(FailureKind.EMPTY_RESULT, "No episodes found")
    return None


def _check_info(value: Any) -> AttemptFailure | None:
    if not value:
        return AttemptFailure(FailureKind.EMPTY_RESULT, "No info found")
    return None


def _check_search(value: Any) -> AttemptFailure | None:
    if not value:
        return AttemptFailure(FailureKind.EMPTY_RESULT, "No results found")
    return None


def _check_servers(value: Any) -> AttemptFailure | None:
    if not value:
        return AttemptFailure(FailureKind.EMPTY_RESULT, "No servers found")
    return None


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _is_success(result: ResolutionResult) -> bool:
    return isinstance(result, ResolutionSuccess)


def _identity(value: Any) -> Any:
    return value


def _manifest_to_payload(value: Any) -> Any:
    return value.to_payload()


class _SuccessCodec:
    """Converts a ResolutionSuccess to the JSON form kept in the cache and back."""

    def __init__(
        self,
        encode_value: Callable[[Any], Any] = _identity,
        decode_value: Callable[[Any], Any] = _identity,
    ) -> None:
        self._encode_value = encode_value
        self._decode_value = decode_value

    def encode(self, result: ResolutionResult) -> dict[str, Any]:
        assert isinstance(result, ResolutionSuccess)
        return {
            "provider_used": result.provider_used,
            "value": self._encode_value(result.value),
            "attempts": [a.to_payload() for a in result.attempts],
        }

    def decode(self, data: dict[str, Any]) -> ResolutionResult:
        """Raises ValueError for entries not written by ``encode``."""
        if not isinstance(data, dict) or not isinstance(data.get("provider_used"), str):
            raise ValueError("cached entry is not a resolution success")
        value = self._decode_value(data.get("value"))
        attempts = tuple(
            ResolutionAttempt.from_payload(a, success_payload=value)
            for a in data.get("attempts") or []
        )
        return ResolutionSuccess(
            provider_used=data["provider_used"],
            value=value,
            attempts=attempts,
            from_cache=True,
        )


_MANIFEST_CODEC = _SuccessCodec(_manifest_to_payload, Manifest.from_payload)
_PLAIN_CODEC = _SuccessCodec()


def _flag(value: bool) -> str:
    return "1" if value else "0"


class ResolutionEngine:
    """Tries providers one after another until one returns something usable.

    Flow per operation:
        1. Validate the request (bad server/query -> ValidationError)
        2. Build the attempt order: valid hint first, then the domain
           default order without duplicates
        3. Through the result cache, try each provider sequentially with a
           freshly built adapter under a per-attempt timeout
        4. First usable result wins; otherwise a ResolutionFailure listing
           every provider tried and its error

    Adapter exceptions never escape: they are recorded as attempts.
    """

    def __init__(
        self,
        registry: ProviderRegistryPort,
        adapter_factory: AdapterFactory,
        result_cache: ResultCache | None = None,
        *,
        attempt_timeout: float = 20.0,
        sources_ttl: int = SOURCES_TTL,
        search_ttl: int = SEARCH_TTL,
        trending_ttl: int = TRENDING_TTL,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the engine with its collaborators.

        Args:
            registry: Provider descriptors and default order per domain.
            adapter_factory: Builds one adapter per attempt.
            result_cache: Optional result cache; None disables caching.
            attempt_timeout: Seconds a single adapter call may take.
            sources_ttl: TTL for resolved source manifests (seconds).
            search_ttl: TTL for search results (seconds).
            trending_ttl: TTL for trending and popular listings (seconds).
            clock: Returns "now" for the calendar TTL policy.
        """
        self._registry = registry
        self._adapter_factory = adapter_factory
        self._cache = result_cache or ResultCache(None)
        self._attempt_timeout = attempt_timeout
        self._sources_ttl = sources_ttl
        self._search_ttl = search_ttl
        self._trending_ttl = trending_ttl
        self._clock = clock

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def attempt_order(
        self, domain: ContentDomain, provider_hint: str | None = None
    ) -> tuple[str, ...]:
        """Return the providers to try, in order.

        A hint is honoured only if it is part of the domain's default
        order; unknown or disabled hints are dropped silently.
        """
        default = self._registry.default_order(domain)
        order: list[str] = []
        if provider_hint:
            hint = provider_hint.strip().lower()
            if hint in default:
                order.append(hint)
        for name in default:
            if name not in order:
                order.append(name)
        return tuple(order)

    async def resolve(self, request: ResolutionRequest) -> ResolutionResult:
        """Resolve playable episode sources.

        Raises:
            InvalidServerError: ``server_hint`` is not a known streaming server.
            ValidationError: ``content_id`` is blank.
        """
        if request.server_hint is not None and request.server_hint not in _SERVER_VALUES:
            raise InvalidServerError(request.server_hint)
        content_id = self._require_id(request.content_id)
        server = request.server_hint
        variant = request.variant

        key = ":".join(
            (
                "sources",
                request.domain.value,
                content_id,
                server or "-",
                _flag(variant.dub),
                self._cache_hint(request.domain, request.provider_hint),
            )
        )

        async def produce() -> ResolutionResult:
            return await self._run(
                OP_FETCH_EPISODE_SOURCES,
                request.domain,
                request.provider_hint,
                lambda adapter: adapter.fetch_episode_sources(
                    content_id, server=server, variant=variant
                ),
                _check_manifest,
                subject=content_id,
            )

        return await self._cache.fetch(
            key,
            produce,
            self._sources_ttl,
            cacheable=_is_success,
            encode=_MANIFEST_CODEC.encode,
            decode=_MANIFEST_CODEC.decode,
        )

    async def fetch_episodes(self, request: ResolutionRequest) -> ResolutionResult:
        """Fetch the episode list; an empty list counts as a failed attempt."""
        content_id = self._require_id(request.content_id)
        variant = request.variant
        key = ":".join(
            (
                "episodes",
                request.domain.value,
                content_id,
                _flag(variant.dub),
                _flag(variant.fetch_filler),
                self._cache_hint(request.domain, request.provider_hint),
            )
        )

        async def produce() -> ResolutionResult:
            return await self._run(
                OP_FETCH_EPISODES_LIST,
                request.domain,
                request.provider_hint,
                lambda adapter: adapter.fetch_episodes_list(content_id, variant=variant),
                _check_episodes,
                subject=content_id,
            )

        return await self._cache.fetch(
            key,
            produce,
            episodes_ttl(self._clock()),
            cacheable=_is_success,
            encode=_PLAIN_CODEC.encode,
            decode=_PLAIN_CODEC.decode,
        )

    async def fetch_info(self, request: ResolutionRequest) -> ResolutionResult:
        """Fetch content metadata; an empty payload counts as a failed attempt."""
        content_id = self._require_id(request.content_id)
        variant = request.variant
        key = ":".join(
            (
                "info",
                request.domain.value,
                content_id,
                _flag(variant.dub),
                _flag(variant.fetch_filler),
                self._cache_hint(request.domain, request.provider_hint),
            )
        )

        async def produce() -> ResolutionResult:
            return await self._run(
                OP_FETCH_INFO,
                request.domain,
                request.provider_hint,
                lambda adapter: adapter.fetch_info(content_id, variant=variant),
                _check_info,
                subject=content_id,
            )

        return await self._cache.fetch(
            key,
            produce,
            episodes_ttl(self._clock()),
            cacheable=_is_success,
            encode=_PLAIN_CODEC.encode,
            decode=_PLAIN_CODEC.decode,
        )

    async def search(
        self,
        domain: ContentDomain,
        query: str,
        page: int = 1,
        provider_hint: str | None = None,
    ) -> ResolutionResult:
        """Search providers for *query*; an empty result list falls through.

        Raises:
            ValidationError: blank query or page < 1.
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Missing search query")
        if page < 1:
            raise ValidationError(f"Invalid page: {page}")

        key = ":".join(
            (
                "search",
                domain.value,
                query.lower(),
                str(page),
                self._cache_hint(domain, provider_hint),
            )
        )

        async def produce() -> ResolutionResult:
            return await self._run(
                OP_SEARCH,
                domain,
                provider_hint,
                lambda adapter: adapter.search(query, page=page),
                _check_search,
                subject=query,
            )

        return await self._cache.fetch(
            key,
            produce,
            self._search_ttl,
            cacheable=_is_success,
            encode=_PLAIN_CODEC.encode,
            decode=_PLAIN_CODEC.decode,
        )

    async def trending(
        self,
        domain: ContentDomain,
        page: int = 1,
        per_page: int = 20,
        provider_hint: str | None = None,
    ) -> ResolutionResult:
        """Currently trending titles, cached for ``trending_ttl``."""
        return await self._listing(
            OP_FETCH_TRENDING,
            domain,
            page,
            per_page,
            provider_hint,
            lambda adapter: adapter.fetch_trending(page=page, per_page=per_page),
        )

    async def popular(
        self,
        domain: ContentDomain,
        page: int = 1,
        per_page: int = 20,
        provider_hint: str | None = None,
    ) -> ResolutionResult:
        """All-time popular titles, cached for ``trending_ttl``."""
        return await self._listing(
            OP_FETCH_POPULAR,
            domain,
            page,
            per_page,
            provider_hint,
            lambda adapter: adapter.fetch_popular(page=page, per_page=per_page),
        )

    async def servers(self, request: ResolutionRequest) -> ResolutionResult:
        """List the streaming servers of an episode. Never cached."""
        episode_id = self._require_id(request.content_id)
        return await self._run(
            OP_FETCH_SERVERS,
            request.domain,
            request.provider_hint,
            lambda adapter: adapter.fetch_servers(episode_id),
            _check_servers,
            subject=episode_id,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _require_id(content_id: str) -> str:
        content_id = (content_id or "").strip()
        if not content_id:
            raise ValidationError("Missing content id")
        return content_id

    def _cache_hint(self, domain: ContentDomain, provider_hint: str | None) -> str:
        """Cache key part for the hint: the provider attempted first.

        Hints that do not change the attempt order share one key.
        """
        order = self.attempt_order(domain, provider_hint)
        return order[0] if order else "-"

    async def _listing(
        self,
        operation: str,
        domain: ContentDomain,
        page: int,
        per_page: int,
        provider_hint: str | None,
        call: AdapterCall,
    ) -> ResolutionResult:
        if page < 1:
            raise ValidationError(f"Invalid page: {page}")
        if per_page < 1:
            raise ValidationError(f"Invalid perPage: {per_page}")

        kind = operation.removeprefix("fetch_")
        key = ":".join(
            (
                kind,
                domain.value,
                str(page),
                str(per_page),
                self._cache_hint(domain, provider_hint),
            )
        )

        async def produce() -> ResolutionResult:
            return await self._run(
                operation, domain, provider_hint, call, _check_search, subject=kind
            )

        return await self._cache.fetch(
            key,
            produce,
            self._trending_ttl,
            cacheable=_is_success,
            encode=_PLAIN_CODEC.encode,
            decode=_PLAIN_CODEC.decode,
        )

    async def _run(
        self,
        operation: str,
        domain: ContentDomain,
        provider_hint: str | None,
        call: AdapterCall,
        check: UsabilityCheck,
        *,
        subject: str,
    ) -> ResolutionResult:
        attempts: list[ResolutionAttempt] = []
        errors = ErrorAggregator()

        for name in self.attempt_order(domain, provider_hint):
            try:
                descriptor = self._registry.lookup(domain, name)
            except ProviderNotFoundError as e:
                failure = AttemptFailure(FailureKind.PROVIDER_ERROR, str(e))
                attempts.append(ResolutionAttempt(name, failure))
                errors.add(name, failure.message)
                continue
            if not descriptor.supports(operation):
                log.debug(
                    "provider_skipped",
                    provider=name,
                    operation=operation,
                    reason="unsupported",
                )
                continue

            log.info(
                "provider_attempt",
                provider=name,
                domain=domain.value,
                operation=operation,
                subject=subject,
                attempt=len(attempts) + 1,
            )
            attempt = await self._attempt(descriptor, call, check)
            attempts.append(attempt)

            if isinstance(attempt.outcome, AttemptSuccess):
                log.info(
                    "resolution_succeeded",
                    provider=name,
                    domain=domain.value,
                    operation=operation,
                    attempts=len(attempts),
                )
                return ResolutionSuccess(
                    provider_used=name,
                    value=attempt.outcome.payload,
                    attempts=tuple(attempts),
                )

            assert isinstance(attempt.outcome, AttemptFailure)
            errors.add(name, attempt.outcome.message)
            log.warning(
                "provider_failed",
                provider=name,
                domain=domain.value,
                operation=operation,
                kind=attempt.outcome.kind.value,
                error=attempt.outcome.message,
            )

        tried = tuple(a.provider for a in attempts)
        log.warning(
            "resolution_exhausted",
            domain=domain.value,
            operation=operation,
            subject=subject,
            tried_providers=list(tried),
        )
        return ResolutionFailure(
            tried_providers=tried,
            errors=errors.records,
            attempts=tuple(attempts),
        )

    async def _attempt(
        self,
        descriptor: ProviderDescriptor,
        call: AdapterCall,
        check: UsabilityCheck,
    ) -> ResolutionAttempt:
        name = descriptor.name
        try:
            adapter = self._adapter_factory(descriptor)
        except Exception as e:
            return ResolutionAttempt(
                name, AttemptFailure(FailureKind.PROVIDER_ERROR, _error_message(e))
            )

        try:
            async with asyncio.timeout(self._attempt_timeout):
                value = await call(adapter)
        except TimeoutError:
            return ResolutionAttempt(
                name,
                AttemptFailure(
                    FailureKind.TIMEOUT,
                    f"Timed out after {self._attempt_timeout:g}s",
                ),
            )
        except ProviderTimeoutError as e:
            return ResolutionAttempt(
                name, AttemptFailure(FailureKind.TIMEOUT, _error_message(e))
            )
        except NoPlayableSourcesError as e:
            return ResolutionAttempt(
                name,
                AttemptFailure(FailureKind.NO_PLAYABLE_SOURCES, _error_message(e)),
            )
        except Exception as e:
            return ResolutionAttempt(
                name, AttemptFailure(FailureKind.PROVIDER_ERROR, _error_message(e))
            )
        finally:
            await self._close(adapter)

        failure = check(value)
        if failure is not None:
            return ResolutionAttempt(name, failure)
        return ResolutionAttempt(name, AttemptSuccess(value))

    @staticmethod
    async def _close(adapter: ProviderAdapterPort) -> None:
        try:
            await adapter.aclose()
        except Exception as e:
            log.warning("adapter_close_failed", provider=adapter.name, error=str(e))
