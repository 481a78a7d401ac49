"""Static provider registry built once at startup."""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from resolvarr.domain.entities import ContentDomain, ProviderDescriptor
from resolvarr.domain.entities.resolution import (
    ALL_OPERATIONS,
    OP_FETCH_INFO,
    OP_SEARCH,
)
from resolvarr.domain.exceptions import ConfigError, ProviderNotFoundError

from .defaults import DEFAULT_ORDER, REGISTERED

log = structlog.get_logger(__name__)

# Domains without playable media only support metadata lookups.
_STREAMING_DOMAINS = frozenset(
    {ContentDomain.ANIME, ContentDomain.MOVIES, ContentDomain.META}
)
_METADATA_OPERATIONS = frozenset({OP_FETCH_INFO, OP_SEARCH})


def _normalize(name: str) -> str:
    return name.strip().lower()


class StaticProviderRegistry:
    """Immutable provider catalogue with a curated attempt order per domain.

    A provider is disabled by leaving it out of the default order; it stays
    listed (and looked up) but is never attempted.

    Raises ``ConfigError`` at construction when a default order names a
    provider that is not registered for its domain, or names one twice.
    """

    def __init__(
        self,
        registered: Mapping[ContentDomain, tuple[str, ...]] = REGISTERED,
        default_order: Mapping[ContentDomain, tuple[str, ...]] = DEFAULT_ORDER,
        *,
        order_overrides: Mapping[ContentDomain, tuple[str, ...]] | None = None,
        base_urls: Mapping[str, str] | None = None,
    ) -> None:
        base_urls = {_normalize(k): v for k, v in (base_urls or {}).items()}
        order_overrides = order_overrides or {}

        self._descriptors: dict[ContentDomain, dict[str, ProviderDescriptor]] = {}
        for domain, names in registered.items():
            capabilities = (
                ALL_OPERATIONS if domain in _STREAMING_DOMAINS else _METADATA_OPERATIONS
            )
            self._descriptors[domain] = {
                _normalize(n): ProviderDescriptor(
                    name=_normalize(n),
                    domain=domain,
                    capabilities=capabilities,
                    base_url_override=base_urls.get(_normalize(n)),
                )
                for n in names
            }

        self._order: dict[ContentDomain, tuple[str, ...]] = {}
        for domain in self._descriptors:
            raw = order_overrides.get(domain, default_order.get(domain, ()))
            self._order[domain] = self._validated_order(domain, raw)

        unknown_overrides = sorted(
            set(base_urls)
            - {n for per_domain in self._descriptors.values() for n in per_domain}
        )
        if unknown_overrides:
            raise ConfigError(
                f"Base URL override for unregistered provider(s): {unknown_overrides}"
            )

        log.info(
            "provider_registry_built",
            domains=len(self._descriptors),
            providers=sum(len(d) for d in self._descriptors.values()),
            overrides=sorted(base_urls),
        )

    def _validated_order(
        self, domain: ContentDomain, names: tuple[str, ...]
    ) -> tuple[str, ...]:
        order = tuple(_normalize(n) for n in names)
        known = self._descriptors.get(domain, {})
        missing = [n for n in order if n not in known]
        if missing:
            raise ConfigError(
                f"Default order for {domain.value!r} names unregistered provider(s): "
                f"{missing}"
            )
        if len(set(order)) != len(order):
            raise ConfigError(f"Default order for {domain.value!r} has duplicates")
        return order

    def lookup(self, domain: ContentDomain, name: str) -> ProviderDescriptor:
        try:
            return self._descriptors[domain][_normalize(name)]
        except KeyError:
            raise ProviderNotFoundError(domain.value, name) from None

    def default_order(self, domain: ContentDomain) -> tuple[str, ...]:
        return self._order.get(domain, ())

    def providers(self, domain: ContentDomain) -> tuple[ProviderDescriptor, ...]:
        return tuple(self._descriptors.get(domain, {}).values())

    def domains(self) -> tuple[ContentDomain, ...]:
        return tuple(self._descriptors)
