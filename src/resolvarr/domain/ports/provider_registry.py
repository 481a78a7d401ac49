"""Port for provider lookup and default attempt order."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from resolvarr.domain.entities.resolution import ContentDomain, ProviderDescriptor


@runtime_checkable
class ProviderRegistryPort(Protocol):
    """Read-only view of the providers known per content domain."""

    def lookup(self, domain: ContentDomain, name: str) -> ProviderDescriptor: ...
    def default_order(self, domain: ContentDomain) -> tuple[str, ...]: ...
    def providers(self, domain: ContentDomain) -> tuple[ProviderDescriptor, ...]: ...
    def domains(self) -> tuple[ContentDomain, ...]: ...
