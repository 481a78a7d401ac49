"""Exceptions raised across the resolution domain."""

from __future__ import annotations


class ResolvarrError(Exception):
    """Base class for all Resolvarr errors."""


class ValidationError(ResolvarrError):
    """Malformed or unsupported input, rejected before any adapter call."""


class InvalidServerError(ValidationError):
    """The requested streaming server is not a known ``StreamingServer``."""

    def __init__(self, server: str) -> None:
        super().__init__(f"Invalid server: {server!r}")
        self.server = server


class UnknownDomainError(ValidationError):
    """The requested content domain does not exist."""

    def __init__(self, domain: str) -> None:
        super().__init__(f"Unknown content domain: {domain!r}")
        self.domain = domain


class ProviderNotFoundError(ResolvarrError):
    """Raised when a provider name is not known to the registry."""

    def __init__(self, domain: str, name: str) -> None:
        super().__init__(f"Provider {name!r} not found in domain {domain!r}")
        self.domain = domain
        self.name = name


class ProviderError(ResolvarrError):
    """One adapter's transport, parse or upstream failure."""


class ProviderTimeoutError(ProviderError):
    """An adapter call exceeded its time budget."""


class NoPlayableSourcesError(ProviderError):
    """The adapter answered, but nothing it returned can be streamed."""


class CacheBackendError(ResolvarrError):
    """The cache backend is unreachable or returned an error."""


class ConfigError(ResolvarrError):
    """Invalid provider registry configuration."""
