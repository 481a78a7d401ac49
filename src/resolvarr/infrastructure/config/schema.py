"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from resolvarr.domain.entities import ContentDomain

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
CacheBackendName = Literal["none", "memory", "diskcache", "redis"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CacheConfig(BaseSettings):
    """Cache configuration (backend-agnostic)."""

    backend: CacheBackendName = Field(
        default="memory",
        description="Cache backend: 'none', 'memory', 'diskcache' (SQLite) or 'redis'",
    )

    # Diskcache settings (YAML key: cache.dir)
    directory: Path = Field(
        default=Path("./.cache/resolvarr"),
        description="Diskcache SQLite DB path",
    )

    # Redis settings
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (only when backend=redis)",
    )
    key_prefix: str = Field(
        default="resolvarr:",
        description="Prefix for all Redis keys",
    )

    # Shared settings
    ttl_seconds: int = Field(
        default=3600,
        description="Default TTL for cache entries without an explicit TTL (seconds)",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )
    single_flight: bool = Field(
        default=True,
        description="Collapse concurrent misses for one key into one computation",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",  # Env vars: CACHE_BACKEND, CACHE_REDIS_URL, ...
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("ttl_seconds")
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cache ttl_seconds must be >= 0")
        return v


class ResolutionConfig(BaseModel):
    """Per-attempt timeout and result lifetimes for the resolution engine."""

    attempt_timeout_seconds: float = Field(
        default=20.0,
        description="Time budget for one adapter call (seconds).",
    )
    sources_ttl_seconds: int = Field(
        default=900,
        description="TTL for resolved source manifests (seconds).",
    )
    search_ttl_seconds: int = Field(
        default=3600,
        description="TTL for search results (seconds).",
    )

    @field_validator("attempt_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("attempt_timeout_seconds must be > 0")
        return v

    @field_validator("sources_ttl_seconds", "search_ttl_seconds")
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("ttl must be >= 0")
        return v


class ProviderOverride(BaseModel):
    """Per-provider settings (YAML section: providers.overrides.<name>)."""

    base_url: str | None = None


class DomainProviders(BaseModel):
    """Per-domain settings (YAML section: providers.<domain>)."""

    default_order: list[str] | None = None

    @field_validator("default_order")
    @classmethod
    def _normalize_names(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return [name.strip().lower() for name in v]


class ProvidersConfig(BaseModel):
    """Provider registry overrides.

    YAML shape::

        providers:
          anime:
            default_order: [gogoanime, zoro]
          overrides:
            zoro:
              base_url: https://zoro.example
    """

    domains: dict[ContentDomain, DomainProviders] = Field(default_factory=dict)
    overrides: dict[str, ProviderOverride] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_domains(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "domains" in data:
            return data
        out: dict[str, Any] = {"domains": {}}
        for key, value in data.items():
            if key == "overrides":
                out["overrides"] = value
            else:
                out["domains"][ContentDomain.parse(str(key))] = value
        return out

    @field_validator("overrides")
    @classmethod
    def _lowercase_names(
        cls, v: dict[str, ProviderOverride]
    ) -> dict[str, ProviderOverride]:
        return {name.strip().lower(): o for name, o in v.items()}

    def order_for(self, domain: ContentDomain) -> tuple[str, ...] | None:
        entry = self.domains.get(domain)
        if entry is None or entry.default_order is None:
            return None
        return tuple(entry.default_order)

    def base_urls(self) -> dict[str, str]:
        return {
            name: o.base_url for name, o in self.overrides.items() if o.base_url
        }


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/cache/resolution/providers).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="resolvarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="HTTP timeout in seconds for gateway requests.",
    )
    http_user_agent: str = Field(
        default="Resolvarr/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )
    gateway_url: str = Field(
        default="http://localhost:3001",
        validation_alias=AliasChoices(
            "gateway_url",
            AliasPath("http", "gateway_url"),
        ),
        description="Base URL of the provider gateway.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    cache: CacheConfig = Field(default_factory=CacheConfig)
    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("gateway_url")
    @classmethod
    def _strip_gateway_url(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        providers: dict[str, Any] = {
            domain.value: {"default_order": entry.default_order}
            for domain, entry in self.providers.domains.items()
        }
        providers["overrides"] = {
            name: o.model_dump() for name, o in self.providers.overrides.items()
        }
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
                "gateway_url": self.gateway_url,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "backend": self.cache.backend,
                "dir": str(self.cache.directory),
                "redis_url": self.cache.redis_url,
                "ttl_seconds": self.cache.ttl_seconds,
                "max_concurrent": self.cache.max_concurrent,
                "single_flight": self.cache.single_flight,
            },
            "resolution": self.resolution.model_dump(),
            "providers": providers,
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read RESOLVARR_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - RESOLVARR_GATEWAY_URL
    - RESOLVARR_HTTP_TIMEOUT_SECONDS
    - RESOLVARR_ATTEMPT_TIMEOUT_SECONDS
    - RESOLVARR_LOG_LEVEL
    - RESOLVARR_ZORO_URL / RESOLVARR_GOGOANIME_URL (provider base URLs)
    """

    model_config = SettingsConfigDict(
        env_prefix="RESOLVARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None
    gateway_url: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    attempt_timeout_seconds: Optional[float] = None
    sources_ttl_seconds: Optional[int] = None
    search_ttl_seconds: Optional[int] = None

    zoro_url: Optional[str] = None
    gogoanime_url: Optional[str] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
