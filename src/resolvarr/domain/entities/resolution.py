"""Domain entities for provider fallback resolution.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class ContentDomain(str, Enum):
    """Content domains a provider can serve (the ``/providers?type=`` values)."""

    ANIME = "anime"
    MANGA = "manga"
    MOVIES = "movies"
    META = "meta"
    LIGHT_NOVELS = "light-novels"
    BOOKS = "books"
    NEWS = "news"
    COMICS = "comics"

    @classmethod
    def parse(cls, raw: str) -> ContentDomain:
        """Parse ``"ANIME"``, ``"anime"`` or ``"light_novels"`` into a domain.

        Raises ValueError for unknown values.
        """
        normalized = raw.strip().lower().replace("_", "-")
        return cls(normalized)


class StreamingServer(str, Enum):
    """Streaming servers recognized by the provider library."""

    ASIANLOAD = "asianload"
    GOGOCDN = "gogocdn"
    STREAMSB = "streamsb"
    MIXDROP = "mixdrop"
    MP4UPLOAD = "mp4upload"
    UPCLOUD = "upcloud"
    VIDCLOUD = "vidcloud"
    STREAMTAPE = "streamtape"
    VIZCLOUD = "vizcloud"
    MYCLOUD = "mycloud"
    FILEMOON = "filemoon"
    VIDSTREAMING = "vidstreaming"
    SMASHYSTREAM = "smashystream"
    STREAMHUB = "streamhub"
    STREAMWISH = "streamwish"
    VIDMOLY = "vidmoly"
    VOE = "voe"


class FailureKind(str, Enum):
    """Why a single provider attempt did not produce a usable result."""

    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    NO_PLAYABLE_SOURCES = "no_playable_sources"
    EMPTY_RESULT = "empty_result"


# Adapter operations a descriptor can advertise.
OP_FETCH_EPISODE_SOURCES = "fetch_episode_sources"
OP_FETCH_EPISODES_LIST = "fetch_episodes_list"
OP_FETCH_INFO = "fetch_info"
OP_SEARCH = "search"
OP_FETCH_TRENDING = "fetch_trending"
OP_FETCH_POPULAR = "fetch_popular"
OP_FETCH_SERVERS = "fetch_servers"

ALL_OPERATIONS: frozenset[str] = frozenset(
    {
        OP_FETCH_EPISODE_SOURCES,
        OP_FETCH_EPISODES_LIST,
        OP_FETCH_INFO,
        OP_SEARCH,
        OP_FETCH_TRENDING,
        OP_FETCH_POPULAR,
        OP_FETCH_SERVERS,
    }
)


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static description of one upstream provider within a domain."""

    name: str  # lowercase, unique within a domain
    domain: ContentDomain
    capabilities: frozenset[str] = ALL_OPERATIONS
    base_url_override: str | None = None

    def supports(self, operation: str) -> bool:
        return operation in self.capabilities


@dataclass(frozen=True)
class Variant:
    """Audio/listing variant requested by the caller."""

    dub: bool = False
    fetch_filler: bool = False


@dataclass(frozen=True)
class ResolutionRequest:
    """One inbound resolution call. Never persisted."""

    content_id: str
    domain: ContentDomain = ContentDomain.ANIME
    provider_hint: str | None = None
    server_hint: str | None = None
    variant: Variant = field(default_factory=Variant)


# Suffix match with an optional query string: ``.../a.m3u8`` or ``.../a.mp4?t=1``.
_PLAYABLE_URL_RE = re.compile(r"\.(?:m3u8|mp4)(?:\?|$)", re.IGNORECASE)


def is_playable_url(url: str) -> bool:
    """Return True when *url* points at an HLS playlist or an MP4 file."""
    return bool(_PLAYABLE_URL_RE.search(url))


_SOURCE_KEYS = frozenset({"url", "isM3U8", "is_playable_flag", "quality"})


@dataclass(frozen=True)
class SourceEntry:
    """A candidate media source inside a manifest.

    Fields the adapter sends besides ``url``, ``isM3U8`` and ``quality``
    (``isDASH``, ``type``, ...) are kept in ``extra`` and written back
    unchanged.
    """

    url: str
    is_playable_flag: bool | None = None  # the adapter's ``isM3U8`` field
    quality: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_m3u8(self) -> bool | None:
        return self.is_playable_flag

    @property
    def is_playable(self) -> bool:
        return self.is_playable_flag is True or is_playable_url(self.url)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> SourceEntry:
        flag = data.get("isM3U8", data.get("is_playable_flag"))
        return cls(
            url=str(data.get("url") or ""),
            is_playable_flag=flag if isinstance(flag, bool) else None,
            quality=data.get("quality"),
            extra={k: v for k, v in data.items() if k not in _SOURCE_KEYS},
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        payload["url"] = self.url
        if self.is_playable_flag is not None:
            payload["isM3U8"] = self.is_playable_flag
        if self.quality is not None:
            payload["quality"] = self.quality
        return payload


@dataclass(frozen=True)
class Manifest:
    """Opaque adapter payload listing candidate sources.

    ``headers``, ``subtitles`` and ``extra`` are passed through to callers
    untouched.
    """

    sources: tuple[SourceEntry, ...] = ()
    headers: dict[str, str] = field(default_factory=dict)
    subtitles: tuple[dict[str, Any], ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)

    def playable_sources(self) -> tuple[SourceEntry, ...]:
        return tuple(s for s in self.sources if s.is_playable)

    @property
    def has_playable(self) -> bool:
        return any(s.is_playable for s in self.sources)

    @classmethod
    def from_payload(cls, data: dict[str, Any] | None) -> Manifest:
        """Build a manifest from a provider JSON payload.

        Unknown top-level keys end up in ``extra``; a missing or malformed
        ``sources`` list yields an empty manifest.
        """
        data = data or {}
        raw_sources = data.get("sources")
        sources: tuple[SourceEntry, ...] = ()
        if isinstance(raw_sources, list):
            sources = tuple(
                SourceEntry.from_payload(s) for s in raw_sources if isinstance(s, dict)
            )
        headers = data.get("headers")
        subtitles = data.get("subtitles")
        extra = {
            k: v
            for k, v in data.items()
            if k not in ("sources", "headers", "subtitles")
        }
        return cls(
            sources=sources,
            headers=dict(headers) if isinstance(headers, dict) else {},
            subtitles=tuple(s for s in subtitles if isinstance(s, dict))
            if isinstance(subtitles, list)
            else (),
            extra=extra,
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        if self.headers:
            payload["headers"] = dict(self.headers)
        payload["sources"] = [s.to_payload() for s in self.sources]
        if self.subtitles:
            payload["subtitles"] = [dict(s) for s in self.subtitles]
        return payload


@dataclass(frozen=True)
class AttemptSuccess:
    payload: Any


@dataclass(frozen=True)
class AttemptFailure:
    kind: FailureKind
    message: str


AttemptOutcome = Union[AttemptSuccess, AttemptFailure]


@dataclass(frozen=True)
class ResolutionAttempt:
    """One adapter invocation, recorded in invocation order."""

    provider: str
    outcome: AttemptOutcome

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, AttemptSuccess)

    def to_payload(self) -> dict[str, Any]:
        if isinstance(self.outcome, AttemptFailure):
            return {
                "provider": self.provider,
                "ok": False,
                "kind": self.outcome.kind.value,
                "message": self.outcome.message,
            }
        return {"provider": self.provider, "ok": True}

    @classmethod
    def from_payload(
        cls, data: dict[str, Any], success_payload: Any = None
    ) -> ResolutionAttempt:
        """Rebuild an attempt from ``to_payload`` output.

        Successful attempts do not store their payload; the caller passes
        it back in as *success_payload*.
        """
        provider = str(data.get("provider", ""))
        if data.get("ok"):
            return cls(provider, AttemptSuccess(success_payload))
        try:
            kind = FailureKind(data.get("kind"))
        except ValueError:
            kind = FailureKind.PROVIDER_ERROR
        return cls(provider, AttemptFailure(kind, str(data.get("message", ""))))


@dataclass(frozen=True)
class ProviderErrorRecord:
    provider: str
    message: str


@dataclass(frozen=True)
class ResolutionSuccess:
    """A provider produced a usable result.

    ``value`` holds the operation result: a ``Manifest`` for source
    resolution, a list of dicts for episodes/search, a dict for info.
    """

    provider_used: str
    value: Any
    attempts: tuple[ResolutionAttempt, ...] = ()
    from_cache: bool = False

    @property
    def manifest(self) -> Manifest:
        if not isinstance(self.value, Manifest):
            raise TypeError("this result does not carry a manifest")
        return self.value

    @property
    def errors(self) -> tuple[ProviderErrorRecord, ...]:
        return tuple(
            ProviderErrorRecord(a.provider, a.outcome.message)
            for a in self.attempts
            if isinstance(a.outcome, AttemptFailure)
        )


@dataclass(frozen=True)
class ResolutionFailure:
    """Every candidate failed. A normal return value, not an exception."""

    tried_providers: tuple[str, ...]
    errors: tuple[ProviderErrorRecord, ...]
    attempts: tuple[ResolutionAttempt, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "triedProviders": list(self.tried_providers),
            "errors": [{"provider": e.provider, "error": e.message} for e in self.errors],
        }


ResolutionResult = Union[ResolutionSuccess, ResolutionFailure]
