from .resolution import (
    AttemptFailure,
    AttemptSuccess,
    ContentDomain,
    FailureKind,
    Manifest,
    ProviderDescriptor,
    ProviderErrorRecord,
    ResolutionAttempt,
    ResolutionFailure,
    ResolutionRequest,
    ResolutionResult,
    ResolutionSuccess,
    SourceEntry,
    StreamingServer,
    Variant,
    is_playable_url,
)

__all__ = [
    "AttemptFailure",
    "AttemptSuccess",
    "ContentDomain",
    "FailureKind",
    "Manifest",
    "ProviderDescriptor",
    "ProviderErrorRecord",
    "ResolutionAttempt",
    "ResolutionFailure",
    "ResolutionRequest",
    "ResolutionResult",
    "ResolutionSuccess",
    "SourceEntry",
    "StreamingServer",
    "Variant",
    "is_playable_url",
]
