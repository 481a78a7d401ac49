"""JSON encoding shared by the cache backends."""

from __future__ import annotations

import json
from typing import Any

import structlog

from resolvarr.domain.exceptions import CacheBackendError

log = structlog.get_logger(__name__)


def encode(key: str, value: Any) -> str:
    """Serialize *value*; anything JSON cannot represent is a backend error."""
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise CacheBackendError(f"value for {key!r} is not JSON-serializable") from e


def decode(key: str, raw: str | bytes | None) -> Any | None:
    """Deserialize a stored value. Corrupt entries read as a miss."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        log.warning("cache_value_corrupt", key=key)
        return None
