"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "resolvarr",
    "environment": "dev",
    "http": {
        "timeout_seconds": 15.0,
        "user_agent": "Resolvarr/0.1.0",
        "gateway_url": "http://localhost:3001",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "backend": "memory",
        "dir": "./.cache/resolvarr",
        "ttl_seconds": 3600,
    },
    "resolution": {
        "attempt_timeout_seconds": 20.0,
        "sources_ttl_seconds": 900,
        "search_ttl_seconds": 3600,
    },
}
