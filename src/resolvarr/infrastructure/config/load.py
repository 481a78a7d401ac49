"""Layered configuration loading: defaults < YAML < env < CLI."""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, CacheConfig, EnvOverrides

_SECTIONS = ("http", "logging", "cache", "resolution", "providers")
_TOP_LEVEL = ("app_name", "environment")

# Flat keys (env vars, CLI flags) and the section they land in.
_FLAT_KEYS: dict[str, tuple[str, str]] = {
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_user_agent": ("http", "user_agent"),
    "gateway_url": ("http", "gateway_url"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_backend": ("cache", "backend"),
    "cache_dir": ("cache", "directory"),
    "cache_ttl_seconds": ("cache", "ttl_seconds"),
    "attempt_timeout_seconds": ("resolution", "attempt_timeout_seconds"),
    "sources_ttl_seconds": ("resolution", "sources_ttl_seconds"),
    "search_ttl_seconds": ("resolution", "search_ttl_seconds"),
}

# RESOLVARR_ZORO_URL / RESOLVARR_GOGOANIME_URL
_PROVIDER_URL_KEYS: dict[str, str] = {
    "zoro_url": "zoro",
    "gogoanime_url": "gogoanime",
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *override* into *base* in place. Lists are replaced, not joined."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _deep_merge(current, value)
        else:
            base[key] = deepcopy(value)
    return base


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one layer (sectioned YAML or flat env/CLI keys) into section shape."""
    out: dict[str, Any] = {k: layer[k] for k in _TOP_LEVEL if k in layer}

    for section in _SECTIONS:
        block = layer.get(section)
        if isinstance(block, Mapping):
            out[section] = deepcopy(dict(block))

    for flat_key, (section, key) in _FLAT_KEYS.items():
        if flat_key in layer:
            out.setdefault(section, {})[key] = layer[flat_key]

    for flat_key, provider in _PROVIDER_URL_KEYS.items():
        if flat_key in layer:
            overrides = out.setdefault("providers", {}).setdefault("overrides", {})
            overrides.setdefault(provider, {})["base_url"] = layer[flat_key]

    # YAML spells the diskcache path "dir"; the model field is "directory".
    cache = out.get("cache")
    if cache is not None and "dir" in cache:
        cache["directory"] = cache.pop("dir")

    return out


def _yaml_layer(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(
            f"Config YAML must be a mapping, got: {type(parsed).__name__}"
        )
    return parsed


def _cache_env_layer() -> dict[str, Any]:
    """CACHE_* variables that were actually set."""
    settings = CacheConfig()
    values = settings.model_dump(include=set(settings.model_fields_set))
    return {"cache": values} if values else {}


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Build the validated ``AppConfig``.

    Precedence, lowest first: built-in defaults, the YAML file, ``CACHE_*``
    env vars, ``RESOLVARR_*`` env vars, CLI overrides. A ``.env`` file is
    loaded into the environment first without replacing variables that are
    already set.

    Never creates files or directories.

    Raises:
        FileNotFoundError: *config_path* or *dotenv_path* does not exist.
        pydantic.ValidationError: the merged configuration is invalid.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = [DEFAULT_CONFIG]
    if config_path is not None:
        layers.append(_yaml_layer(config_path))
    layers.append(_cache_env_layer())
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    merged: dict[str, Any] = {}
    for layer in layers:
        _deep_merge(merged, _sectioned(layer))

    return AppConfig.model_validate(merged)
