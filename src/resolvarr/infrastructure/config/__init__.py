from __future__ import annotations

from .load import load_config
from .schema import AppConfig, CacheConfig, EnvOverrides, ProvidersConfig

__all__ = ["AppConfig", "CacheConfig", "EnvOverrides", "ProvidersConfig", "load_config"]
