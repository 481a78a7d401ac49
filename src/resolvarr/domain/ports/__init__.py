from .cache import CachePort
from .provider_adapter import AdapterFactory, ProviderAdapterPort
from .provider_registry import ProviderRegistryPort

__all__ = [
    "AdapterFactory",
    "CachePort",
    "ProviderAdapterPort",
    "ProviderRegistryPort",
]
