from .gateway_adapter import GatewayAdapterFactory, GatewayProviderAdapter
from .registry import StaticProviderRegistry

__all__ = ["GatewayAdapterFactory", "GatewayProviderAdapter", "StaticProviderRegistry"]
