"""Provider protocol, registry and the offline mock implementation."""

from .base import Provider, ProviderFactory, collect_stream
from .mock import MockProvider, MockProviderFactory
from .registry import ProviderInfo, ProviderRegistry, default_registry

__all__ = [
    "MockProvider",
    "MockProviderFactory",
    "Provider",
    "ProviderFactory",
    "ProviderInfo",
    "ProviderRegistry",
    "collect_stream",
    "default_registry",
]
