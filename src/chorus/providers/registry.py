"""Provider factory registry.

Registries are explicit instances handed to factories. ``default_registry``
exists only for the module-level convenience constructors.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
from typing import TYPE_CHECKING

from chorus.config import ProviderConfig
from chorus.errors import ConfigurationError

if TYPE_CHECKING:
    from chorus.providers.base import Provider, ProviderFactory

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderInfo:
    """Summary of a registered factory."""

    name: str
    models: tuple[str, ...]
    capabilities: tuple[str, ...]
    is_default: bool


class ProviderRegistry:
    """Thread-safe name → ProviderFactory mapping.

    The first registered factory becomes the default unless one is set
    explicitly.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._factories: dict[str, ProviderFactory] = {}
        self._default: str | None = None

    def register(self, factory: ProviderFactory) -> None:
        """Add *factory*; empty and duplicate names are rejected."""
        name = factory.name
        if not name:
            raise ConfigurationError("provider factory name cannot be empty")
        with self._lock:
            if name in self._factories:
                raise ConfigurationError(
                    f"provider factory {name!r} already registered"
                )
            self._factories[name] = factory
            if self._default is None:
                self._default = name
        log.debug("Registered provider factory %s", name)

    def set_default(self, name: str) -> None:
        with self._lock:
            if name not in self._factories:
                raise ConfigurationError(
                    f"provider factory {name!r} not registered",
                    hint=f"Registered: {', '.join(self.names()) or 'none'}",
                )
            self._default = name

    def get(self, name: str) -> ProviderFactory:
        with self._lock:
            factory = self._factories.get(name)
        if factory is None:
            raise ConfigurationError(
                f"provider factory {name!r} not registered",
                hint=f"Registered: {', '.join(self.names()) or 'none'}",
            )
        return factory

    @property
    def default_name(self) -> str | None:
        with self._lock:
            return self._default

    def get_default(self) -> ProviderFactory:
        with self._lock:
            name = self._default
        if name is None:
            raise ConfigurationError("no default provider factory set")
        return self.get(name)

    def create(self, name: str, config: ProviderConfig | None = None) -> Provider:
        """Create a provider through the factory registered as *name*."""
        return self.get(name).create(config or ProviderConfig())

    def create_default(self, config: ProviderConfig | None = None) -> Provider:
        return self.get_default().create(config or ProviderConfig())

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._factories

    def info(self, name: str) -> ProviderInfo:
        factory = self.get(name)
        return ProviderInfo(
            name=name,
            models=tuple(factory.available_models()),
            capabilities=tuple(factory.capabilities()),
            is_default=name == self.default_name,
        )

    def all_info(self) -> list[ProviderInfo]:
        return [self.info(name) for name in self.names()]


default_registry = ProviderRegistry()
