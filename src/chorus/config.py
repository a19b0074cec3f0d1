"""Configuration: frozen per-provider settings with environment resolution."""

from __future__ import annotations

from dataclasses import Field, dataclass, field, fields
import os
from typing import Any

from dotenv import load_dotenv

from chorus.errors import ConfigurationError

DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT_S = 30.0

_DEFAULTS: dict[str, Any] = {
    "max_tokens": DEFAULT_MAX_TOKENS,
    "temperature": DEFAULT_TEMPERATURE,
    "timeout_s": DEFAULT_TIMEOUT_S,
}


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable settings handed to a provider factory.

    Fields left as ``None`` are unset: numeric ones resolve to the module
    defaults, and ``merge`` only copies fields that were set explicitly.

    Example:
        config = ProviderConfig(model="gpt-4o-mini", temperature=0.2)
        config = ProviderConfig.from_env("OPENAI").merge(config)
    """

    api_key: str | None = None
    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    base_url: str | None = None
    timeout_s: float | None = None
    explicit: frozenset[str] = field(
        default=frozenset(), init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        """Record explicitly set fields, fill defaults, validate early."""
        object.__setattr__(
            self,
            "explicit",
            frozenset(f.name for f in _settings() if getattr(self, f.name) is not None),
        )
        for name, default in _DEFAULTS.items():
            if getattr(self, name) is None:
                object.__setattr__(self, name, default)

        if self.max_tokens < 1:
            raise ConfigurationError(
                f"max_tokens must be ≥ 1, got {self.max_tokens}",
                hint="This caps the length of each provider response.",
            )
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(
                f"temperature must be between 0 and 2, got {self.temperature}",
                hint="Lower values make responses more deterministic.",
            )
        if self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
                hint="This is the per-request network timeout in seconds.",
            )

    @classmethod
    def from_env(cls, prefix: str = "") -> ProviderConfig:
        """Build a config from ``<PREFIX>_API_KEY``, ``<PREFIX>_MODEL`` and friends.

        A ``.env`` file in the working directory is loaded first. Unset
        variables stay unset.
        """
        load_dotenv()
        if prefix and not prefix.endswith("_"):
            prefix = f"{prefix}_"

        def _get(name: str) -> str | None:
            value = os.environ.get(f"{prefix}{name}")
            return value.strip() if value and value.strip() else None

        return cls(
            api_key=_get("API_KEY"),
            model=_get("MODEL"),
            base_url=_get("BASE_URL"),
            max_tokens=_parse(_get("MAX_TOKENS"), int),
            temperature=_parse(_get("TEMPERATURE"), float),
            timeout_s=_parse(_get("TIMEOUT"), float),
        )

    def merge(self, other: ProviderConfig) -> ProviderConfig:
        """Return a config where fields explicitly set on *other* win.

        A value equal to the default still counts as set.
        """
        values = {}
        for f in _settings():
            if f.name in other.explicit:
                values[f.name] = getattr(other, f.name)
            elif f.name in self.explicit:
                values[f.name] = getattr(self, f.name)
        return ProviderConfig(**values)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly mapping (the api key is included)."""
        return {f.name: getattr(self, f.name) for f in _settings()}

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"ProviderConfig(model={self.model!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"base_url={self.base_url!r}, max_tokens={self.max_tokens}, "
            f"temperature={self.temperature}, timeout_s={self.timeout_s})"
        )

    __repr__ = __str__


def _settings() -> list[Field[Any]]:
    return [f for f in fields(ProviderConfig) if f.init]


def _parse(raw: str | None, kind: type) -> Any:
    if raw is None:
        return None
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"could not parse {raw!r} as {kind.__name__}",
            hint="Check the provider environment variables.",
        ) from exc
