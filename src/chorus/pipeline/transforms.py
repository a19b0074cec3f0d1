"""Text transforms for TransformAdapter and the named registry behind configs.

A transform is a sync or async ``str -> str`` callable.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import json
import threading
from typing import Any

from chorus._awaitable import maybe_await
from chorus.errors import ConfigurationError

Transform = Callable[[str], Awaitable[str] | str]


async def apply_transform(transform: Transform, text: str) -> str:
    return await maybe_await(transform(text))


def template_transform(template: str) -> Transform:
    """Substitute the input for ``{{input}}`` (or ``{{.Input}}``)."""

    def _apply(text: str) -> str:
        return template.replace("{{input}}", text).replace("{{.Input}}", text)

    return _apply


def prefix_transform(prefix: str) -> Transform:
    return lambda text: prefix + text


def suffix_transform(suffix: str) -> Transform:
    return lambda text: text + suffix


def wrap_transform(prefix: str, suffix: str) -> Transform:
    return lambda text: prefix + text + suffix


def json_extract_transform(path: str) -> Transform:
    """Pull a value out of JSON text by dotted *path* (``"a.b.0"``).

    Text that is not JSON, or lacks the path, passes through unchanged.
    String values are returned bare; anything else is re-encoded as JSON.
    """
    keys = [k for k in path.split(".") if k]

    def _apply(text: str) -> str:
        try:
            value: Any = json.loads(text)
        except ValueError:
            return text
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            elif isinstance(value, list) and key.isdigit() and int(key) < len(value):
                value = value[int(key)]
            else:
                return text
        return value if isinstance(value, str) else json.dumps(value)

    return _apply


class TransformRegistry:
    """Thread-safe name → transform mapping used by declarative configs."""

    def __init__(self, transforms: dict[str, Transform] | None = None) -> None:
        self._lock = threading.RLock()
        self._transforms: dict[str, Transform] = dict(transforms or {})

    def register(self, name: str, transform: Transform) -> None:
        if not name:
            raise ConfigurationError("transform name cannot be empty")
        with self._lock:
            self._transforms[name] = transform

    def get(self, name: str) -> Transform:
        with self._lock:
            transform = self._transforms.get(name)
        if transform is None:
            raise ConfigurationError(
                f"unknown transform {name!r}",
                hint=f"Registered: {', '.join(self.names()) or 'none'}",
            )
        return transform

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._transforms)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._transforms


def build_transform(kind: str, config: dict[str, Any]) -> Transform:
    """Build a stock transform from a declarative ``type`` and ``config``."""

    def _require(key: str) -> str:
        value = config.get(key)
        if not isinstance(value, str):
            raise ConfigurationError(
                f"{kind} transform requires a string {key!r} in its config"
            )
        return value

    if kind == "template":
        return template_transform(_require("template"))
    if kind == "prefix":
        return prefix_transform(_require("prefix"))
    if kind == "suffix":
        return suffix_transform(_require("suffix"))
    if kind == "wrap":
        return wrap_transform(_require("prefix"), _require("suffix"))
    if kind == "json_extract":
        return json_extract_transform(_require("field"))
    raise ConfigurationError(
        f"unknown transform type {kind!r}",
        hint="Use function, pipeline, template, prefix, suffix, wrap or json_extract.",
    )
