"""Support for callbacks that may be sync or async."""

from __future__ import annotations

from collections.abc import Awaitable
import inspect
from typing import TypeVar

T = TypeVar("T")


async def maybe_await(value: Awaitable[T] | T) -> T:
    """Return *value*, awaiting it first when it is awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value
