from __future__ import annotations

import pytest

from chorus._awaitable import maybe_await
from chorus.pipeline import FunctionAdapter
from chorus.pipeline.transforms import apply_transform
from chorus.providers.base import emit
from chorus.types import ResponseChunk

pytestmark = pytest.mark.unit


async def _upper(text: str) -> str:
    return text.upper()


@pytest.mark.asyncio
async def test_plain_values_pass_through() -> None:
    assert await maybe_await(3) == 3


@pytest.mark.asyncio
async def test_awaitables_are_awaited() -> None:
    assert await maybe_await(_upper("x")) == "X"


@pytest.mark.asyncio
async def test_transforms_and_adapters_accept_sync_and_async_callables() -> None:
    assert await apply_transform(str.upper, "a") == "A"
    assert await apply_transform(_upper, "b") == "B"
    assert await FunctionAdapter("sync", fn=str.upper).execute("c") == "C"
    assert await FunctionAdapter("async", fn=_upper).execute("d") == "D"


@pytest.mark.asyncio
async def test_emit_delivers_to_sync_and_async_handlers() -> None:
    seen: list[str] = []

    async def async_handler(chunk: ResponseChunk) -> None:
        seen.append("async:" + chunk.content)

    def sync_handler(chunk: ResponseChunk) -> None:
        seen.append("sync:" + chunk.content)

    await emit(sync_handler, ResponseChunk(content="1"))
    await emit(async_handler, ResponseChunk(content="2"))

    assert seen == ["sync:1", "async:2"]
