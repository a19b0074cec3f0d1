from __future__ import annotations

import asyncio

import pytest

from chorus.errors import AuthenticationError, RateLimitError
from chorus.retry import retry_async

pytestmark = pytest.mark.unit


class _Flaky:
    def __init__(self, *outcomes: object) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        item = self.outcomes.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.mark.asyncio
async def test_retries_transient_errors_until_success() -> None:
    call = _Flaky(RateLimitError("a"), TimeoutError(), "ok")

    assert await retry_async(call, max_attempts=3) == "ok"
    assert call.calls == 3


@pytest.mark.asyncio
async def test_stops_after_max_attempts_and_reraises_last_error() -> None:
    call = _Flaky(RateLimitError("first"), RateLimitError("second"), "never")

    with pytest.raises(RateLimitError, match="second"):
        await retry_async(call, max_attempts=2)
    assert call.calls == 2


@pytest.mark.asyncio
async def test_permanent_error_short_circuits() -> None:
    call = _Flaky(AuthenticationError("bad key"), "never")

    with pytest.raises(AuthenticationError):
        await retry_async(call, max_attempts=5)
    assert call.calls == 1


@pytest.mark.asyncio
async def test_single_attempt_means_no_retry() -> None:
    call = _Flaky(RateLimitError("a"), "never")

    with pytest.raises(RateLimitError):
        await retry_async(call, max_attempts=1)
    assert call.calls == 1


@pytest.mark.asyncio
async def test_cancellation_propagates_without_retry() -> None:
    call = _Flaky(asyncio.CancelledError(), "never")

    with pytest.raises(asyncio.CancelledError):
        await retry_async(call, max_attempts=3)
    assert call.calls == 1


@pytest.mark.asyncio
async def test_custom_retry_predicate() -> None:
    call = _Flaky(ValueError("x"), "ok")

    result = await retry_async(
        call, max_attempts=2, should_retry=lambda e: isinstance(e, ValueError)
    )

    assert result == "ok"
