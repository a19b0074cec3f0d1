from __future__ import annotations

import asyncio

import httpx
import pytest

from chorus.errors import (
    APIError,
    AuthenticationError,
    ChorusError,
    ConfigurationError,
    ParallelExecutionError,
    PipelineError,
    RateLimitError,
    StreamError,
)
from chorus.retry import is_transient

pytestmark = pytest.mark.unit


def test_api_error_structured_metadata() -> None:
    err = APIError(
        "boom",
        hint="do this",
        status_code=503,
        provider="openai",
        phase="generate",
    )

    assert str(err) == "boom"
    assert err.hint == "do this"
    assert err.status_code == 503
    assert err.provider == "openai"
    assert err.phase == "generate"


def test_api_error_defaults_to_none() -> None:
    err = APIError("fail")
    assert err.hint is None
    assert err.status_code is None
    assert err.provider is None
    assert err.phase is None


def test_subclass_hierarchy() -> None:
    """Provider errors are catchable as APIError and ChorusError."""
    for err in (
        RateLimitError("rate limit", status_code=429),
        AuthenticationError("bad key", status_code=401),
        StreamError("cut off"),
    ):
        assert isinstance(err, APIError)
        assert isinstance(err, ChorusError)
    assert isinstance(ConfigurationError("x"), ChorusError)


def test_pipeline_error_names_pipeline_and_operation() -> None:
    err = PipelineError("provider exploded", pipeline="openai", op="execute")

    assert str(err) == "pipeline openai: execute: provider exploded"
    assert err.pipeline == "openai"
    assert err.op == "execute"


def test_parallel_execution_error_lists_every_failure() -> None:
    failures = [("a", RuntimeError("first")), ("b", ValueError("second"))]

    err = ParallelExecutionError(failures)

    assert "a: first" in str(err)
    assert "b: second" in str(err)
    assert [name for name, _ in err.failures] == ["a", "b"]


class TestTransientClassification:
    def test_rate_limit_is_transient(self) -> None:
        assert is_transient(RateLimitError("slow down"))

    def test_http_429_is_transient(self) -> None:
        assert is_transient(APIError("too many", status_code=429))

    def test_timeouts_are_transient(self) -> None:
        assert is_transient(TimeoutError())
        assert is_transient(httpx.ReadTimeout("read timed out"))

    def test_wrapped_timeout_is_transient(self) -> None:
        try:
            try:
                raise httpx.ConnectTimeout("connect timed out")
            except httpx.ConnectTimeout as inner:
                raise APIError("provider call failed") from inner
        except APIError as outer:
            assert is_transient(outer)

    def test_permanent_errors_are_not_transient(self) -> None:
        assert not is_transient(AuthenticationError("bad key", status_code=401))
        assert not is_transient(APIError("bad request", status_code=400))
        assert not is_transient(ValueError("nope"))

    def test_cancellation_is_never_transient(self) -> None:
        assert not is_transient(asyncio.CancelledError())
