"""Exception hierarchy for Chorus."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ChorusError(Exception):
    """Base exception for all Chorus errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(ChorusError):
    """Configuration validation or pipeline construction failed."""


class APIError(ChorusError):
    """A provider call failed.

    Providers attach retry metadata so pipelines can perform bounded retries
    without brittle substring matching.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.provider = provider
        self.phase = phase


class RateLimitError(APIError):
    """Rate limit exceeded (HTTP 429)."""


class AuthenticationError(APIError):
    """Provider rejected the credentials."""


class PipelineError(ChorusError):
    """A pipeline operation failed.

    Carries the operation name and the identity of the pipeline that raised
    it. The underlying exception is chained via ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        pipeline: str,
        op: str,
        hint: str | None = None,
    ) -> None:
        super().__init__(f"pipeline {pipeline}: {op}: {message}", hint=hint)
        self.pipeline = pipeline
        self.op = op


class ParallelExecutionError(ChorusError):
    """Every branch of a parallel fan-out failed."""

    def __init__(self, failures: Sequence[tuple[str, BaseException]]) -> None:
        self.failures = list(failures)
        detail = "; ".join(f"{name}: {exc}" for name, exc in self.failures)
        super().__init__(
            f"all providers failed: {detail}",
            hint="Check provider credentials and availability.",
        )


class CombinerError(ChorusError):
    """A result combiner could not produce a response."""


class TransformError(ChorusError):
    """An input or output transform raised."""


class StreamError(APIError):
    """A streaming response ended without a final chunk."""


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
