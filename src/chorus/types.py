"""Request/response value types shared by providers and pipelines."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from chorus.functions import FunctionCall, FunctionExecutor, FunctionRegistry


@dataclass(frozen=True)
class Usage:
    """Token usage counters."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: Usage) -> Usage:
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass(frozen=True)
class Request:
    """A generation request as seen by the pipeline layer."""

    prompt: str
    temperature: float | None = None
    max_tokens: int | None = None
    #: Provider-specific extras, passed through untouched.
    parameters: Mapping[str, Any] = field(default_factory=dict)
    functions: FunctionRegistry | None = None
    function_executor: FunctionExecutor | None = None
    stream: bool = False

    def derive(self, prompt: str) -> Request:
        """Return a copy with a new prompt and every other field preserved."""
        return replace(self, prompt=prompt)


@dataclass
class Response:
    """A generation result.

    ``metadata`` is where combiners and pipelines record scores, votes and
    routing details.
    """

    content: str = ""
    provider: str = ""
    model: str = ""
    usage: Usage | None = None
    function_call: FunctionCall | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def with_metadata(self, **values: Any) -> Response:
        """Return a copy with *values* merged into metadata."""
        return replace(self, metadata={**self.metadata, **values})


@dataclass(frozen=True)
class ResponseChunk:
    """One unit of a streaming response."""

    content: str = ""
    is_final: bool = False
    error: BaseException | None = None
    function_call: FunctionCall | None = None


#: Receives each chunk; may be sync or async. Raising aborts the stream.
StreamHandler = Callable[[ResponseChunk], Awaitable[None] | None]
