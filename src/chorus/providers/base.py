"""Provider protocol: the only surface pipelines depend on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from chorus._awaitable import maybe_await
from chorus.errors import StreamError
from chorus.types import Response, ResponseChunk

if TYPE_CHECKING:
    from chorus.config import ProviderConfig
    from chorus.types import Request, StreamHandler

# Well-known capability names; providers may advertise others.
CAPABILITY_STREAMING = "streaming"
CAPABILITY_FUNCTION_CALLING = "function_calling"
CAPABILITY_VISION = "vision"


@runtime_checkable
class Provider(Protocol):
    """One callable AI back-end."""

    @property
    def name(self) -> str:
        """Registry name of the provider (e.g. ``"openai"``)."""
        ...

    @property
    def model(self) -> str:
        """Model identifier this instance talks to."""
        ...

    @property
    def capabilities(self) -> tuple[str, ...]:
        """Capability names this provider supports."""
        ...

    async def generate(self, request: Request) -> Response:
        """Generate a complete response."""
        ...

    async def stream(self, request: Request, handler: StreamHandler) -> None:
        """Stream a response to *handler*, ending with one ``is_final`` chunk."""
        ...


@runtime_checkable
class ProviderFactory(Protocol):
    """Creates Provider instances for a registry."""

    @property
    def name(self) -> str: ...  # noqa: D102

    def create(self, config: ProviderConfig) -> Provider: ...  # noqa: D102

    def available_models(self) -> list[str]: ...  # noqa: D102

    def capabilities(self) -> list[str]: ...  # noqa: D102


async def emit(handler: StreamHandler, chunk: ResponseChunk) -> None:
    """Deliver *chunk* to a sync or async handler."""
    await maybe_await(handler(chunk))


async def collect_stream(provider: Provider, request: Request) -> Response:
    """Run ``provider.stream`` and assemble the chunks into a Response.

    Raises the first chunk error, and StreamError when the provider never
    sent a final chunk.
    """
    parts: list[str] = []
    function_call = None
    finished = False

    def _collect(chunk: ResponseChunk) -> None:
        nonlocal function_call, finished
        if finished:
            raise StreamError(
                "chunk received after final chunk", provider=provider.name
            )
        if chunk.error is not None:
            raise chunk.error
        parts.append(chunk.content)
        if chunk.function_call is not None:
            function_call = chunk.function_call
        if chunk.is_final:
            finished = True

    await provider.stream(request, _collect)
    if not finished:
        raise StreamError(
            "stream ended without a final chunk",
            provider=provider.name,
            phase="stream",
        )
    return Response(
        content="".join(parts),
        provider=provider.name,
        model=provider.model,
        function_call=function_call,
        metadata={"streamed": True},
    )
