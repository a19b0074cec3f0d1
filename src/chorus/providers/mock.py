"""Mock provider for testing and offline examples."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from chorus.providers.base import CAPABILITY_STREAMING, emit
from chorus.types import Request, Response, ResponseChunk, Usage

if TYPE_CHECKING:
    from chorus.config import ProviderConfig
    from chorus.types import StreamHandler


@dataclass
class MockProvider:
    """Provider that answers without network calls.

    Returns ``reply`` when set, otherwise echoes the prompt so chained
    pipelines stay informative in mock mode.
    """

    provider_name: str = "mock"
    model_name: str = "mock-model"
    reply: str | None = None

    @property
    def name(self) -> str:
        return self.provider_name

    @property
    def model(self) -> str:
        return self.model_name

    @property
    def capabilities(self) -> tuple[str, ...]:
        return (CAPABILITY_STREAMING,)

    def _text(self, request: Request) -> str:
        if self.reply is not None:
            return self.reply
        return f"echo: {request.prompt[:100]}"

    async def generate(self, request: Request) -> Response:
        """Return a deterministic mock response."""
        text = self._text(request)
        prompt_tokens = len(request.prompt.split())
        completion_tokens = len(text.split())
        return Response(
            content=text,
            provider=self.name,
            model=self.model,
            usage=Usage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )

    async def stream(self, request: Request, handler: StreamHandler) -> None:
        """Stream the mock response word by word."""
        words = self._text(request).split(" ")
        for i, word in enumerate(words):
            piece = word if i == 0 else f" {word}"
            await emit(handler, ResponseChunk(content=piece))
        await emit(handler, ResponseChunk(is_final=True))


@dataclass(frozen=True)
class MockProviderFactory:
    """Factory registering MockProvider under ``name``."""

    factory_name: str = "mock"
    reply: str | None = None

    @property
    def name(self) -> str:
        return self.factory_name

    def create(self, config: ProviderConfig) -> MockProvider:
        return MockProvider(
            provider_name=self.factory_name,
            model_name=config.model or "mock-model",
            reply=self.reply,
        )

    def available_models(self) -> list[str]:
        return ["mock-model"]

    def capabilities(self) -> list[str]:
        return [CAPABILITY_STREAMING]
