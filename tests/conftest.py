"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and shared test
doubles. Environment fixtures here are autouse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os

import pytest

from chorus.providers.base import CAPABILITY_STREAMING, emit
from chorus.types import Request, Response, ResponseChunk, Usage

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class FakeProvider:
    """Provider test double for pipeline behavior verification.

    Records every request and answers ``"<name>:<prompt>"``. Use to test
    pipeline behavior without making real API calls.
    """

    provider_name: str = "fake"
    model_name: str = "fake-model"
    requests: list[Request] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.provider_name

    @property
    def model(self) -> str:
        return self.model_name

    @property
    def capabilities(self) -> tuple[str, ...]:
        return (CAPABILITY_STREAMING,)

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def prompts(self) -> list[str]:
        return [r.prompt for r in self.requests]

    def reply(self, request: Request) -> str:
        return f"{self.provider_name}:{request.prompt}"

    async def generate(self, request: Request) -> Response:
        self.requests.append(request)
        return Response(
            content=self.reply(request),
            provider=self.name,
            model=self.model,
            usage=Usage(prompt_tokens=1, completion_tokens=1, total_tokens=2),
        )

    async def stream(self, request, handler) -> None:
        self.requests.append(request)
        await emit(handler, ResponseChunk(content=self.reply(request)))
        await emit(handler, ResponseChunk(is_final=True))


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    monkeypatch.setattr("chorus.config.load_dotenv", lambda *_args, **_kwargs: False)


@pytest.fixture(autouse=True)
def isolate_provider_env(request, monkeypatch):
    """Ensure a clean provider environment for each test.

    Clears CHORUS_* env vars to prevent test pollution.
    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("CHORUS_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def isolate_home(monkeypatch, tmp_path):
    """Point the default config store at a temporary home directory."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
