"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off provider subclasses as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from chorus.errors import RateLimitError
from chorus.types import Request, Response
from tests.conftest import FakeProvider


@dataclass
class ScriptedProvider(FakeProvider):
    """FakeProvider that returns a scripted sequence of results/exceptions.

    Strings become response content. Once the script runs out the provider
    answers like a plain FakeProvider.
    """

    script: list[str | Response | BaseException] = field(default_factory=list)

    async def generate(self, request: Request) -> Response:
        if not self.script:
            return await super().generate(request)
        self.requests.append(request)
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, Response):
            return item
        return Response(content=item, provider=self.name, model=self.model)


@dataclass
class FailingProvider(FakeProvider):
    """FakeProvider whose every call raises ``error``."""

    error: BaseException = field(default_factory=lambda: RuntimeError("boom"))

    async def generate(self, request: Request) -> Response:
        self.requests.append(request)
        raise self.error


@dataclass
class FixedProvider(FakeProvider):
    """FakeProvider that always answers ``text``."""

    text: str = ""

    def reply(self, request: Request) -> str:
        return self.text


@dataclass
class SlowProvider(FakeProvider):
    """FakeProvider that sleeps ``delay`` seconds before answering ``text``."""

    text: str = ""
    delay: float = 0.0

    async def generate(self, request: Request) -> Response:
        await asyncio.sleep(self.delay)
        self.requests.append(request)
        return Response(content=self.text, provider=self.name, model=self.model)


@dataclass
class GateProvider(FakeProvider):
    """FakeProvider with an explicit barrier for single-flight tests."""

    started: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event = field(default_factory=asyncio.Event)

    async def generate(self, request: Request) -> Response:
        self.requests.append(request)
        self.started.set()
        await self.release.wait()
        return Response(content="gated", provider=self.name, model=self.model)


def rate_limited(message: str = "slow down") -> RateLimitError:
    return RateLimitError(message, status_code=429, provider="fake")
