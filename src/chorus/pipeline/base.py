"""Pipeline contract, shared options and the copy-on-write base class.

Every pipeline is an immutable value: ``with_options`` returns a new
pipeline and each ``execute*`` call is stateless over the graph.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
import itertools
import threading
from typing import TYPE_CHECKING, ClassVar, Protocol, Self, runtime_checkable

from chorus.errors import ConfigurationError
from chorus.types import Request

if TYPE_CHECKING:
    from collections.abc import Callable

    from chorus.providers.base import Provider
    from chorus.types import Response

    Option = Callable[["PipelineOptions"], "PipelineOptions"]


@dataclass(frozen=True)
class PipelineOptions:
    """Retry, fallback and cache settings shared by all pipeline kinds."""

    cache: bool = False
    cache_ttl_s: int = 0
    #: Tried in order, each at most once, after the primary gives up.
    fallbacks: tuple[Provider, ...] = ()
    #: Total attempts for transient errors; 1 means no retry.
    max_retries: int = 1

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if self.max_retries < 1:
            raise ConfigurationError(
                f"max_retries must be ≥ 1, got {self.max_retries}",
                hint="max_retries counts total attempts; use 1 to disable retries.",
            )
        if self.cache_ttl_s < 0:
            raise ConfigurationError(
                f"cache_ttl_s must be ≥ 0, got {self.cache_ttl_s}"
            )

    def apply(self, *opts: Option) -> PipelineOptions:
        """Return new options with *opts* applied in order (later wins)."""
        options = self
        for opt in opts:
            options = opt(options)
        return options

    @classmethod
    def build(cls, *opts: Option) -> PipelineOptions:
        return cls().apply(*opts)


def with_cache(ttl_s: int) -> Option:
    """Enable response caching for *ttl_s* seconds."""

    def _apply(options: PipelineOptions) -> PipelineOptions:
        return replace(options, cache=True, cache_ttl_s=ttl_s)

    return _apply


def with_fallback(*providers: Provider) -> Option:
    """Set the ordered fallback providers, replacing any earlier ones."""

    def _apply(options: PipelineOptions) -> PipelineOptions:
        return replace(options, fallbacks=tuple(providers))

    return _apply


def with_retries(max_retries: int) -> Option:
    """Set the total number of attempts for transient errors."""

    def _apply(options: PipelineOptions) -> PipelineOptions:
        return replace(options, max_retries=max_retries)

    return _apply


@runtime_checkable
class Pipeline(Protocol):
    """Composable unit mapping a prompt or request to a response."""

    @property
    def name(self) -> str: ...  # noqa: D102

    async def execute(self, prompt: str) -> str:
        """Run a plain prompt and return the response text."""
        ...

    async def execute_request(self, request: Request) -> Response:
        """Run a full request and return the full response."""
        ...

    def with_options(self, *opts: Option) -> Pipeline:
        """Return a copy with *opts* applied."""
        ...


@dataclass(frozen=True)
class BasePipeline(ABC):
    """Shared behavior for the concrete pipelines."""

    kind: ClassVar[str] = "pipeline"

    options: PipelineOptions = field(default_factory=PipelineOptions, kw_only=True)

    @property
    def name(self) -> str:
        return self.kind

    async def execute(self, prompt: str) -> str:
        response = await self.execute_request(Request(prompt=prompt))
        return response.content

    @abstractmethod
    async def execute_request(self, request: Request) -> Response: ...

    def with_options(self, *opts: Option) -> Self:
        return replace(self, options=self.options.apply(*opts))


class Rotation:
    """Thread-safe round-robin index source."""

    def __init__(self) -> None:
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def next_index(self, size: int) -> int:
        if size < 1:
            raise ValueError("size must be ≥ 1")
        with self._lock:
            return next(self._counter) % size
