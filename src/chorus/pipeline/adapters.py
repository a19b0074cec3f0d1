"""Adapters that turn functions, or pipelines plus transforms, into pipelines."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from chorus._awaitable import maybe_await
from chorus.errors import ConfigurationError, TransformError
from chorus.pipeline.base import BasePipeline
from chorus.pipeline.transforms import apply_transform
from chorus.types import Request, Response

if TYPE_CHECKING:
    from chorus.pipeline.base import Pipeline
    from chorus.pipeline.transforms import Transform

TextFunction = Callable[[str], Awaitable[str] | str]
RequestFunction = Callable[[Request], Awaitable[Response] | Response]


@dataclass(frozen=True)
class FunctionAdapter(BasePipeline):
    """Expose a plain function as a pipeline.

    Pass ``fn`` for text in/text out, or ``request_fn`` for full
    Request → Response control. Either may be sync or async.
    """

    adapter_name: str
    fn: TextFunction | None = None
    request_fn: RequestFunction | None = None

    def __post_init__(self) -> None:
        if (self.fn is None) == (self.request_fn is None):
            raise ConfigurationError(
                f"function adapter {self.adapter_name!r} needs exactly one of fn or request_fn"
            )

    @property
    def name(self) -> str:
        return self.adapter_name

    async def execute(self, prompt: str) -> str:
        if self.fn is not None:
            return await maybe_await(self.fn(prompt))
        return (await self.execute_request(Request(prompt=prompt))).content

    async def execute_request(self, request: Request) -> Response:
        if self.request_fn is not None:
            return await maybe_await(self.request_fn(request))
        assert self.fn is not None
        content = await maybe_await(self.fn(request.prompt))
        return Response(
            content=content,
            provider=self.adapter_name,
            model="function",
            metadata={"adapter_type": "function"},
        )


@dataclass(frozen=True)
class TransformAdapter(BasePipeline):
    """Wrap a pipeline with optional input and output text transforms."""

    pipeline: Pipeline
    input_transform: Transform | None = None
    output_transform: Transform | None = None
    adapter_name: str | None = None

    @property
    def name(self) -> str:
        return self.adapter_name or f"transform({self.pipeline.name})"

    async def execute_request(self, request: Request) -> Response:
        if self.input_transform is not None:
            try:
                prompt = await apply_transform(self.input_transform, request.prompt)
            except Exception as e:
                raise TransformError(f"input transformation failed: {e}") from e
            request = request.derive(prompt)

        response = await self.pipeline.execute_request(request)

        if self.output_transform is not None:
            try:
                content = await apply_transform(self.output_transform, response.content)
            except Exception as e:
                raise TransformError(f"output transformation failed: {e}") from e
            response = replace(response, content=content)

        return response.with_metadata(transformed=True, transform_adapter=self.name)


def chain(name: str, *transforms: Transform) -> FunctionAdapter:
    """Compose *transforms* left to right into one function pipeline."""

    async def _run(text: str) -> str:
        for transform in transforms:
            text = await apply_transform(transform, text)
        return text

    return FunctionAdapter(name, fn=_run)
