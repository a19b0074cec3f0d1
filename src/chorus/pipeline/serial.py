"""Sequential chaining: each step's output is the next step's prompt."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from chorus.errors import ConfigurationError, PipelineError
from chorus.pipeline.base import BasePipeline
from chorus.pipeline.simple import SimplePipeline

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chorus.pipeline.base import Pipeline
    from chorus.providers.base import Provider
    from chorus.types import Request, Response


@dataclass(frozen=True)
class SerialPipeline(BasePipeline):
    """Run providers in order, feeding each response to the next provider.

    The first failure stops the chain.
    """

    kind = "serial"

    providers: Sequence[Provider]

    def __post_init__(self) -> None:
        object.__setattr__(self, "providers", tuple(self.providers))
        if not self.providers:
            raise ConfigurationError("serial pipeline requires at least one provider")

    async def execute_request(self, request: Request) -> Response:
        step_options = replace(self.options, fallbacks=(), cache=False)
        response: Response | None = None
        for i, provider in enumerate(self.providers):
            current = request if response is None else request.derive(response.content)
            try:
                response = await SimplePipeline(
                    provider, options=step_options
                ).execute_request(current)
            except PipelineError as e:
                cause = e.__cause__ or e
                raise PipelineError(
                    f"provider {i} ({provider.name}) failed: {cause}",
                    pipeline=self.name,
                    op="execute",
                ) from cause
        assert response is not None
        return response


@dataclass(frozen=True)
class NestedPipeline(BasePipeline):
    """Chain whole pipelines as stages."""

    kind = "nested"

    stages: Sequence[Pipeline]

    def __post_init__(self) -> None:
        object.__setattr__(self, "stages", tuple(self.stages))

    def add_stage(self, stage: Pipeline) -> NestedPipeline:
        """Return a new pipeline with *stage* appended."""
        return replace(self, stages=(*self.stages, stage))

    def stage(self, index: int) -> Pipeline:
        if not 0 <= index < len(self.stages):
            raise IndexError(f"stage index {index} out of range")
        return self.stages[index]

    @property
    def stage_count(self) -> int:
        return len(self.stages)

    async def execute_request(self, request: Request) -> Response:
        if not self.stages:
            raise PipelineError(
                "no stages configured", pipeline=self.name, op="execute"
            )
        response: Response | None = None
        for i, stage in enumerate(self.stages):
            current = request if response is None else request.derive(response.content)
            try:
                response = await stage.execute_request(current)
            except Exception as e:
                raise PipelineError(
                    f"stage {i} ({stage.name}) failed: {e}",
                    pipeline=self.name,
                    op="execute",
                ) from e
        assert response is not None
        return response.with_metadata(
            pipeline_stages=len(self.stages), pipeline_type="nested"
        )
