"""Parallel fan-out over providers with combiner fan-in."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
import logging
from typing import TYPE_CHECKING

from chorus.errors import ConfigurationError, ParallelExecutionError, PipelineError
from chorus.pipeline.base import BasePipeline
from chorus.pipeline.simple import SimplePipeline

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chorus.pipeline.combiners import ResultCombiner
    from chorus.providers.base import Provider
    from chorus.types import Request, Response

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParallelPipeline(BasePipeline):
    """Send each request to every provider at once and combine the results.

    Branches that fail are dropped as long as one succeeds. Successful
    responses reach the combiner in provider order, whatever order they
    completed in.
    """

    kind = "parallel"

    providers: Sequence[Provider]
    combiner: ResultCombiner | None

    def __post_init__(self) -> None:
        object.__setattr__(self, "providers", tuple(self.providers))
        if not self.providers:
            raise ConfigurationError("parallel pipeline requires at least one provider")
        if self.combiner is None:
            raise ConfigurationError(
                "parallel pipeline requires a combiner",
                hint="Pass a ResultCombiner such as MajorityVoteCombiner().",
            )

    async def execute_request(self, request: Request) -> Response:
        if self.combiner is None:
            raise ConfigurationError("parallel pipeline requires a combiner")

        # Branches only inherit the retry budget.
        branch_options = replace(self.options, fallbacks=(), cache=False)

        async def _run(provider: Provider) -> Response | Exception:
            try:
                return await SimplePipeline(
                    provider, options=branch_options
                ).execute_request(request)
            except PipelineError as exc:
                cause = exc.__cause__
                return cause if isinstance(cause, Exception) else exc
            except Exception as exc:
                return exc

        outcomes = await asyncio.gather(*(_run(p) for p in self.providers))

        successes: list[Response] = []
        failures: list[tuple[str, BaseException]] = []
        for provider, outcome in zip(self.providers, outcomes, strict=True):
            if isinstance(outcome, Exception):
                log.debug("Parallel branch %s failed: %s", provider.name, outcome)
                failures.append((provider.name, outcome))
            else:
                successes.append(outcome)

        if not successes:
            raise ParallelExecutionError(failures)
        return await self.combiner.combine(successes)
