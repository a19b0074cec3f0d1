"""Single-provider pipeline with bounded retry, ordered fallback and caching."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING

from chorus.cache import ResponseCache, compute_cache_key
from chorus.errors import PipelineError
from chorus.pipeline.base import BasePipeline
from chorus.retry import retry_async

if TYPE_CHECKING:
    from chorus.providers.base import Provider
    from chorus.types import Request, Response

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimplePipeline(BasePipeline):
    """Send each request to one provider.

    Transient failures are retried up to ``options.max_retries`` attempts.
    When the primary gives up, ``options.fallbacks`` are tried once each, in
    order; the first success is returned with ``fallback_provider`` recorded
    in its metadata.
    """

    kind = "simple"

    provider: Provider
    cache: ResponseCache = field(
        default_factory=ResponseCache, compare=False, repr=False, kw_only=True
    )

    @property
    def name(self) -> str:
        return self.provider.name

    async def execute_request(self, request: Request) -> Response:
        if self.options.cache and _cacheable(request):
            key = compute_cache_key(self.provider.name, self.provider.model, request)
            return await self.cache.get_or_create(
                key,
                ttl_s=self.options.cache_ttl_s,
                work=lambda: self._generate(request),
            )
        return await self._generate(request)

    async def _generate(self, request: Request) -> Response:
        provider = self.provider
        try:
            return await retry_async(
                lambda: provider.generate(request),
                max_attempts=self.options.max_retries,
                label=f"provider {provider.name}",
            )
        except Exception as exc:
            primary_error = exc

        if not self.options.fallbacks:
            raise PipelineError(
                str(primary_error), pipeline=self.name, op="execute"
            ) from primary_error

        failures: list[str] = []
        for fallback in self.options.fallbacks:
            log.debug(
                "Provider %s failed (%s); trying fallback %s",
                provider.name,
                primary_error,
                fallback.name,
            )
            try:
                response = await fallback.generate(request)
            except Exception as exc:
                failures.append(f"{fallback.name}: {exc}")
                continue
            return response.with_metadata(fallback_provider=fallback.name)

        raise PipelineError(
            str(primary_error),
            pipeline=self.name,
            op="execute",
            hint=f"Fallbacks also failed: {'; '.join(failures)}",
        ) from primary_error


def _cacheable(request: Request) -> bool:
    # Function-calling turns depend on executor side effects.
    return (
        not request.stream
        and request.functions is None
        and request.function_executor is None
    )
