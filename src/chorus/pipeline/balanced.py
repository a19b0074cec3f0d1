"""Round-robin load balancing over interchangeable provider instances."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING

from chorus.cache import ResponseCache
from chorus.errors import ConfigurationError
from chorus.pipeline.base import BasePipeline, Rotation
from chorus.pipeline.simple import SimplePipeline

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chorus.providers.base import Provider
    from chorus.types import Request, Response

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalancedPipeline(BasePipeline):
    """Send each call to exactly one instance, rotating through them.

    The chosen instance runs with this pipeline's retry and fallback
    options.
    """

    kind = "balanced"

    instances: Sequence[Provider]
    rotation: Rotation = field(
        default_factory=Rotation, compare=False, repr=False, kw_only=True
    )
    cache: ResponseCache = field(
        default_factory=ResponseCache, compare=False, repr=False, kw_only=True
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "instances", tuple(self.instances))
        if not self.instances:
            raise ConfigurationError("balanced pipeline requires at least one instance")

    async def execute_request(self, request: Request) -> Response:
        index = self.rotation.next_index(len(self.instances))
        instance = self.instances[index]
        log.debug("Balanced pipeline routing to instance %d (%s)", index, instance.name)
        response = await SimplePipeline(
            instance, options=self.options, cache=self.cache
        ).execute_request(request)
        return response.with_metadata(instance_index=index)
