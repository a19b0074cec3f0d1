"""Imperative construction of pipelines from registered provider names.

Example:
    factory = Factory(registry, ProviderConfig(temperature=0.2))
    pipeline = factory.create_parallel(
        ["openai", "anthropic"], MajorityVoteCombiner(), with_retries(3)
    )
    answer = await pipeline.execute("What is 2 + 2?")
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import TYPE_CHECKING

from chorus.config import ProviderConfig
from chorus.errors import ConfigurationError
from chorus.pipeline.adapters import FunctionAdapter, TransformAdapter
from chorus.pipeline.balanced import BalancedPipeline
from chorus.pipeline.base import PipelineOptions, with_cache, with_fallback, with_retries
from chorus.pipeline.collaborative import CollaborativePipeline
from chorus.pipeline.combiners import MajorityVoteCombiner
from chorus.pipeline.judges import BestPickerCombiner, ConsensusCombiner
from chorus.pipeline.parallel import ParallelPipeline
from chorus.pipeline.serial import NestedPipeline, SerialPipeline
from chorus.pipeline.simple import SimplePipeline
from chorus.providers.registry import ProviderRegistry, default_registry

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from chorus.pipeline.adapters import TextFunction
    from chorus.pipeline.base import Option, Pipeline
    from chorus.pipeline.combiners import ResultCombiner
    from chorus.pipeline.transforms import Transform
    from chorus.providers.base import Provider

log = logging.getLogger(__name__)


def _default_registry() -> ProviderRegistry:
    return default_registry


@dataclass(frozen=True)
class Factory:
    """Builds pipelines from provider names in ``registry``.

    ``provider_configs`` holds per-provider overrides merged over ``config``.
    """

    registry: ProviderRegistry = field(default_factory=_default_registry)
    config: ProviderConfig = field(default_factory=ProviderConfig)
    provider_configs: Mapping[str, ProviderConfig] = field(default_factory=dict)

    def with_config(self, config: ProviderConfig) -> Factory:
        return replace(self, config=config)

    def with_provider_configs(self, overrides: Mapping[str, ProviderConfig]) -> Factory:
        return replace(self, provider_configs={**self.provider_configs, **overrides})

    # --- Providers ---

    def create_provider(self, name: str) -> Provider:
        config = self.config
        if name in self.provider_configs:
            config = config.merge(self.provider_configs[name])
        try:
            return self.registry.create(name, config)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"failed to create provider {name}: {e}") from e

    def create_providers(self, names: Sequence[str]) -> list[Provider]:
        return [self.create_provider(name) for name in names]

    # --- Pipelines ---

    def create_simple(self, name: str, *opts: Option) -> SimplePipeline:
        return SimplePipeline(
            self.create_provider(name), options=PipelineOptions.build(*opts)
        )

    def create_serial(self, names: Sequence[str], *opts: Option) -> SerialPipeline:
        return SerialPipeline(
            self.create_providers(names), options=PipelineOptions.build(*opts)
        )

    def create_parallel(
        self, names: Sequence[str], combiner: ResultCombiner, *opts: Option
    ) -> ParallelPipeline:
        return ParallelPipeline(
            self.create_providers(names), combiner, options=PipelineOptions.build(*opts)
        )

    def create_parallel_with_best_picker(
        self, names: Sequence[str], picker: str, *opts: Option
    ) -> ParallelPipeline:
        combiner = BestPickerCombiner(self.create_provider(picker))
        return self.create_parallel(names, combiner, *opts)

    def create_collaborative(
        self,
        names: Sequence[str],
        rounds: int = 3,
        *opts: Option,
        summarize: bool = False,
    ) -> CollaborativePipeline:
        return CollaborativePipeline(
            self.create_providers(names),
            rounds,
            summarize,
            options=PipelineOptions.build(*opts),
        )

    def create_fallback(
        self, primary: str, fallbacks: Sequence[str], *opts: Option
    ) -> SimplePipeline:
        """Single-provider pipeline that cascades through *fallbacks* in order."""
        backups = self.create_providers(fallbacks)
        return self.create_simple(primary, *opts, with_fallback(*backups))

    def create_balanced(self, name: str, instances: int, *opts: Option) -> BalancedPipeline:
        if instances < 1:
            raise ConfigurationError(
                f"balanced pipeline needs at least one instance, got {instances}"
            )
        return BalancedPipeline(
            [self.create_provider(name) for _ in range(instances)],
            options=PipelineOptions.build(*opts),
        )

    def create_nested(self, stages: Sequence[Pipeline], *opts: Option) -> NestedPipeline:
        if not stages:
            raise ConfigurationError("at least one stage required for nested pipeline")
        return NestedPipeline(stages, options=PipelineOptions.build(*opts))

    def create_transform(
        self,
        pipeline: Pipeline,
        input_transform: Transform | None = None,
        output_transform: Transform | None = None,
        *opts: Option,
    ) -> TransformAdapter:
        return TransformAdapter(
            pipeline,
            input_transform,
            output_transform,
            options=PipelineOptions.build(*opts),
        )

    def create_function(self, name: str, fn: TextFunction, *opts: Option) -> FunctionAdapter:
        return FunctionAdapter(name, fn, options=PipelineOptions.build(*opts))

    def create_chain(self, name: str, *transforms: Transform) -> Pipeline:
        """Run provider *name*, then pass its output through *transforms*."""
        base = self.create_simple(name)
        if not transforms:
            return base
        return NestedPipeline(_with_transform_stages(base, transforms))


def _with_transform_stages(
    head: Pipeline, transforms: Sequence[Transform]
) -> list[Pipeline]:
    stages: list[Pipeline] = [head]
    stages += [FunctionAdapter(f"transform_{i}", t) for i, t in enumerate(transforms)]
    return stages


class Builder:
    """Fluent pipeline construction.

    Provider lookup errors are deferred: the first one is raised from the
    ``build_*`` call.

    Example:
        pipeline = (
            Builder(factory)
            .with_providers("openai", "anthropic")
            .with_options(with_retries(2))
            .build_parallel(MajorityVoteCombiner())
        )
    """

    def __init__(self, factory: Factory | None = None) -> None:
        self.factory = factory or Factory()
        self.providers: list[Provider] = []
        self.transforms: list[Transform] = []
        self.options: list[Option] = []
        self.error: ConfigurationError | None = None

    def with_factory(self, factory: Factory) -> Builder:
        self.factory = factory
        return self

    def with_provider(self, name: str) -> Builder:
        if self.error is not None:
            return self
        try:
            self.providers.append(self.factory.create_provider(name))
        except ConfigurationError as e:
            self.error = e
        return self

    def with_providers(self, *names: str) -> Builder:
        for name in names:
            self.with_provider(name)
        return self

    def with_options(self, *opts: Option) -> Builder:
        self.options.extend(opts)
        return self

    def with_transform(self, transform: Transform) -> Builder:
        self.transforms.append(transform)
        return self

    def _ready(self) -> PipelineOptions:
        if self.error is not None:
            raise self.error
        if not self.providers:
            raise ConfigurationError(
                "no providers configured",
                hint="Call with_provider() before building.",
            )
        return PipelineOptions.build(*self.options)

    def build_simple(self) -> SimplePipeline:
        options = self._ready()
        return SimplePipeline(self.providers[0], options=options)

    def build_serial(self) -> SerialPipeline:
        options = self._ready()
        return SerialPipeline(self.providers, options=options)

    def build_parallel(self, combiner: ResultCombiner) -> ParallelPipeline:
        options = self._ready()
        return ParallelPipeline(self.providers, combiner, options=options)

    def build_collaborative(self, rounds: int = 3) -> CollaborativePipeline:
        options = self._ready()
        return CollaborativePipeline(self.providers, rounds, options=options)

    def build_chain(self) -> Pipeline:
        """Simple (one provider) or serial (several), then the transforms."""
        options = self._ready()
        head: Pipeline
        if len(self.providers) == 1:
            head = SimplePipeline(self.providers[0], options=options)
        else:
            head = SerialPipeline(self.providers, options=options)
        if not self.transforms:
            return head
        return NestedPipeline(
            _with_transform_stages(head, self.transforms), options=options
        )


# --- Presets ---


def create_high_availability_pipeline(
    factory: Factory, names: Sequence[str], *opts: Option
) -> SimplePipeline:
    """First provider with the rest as ordered fallbacks, 3 attempts, 5 min cache."""
    if not names:
        raise ConfigurationError("at least one provider required")
    return factory.create_fallback(
        names[0], names[1:], with_retries(3), with_cache(300), *opts
    )


def create_consensus_pipeline(
    factory: Factory, names: Sequence[str], judge: str, *opts: Option
) -> ParallelPipeline:
    combiner = ConsensusCombiner(factory.create_provider(judge))
    return factory.create_parallel(names, combiner, *opts)


def create_default_pipeline(factory: Factory, *opts: Option) -> SimplePipeline:
    """Registry default provider, every other registered provider as fallback."""
    primary = factory.registry.default_name
    if primary is None:
        raise ConfigurationError(
            "no default provider registered",
            hint="Register a provider factory before building the default pipeline.",
        )
    fallbacks = [name for name in factory.registry.names() if name != primary]
    log.debug("Default pipeline: %s with fallbacks %s", primary, fallbacks)
    return factory.create_fallback(primary, fallbacks, with_retries(2), *opts)


# --- Quick constructors (default registry) ---


def simple(name: str, config: ProviderConfig | None = None) -> SimplePipeline:
    return Factory(config=config or ProviderConfig()).create_simple(name)


def serial(names: Sequence[str], config: ProviderConfig | None = None) -> SerialPipeline:
    return Factory(config=config or ProviderConfig()).create_serial(names)


def parallel(names: Sequence[str], config: ProviderConfig | None = None) -> ParallelPipeline:
    """Parallel pipeline with majority voting."""
    return Factory(config=config or ProviderConfig()).create_parallel(
        names, MajorityVoteCombiner()
    )


def collaborative(
    names: Sequence[str], rounds: int = 3, config: ProviderConfig | None = None
) -> CollaborativePipeline:
    return Factory(config=config or ProviderConfig()).create_collaborative(names, rounds)
