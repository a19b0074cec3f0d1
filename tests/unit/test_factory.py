from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from chorus.config import ProviderConfig
from chorus.errors import ConfigurationError
from chorus.pipeline import (
    BalancedPipeline,
    BestPickerCombiner,
    Builder,
    CollaborativePipeline,
    ConsensusCombiner,
    Factory,
    MajorityVoteCombiner,
    NestedPipeline,
    ParallelPipeline,
    SerialPipeline,
    SimplePipeline,
    create_consensus_pipeline,
    create_default_pipeline,
    create_high_availability_pipeline,
    prefix_transform,
    with_cache,
    with_retries,
)
from chorus.providers import ProviderRegistry
from tests.conftest import FakeProvider

pytestmark = pytest.mark.unit


@dataclass(frozen=True)
class _FakeFactory:
    factory_name: str
    configs: list[ProviderConfig] = field(default_factory=list, compare=False)

    @property
    def name(self) -> str:
        return self.factory_name

    def create(self, config: ProviderConfig) -> FakeProvider:
        self.configs.append(config)
        return FakeProvider(self.factory_name, config.model or "fake-model")

    def available_models(self) -> list[str]:
        return ["fake-model"]

    def capabilities(self) -> list[str]:
        return []


@dataclass(frozen=True)
class _BrokenFactory(_FakeFactory):
    def create(self, config: ProviderConfig) -> FakeProvider:
        raise RuntimeError("sdk missing")


@pytest.fixture
def registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    for name in ("openai", "anthropic", "gemini"):
        registry.register(_FakeFactory(name))
    return registry


@pytest.fixture
def factory(registry: ProviderRegistry) -> Factory:
    return Factory(registry)


def test_create_provider_merges_per_provider_overrides(registry) -> None:
    factory = Factory(registry, ProviderConfig(api_key="shared", temperature=0.2))
    factory = factory.with_provider_configs({"openai": ProviderConfig(model="gpt")})

    provider = factory.create_provider("openai")

    config = registry.get("openai").configs[-1]
    assert provider.model == "gpt"
    assert config.api_key == "shared"
    assert config.temperature == 0.2


def test_overrides_equal_to_defaults_still_win(registry) -> None:
    factory = Factory(registry, ProviderConfig(temperature=0.2, max_tokens=100))
    factory = factory.with_provider_configs(
        {"openai": ProviderConfig(temperature=0.7, max_tokens=4096)}
    )

    factory.create_provider("openai")

    config = registry.get("openai").configs[-1]
    assert (config.temperature, config.max_tokens) == (0.7, 4096)


def test_unknown_provider_is_a_configuration_error(factory) -> None:
    with pytest.raises(ConfigurationError, match="not registered"):
        factory.create_provider("nope")


def test_factory_failures_are_wrapped(registry) -> None:
    registry.register(_BrokenFactory("broken"))

    with pytest.raises(ConfigurationError, match="failed to create provider broken"):
        Factory(registry).create_provider("broken")


def test_shapes_are_built_with_options(factory) -> None:
    simple = factory.create_simple("openai", with_retries(3))
    serial = factory.create_serial(["openai", "gemini"])
    parallel = factory.create_parallel(["openai", "gemini"], MajorityVoteCombiner())
    collab = factory.create_collaborative(["openai"], 2, summarize=True)

    assert isinstance(simple, SimplePipeline)
    assert simple.options.max_retries == 3
    assert [p.name for p in serial.providers] == ["openai", "gemini"]
    assert isinstance(parallel, ParallelPipeline)
    assert isinstance(collab, CollaborativePipeline)
    assert (collab.rounds, collab.summarize) == (2, True)


def test_best_picker_uses_the_named_judge(factory) -> None:
    pipeline = factory.create_parallel_with_best_picker(["openai", "gemini"], "anthropic")

    assert isinstance(pipeline.combiner, BestPickerCombiner)
    assert pipeline.combiner.judge.name == "anthropic"


def test_fallback_pipeline_orders_backups(factory) -> None:
    pipeline = factory.create_fallback("openai", ["anthropic", "gemini"])

    assert pipeline.provider.name == "openai"
    assert [p.name for p in pipeline.options.fallbacks] == ["anthropic", "gemini"]


def test_balanced_creates_independent_instances(factory) -> None:
    pipeline = factory.create_balanced("openai", 3)

    assert isinstance(pipeline, BalancedPipeline)
    assert len(pipeline.instances) == 3
    assert len({id(i) for i in pipeline.instances}) == 3
    with pytest.raises(ConfigurationError):
        factory.create_balanced("openai", 0)


def test_nested_requires_stages(factory) -> None:
    with pytest.raises(ConfigurationError, match="at least one stage"):
        factory.create_nested([])


@pytest.mark.asyncio
async def test_create_chain_runs_transforms_after_provider(factory) -> None:
    pipeline = factory.create_chain("openai", str.upper, prefix_transform("> "))

    assert isinstance(pipeline, NestedPipeline)
    assert await pipeline.execute("hi") == "> OPENAI:HI"


def test_options_do_not_leak_between_copies(factory) -> None:
    base = factory.create_simple("openai")
    cached = base.with_options(with_cache(60))

    assert base.options.cache is False
    assert cached.options.cache is True
    assert cached.provider is base.provider


class TestBuilder:
    def test_builds_parallel(self, factory) -> None:
        pipeline = (
            Builder(factory)
            .with_providers("openai", "gemini")
            .with_options(with_retries(2))
            .build_parallel(MajorityVoteCombiner())
        )

        assert [p.name for p in pipeline.providers] == ["openai", "gemini"]
        assert pipeline.options.max_retries == 2

    def test_defers_lookup_errors_to_build(self, factory) -> None:
        builder = Builder(factory).with_provider("nope").with_provider("openai")

        with pytest.raises(ConfigurationError, match="nope"):
            builder.build_simple()

    def test_requires_a_provider(self, factory) -> None:
        with pytest.raises(ConfigurationError, match="no providers configured"):
            Builder(factory).build_serial()

    @pytest.mark.asyncio
    async def test_chain_picks_serial_for_several_providers(self, factory) -> None:
        pipeline = (
            Builder(factory)
            .with_providers("openai", "gemini")
            .with_transform(str.upper)
            .build_chain()
        )

        assert isinstance(pipeline, NestedPipeline)
        assert isinstance(pipeline.stage(0), SerialPipeline)
        assert await pipeline.execute("q") == "GEMINI:OPENAI:Q"


class TestPresets:
    def test_high_availability_defaults(self, factory) -> None:
        pipeline = create_high_availability_pipeline(factory, ["openai", "gemini"])

        assert pipeline.options.max_retries == 3
        assert pipeline.options.cache_ttl_s == 300
        assert [p.name for p in pipeline.options.fallbacks] == ["gemini"]

    def test_high_availability_user_options_win(self, factory) -> None:
        pipeline = create_high_availability_pipeline(
            factory, ["openai"], with_retries(5)
        )

        assert pipeline.options.max_retries == 5

    def test_high_availability_needs_providers(self, factory) -> None:
        with pytest.raises(ConfigurationError):
            create_high_availability_pipeline(factory, [])

    def test_consensus_preset(self, factory) -> None:
        pipeline = create_consensus_pipeline(factory, ["openai", "gemini"], "anthropic")

        assert isinstance(pipeline.combiner, ConsensusCombiner)

    def test_default_pipeline_uses_registry_default(self, factory) -> None:
        pipeline = create_default_pipeline(factory)

        assert pipeline.provider.name == "openai"
        assert [p.name for p in pipeline.options.fallbacks] == ["anthropic", "gemini"]
        assert pipeline.options.max_retries == 2

    def test_default_pipeline_needs_a_registered_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="no default provider"):
            create_default_pipeline(Factory(ProviderRegistry()))
