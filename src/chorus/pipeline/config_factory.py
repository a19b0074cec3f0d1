"""Resolve declarative PipelineConfigs into live pipeline graphs."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any

from chorus.errors import ConfigurationError
from chorus.pipeline.adapters import TransformAdapter
from chorus.pipeline.base import PipelineOptions, with_cache, with_retries
from chorus.pipeline.combiners import (
    ConcatCombiner,
    LongestResponseCombiner,
    MajorityVoteCombiner,
    QualityScoreCombiner,
    RoundRobinCombiner,
)
from chorus.pipeline.config import CombinerType, PipelineConfig, PipelineType
from chorus.pipeline.config_store import ConfigStore
from chorus.pipeline.factory import (
    Factory,
    create_consensus_pipeline,
    create_high_availability_pipeline,
)
from chorus.pipeline.judges import BestPickerCombiner, ConsensusCombiner, JuryCombiner
from chorus.pipeline.serial import NestedPipeline
from chorus.pipeline.transforms import TransformRegistry, build_transform

if TYPE_CHECKING:
    from collections.abc import Mapping

    from chorus.pipeline.base import Option, Pipeline
    from chorus.pipeline.combiners import ResultCombiner
    from chorus.pipeline.config import TransformConfig
    from chorus.pipeline.transforms import Transform

log = logging.getLogger(__name__)

_DEFAULT_CONCAT_SEPARATOR = "\n"
_DEFAULT_QUALITY_BASE = 100


def options_from_config(options: Mapping[str, Any]) -> list[Option]:
    """Translate a config ``options`` map into option callables.

    ``retries`` sets total attempts and ``cache`` the cache TTL in seconds.
    Other keys are ignored.
    """
    opts: list[Option] = []
    for key, build in (("retries", with_retries), ("cache", with_cache)):
        if key not in options:
            continue
        value = options[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(
                f"option {key!r} must be a number, got {value!r}"
            )
        opts.append(build(int(value)))
    ignored = sorted(set(options) - {"retries", "cache"})
    if ignored:
        log.debug("Ignoring unsupported pipeline options: %s", ", ".join(ignored))
    return opts


@dataclass(frozen=True)
class ConfigFactory(Factory):
    """Factory that also builds pipelines from stored or inline configs."""

    store: ConfigStore = field(default_factory=ConfigStore)
    transforms: TransformRegistry = field(default_factory=TransformRegistry)

    def create_from_config(self, name: str) -> Pipeline:
        return self.create_from_pipeline_config(self.store.get(name))

    def create_from_pipeline_config(self, config: PipelineConfig) -> Pipeline:
        """Validate *config* and build it, resolving stages recursively."""
        config.validate()
        opts = options_from_config(config.options)
        factory = self
        if config.provider_configs:
            factory = self.with_provider_configs(
                {
                    name: overrides.to_provider_config()
                    for name, overrides in config.provider_configs.items()
                }
            )
        assert isinstance(factory, ConfigFactory)
        return factory._build(config, opts)

    def _build(self, config: PipelineConfig, opts: list[Option]) -> Pipeline:
        kind = config.type
        if kind is PipelineType.SIMPLE:
            return self.create_simple(config.provider, *opts)
        if kind is PipelineType.SERIAL:
            return self.create_serial(config.providers, *opts)
        if kind is PipelineType.PARALLEL:
            return self.create_parallel(config.providers, self._combiner(config), *opts)
        if kind is PipelineType.NESTED:
            return NestedPipeline(
                [self._stage(stage.name, stage.config) for stage in config.stages],
                options=PipelineOptions.build(*opts),
            )
        if kind is PipelineType.TRANSFORM:
            assert config.base_config is not None
            try:
                base = self.create_from_pipeline_config(config.base_config)
            except ConfigurationError as e:
                raise ConfigurationError(f"failed to create base pipeline: {e}") from e
            return TransformAdapter(
                base,
                self._transform(config.input_transform),
                self._transform(config.output_transform),
                adapter_name=config.name,
                options=PipelineOptions.build(*opts),
            )
        if kind is PipelineType.HIGH_AVAILABILITY:
            return create_high_availability_pipeline(self, config.providers, *opts)
        if kind is PipelineType.CONSENSUS:
            return create_consensus_pipeline(
                self, config.providers, config.combiner_config.judge_provider, *opts
            )
        raise ConfigurationError(f"unsupported pipeline type: {kind}")

    def _stage(self, name: str, config: PipelineConfig) -> Pipeline:
        try:
            return self.create_from_pipeline_config(config)
        except ConfigurationError as e:
            raise ConfigurationError(f"failed to create stage {name!r}: {e}") from e

    def _combiner(self, config: PipelineConfig) -> ResultCombiner:
        cc = config.combiner_config
        kind = config.combiner
        if kind is CombinerType.CONCAT:
            separator = cc.separator if cc.separator is not None else _DEFAULT_CONCAT_SEPARATOR
            return ConcatCombiner(separator)
        if kind is CombinerType.MAJORITY_VOTE:
            return MajorityVoteCombiner()
        if kind is CombinerType.LONGEST:
            return LongestResponseCombiner()
        if kind is CombinerType.QUALITY_SCORE:
            return QualityScoreCombiner(cc.max_tokens or _DEFAULT_QUALITY_BASE)
        if kind is CombinerType.BEST_PICKER:
            return BestPickerCombiner(self.create_provider(cc.picker_provider))
        if kind is CombinerType.CONSENSUS:
            return ConsensusCombiner(self.create_provider(cc.judge_provider))
        if kind is CombinerType.JURY:
            return JuryCombiner(
                self.create_providers(cc.jurors),
                voting_method=cc.voting_method,
                weights=dict(cc.weights),
            )
        if kind is CombinerType.ROUND_ROBIN:
            return RoundRobinCombiner()
        raise ConfigurationError(f"unsupported combiner type: {kind}")

    def _transform(self, config: TransformConfig | None) -> Transform | None:
        if config is None:
            return None
        if config.type == "function":
            return self.transforms.get(config.name)
        if config.type == "pipeline":
            sub = PipelineConfig.from_dict(
                {"name": config.name or "transform", **config.config}
            )
            return self.create_from_pipeline_config(sub).execute
        return build_transform(config.type, config.config)

    # --- Store delegation ---

    def save_config(self, config: PipelineConfig) -> None:
        self.store.add(config)

    def load_config(self, name: str) -> PipelineConfig:
        return self.store.get(name)

    def delete_config(self, name: str) -> None:
        self.store.delete(name)

    def list_configs(self) -> list[PipelineConfig]:
        return self.store.list_configs()

    def export_config(self, name: str) -> str:
        return self.store.export(name)

    def import_config(self, data: str | bytes) -> PipelineConfig:
        return self.store.import_json(data)
