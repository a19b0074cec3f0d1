"""Pipeline composition: shapes, combiners, factories and declarative configs."""

from .adapters import FunctionAdapter, TransformAdapter, chain
from .balanced import BalancedPipeline
from .base import (
    BasePipeline,
    Pipeline,
    PipelineOptions,
    with_cache,
    with_fallback,
    with_retries,
)
from .collaborative import CollaborativePipeline, Discussion, Round, Turn
from .combiners import (
    ConcatCombiner,
    FirstSuccessfulCombiner,
    LongestResponseCombiner,
    MajorityVoteCombiner,
    QualityScoreCombiner,
    RandomCombiner,
    ResultCombiner,
    RoundRobinCombiner,
    WeightedCombiner,
)
from .config import (
    CombinerConfig,
    CombinerType,
    PipelineConfig,
    PipelineType,
    ProviderOverrides,
    StageConfig,
    TransformConfig,
    parse_combiner_type,
    parse_pipeline_type,
)
from .config_factory import ConfigFactory, options_from_config
from .config_store import ConfigStore
from .factory import (
    Builder,
    Factory,
    collaborative,
    create_consensus_pipeline,
    create_default_pipeline,
    create_high_availability_pipeline,
    parallel,
    serial,
    simple,
)
from .judges import BestPickerCombiner, ConsensusCombiner, JuryCombiner
from .parallel import ParallelPipeline
from .serial import NestedPipeline, SerialPipeline
from .simple import SimplePipeline
from .transforms import (
    TransformRegistry,
    json_extract_transform,
    prefix_transform,
    suffix_transform,
    template_transform,
    wrap_transform,
)

__all__ = [
    "BalancedPipeline",
    "BasePipeline",
    "BestPickerCombiner",
    "Builder",
    "CollaborativePipeline",
    "CombinerConfig",
    "CombinerType",
    "ConcatCombiner",
    "ConfigFactory",
    "ConfigStore",
    "ConsensusCombiner",
    "Discussion",
    "Factory",
    "FirstSuccessfulCombiner",
    "FunctionAdapter",
    "JuryCombiner",
    "LongestResponseCombiner",
    "MajorityVoteCombiner",
    "NestedPipeline",
    "ParallelPipeline",
    "Pipeline",
    "PipelineConfig",
    "PipelineOptions",
    "PipelineType",
    "ProviderOverrides",
    "QualityScoreCombiner",
    "RandomCombiner",
    "ResultCombiner",
    "Round",
    "RoundRobinCombiner",
    "SerialPipeline",
    "SimplePipeline",
    "StageConfig",
    "TransformAdapter",
    "TransformConfig",
    "TransformRegistry",
    "Turn",
    "WeightedCombiner",
    "chain",
    "collaborative",
    "create_consensus_pipeline",
    "create_default_pipeline",
    "create_high_availability_pipeline",
    "json_extract_transform",
    "options_from_config",
    "parallel",
    "parse_combiner_type",
    "parse_pipeline_type",
    "prefix_transform",
    "serial",
    "simple",
    "suffix_transform",
    "template_transform",
    "with_cache",
    "with_fallback",
    "with_retries",
    "wrap_transform",
]
