"""Chorus: compose AI providers into pipelines and combine their answers.

Public API:
    - Provider / ProviderRegistry: back-end abstraction and lookup
    - SimplePipeline, ParallelPipeline, SerialPipeline, NestedPipeline,
      CollaborativePipeline, BalancedPipeline: composition shapes
    - Result combiners: majority vote, concat, quality score, judges, jury
    - Factory / Builder / ConfigFactory: construction by name or from JSON

Example:
    registry = ProviderRegistry()
    registry.register(MockProviderFactory())
    pipeline = Factory(registry).create_parallel(
        ["mock"], MajorityVoteCombiner(), with_retries(2)
    )
    answer = await pipeline.execute("Hello")
"""

from __future__ import annotations

import logging

from chorus.config import ProviderConfig
from chorus.errors import (
    APIError,
    AuthenticationError,
    ChorusError,
    CombinerError,
    ConfigurationError,
    ParallelExecutionError,
    PipelineError,
    RateLimitError,
    StreamError,
    TransformError,
)
from chorus.functions import (
    FunctionCall,
    FunctionDefinition,
    FunctionRegistry,
    FunctionResponse,
)
from chorus.pipeline import (
    BalancedPipeline,
    BestPickerCombiner,
    Builder,
    CollaborativePipeline,
    ConcatCombiner,
    ConfigFactory,
    ConfigStore,
    ConsensusCombiner,
    Factory,
    FunctionAdapter,
    JuryCombiner,
    LongestResponseCombiner,
    MajorityVoteCombiner,
    NestedPipeline,
    ParallelPipeline,
    Pipeline,
    PipelineConfig,
    PipelineOptions,
    QualityScoreCombiner,
    ResultCombiner,
    RoundRobinCombiner,
    SerialPipeline,
    SimplePipeline,
    TransformAdapter,
    with_cache,
    with_fallback,
    with_retries,
)
from chorus.providers import (
    MockProvider,
    MockProviderFactory,
    Provider,
    ProviderFactory,
    ProviderRegistry,
    collect_stream,
    default_registry,
)
from chorus.types import Request, Response, ResponseChunk, Usage

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("chorus-ai")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("chorus").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "AuthenticationError",
    "BalancedPipeline",
    "BestPickerCombiner",
    "Builder",
    "ChorusError",
    "CollaborativePipeline",
    "CombinerError",
    "ConcatCombiner",
    "ConfigFactory",
    "ConfigStore",
    "ConfigurationError",
    "ConsensusCombiner",
    "Factory",
    "FunctionAdapter",
    "FunctionCall",
    "FunctionDefinition",
    "FunctionRegistry",
    "FunctionResponse",
    "JuryCombiner",
    "LongestResponseCombiner",
    "MajorityVoteCombiner",
    "MockProvider",
    "MockProviderFactory",
    "NestedPipeline",
    "ParallelExecutionError",
    "ParallelPipeline",
    "Pipeline",
    "PipelineConfig",
    "PipelineError",
    "PipelineOptions",
    "Provider",
    "ProviderConfig",
    "ProviderFactory",
    "ProviderRegistry",
    "QualityScoreCombiner",
    "RateLimitError",
    "Request",
    "Response",
    "ResponseChunk",
    "ResultCombiner",
    "RoundRobinCombiner",
    "SerialPipeline",
    "SimplePipeline",
    "StreamError",
    "TransformAdapter",
    "TransformError",
    "Usage",
    "collect_stream",
    "default_registry",
    "with_cache",
    "with_fallback",
    "with_retries",
]
