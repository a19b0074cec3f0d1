"""Declarative pipeline descriptions (validated JSON schema).

A ``PipelineConfig`` names providers rather than holding them; the
``ConfigFactory`` resolves it into a live pipeline graph.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from chorus.config import ProviderConfig
from chorus.errors import ConfigurationError
from chorus.pipeline.judges import VOTING_METHODS


class PipelineType(str, Enum):
    SIMPLE = "simple"
    SERIAL = "serial"
    PARALLEL = "parallel"
    NESTED = "nested"
    TRANSFORM = "transform"
    HIGH_AVAILABILITY = "high_availability"
    CONSENSUS = "consensus"


class CombinerType(str, Enum):
    CONCAT = "concat"
    MAJORITY_VOTE = "majority_vote"
    LONGEST = "longest"
    QUALITY_SCORE = "quality_score"
    BEST_PICKER = "best_picker"
    CONSENSUS = "consensus"
    JURY = "jury"
    ROUND_ROBIN = "round_robin"


_PIPELINE_ALIASES = {"ha": PipelineType.HIGH_AVAILABILITY}


def _normalize(value: str) -> str:
    return value.strip().lower().replace("-", "_")


def parse_pipeline_type(value: str) -> PipelineType:
    """Parse ``"High-Availability"``, ``"ha"`` and friends."""
    key = _normalize(value)
    if key in _PIPELINE_ALIASES:
        return _PIPELINE_ALIASES[key]
    try:
        return PipelineType(key)
    except ValueError:
        raise ConfigurationError(f"unknown pipeline type: {value}") from None


def parse_combiner_type(value: str) -> CombinerType:
    try:
        return CombinerType(_normalize(value))
    except ValueError:
        raise ConfigurationError(f"unknown combiner type: {value}") from None


class CombinerConfig(BaseModel):
    """Combiner-specific settings; each combiner reads only its own keys."""

    separator: str | None = None  # concat
    max_tokens: int | None = None  # quality_score
    picker_provider: str = ""  # best_picker
    judge_provider: str = ""  # consensus
    jurors: list[str] = Field(default_factory=list)  # jury
    voting_method: str = "majority"  # jury
    weights: dict[str, float] = Field(default_factory=dict)  # jury (weighted)


class TransformConfig(BaseModel):
    """Reference to a transform.

    ``type`` is ``function`` (look ``name`` up in the TransformRegistry),
    ``pipeline`` (``config`` is a PipelineConfig whose output replaces the
    text), or a stock transform built from ``config``: ``template``,
    ``prefix``, ``suffix``, ``wrap``, ``json_extract``.
    """

    type: str = "function"
    name: str = ""
    config: dict[str, Any] = Field(default_factory=dict)


class ProviderOverrides(BaseModel):
    """Per-provider settings; unset fields inherit the factory config."""

    api_key: str | None = None
    model: str | None = None
    max_tokens: int | None = Field(default=None, ge=1)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    base_url: str | None = None
    timeout_s: float | None = Field(default=None, gt=0)

    def to_provider_config(self) -> ProviderConfig:
        return ProviderConfig(**self.model_dump(exclude_none=True))


class StageConfig(BaseModel):
    """One stage of a nested pipeline; ``config`` is a full PipelineConfig."""

    name: str = ""
    type: PipelineType | None = None
    config: PipelineConfig

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return _coerce_pipeline_type(v)

    @model_validator(mode="after")
    def inherit_identity(self) -> StageConfig:
        """Let the stage's name and type stand in for missing config values."""
        if not self.config.name and self.name:
            self.config.name = self.name
        if self.config.type is None and self.type is not None:
            self.config.type = self.type
        return self


class PipelineConfig(BaseModel):
    """Declarative description of a pipeline.

    Example:
        config = PipelineConfig.from_json(
            '{"name": "vote", "type": "parallel",'
            ' "providers": ["openai", "anthropic", "gemini"],'
            ' "combiner": "majority_vote"}'
        )
    """

    name: str = ""
    description: str = ""
    type: PipelineType | None = None
    version: str = ""

    provider: str = ""  # simple
    providers: list[str] = Field(default_factory=list)  # serial, parallel, ha, consensus

    combiner: CombinerType | None = None
    combiner_config: CombinerConfig = Field(default_factory=CombinerConfig)

    stages: list[StageConfig] = Field(default_factory=list)

    base_config: PipelineConfig | None = None
    input_transform: TransformConfig | None = None
    output_transform: TransformConfig | None = None

    #: ``retries`` (total attempts) and ``cache`` (TTL seconds) are understood.
    options: dict[str, Any] = Field(default_factory=dict)
    provider_configs: dict[str, ProviderOverrides] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return _coerce_pipeline_type(v)

    @field_validator("combiner", mode="before")
    @classmethod
    def normalize_combiner(cls, v: Any) -> Any:
        if v is None or v == "" or isinstance(v, CombinerType):
            return v or None
        if isinstance(v, str):
            try:
                return parse_combiner_type(v)
            except ConfigurationError as e:
                raise ValueError(str(e)) from None
        return v

    # --- Validation ---

    def problems(self) -> list[str]:
        """Every validation problem, nested stages and base config included."""
        found: list[str] = []
        if not self.name:
            found.append("name is required")
        if self.type is None:
            found.append("type is required")

        if self.type is PipelineType.SIMPLE and not self.provider:
            found.append("provider is required for simple pipeline")
        elif self.type in (PipelineType.SERIAL, PipelineType.PARALLEL) and not self.providers:
            found.append("at least one provider is required")
        elif self.type is PipelineType.NESTED and not self.stages:
            found.append("at least one stage is required")
        elif self.type is PipelineType.TRANSFORM and self.base_config is None:
            found.append("base configuration is required")
        elif self.type is PipelineType.HIGH_AVAILABILITY and not self.providers:
            found.append("at least one provider is required for high availability")
        elif self.type is PipelineType.CONSENSUS:
            if len(self.providers) < 2:
                found.append("at least two providers are required for consensus")
            if not self.combiner_config.judge_provider:
                found.append("judge provider is required for consensus")

        if self.type is PipelineType.PARALLEL and self.combiner is None:
            found.append("combiner type is required for parallel pipelines")

        cc = self.combiner_config
        if self.combiner is CombinerType.BEST_PICKER and not cc.picker_provider:
            found.append("picker provider is required for best picker combiner")
        if self.combiner is CombinerType.CONSENSUS and not cc.judge_provider:
            found.append("judge provider is required for consensus combiner")
        if self.combiner is CombinerType.JURY and not cc.jurors:
            found.append("at least one juror is required for jury combiner")
        if self.combiner is CombinerType.JURY and cc.voting_method not in VOTING_METHODS:
            found.append(f"unknown voting method: {cc.voting_method}")

        for i, stage in enumerate(self.stages):
            found += [f"stage {i}: {p}" for p in stage.config.problems()]
        if self.base_config is not None:
            found += [f"base config: {p}" for p in self.base_config.problems()]
        return found

    def validate(self) -> None:  # type: ignore[override]
        """Raise one ConfigurationError listing every problem."""
        found = self.problems()
        if found:
            raise ConfigurationError(f"validation failed: {'; '.join(found)}")

    # --- Serialization ---

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, exclude_defaults=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_defaults=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, validate: bool = True) -> PipelineConfig:
        try:
            config = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"failed to parse pipeline config: {e}") from e
        if validate:
            config.validate()
        return config

    @classmethod
    def from_json(cls, data: str | bytes) -> PipelineConfig:
        """Parse and validate a JSON document."""
        try:
            config = cls.model_validate_json(data)
        except ValidationError as e:
            raise ConfigurationError(f"failed to parse pipeline config: {e}") from e
        config.validate()
        return config

    def clone(self) -> PipelineConfig:
        return self.model_copy(deep=True)

    def all_providers(self) -> list[str]:
        """Sorted names of every provider referenced, recursively."""
        names: set[str] = set(self.providers)
        if self.provider:
            names.add(self.provider)
        cc = self.combiner_config
        names.update(n for n in (cc.picker_provider, cc.judge_provider) if n)
        names.update(cc.jurors)
        for stage in self.stages:
            names.update(stage.config.all_providers())
        if self.base_config is not None:
            names.update(self.base_config.all_providers())
        for transform in (self.input_transform, self.output_transform):
            if transform is not None and transform.type == "pipeline":
                names.update(PipelineConfig.model_validate(transform.config).all_providers())
        return sorted(names)


def _coerce_pipeline_type(v: Any) -> Any:
    if v is None or v == "" or isinstance(v, PipelineType):
        return v or None
    if isinstance(v, str):
        try:
            return parse_pipeline_type(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from None
    return v


StageConfig.model_rebuild()
PipelineConfig.model_rebuild()
