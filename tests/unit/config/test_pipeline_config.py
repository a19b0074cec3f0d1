from __future__ import annotations

import json

import pytest

from chorus.errors import ConfigurationError
from chorus.pipeline import (
    CombinerType,
    PipelineConfig,
    PipelineType,
    parse_combiner_type,
    parse_pipeline_type,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("simple", PipelineType.SIMPLE),
        ("  Parallel ", PipelineType.PARALLEL),
        ("high-availability", PipelineType.HIGH_AVAILABILITY),
        ("HA", PipelineType.HIGH_AVAILABILITY),
    ],
)
def test_parse_pipeline_type(raw: str, expected: PipelineType) -> None:
    assert parse_pipeline_type(raw) is expected


def test_parse_rejects_unknown_names() -> None:
    with pytest.raises(ConfigurationError, match="unknown pipeline type: weird"):
        parse_pipeline_type("weird")
    with pytest.raises(ConfigurationError, match="unknown combiner type: loudest"):
        parse_combiner_type("loudest")
    assert parse_combiner_type("Majority-Vote") is CombinerType.MAJORITY_VOTE


def test_from_json_normalizes_types() -> None:
    config = PipelineConfig.from_json(
        json.dumps(
            {
                "name": "vote",
                "type": "Parallel",
                "providers": ["openai", "anthropic"],
                "combiner": "majority-vote",
            }
        )
    )

    assert config.type is PipelineType.PARALLEL
    assert config.combiner is CombinerType.MAJORITY_VOTE


def test_unknown_type_in_json_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="failed to parse"):
        PipelineConfig.from_json('{"name": "x", "type": "weird"}')


@pytest.mark.parametrize(
    ("data", "problem"),
    [
        ({"type": "simple", "provider": "p"}, "name is required"),
        ({"name": "x"}, "type is required"),
        ({"name": "x", "type": "simple"}, "provider is required for simple pipeline"),
        ({"name": "x", "type": "serial"}, "at least one provider is required"),
        (
            {"name": "x", "type": "parallel", "providers": ["a"]},
            "combiner type is required for parallel pipelines",
        ),
        ({"name": "x", "type": "nested"}, "at least one stage is required"),
        ({"name": "x", "type": "transform"}, "base configuration is required"),
        (
            {"name": "x", "type": "ha"},
            "at least one provider is required for high availability",
        ),
        (
            {
                "name": "x",
                "type": "consensus",
                "providers": ["a"],
                "combiner_config": {"judge_provider": "j"},
            },
            "at least two providers are required for consensus",
        ),
        (
            {"name": "x", "type": "consensus", "providers": ["a", "b"]},
            "judge provider is required for consensus",
        ),
        (
            {
                "name": "x",
                "type": "parallel",
                "providers": ["a"],
                "combiner": "best_picker",
            },
            "picker provider is required for best picker combiner",
        ),
        (
            {"name": "x", "type": "parallel", "providers": ["a"], "combiner": "jury"},
            "at least one juror is required for jury combiner",
        ),
        (
            {
                "name": "x",
                "type": "parallel",
                "providers": ["a"],
                "combiner": "jury",
                "combiner_config": {"jurors": ["j"], "voting_method": "loudest"},
            },
            "unknown voting method: loudest",
        ),
    ],
)
def test_validation_problems(data: dict, problem: str) -> None:
    config = PipelineConfig.from_dict(data, validate=False)

    assert problem in config.problems()
    with pytest.raises(ConfigurationError, match="validation failed"):
        config.validate()


def test_nested_problems_are_prefixed() -> None:
    config = PipelineConfig.from_dict(
        {
            "name": "outer",
            "type": "nested",
            "stages": [{"name": "s", "type": "simple", "config": {}}],
        },
        validate=False,
    )

    assert config.problems() == ["stage 0: provider is required for simple pipeline"]


def test_stage_identity_fills_missing_config_fields() -> None:
    config = PipelineConfig.from_dict(
        {
            "name": "outer",
            "type": "nested",
            "stages": [{"name": "first", "type": "simple", "config": {"provider": "p"}}],
        }
    )

    inner = config.stages[0].config
    assert inner.name == "first"
    assert inner.type is PipelineType.SIMPLE


def test_json_round_trip_preserves_the_config() -> None:
    config = PipelineConfig.from_dict(
        {
            "name": "story",
            "type": "transform",
            "base_config": {"name": "base", "type": "simple", "provider": "openai"},
            "output_transform": {"type": "suffix", "config": {"suffix": "!"}},
            "options": {"retries": 3},
            "provider_configs": {"openai": {"model": "gpt", "temperature": 0.1}},
        }
    )

    restored = PipelineConfig.from_json(config.to_json())

    assert restored.model_dump() == config.model_dump()
    assert '"description"' not in config.to_json()


def test_clone_is_deep() -> None:
    config = PipelineConfig.from_dict(
        {"name": "x", "type": "serial", "providers": ["a"]}
    )

    copy = config.clone()
    copy.providers.append("b")

    assert config.providers == ["a"]


def test_all_providers_walks_the_whole_tree() -> None:
    config = PipelineConfig.from_dict(
        {
            "name": "tree",
            "type": "nested",
            "stages": [
                {
                    "name": "vote",
                    "type": "parallel",
                    "config": {
                        "providers": ["b", "a"],
                        "combiner": "jury",
                        "combiner_config": {"jurors": ["j1"]},
                    },
                },
                {
                    "name": "polish",
                    "type": "transform",
                    "config": {
                        "base_config": {
                            "name": "base",
                            "type": "simple",
                            "provider": "c",
                        },
                        "input_transform": {
                            "type": "pipeline",
                            "config": {"type": "simple", "provider": "d"},
                        },
                    },
                },
            ],
        }
    )

    assert config.all_providers() == ["a", "b", "c", "d", "j1"]


def test_provider_overrides_become_provider_configs() -> None:
    config = PipelineConfig.from_dict(
        {
            "name": "x",
            "type": "simple",
            "provider": "openai",
            "provider_configs": {"openai": {"model": "gpt", "max_tokens": 100}},
        }
    )

    provider_config = config.provider_configs["openai"].to_provider_config()

    assert provider_config.model == "gpt"
    assert provider_config.max_tokens == 100
    assert provider_config.temperature == 0.7


def test_invalid_provider_override_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="failed to parse"):
        PipelineConfig.from_dict(
            {
                "name": "x",
                "type": "simple",
                "provider": "p",
                "provider_configs": {"p": {"temperature": 5}},
            }
        )
