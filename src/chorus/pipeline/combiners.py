"""Result combiners: reduce concurrent responses to one.

Every combiner receives responses in provider order and breaks ties in
favor of the earliest one. Inputs are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import random
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from chorus.errors import CombinerError
from chorus.pipeline.base import Rotation
from chorus.types import Response, Usage

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


@runtime_checkable
class ResultCombiner(Protocol):
    """Reduces a non-empty sequence of responses to one response."""

    async def combine(self, responses: Sequence[Response]) -> Response: ...  # noqa: D102


def require_responses(responses: Sequence[Response], combiner: str) -> None:
    if not responses:
        raise CombinerError(f"{combiner}: no responses to combine")


@dataclass(frozen=True)
class ConcatCombiner:
    """Join every non-empty response in provider order."""

    separator: str = "\n\n"

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "concat")
        parts: list[str] = []
        sources: list[str] = []
        usage = Usage()
        for r in responses:
            if r.content:
                parts.append(r.content)
                sources.append(r.provider)
            if r.usage is not None:
                usage = usage + r.usage
        return Response(
            content=self.separator.join(parts),
            provider="concat_combiner",
            model="combined",
            usage=usage,
            metadata={"source_count": len(sources), "sources": sources},
        )


@dataclass(frozen=True)
class MajorityVoteCombiner:
    """Pick the most common answer (whitespace-insensitive at the edges)."""

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "majority_vote")
        groups: dict[str, list[Response]] = {}
        for r in responses:
            groups.setdefault(r.content.strip(), []).append(r)

        winner: list[Response] = []
        for group in groups.values():
            if len(group) > len(winner):
                winner = group

        total = len(responses)
        return replace(
            winner[0],
            metadata={
                **winner[0].metadata,
                "votes": len(winner),
                "total_responses": total,
                "consensus_ratio": len(winner) / total,
            },
        )


@dataclass(frozen=True)
class LongestResponseCombiner:
    """Pick the longest response."""

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "longest")
        best = responses[0]
        for r in responses[1:]:
            if len(r.content) > len(best.content):
                best = r
        return best.with_metadata(length=len(best.content))


def quality_score(content: str, base_tokens: int = 50) -> float:
    """Score *content* on length and structure.

    Length earns partial credit below ``base_tokens`` characters, 50 points
    at the base, and 25 more at each of 2x and 4x. Multiple paragraphs, list
    markers and code fences add structure points.
    """
    if base_tokens <= 0:
        base_tokens = 50
    length = len(content)
    if length >= base_tokens:
        score = 50.0
        if length >= base_tokens * 2:
            score += 25.0
        if length >= base_tokens * 4:
            score += 25.0
    else:
        score = length / base_tokens * 50.0

    if "\n\n" in content:
        score += 20.0
    if any(marker in content for marker in ("\n- ", "\n* ", "\n1. ")):
        score += 15.0
    if "```" in content:
        score += 15.0
    return score


@dataclass(frozen=True)
class QualityScoreCombiner:
    """Pick the response with the highest heuristic quality score."""

    base_tokens: int = 50

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "quality_score")
        best = responses[0]
        best_score = quality_score(best.content, self.base_tokens)
        for r in responses[1:]:
            score = quality_score(r.content, self.base_tokens)
            if score > best_score:
                best, best_score = r, score
        return best.with_metadata(quality_score=best_score)


@dataclass(frozen=True)
class RoundRobinCombiner:
    """Rotate through positions across calls."""

    rotation: Rotation = field(default_factory=Rotation, compare=False, repr=False)

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "round_robin")
        index = self.rotation.next_index(len(responses))
        return responses[index].with_metadata(selected_index=index)


@dataclass(frozen=True)
class FirstSuccessfulCombiner:
    """Return the first response in provider order."""

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "first_successful")
        return responses[0]


@dataclass(frozen=True)
class RandomCombiner:
    rng: random.Random = field(default_factory=random.Random, compare=False)

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "random")
        return self.rng.choice(list(responses))


@dataclass(frozen=True)
class WeightedCombiner:
    """Pick the response whose provider carries the largest weight.

    Providers missing from ``weights`` count as 1.0.
    """

    weights: Mapping[str, float] = field(default_factory=dict)

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "weighted")
        best = responses[0]
        best_weight = self.weights.get(best.provider, 1.0)
        for r in responses[1:]:
            weight = self.weights.get(r.provider, 1.0)
            if weight > best_weight:
                best, best_weight = r, weight
        return best.with_metadata(selected_weight=best_weight)
