"""Combiners that ask other providers to judge the candidates."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import re
from typing import TYPE_CHECKING

from chorus.errors import CombinerError, ConfigurationError
from chorus.pipeline.combiners import require_responses
from chorus.types import Request, Response

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from chorus.providers.base import Provider

log = logging.getLogger(__name__)

VOTING_METHODS = ("majority", "consensus", "weighted")

_NUMBER = re.compile(r"\d+")


def _label(response: Response, index: int) -> str:
    return response.provider or f"Provider {index}"


def _enumerate(responses: Sequence[Response], header: str) -> str:
    return "".join(
        header.format(i=i, provider=_label(r, i), content=r.content)
        for i, r in enumerate(responses, start=1)
    )


@dataclass(frozen=True)
class BestPickerCombiner:
    """Ask a judge to pick the best candidate and explain why.

    The combined content shows every candidate followed by the judge's
    evaluation, so readers can check the verdict against the sources.
    """

    judge: Provider

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "best_picker")
        if len(responses) == 1:
            return responses[0]

        prompt = "Given these responses, select the best one and explain why:\n\n"
        prompt += _enumerate(responses, "Response {i} ({provider}):\n{content}\n\n")
        try:
            verdict = await self.judge.generate(Request(prompt=prompt, temperature=0.1))
        except Exception as e:
            raise CombinerError(
                f"judge {self.judge.name} failed to evaluate: {e}"
            ) from e

        evaluation = verdict.content.strip()
        candidates = _enumerate(responses, "\n=== Response {i} ({provider}) ===\n{content}\n\n")
        return Response(
            content=f"{candidates}\n=== Evaluation ===\n{evaluation}",
            provider=self.judge.name,
            model=verdict.model,
            usage=verdict.usage,
            metadata={
                "judge_provider": self.judge.name,
                "total_responses": len(responses),
                "selected_index": selected_index(evaluation, len(responses)),
            },
        )


def selected_index(judgment: str, count: int) -> int:
    """Return the first candidate number (1-based) mentioned in *judgment*."""
    for match in _NUMBER.finditer(judgment):
        number = int(match.group())
        if 1 <= number <= count:
            return number
    return 1


@dataclass(frozen=True)
class ConsensusCombiner:
    """Ask a judge to synthesize where the candidates agree and disagree."""

    judge: Provider
    max_tokens: int = 2048

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "consensus")
        if len(responses) == 1:
            return responses[0]

        prompt = (
            "Multiple AI providers have given the following responses. "
            "Please synthesize these into a single, consensus response that "
            "captures the key points where they agree and notes any "
            "significant disagreements:\n\n"
        )
        prompt += _enumerate(responses, "Response {i} (from {provider}):\n{content}\n\n")
        prompt += "Synthesized consensus response:"
        try:
            synthesis = await self.judge.generate(
                Request(prompt=prompt, max_tokens=self.max_tokens)
            )
        except Exception as e:
            raise CombinerError(f"failed to generate consensus: {e}") from e

        return synthesis.with_metadata(
            consensus_from=len(responses),
            sources=[r.provider for r in responses],
            method="ai_synthesis",
        )


_JURY_PROMPT = """You are a member of an AI jury tasked with evaluating responses to a question or task.

The following responses were provided by different AI systems:

{responses}

Your task:
1. Carefully review each response
2. Evaluate them based on accuracy, completeness, clarity, and relevance
3. Provide your vote for the BEST response (just the number)
4. Explain your reasoning in 2-3 sentences

Format your answer as:
VOTE: [response number]
REASON: [your explanation]"""


@dataclass(frozen=True)
class Ballot:
    juror: str
    vote: int
    reason: str


def parse_ballot(juror: str, text: str, count: int) -> Ballot:
    """Parse a ``VOTE: N`` / ``REASON: text`` reply.

    Missing, malformed and out-of-range votes count as a vote for 1.
    """
    vote = 0
    reason = ""
    for raw in text.splitlines():
        line = raw.strip()
        upper = line.upper()
        if upper.startswith("VOTE:"):
            match = _NUMBER.match(line[5:].strip())
            vote = int(match.group()) if match else 0
        elif upper.startswith("REASON:"):
            reason = line[7:].strip()
    if not 1 <= vote <= count:
        vote = 1
    return Ballot(juror=juror, vote=vote, reason=reason)


@dataclass(frozen=True)
class JuryCombiner:
    """Poll several juror providers and pick the winning candidate.

    ``voting_method``:

    - ``majority``: most votes wins; ties go to the candidate whose first
      ballot came earliest in juror order.
    - ``consensus``: unanimous vote wins, otherwise majority.
    - ``weighted``: like majority, but each juror's ballot counts
      ``weights[juror.name]`` (default 1.0).
    """

    jurors: Sequence[Provider]
    voting_method: str = "majority"
    weights: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "jurors", tuple(self.jurors))
        if not self.jurors:
            raise ConfigurationError("jury requires at least one juror")
        if self.voting_method not in VOTING_METHODS:
            raise ConfigurationError(
                f"unknown voting method {self.voting_method!r}",
                hint=f"Use one of: {', '.join(VOTING_METHODS)}",
            )

    async def combine(self, responses: Sequence[Response]) -> Response:
        require_responses(responses, "jury")
        listing = _enumerate(responses, "\n=== Response {i} ({provider}) ===\n{content}\n\n")
        prompt = _JURY_PROMPT.format(responses=listing)
        ballots = await asyncio.gather(
            *(self._poll(juror, prompt, len(responses)) for juror in self.jurors)
        )

        winner, deliberation, tally = self._decide(ballots)
        chosen = responses[winner - 1]
        lines = [f"=== Jury Deliberation ===\n{deliberation}\n", "=== Votes ==="]
        lines += [
            f"{b.juror} voted for Response {b.vote}: {b.reason}" for b in ballots
        ]
        lines.append(
            f"\n=== Winning Response ({_label(chosen, winner)}) ===\n{chosen.content}\n"
        )
        return Response(
            content="\n".join(lines),
            provider=chosen.provider,
            model=chosen.model,
            usage=chosen.usage,
            metadata={
                "votes": [(b.juror, b.vote) for b in ballots],
                "winner": winner,
                "voting_method": self.voting_method,
                "tally": tally,
            },
        )

    async def _poll(self, juror: Provider, prompt: str, count: int) -> Ballot:
        try:
            reply = await juror.generate(Request(prompt=prompt))
        except Exception as e:
            raise CombinerError(f"juror {juror.name} failed to vote: {e}") from e
        ballot = parse_ballot(juror.name, reply.content, count)
        log.debug("Juror %s voted for response %d", juror.name, ballot.vote)
        return ballot

    def _decide(self, ballots: Sequence[Ballot]) -> tuple[int, str, dict[int, float]]:
        weighted = self.voting_method == "weighted"
        tally: dict[int, float] = {}
        for b in ballots:
            weight = self.weights.get(b.juror, 1.0) if weighted else 1.0
            tally[b.vote] = tally.get(b.vote, 0.0) + weight

        winner, score = next(iter(tally.items()))
        for vote, total in tally.items():
            if total > score:
                winner, score = vote, total

        if self.voting_method == "consensus":
            if len(tally) == 1:
                return winner, "The jury reached consensus.", tally
            return (
                winner,
                "The jury failed to reach consensus. The response with the "
                f"most votes ({score:g}/{len(ballots)}) was selected.",
                tally,
            )
        if weighted:
            return (
                winner,
                "The jury selected the response with the highest weighted "
                f"score ({score:g}/{sum(tally.values()):g}).",
                tally,
            )
        return (
            winner,
            f"The jury selected the response with the most votes ({score:g}/{len(ballots)}).",
            tally,
        )
