"""Multi-round discussion between providers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
import logging
from typing import TYPE_CHECKING

from chorus.errors import ConfigurationError, PipelineError
from chorus.pipeline.base import BasePipeline
from chorus.pipeline.simple import SimplePipeline
from chorus.types import Request, Response

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chorus.providers.base import Provider

log = logging.getLogger(__name__)

_OPENING_PROMPT = """You are participating in a collaborative discussion to solve the following problem:

{question}

Provide your initial thoughts and approach to this problem. Be clear and concise."""

_ROUND_PROMPT = """You are participating in a collaborative discussion to solve the following problem:

Question: {question}

Here is the conversation so far:

{history}

You are {speaker}. It's now round {round} of the discussion.

Review the previous contributions and build on them. You can:
1. Add new insights
2. Improve existing ideas
3. Address gaps or limitations
4. Suggest a synthesis of the best ideas

Be constructive and focus on advancing the solution."""

_SUMMARY_PROMPT = (
    "{transcript}\n\nPlease provide a concise summary of this discussion, "
    "highlighting the key points and areas of agreement or disagreement."
)


@dataclass(frozen=True)
class Turn:
    speaker: str
    content: str


@dataclass
class Round:
    number: int
    turns: list[Turn] = field(default_factory=list)

    def render(self) -> str:
        body = "".join(f"{t.speaker}: {t.content}\n\n" for t in self.turns)
        return f"--- Round {self.number} ---\n{body}"


@dataclass
class Discussion:
    question: str
    rounds: list[Round] = field(default_factory=list)

    def history(self) -> str:
        return "".join(r.render() for r in self.rounds)

    def transcript(self) -> str:
        return (
            f"=== Collaborative Discussion: {truncate_question(self.question)} ===\n\n"
            f"{self.history()}"
        )


def truncate_question(question: str, limit: int = 50) -> str:
    if len(question) <= limit:
        return question
    return question[: limit - 3] + "..."


@dataclass(frozen=True)
class CollaborativePipeline(BasePipeline):
    """Providers discuss a question over several rounds.

    Round 1 asks every provider concurrently for opening thoughts. Later
    rounds go to each provider in turn with the transcript so far. The
    result is the transcript; with ``summarize=True`` the first provider
    condenses it and the transcript moves to ``metadata["full_discussion"]``.
    """

    kind = "collaborative"

    providers: Sequence[Provider]
    rounds: int = 3
    summarize: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "providers", tuple(self.providers))
        if not self.providers:
            raise ConfigurationError(
                "collaborative pipeline needs at least one provider"
            )
        if self.rounds < 1:
            raise ConfigurationError(f"rounds must be ≥ 1, got {self.rounds}")

    async def execute_request(self, request: Request) -> Response:
        discussion = Discussion(question=request.prompt)

        opening = request.derive(_OPENING_PROMPT.format(question=request.prompt))
        outcomes = await asyncio.gather(
            *(self._speak(p, opening, 1) for p in self.providers),
            return_exceptions=True,
        )
        first = Round(number=1)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            first.turns.append(outcome)
        discussion.rounds.append(first)

        for number in range(2, self.rounds + 1):
            current = Round(number=number)
            for provider in self.providers:
                prompt = _ROUND_PROMPT.format(
                    question=request.prompt,
                    history=discussion.history(),
                    speaker=provider.name,
                    round=number,
                )
                current.turns.append(
                    await self._speak(provider, request.derive(prompt), number)
                )
            discussion.rounds.append(current)

        transcript = discussion.transcript()
        metadata = {
            "rounds": self.rounds,
            "providers": [p.name for p in self.providers],
        }
        if self.summarize:
            summary = await self._summarize(request, transcript)
            if summary is not None:
                return Response(
                    content=summary.content,
                    provider=self.kind,
                    model=summary.model,
                    usage=summary.usage,
                    metadata={**metadata, "full_discussion": transcript},
                )
        return Response(content=transcript, provider=self.kind, metadata=metadata)

    async def _speak(self, provider: Provider, request: Request, number: int) -> Turn:
        pipeline = SimplePipeline(
            provider, options=replace(self.options, fallbacks=(), cache=False)
        )
        try:
            response = await pipeline.execute_request(request)
        except PipelineError as e:
            cause = e.__cause__ or e
            raise PipelineError(
                f"provider {provider.name} failed in round {number}: {cause}",
                pipeline=self.name,
                op="execute",
            ) from cause
        return Turn(speaker=provider.name, content=response.content)

    async def _summarize(self, request: Request, transcript: str) -> Response | None:
        summarizer = self.providers[0]
        prompt = _SUMMARY_PROMPT.format(transcript=transcript)
        try:
            return await summarizer.generate(
                Request(prompt=prompt, temperature=0.3, max_tokens=request.max_tokens)
            )
        except Exception as e:
            log.warning(
                "Summary by %s failed; returning the full discussion: %s",
                summarizer.name,
                e,
            )
            return None
