"""Deliberation orchestration: sequential persona turns across rounds, then synthesis."""

import logging
import time
from collections.abc import Sequence
from contextlib import aclosing
from dataclasses import dataclass, field

from council.events import CouncilEvents
from council.models import DeliberationResult, Message, Persona, Round, Turn
from council.personas import DEFAULT_PERSONAS, REVIEW_PERSONAS, get_personas
from council.prompts import (
    build_decision_question,
    build_review_question,
    build_synthesis_messages,
    build_turn_messages,
    transcript_line,
)
from council.providers.base import ChatService
from council.validation import validate_not_empty, validate_options

logger = logging.getLogger(__name__)

DEFAULT_MODELS: tuple[str, ...] = (
    "google/gemini-2.0-flash-001",
    "stepfun/step-2-16k-nothink",
    "meta-llama/llama-3.3-70b-instruct",
)


class ConfigurationError(ValueError):
    """Raised when a Council is built from an unusable configuration."""


@dataclass(frozen=True)
class CouncilConfig:
    agents: int = 3
    rounds: int = 2
    models: tuple[str, ...] = DEFAULT_MODELS
    stream: bool = False
    events: CouncilEvents = field(default_factory=CouncilEvents)
    personas: tuple[Persona, ...] = DEFAULT_PERSONAS  # base catalog for deliberate/decide

    def __post_init__(self) -> None:
        object.__setattr__(self, "models", tuple(self.models))
        object.__setattr__(self, "personas", tuple(self.personas))


class _Run:
    """State owned by exactly one deliberation: the transcript and finished rounds."""

    def __init__(self, service: ChatService, config: CouncilConfig, personas: Sequence[Persona]) -> None:
        self._service = service
        self._config = config
        self._events = config.events
        self._personas = tuple(personas)
        self._history: list[str] = []
        self._rounds: list[Round] = []

    def _model_for(self, index: int) -> str:
        models = self._config.models
        return models[index % len(models)]

    async def _complete(self, messages: list[Message], model: str) -> str:
        if not self._config.stream:
            return await self._service.chat(messages, model)

        parts: list[str] = []
        async with aclosing(self._service.chat_stream(messages, model)) as stream:
            async for token in stream:
                parts.append(token)
                self._events.on_token(token)
        return "".join(parts)

    async def _run_round(self, question: str, round_num: int) -> Round:
        turns: list[Turn] = []
        for i, persona in enumerate(self._personas):
            model = self._model_for(i)
            self._events.on_round_start(round_num, persona)

            messages = build_turn_messages(question, round_num, self._history, persona)
            logger.debug("Round %d: %s -> %s (%d prior turns)", round_num, persona.name, model, len(self._history))

            content = await self._complete(messages, model)

            turns.append(Turn(persona=persona, model=model, content=content))
            self._history.append(transcript_line(persona, content))
        return Round(number=round_num, turns=tuple(turns))

    async def _synthesize(self, question: str, model: str) -> str:
        all_turns = [turn for rnd in self._rounds for turn in rnd.turns]
        discussion = "\n\n".join(transcript_line(t.persona, t.content) for t in all_turns)
        logger.info("Running synthesis via %s over %d turns", model, len(all_turns))
        return await self._complete(build_synthesis_messages(question, discussion), model)

    async def execute(self, question: str) -> DeliberationResult:
        start = time.monotonic()
        # No personas means no turns: the rounds list stays empty.
        num_rounds = self._config.rounds if self._personas else 0

        for round_num in range(1, num_rounds + 1):
            logger.info("Starting round %d with %d personas", round_num, len(self._personas))
            current_round = await self._run_round(question, round_num)
            self._rounds.append(current_round)
            logger.info("Round %d complete: %d turns", round_num, len(current_round.turns))
            self._events.on_round_complete(current_round)

        synthesis_model = self._config.models[0]
        synthesis = await self._synthesize(question, synthesis_model)

        return DeliberationResult(
            question=question,
            rounds=tuple(self._rounds),
            synthesis=synthesis,
            synthesis_model=synthesis_model,
            duration_sec=time.monotonic() - start,
        )


class Council:
    """Runs persona deliberations against a chat service.

    A Council only holds immutable configuration. Every call to
    deliberate/review/decide builds its own run state, so one instance can
    be reused without carrying history between calls.

    Args:
        service: The ChatService every turn and the synthesis are sent to.
        config: Agent/round counts, models, streaming flag and event sink.

    Raises:
        ConfigurationError: If config.models is empty.
    """

    def __init__(self, service: ChatService, config: CouncilConfig | None = None) -> None:
        self._service = service
        self._config = config or CouncilConfig()
        if not self._config.models:
            raise ConfigurationError("At least one model is required")
        self._personas = get_personas(self._config.agents, self._config.personas)

    @property
    def config(self) -> CouncilConfig:
        return self._config

    @property
    def personas(self) -> tuple[Persona, ...]:
        return self._personas

    async def _run(self, question: str, personas: Sequence[Persona]) -> DeliberationResult:
        return await _Run(self._service, self._config, personas).execute(question)

    async def deliberate(self, question: str) -> DeliberationResult:
        """Debate a free-form question with the configured personas.

        Raises:
            ValidationError: If the question is empty.
            ProviderError: If any chat call fails; no partial result is returned.
        """
        validate_not_empty(question, "question")
        return await self._run(question, self._personas)

    async def review(self, file_path: str, file_content: str) -> DeliberationResult:
        """Review a source file with the security/maintainability/performance triad."""
        validate_not_empty(file_content, "file content")
        question = build_review_question(file_path or "code", file_content)
        personas = REVIEW_PERSONAS[: max(self._config.agents, 0)]
        return await self._run(question, personas)

    async def decide(self, options: Sequence[str]) -> DeliberationResult:
        """Weigh two or more options and recommend one.

        Raises:
            ValidationError: If fewer than two non-empty options are given.
        """
        cleaned = validate_options(options)
        return await self._run(build_decision_question(cleaned), self._personas)
