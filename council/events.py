"""Event sinks observing a deliberation while it runs."""

from collections.abc import Callable

from council.models import Persona, Round


class CouncilEvents:
    """Base event sink. Every hook is a no-op, so an instance is the null sink.

    Hooks are observational only: nothing they do feeds back into the run.
    """

    def on_round_start(self, round_number: int, persona: Persona) -> None:
        """Called once per turn, before the turn's prompt is sent."""

    def on_token(self, token: str) -> None:
        """Called once per streamed chunk (streaming mode only)."""

    def on_round_complete(self, rnd: Round) -> None:
        """Called after every persona in a round has spoken."""


class CallbackEvents(CouncilEvents):
    """Event sink that forwards to plain callables."""

    def __init__(
        self,
        on_token: Callable[[str], None] | None = None,
        on_round_start: Callable[[int, Persona], None] | None = None,
        on_round_complete: Callable[[Round], None] | None = None,
    ) -> None:
        self._on_token = on_token
        self._on_round_start = on_round_start
        self._on_round_complete = on_round_complete

    def on_round_start(self, round_number: int, persona: Persona) -> None:
        if self._on_round_start:
            self._on_round_start(round_number, persona)

    def on_token(self, token: str) -> None:
        if self._on_token:
            self._on_token(token)

    def on_round_complete(self, rnd: Round) -> None:
        if self._on_round_complete:
            self._on_round_complete(rnd)
