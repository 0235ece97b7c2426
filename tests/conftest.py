"""Shared pytest fixtures."""

from collections.abc import AsyncIterator, Callable, Sequence
from pathlib import Path

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ProviderConfig, ServerConfig
from council.models import DeliberationResult, Message, Persona, Round, Turn
from council.providers.base import ChatService

Responder = Callable[[list[Message], str, int], str]


def _default_responder(messages: list[Message], model: str, call_number: int) -> str:
    return f"Reply {call_number} from {model}"


class MockChatService(ChatService):
    """Test double ChatService that records every call.

    `responder(messages, model, call_number)` produces the content; it may
    raise to simulate a transport failure. Streaming splits the same content
    into `chunk_size` pieces.
    """

    def __init__(self, responder: Responder | None = None, chunk_size: int = 4) -> None:
        self._responder = responder or _default_responder
        self._chunk_size = chunk_size
        self.calls: list[tuple[list[Message], str]] = []
        self.modes: list[str] = []
        self.closed = False

    def name(self) -> str:
        return "mock"

    def _respond(self, messages: Sequence[Message], model: str, mode: str) -> str:
        self.calls.append((list(messages), model))
        self.modes.append(mode)
        return self._responder(list(messages), model, len(self.calls))

    @property
    def models_called(self) -> list[str]:
        return [model for _, model in self.calls]

    def user_prompt(self, call_index: int) -> str:
        return self.calls[call_index][0][-1].content

    async def chat(self, messages: Sequence[Message], model: str) -> str:
        return self._respond(messages, model, "chat")

    async def chat_stream(self, messages: Sequence[Message], model: str) -> AsyncIterator[str]:
        content = self._respond(messages, model, "stream")
        for i in range(0, len(content), self._chunk_size):
            yield content[i:i + self._chunk_size]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def mock_service() -> MockChatService:
    return MockChatService()


@pytest.fixture
def sample_provider_config() -> ProviderConfig:
    return ProviderConfig(
        name="openrouter",
        base_url="https://openrouter.test/api/v1",
        api_key_env="TEST_OPENROUTER_KEY",
        timeout_sec=30,
        max_tokens=512,
        temperature=0.5,
        referer="https://example.test",
        title="Council Tests",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        agents=3,
        rounds=2,
        output_dir=tmp_path / "output",
        max_agents=6,
        max_rounds=4,
        models=["model-a", "model-b"],
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_provider_config: ProviderConfig,
) -> AppConfig:
    return AppConfig(
        defaults=sample_defaults_config,
        provider=sample_provider_config,
        server=ServerConfig(host="127.0.0.1", port=3999),
        api_key_available=True,
    )


@pytest.fixture
def sample_persona() -> Persona:
    return Persona(name="Tester", role="careful tester", system_prompt="You test things.")


@pytest.fixture
def sample_turn(sample_persona: Persona) -> Turn:
    return Turn(
        persona=sample_persona,
        model="model-a",
        content="Use YAML for human-editable config, JSON for machine interchange.",
    )


@pytest.fixture
def sample_round(sample_turn: Turn) -> Round:
    return Round(number=1, turns=(sample_turn,))


@pytest.fixture
def sample_result(sample_round: Round) -> DeliberationResult:
    return DeliberationResult(
        question="Should we use YAML or JSON for config?",
        rounds=(sample_round,),
        synthesis="## Consensus\nAll agreed.",
        synthesis_model="model-a",
        duration_sec=10.5,
    )
