"""Unit tests for council/providers/openrouter.py. The openai client is mocked."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from council.models import Message
from council.providers.base import MissingCredentialsError, ProviderError
from council.providers.openrouter import OpenRouterProvider, _delta_content

MESSAGES = [Message("system", "Be brief."), Message("user", "Hi?")]


def _chunk(content: str | None) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


class FakeStreamResponse:
    """Async context manager standing in for with_streaming_response.create(...)."""

    def __init__(self, lines: list[str], fail_on_enter: Exception | None = None) -> None:
        self._lines = lines
        self._fail_on_enter = fail_on_enter
        self.consumed = 0

    async def __aenter__(self) -> "FakeStreamResponse":
        if self._fail_on_enter:
            raise self._fail_on_enter
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def iter_lines(self):
        for line in self._lines:
            self.consumed += 1
            yield line


def _completion(content: str | None, total_tokens: int | None = 12):
    usage = SimpleNamespace(total_tokens=total_tokens) if total_tokens is not None else None
    choices = [SimpleNamespace(message=SimpleNamespace(content=content))] if content is not None else []
    return SimpleNamespace(choices=choices, usage=usage)


@pytest.fixture
def provider(sample_provider_config) -> OpenRouterProvider:
    p = OpenRouterProvider(sample_provider_config, api_key="sk-test")
    p._client = MagicMock()
    return p


async def _collect(provider: OpenRouterProvider) -> list[str]:
    return [token async for token in provider.chat_stream(MESSAGES, "model-a")]


# --- Construction ---

def test_missing_api_key_raises(sample_provider_config, monkeypatch):
    monkeypatch.delenv(sample_provider_config.api_key_env, raising=False)
    with pytest.raises(MissingCredentialsError, match="TEST_OPENROUTER_KEY"):
        OpenRouterProvider(sample_provider_config)


def test_api_key_from_environment(sample_provider_config, monkeypatch):
    monkeypatch.setenv(sample_provider_config.api_key_env, "sk-env")
    provider = OpenRouterProvider(sample_provider_config)
    assert provider.name() == "openrouter"


def test_missing_base_url_raises(sample_provider_config):
    sample_provider_config.base_url = ""
    with pytest.raises(ProviderError, match="base_url"):
        OpenRouterProvider(sample_provider_config, api_key="sk-test")


# --- chat() ---

async def test_chat_returns_first_choice_content(provider):
    provider._client.chat.completions.create = AsyncMock(return_value=_completion("Hello there"))
    assert await provider.chat(MESSAGES, "model-a") == "Hello there"


async def test_chat_sends_messages_and_settings(provider, sample_provider_config):
    create = AsyncMock(return_value=_completion("ok"))
    provider._client.chat.completions.create = create

    await provider.chat(MESSAGES, "model-b")

    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "model-b"
    assert kwargs["messages"] == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hi?"},
    ]
    assert kwargs["max_tokens"] == sample_provider_config.max_tokens
    assert kwargs["temperature"] == sample_provider_config.temperature


async def test_chat_returns_empty_string_without_choices(provider):
    provider._client.chat.completions.create = AsyncMock(return_value=_completion(None, total_tokens=None))
    assert await provider.chat(MESSAGES, "model-a") == ""


async def test_chat_wraps_api_errors(provider):
    provider._client.chat.completions.create = AsyncMock(side_effect=RuntimeError("401 Unauthorized"))
    with pytest.raises(ProviderError, match="401 Unauthorized"):
        await provider.chat(MESSAGES, "model-a")


async def test_chat_timeout(provider):
    provider._client.chat.completions.create = AsyncMock(side_effect=TimeoutError())
    with pytest.raises(ProviderError, match="timed out"):
        await provider.chat(MESSAGES, "model-a")


# --- chat_stream() ---

async def test_stream_yields_delta_content(provider):
    provider._client.chat.completions.with_streaming_response.create = MagicMock(
        return_value=FakeStreamResponse([_chunk("Hel"), _chunk("lo"), "data: [DONE]"])
    )
    assert await _collect(provider) == ["Hel", "lo"]


async def test_stream_requests_streaming(provider):
    create = MagicMock(return_value=FakeStreamResponse(["data: [DONE]"]))
    provider._client.chat.completions.with_streaming_response.create = create
    await _collect(provider)
    assert create.call_args.kwargs["stream"] is True
    assert create.call_args.kwargs["model"] == "model-a"


async def test_stream_skips_malformed_and_non_data_lines(provider):
    lines = [
        ": OPENROUTER PROCESSING",
        "",
        _chunk("A"),
        "data: {not json",
        "data: " + json.dumps({"choices": []}),
        "data: " + json.dumps({"choices": [{"delta": None}]}),
        _chunk(None),
        _chunk("B"),
        "data: [DONE]",
    ]
    provider._client.chat.completions.with_streaming_response.create = MagicMock(
        return_value=FakeStreamResponse(lines)
    )
    assert await _collect(provider) == ["A", "B"]


async def test_stream_stops_at_done_marker(provider):
    response = FakeStreamResponse([_chunk("A"), "data: [DONE]", _chunk("never")])
    provider._client.chat.completions.with_streaming_response.create = MagicMock(return_value=response)
    assert await _collect(provider) == ["A"]
    assert response.consumed == 2


async def test_stream_ends_when_body_closes_without_done(provider):
    provider._client.chat.completions.with_streaming_response.create = MagicMock(
        return_value=FakeStreamResponse([_chunk("A"), _chunk("B")])
    )
    assert await _collect(provider) == ["A", "B"]


async def test_stream_wraps_status_errors(provider):
    provider._client.chat.completions.with_streaming_response.create = MagicMock(
        return_value=FakeStreamResponse([], fail_on_enter=RuntimeError("502 Bad Gateway"))
    )
    with pytest.raises(ProviderError, match="502 Bad Gateway"):
        await _collect(provider)


def test_delta_content_helper():
    assert _delta_content(json.dumps({"choices": [{"delta": {"content": "x"}}]})) == "x"
    assert _delta_content("garbage") == ""
    assert _delta_content(json.dumps({"choices": [{"delta": {}}]})) == ""


async def test_close_closes_client(provider):
    provider._client.close = AsyncMock()
    await provider.close()
    provider._client.close.assert_awaited_once()
