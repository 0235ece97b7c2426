"""OpenRouter chat service using openai SDK (OpenAI-compatible API)."""

import asyncio
import json
import logging
import os
import time
from collections.abc import AsyncIterator, Sequence

from openai import AsyncOpenAI

from config.config_loader import ProviderConfig
from council.models import Message
from council.providers.base import ChatService, MissingCredentialsError, ProviderError

logger = logging.getLogger(__name__)

_DATA_PREFIX = "data: "
_DONE_MARKER = "[DONE]"


def _delta_content(data: str) -> str:
    """Extract choices[0].delta.content from one stream payload, "" if absent or malformed."""
    try:
        parsed = json.loads(data)
        return parsed["choices"][0]["delta"].get("content") or ""
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        logger.debug("Skipping malformed stream fragment: %.80s", data)
        return ""


class OpenRouterProvider(ChatService):
    """OpenRouter provider via OpenAI-compatible API."""

    def __init__(self, config: ProviderConfig, api_key: str | None = None) -> None:
        self._config = config
        api_key = (api_key or os.environ.get(config.api_key_env, "")).strip()
        if not api_key:
            raise MissingCredentialsError(config.name, f"Missing API key: {config.api_key_env}")
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for OpenRouter provider")
        headers = {}
        if config.referer:
            headers["HTTP-Referer"] = config.referer
        if config.title:
            headers["X-Title"] = config.title
        # No SDK-level retries: a failed call aborts the deliberation.
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=config.base_url,
            timeout=config.timeout_sec,
            max_retries=0,
            default_headers=headers,
        )

    def name(self) -> str:
        return self._config.name

    def _payload(self, messages: Sequence[Message], model: str) -> dict:
        return {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
        }

    async def chat(self, messages: Sequence[Message], model: str) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(**self._payload(messages, model)),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        content = choice.message.content if choice and choice.message else None

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("OpenRouter %s: %.2fs, %s tokens", model, latency, token_count)
        return content or ""

    async def chat_stream(self, messages: Sequence[Message], model: str) -> AsyncIterator[str]:
        start = time.monotonic()
        try:
            async with self._client.chat.completions.with_streaming_response.create(
                **self._payload(messages, model),
                stream=True,
            ) as response:
                async for line in response.iter_lines():
                    if not line.startswith(_DATA_PREFIX):
                        continue
                    data = line[len(_DATA_PREFIX):]
                    if data == _DONE_MARKER:
                        break
                    token = _delta_content(data)
                    if token:
                        yield token
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(self._config.name, f"Stream failed: {exc}") from exc

        logger.info("OpenRouter %s stream: %.2fs", model, time.monotonic() - start)

    async def close(self) -> None:
        await self._client.close()
