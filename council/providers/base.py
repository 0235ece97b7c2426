"""Abstract chat service consumed by the deliberation engine."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence

from council.models import Message


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class MissingCredentialsError(ProviderError):
    """Raised at construction when the provider's API key is not set."""


class ChatService(ABC):
    """Completes a message exchange, either in one call or as a token stream."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'openrouter')."""
        ...

    @abstractmethod
    async def chat(self, messages: Sequence[Message], model: str) -> str:
        """Return the content of the first completion choice, or "" if absent.

        Raises:
            ProviderError: On non-success status, connection failure or timeout.
        """
        ...

    @abstractmethod
    def chat_stream(self, messages: Sequence[Message], model: str) -> AsyncIterator[str]:
        """Yield content fragments as they arrive.

        The iterator is finite and single-use, and must support aclose() so
        callers can release the response early. It ends at the service's
        end-of-stream marker or when the body closes. Unparseable fragments
        are skipped.

        Raises:
            ProviderError: On non-success status or connection failure.
        """
        ...

    async def close(self) -> None:
        """Release transport resources. Default: nothing to release."""
