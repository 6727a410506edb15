from abc import ABC, abstractmethod


class CompletionFailure(Exception):
    """The completion service errored, timed out, or returned unusable content."""


class AIProvider(ABC):
    """Abstract base class for all AI providers."""

    DEFAULT_REASONING_MODEL = ""
    DEFAULT_UTILITY_MODEL = ""

    def __init__(
        self,
        api_key: str,
        reasoning_model: str | None = None,
        utility_model: str | None = None,
        timeout_seconds: float = 120,
    ):
        self.api_key = api_key
        self._reasoning_model = reasoning_model
        self._utility_model = utility_model
        self._timeout_seconds = timeout_seconds

    @abstractmethod
    async def chat(
        self,
        messages: list[dict],
        model: str,
        system: str = "",
        json_response: bool = False,
    ) -> dict:
        """Send a chat request to the provider.

        Args:
            messages: List of message dicts with role ("user" | "assistant") and content.
            model: Model identifier to use.
            system: Optional system prompt.
            json_response: Ask the model for a JSON document instead of prose.

        Returns:
            dict with content, tokens_in, tokens_out, model.

        Raises:
            CompletionFailure on transport errors or non-success responses.
        """
        ...

    @abstractmethod
    async def chat_with_media(
        self,
        messages: list[dict],
        media_bytes: bytes,
        mime_type: str,
        model: str,
        system: str = "",
        json_response: bool = False,
    ) -> dict:
        """Send a chat request with an inline document or image attached to the last user turn.

        Returns:
            dict with content, tokens_in, tokens_out, model.
        """
        ...

    def get_reasoning_model(self) -> str:
        """Return the reasoning (higher-capability) model identifier."""
        return self._reasoning_model or self.DEFAULT_REASONING_MODEL

    def get_utility_model(self) -> str:
        """Return the utility (faster/cheaper) model identifier."""
        return self._utility_model or self.DEFAULT_UTILITY_MODEL
