"""
LLM client for the operations assistant using Anthropic Claude.

Single-shot text generation: one prompt in, one text answer out. No
streaming, no tools and no conversation state.
"""
from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from core.config import ChatConfig
from core.exceptions import ChatConfigurationError, ProviderError
from core.observability import get_logger

logger = get_logger(__name__)


class LLMClient:
    """Async client for Claude text generation."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-20250514", max_tokens: int = 1000):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self._client: Optional[AsyncAnthropic] = None

    @classmethod
    def from_config(cls, config: ChatConfig) -> "LLMClient":
        return cls(api_key=config.api_key, model=config.model, max_tokens=config.max_tokens)

    @property
    def client(self) -> AsyncAnthropic:
        """Lazy-initialize Anthropic client."""
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    @property
    def is_available(self) -> bool:
        """Check if LLM is configured."""
        return bool(self.api_key)

    async def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """
        Send one prompt and return the concatenated text of the reply.

        Args:
            prompt: Full prompt text (sent as a single user message)
            max_tokens: Max response tokens (default: client setting)

        Returns:
            Reply text (may be empty)

        Raises:
            ChatConfigurationError: If no API key is configured
            ProviderError: If the API call fails
        """
        if not self.is_available:
            raise ChatConfigurationError("ANTHROPIC_API_KEY is not set")

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens or self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise ProviderError("Anthropic API error", getattr(e, "message", str(e)))

        logger.debug(
            "LLM response received",
            extra={
                "model": self.model,
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            }
        )
        return "".join(block.text for block in response.content if block.type == "text")
