"""
Anthropic Claude LLM Provider.
"""

from typing import Optional

from ragcore.exceptions import ProviderError, UnauthorizedError, from_sdk_error

from .base import LLMProvider
from .ratelimit import TokenRateLimiter


class AnthropicProvider(LLMProvider):
    """
    LLM Provider for the Anthropic Messages API.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        model: str = "claude-3-7-sonnet-20250219",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float = 60.0,
        rate_limiter: Optional[TokenRateLimiter] = None,
    ):
        super().__init__(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
            rate_limiter=rate_limiter,
        )
        self.api_key = api_key
        self.base_url = base_url
        self._client = None

    def _get_client(self):
        """Get or create Anthropic client."""
        if self._client is None:
            try:
                from anthropic import AsyncAnthropic
            except ImportError:
                raise ImportError(
                    "anthropic package not installed. "
                    "Install with: pip install anthropic"
                )

            if not self.api_key:
                raise UnauthorizedError("Anthropic API key not configured")

            self._client = AsyncAnthropic(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
            )
        return self._client

    async def _complete(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        system: Optional[str],
    ) -> str:
        client = self._get_client()

        params = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            params["system"] = system

        response = await client.messages.create(**params)

        return "\n".join(
            block.text for block in response.content if block.type == "text"
        )

    def _translate_error(self, error: Exception) -> ProviderError:
        import anthropic

        return from_sdk_error(anthropic, error)
