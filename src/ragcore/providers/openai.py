"""
OpenAI LLM Provider.
"""

from typing import Optional

from ragcore.exceptions import ProviderError, UnauthorizedError, from_sdk_error

from .base import LLMProvider
from .ratelimit import TokenRateLimiter


class OpenAIProvider(LLMProvider):
    """
    LLM Provider for the OpenAI chat completions API.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        organization: str | None = None,
        *,
        model: str = "gpt-4o-mini",
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
        self.organization = organization
        self._client = None

    def _get_client(self):
        """Get or create OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError:
                raise ImportError(
                    "openai package not installed. "
                    "Install with: pip install openai"
                )

            if not self.api_key:
                raise UnauthorizedError("OpenAI API key not configured")

            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                organization=self.organization,
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

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = await client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def _translate_error(self, error: Exception) -> ProviderError:
        import openai

        return from_sdk_error(openai, error)
