"""LLM providers."""

from typing import Optional

from ragcore.utils.config import LLMConfig

from .anthropic import AnthropicProvider
from .base import LLMProvider
from .openai import OpenAIProvider
from .ratelimit import TokenRateLimiter


def create_provider(
    config: LLMConfig,
    rate_limiter: Optional[TokenRateLimiter] = None,
) -> LLMProvider:
    """Build the provider named by ``config``.

    When ``config.tokens_per_minute`` is set and no limiter is passed in, a
    new limiter is created for this provider. Pass the same limiter to every
    provider that should share one budget.
    """
    if rate_limiter is None and config.tokens_per_minute:
        rate_limiter = TokenRateLimiter(
            max_tokens=config.tokens_per_minute,
            window_seconds=60.0,
            max_wait=config.max_rate_limit_wait,
        )

    if config.provider == "openai":
        return OpenAIProvider(
            api_key=config.resolved_api_key(),
            base_url=config.base_url,
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            timeout=config.timeout,
            rate_limiter=rate_limiter,
        )

    return AnthropicProvider(
        api_key=config.resolved_api_key(),
        base_url=config.base_url,
        model=config.model,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
        timeout=config.timeout,
        rate_limiter=rate_limiter,
    )


__all__ = [
    "AnthropicProvider",
    "LLMProvider",
    "OpenAIProvider",
    "TokenRateLimiter",
    "create_provider",
]
