"""
Base LLM Provider interface.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from ragcore.exceptions import ProviderError
from ragcore.rag.chunking import estimate_tokens

from .ratelimit import TokenRateLimiter

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Subclasses implement ``_complete`` and ``_translate_error``. The public
    ``complete`` adds the shared rate limiter, a timeout and error mapping,
    so every call site gets the same behaviour.
    """

    def __init__(
        self,
        *,
        model: str,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float = 60.0,
        rate_limiter: Optional[TokenRateLimiter] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.rate_limiter = rate_limiter

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> str:
        """
        Get a text completion for a single user prompt.

        Args:
            prompt: User prompt
            max_tokens: Maximum tokens to generate; defaults to the provider's
            temperature: Sampling temperature; defaults to the provider's
            system: Optional system prompt

        Returns:
            The generated text

        Raises:
            UnauthorizedError: If the provider rejects the credentials
            RateLimitedError: If the provider or the shared limiter refuses
            ProviderError: On any other failure, including timeouts
        """
        if max_tokens is None:
            max_tokens = self.max_tokens
        if temperature is None:
            temperature = self.temperature

        if self.rate_limiter is not None:
            await self.rate_limiter.acquire(self.count_tokens(prompt) + max_tokens)

        try:
            text = await asyncio.wait_for(
                self._complete(prompt, max_tokens, temperature, system),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError(
                f"{type(self).__name__} request timed out after {self.timeout:.0f}s"
            )
        except ProviderError:
            raise
        except ImportError:
            raise
        except Exception as e:
            raise self._translate_error(e) from e

        if not text or not text.strip():
            raise ProviderError(f"{type(self).__name__} returned an empty response")
        return text

    @abstractmethod
    async def _complete(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        system: Optional[str],
    ) -> str:
        """Perform the provider request and return the response text."""

    @abstractmethod
    def _translate_error(self, error: Exception) -> ProviderError:
        """Map an SDK exception onto the ragcore error taxonomy."""

    def count_tokens(self, text: str) -> int:
        """Estimate token count for text."""
        return estimate_tokens(text)
