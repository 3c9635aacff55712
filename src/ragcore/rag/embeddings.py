"""Embedding provider implementations."""

import asyncio
import logging
from typing import Optional

from ragcore.exceptions import (
    InputError,
    ProviderError,
    UnauthorizedError,
    from_sdk_error,
)
from ragcore.utils.config import EmbeddingConfig

from .base import BaseEmbedding

logger = logging.getLogger(__name__)


class OpenAIEmbedding(BaseEmbedding):
    """OpenAI embedding model.

    Uses OpenAI's embedding API (text-embedding-3-small/large).

    Large batches are split into sub-batches of ``max_batch_size`` with a
    short pause between them to stay under provider throttling. Any failing
    sub-batch aborts the whole call; partial results are never returned.
    Every request is bounded by ``timeout`` and is not retried here.
    """

    # Known model dimensions
    MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        """Initialize the OpenAI embedding model.

        Args:
            config: Model, credentials, batching and timeout settings
        """
        self.config = config or EmbeddingConfig()
        self.model = self.config.model
        self.max_batch_size = self.config.max_batch_size
        self._client = None

    @property
    def dimension(self) -> int:
        return self.MODEL_DIMENSIONS.get(self.model, 1536)

    def _get_client(self):
        """Get or create the OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError:
                raise ImportError(
                    "OpenAI embedding requires the 'openai' package. "
                    "Install it with: pip install openai"
                )

            if not self.config.api_key:
                raise UnauthorizedError("OpenAI API key not configured")

            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                max_retries=0,
            )
        return self._client

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of texts, splitting into provider-sized batches."""
        if not texts:
            return []

        for i, text in enumerate(texts):
            if not text or not text.strip():
                raise InputError(f"Cannot embed empty text (batch position {i})")

        all_embeddings: list[list[float]] = []

        for start in range(0, len(texts), self.max_batch_size):
            if start > 0 and self.config.batch_delay > 0:
                await asyncio.sleep(self.config.batch_delay)

            batch = texts[start:start + self.max_batch_size]
            all_embeddings.extend(await self._request(batch))

            logger.debug(
                f"Embedded {min(start + len(batch), len(texts))}/{len(texts)} texts"
            )

        return all_embeddings

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query."""
        if not text or not text.strip():
            raise InputError("Cannot embed empty text")

        embeddings = await self._request([text])
        return embeddings[0]

    async def _request(self, batch: list[str]) -> list[list[float]]:
        """Run one time-bounded embeddings request."""
        client = self._get_client()

        try:
            response = await asyncio.wait_for(
                client.embeddings.create(model=self.model, input=batch),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError(
                f"Embedding request timed out after {self.config.timeout:.0f}s"
            )
        except Exception as e:
            import openai

            raise from_sdk_error(openai, e) from e

        items = sorted(response.data, key=lambda item: item.index)
        if len(items) != len(batch):
            raise ProviderError(
                f"Expected {len(batch)} embeddings, received {len(items)}"
            )

        return [list(item.embedding) for item in items]
