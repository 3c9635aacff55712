"""
Test configuration and fixtures.
"""

from typing import Optional

import pytest
import pytest_asyncio

from ragcore.exceptions import ProviderError
from ragcore.providers.base import LLMProvider
from ragcore.rag import (
    BaseEmbedding,
    Chunk,
    ChunkMetadata,
    FormatTag,
    MemoryChunkStore,
    SearchHit,
    SQLiteChunkStore,
)


class StaticEmbedding(BaseEmbedding):
    """Embedding that looks texts up in a fixed table."""

    def __init__(self, vectors: dict[str, list[float]], default: Optional[list[float]] = None):
        self.vectors = vectors
        self.default = default or [1.0, 1.0]
        self.document_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    @property
    def dimension(self) -> int:
        return len(self.default)

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [list(self.vectors.get(text, self.default)) for text in texts]

    async def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return list(self.vectors.get(text, self.default))


class KeywordEmbedding(BaseEmbedding):
    """Embedding that counts a few keywords, enough to rank by topic."""

    KEYWORDS = ("login", "database", "network")

    def __init__(self):
        self.document_calls: list[list[str]] = []

    @property
    def dimension(self) -> int:
        return len(self.KEYWORDS) + 1

    def _vector(self, text: str) -> list[float]:
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.KEYWORDS] + [0.1]

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [self._vector(text) for text in texts]

    async def embed_query(self, text: str) -> list[float]:
        return self._vector(text)


class FailingEmbedding(KeywordEmbedding):
    """Embedding whose document calls always fail."""

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        raise ProviderError("embedding service unavailable", status_code=503)


class ScriptedLLM(LLMProvider):
    """LLM that replays canned responses and records every prompt.

    A response that is an exception instance is raised instead of returned.
    The last response repeats once the script runs out.
    """

    def __init__(self, responses: list, timeout: float = 5.0, rate_limiter=None):
        super().__init__(model="scripted", timeout=timeout, rate_limiter=rate_limiter)
        self.responses = list(responses)
        self.prompts: list[str] = []
        self.calls: list[dict] = []

    async def _complete(self, prompt, max_tokens, temperature, system):
        self.prompts.append(prompt)
        self.calls.append({"max_tokens": max_tokens, "temperature": temperature})

        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def _translate_error(self, error: Exception) -> ProviderError:
        return ProviderError(f"translated: {error}")


@pytest.fixture
def make_chunk():
    """Factory for chunks with sensible defaults."""

    def _make(
        content: str = "content",
        source_path: str = "/docs/a.md",
        source_name: Optional[str] = None,
        sequence_index: int = 0,
        embedding: Optional[list[float]] = None,
        format_tag: FormatTag = FormatTag.MARKDOWN,
        **kwargs,
    ) -> Chunk:
        return Chunk(
            source_path=source_path,
            source_name=source_name or source_path.rsplit("/", 1)[-1],
            content=content,
            sequence_index=sequence_index,
            embedding=embedding,
            metadata=ChunkMetadata(format_tag=format_tag),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_hits(make_chunk):
    """Factory turning similarity scores into ranked hits."""

    def _make(similarities: list[float]) -> list[SearchHit]:
        return [
            SearchHit(
                chunk=make_chunk(
                    content=f"fragment {i}",
                    source_path=f"/docs/file{i}.md",
                    sequence_index=0,
                ),
                similarity=similarity,
                rank=i + 1,
            )
            for i, similarity in enumerate(similarities)
        ]

    return _make


@pytest.fixture
def memory_store():
    """In-memory chunk store."""
    return MemoryChunkStore()


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    """SQLite chunk store with a temp database."""
    store = SQLiteChunkStore(path=str(tmp_path / "chunks.db"))
    yield store
    await store.close()



@pytest.fixture
def static_embedding():
    """Factory for table-driven embeddings."""
    return StaticEmbedding


@pytest.fixture
def keyword_embedding():
    """Keyword-count embedding."""
    return KeywordEmbedding()


@pytest.fixture
def failing_embedding():
    """Embedding that fails every document call."""
    return FailingEmbedding()


@pytest.fixture
def scripted_llm():
    """Factory for LLMs that replay canned responses."""
    return ScriptedLLM
