"""Base classes and abstract interfaces for RAG components."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .document import Chunk, StoreStatistics


class BaseEmbedding(ABC):
    """Abstract base class for embedding providers.

    Embedding providers convert text into fixed-length vectors. Batch calls
    preserve input order: ``embed_documents(texts)[i]`` embeds ``texts[i]``.
    """

    max_batch_size: int = 100

    @abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of texts.

        Args:
            texts: List of text strings to embed

        Returns:
            One embedding vector per input text, in input order

        Raises:
            InputError: If any text is empty
            ProviderError: If the provider call fails
        """

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query.

        Args:
            text: Query text to embed

        Returns:
            Embedding vector
        """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""

    async def embed_chunks(self, chunks: list["Chunk"]) -> list["Chunk"]:
        """Return copies of ``chunks`` carrying their embeddings."""
        if not chunks:
            return []
        embeddings = await self.embed_documents([chunk.content for chunk in chunks])
        return [chunk.with_embedding(vector) for chunk, vector in zip(chunks, embeddings)]


class BaseChunkStore(ABC):
    """Abstract base class for durable chunk storage.

    ``id`` is the primary key and an upsert replaces the whole row. All
    operations on one store instance are serialized, so readers never see a
    partially written row. Failures surface as ``StorageError``.
    """

    @abstractmethod
    async def upsert(self, chunk: "Chunk") -> str:
        """Insert or fully replace a chunk.

        Returns:
            The chunk ID
        """

    @abstractmethod
    async def upsert_many(self, chunks: list["Chunk"]) -> list[str]:
        """Insert or replace several chunks atomically.

        Returns:
            The chunk IDs, in input order
        """

    @abstractmethod
    async def get(self, id: str) -> Optional["Chunk"]:
        """Get a chunk by its ID, or None."""

    @abstractmethod
    async def fetch_all(self) -> list["Chunk"]:
        """Return every chunk ordered by source path then sequence index."""

    @abstractmethod
    async def fetch_by_source(self, source_path: str) -> list["Chunk"]:
        """Return the chunks of one source ordered by sequence index."""

    @abstractmethod
    async def delete_by_source(self, source_path: str) -> int:
        """Delete every chunk of one source.

        Returns:
            Number of chunks deleted
        """

    @abstractmethod
    async def replace_source(self, source_path: str, chunks: list["Chunk"]) -> list[str]:
        """Swap every chunk of one source for ``chunks`` in one step.

        Readers see either the old chunks or the new ones, never a mix or
        an empty source. If the write fails the old chunks stay. An empty
        ``chunks`` list removes the source.

        Returns:
            IDs of the stored chunks
        """

    @abstractmethod
    async def delete_all(self) -> int:
        """Delete every chunk.

        Returns:
            Number of chunks deleted
        """

    @abstractmethod
    async def statistics(self) -> "StoreStatistics":
        """Return distinct source and total chunk counts."""

    @abstractmethod
    async def list_sources(self) -> list[str]:
        """Return the distinct source paths, sorted."""

    async def count(self) -> int:
        """Return the number of chunks in the store."""
        return (await self.statistics()).total_chunk_count

    async def close(self) -> None:
        """Release any resources held by the store."""
