"""Chunk, search hit and answer data structures for RAG."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FormatTag(str, Enum):
    """Kind of source a chunk came from."""

    SWIFT = "swift"
    MARKDOWN = "markdown"
    TEXT = "text"
    PDF = "pdf"
    CODE = "code"
    DOCUMENTATION = "documentation"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FormatTag":
        """Decode a stored tag, treating unknown values as plain text."""
        try:
            return cls(value)
        except ValueError:
            return cls.TEXT


class ChunkMetadata(BaseModel):
    """Per-chunk metadata.

    Attributes:
        format_tag: Source format of the chunk
        start_line: First source line covered (1-based), if known
        end_line: Last source line covered (1-based), if known
        token_estimate: Heuristic token count, never exact
        language: Programming language of the source, if any
    """

    format_tag: FormatTag = FormatTag.TEXT
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    token_estimate: int = 0
    language: Optional[str] = None


class Chunk(BaseModel):
    """A bounded slice of a source document, the unit of retrieval.

    Attributes:
        id: Globally unique identifier (primary key in the store)
        source_path: Path of the source document
        source_name: Display name of the source document
        content: The text content of the chunk
        sequence_index: Position of the chunk within its source
        embedding: Optional embedding vector
        metadata: Format, line range and token estimate
        created_at: When the chunk was produced
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    source_path: str
    source_name: str
    content: str
    sequence_index: int
    embedding: Optional[list[float]] = None
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)
    created_at: datetime = Field(default_factory=datetime.now)

    def with_embedding(self, embedding: list[float]) -> "Chunk":
        """Return a copy carrying the given embedding."""
        return self.model_copy(update={"embedding": list(embedding)})

    def preview(self, max_length: int = 200) -> str:
        """Whitespace-collapsed content, truncated for display."""
        cleaned = " ".join(self.content.split())
        if len(cleaned) > max_length:
            return cleaned[:max_length] + "..."
        return cleaned

    def __repr__(self) -> str:
        content_preview = self.content[:30] + "..." if len(self.content) > 30 else self.content
        return (
            f"Chunk(id={self.id!r}, source={self.source_name!r}, "
            f"index={self.sequence_index}, content={content_preview!r})"
        )


class SearchHit(BaseModel):
    """A chunk matched by a query.

    Attributes:
        chunk: The matching chunk
        similarity: Cosine similarity to the query, in [-1, 1]
        rank: 1-based position in the result list
    """

    chunk: Chunk
    similarity: float
    rank: int = Field(ge=1)

    def __repr__(self) -> str:
        return (
            f"SearchHit(rank={self.rank}, chunk_id={self.chunk.id!r}, "
            f"similarity={self.similarity:.4f})"
        )


def rerank_positions(hits: list[SearchHit]) -> list[SearchHit]:
    """Return copies of ``hits`` whose ranks match their list positions."""
    return [
        hit if hit.rank == i + 1 else hit.model_copy(update={"rank": i + 1})
        for i, hit in enumerate(hits)
    ]


class RAGAnswer(BaseModel):
    """A grounded answer together with the hits it was built from."""

    answer_text: str
    source_hits: list[SearchHit] = Field(default_factory=list)
    question: str
    elapsed_time: float = 0.0
    attempts: int = 1


class BaselineAnswer(BaseModel):
    """An answer produced without retrieval, kept for comparison."""

    answer_text: str
    question: str
    elapsed_time: float = 0.0


class StoreStatistics(BaseModel):
    """Aggregate counts over the chunk store."""

    model_config = ConfigDict(frozen=True)

    distinct_source_count: int = 0
    total_chunk_count: int = 0


class IndexingStatistics(BaseModel):
    """Progress report for a batch of indexed files."""

    documents_indexed: int = 0
    chunks_produced: int = 0
    indexed_files: list[str] = Field(default_factory=list)
    failed_files: list[str] = Field(default_factory=list)
    failure_reasons: dict[str, str] = Field(default_factory=dict)
    processing_time: float = 0.0

    def add_success(self, path: str, chunks: int) -> None:
        self.documents_indexed += 1
        self.chunks_produced += chunks
        self.indexed_files.append(path)

    def add_failure(self, path: str, reason: str = "") -> None:
        self.failed_files.append(path)
        if reason:
            self.failure_reasons[path] = reason
