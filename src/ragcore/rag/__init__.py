"""Retrieval-augmented generation core.

This module provides:
- Chunk, hit and answer data structures
- Text extraction and boundary-aware chunking
- OpenAI embeddings
- Chunk stores (memory, SQLite)
- Cosine-similarity retrieval
- Reranking (none, threshold, adaptive, LLM-judged)
- Answer generation with citation checks
- File and directory indexing

Example:
    ```python
    from ragcore.providers import AnthropicProvider
    from ragcore.rag import (
        AnswerGenerator,
        DocumentIndexer,
        OpenAIEmbedding,
        Reranker,
        SQLiteChunkStore,
        VectorRetriever,
    )

    embedding = OpenAIEmbedding()
    store = SQLiteChunkStore()
    llm = AnthropicProvider()

    indexer = DocumentIndexer(embedding, store)
    await indexer.index_directory("~/Projects/MyApp")

    generator = AnswerGenerator(VectorRetriever(embedding, store), Reranker(llm), llm)
    answer = await generator.answer_with_mandatory_citations("How does login work?")
    ```
"""

# Data structures
from .document import (
    BaselineAnswer,
    Chunk,
    ChunkMetadata,
    FormatTag,
    IndexingStatistics,
    RAGAnswer,
    SearchHit,
    StoreStatistics,
)

# Base classes
from .base import BaseChunkStore, BaseEmbedding

# Extraction and chunking
from .extraction import ExtractedText, FileFormat, TextExtractor
from .chunking import TextChunker, TextSpan, config_for_format, estimate_tokens

# Embeddings
from .embeddings import OpenAIEmbedding

# Chunk stores
from .store import MemoryChunkStore, SQLiteChunkStore, create_store

# Retrieval and reranking
from .retriever import VectorRetriever, cosine_similarity
from .reranker import Reranker, RerankingComparison, RerankKind, RerankStrategy

# Generation
from .citations import CitationValidation, validate_citations
from .generator import AnswerGenerator, RAGComparison

# Indexing
from .indexer import DocumentIndexer, IndexingProgress

__all__ = [
    # Data structures
    "BaselineAnswer",
    "Chunk",
    "ChunkMetadata",
    "FormatTag",
    "IndexingStatistics",
    "RAGAnswer",
    "SearchHit",
    "StoreStatistics",
    # Base classes
    "BaseChunkStore",
    "BaseEmbedding",
    # Extraction and chunking
    "ExtractedText",
    "FileFormat",
    "TextExtractor",
    "TextChunker",
    "TextSpan",
    "config_for_format",
    "estimate_tokens",
    # Embeddings
    "OpenAIEmbedding",
    # Chunk stores
    "MemoryChunkStore",
    "SQLiteChunkStore",
    "create_store",
    # Retrieval and reranking
    "VectorRetriever",
    "cosine_similarity",
    "Reranker",
    "RerankingComparison",
    "RerankKind",
    "RerankStrategy",
    # Generation
    "CitationValidation",
    "validate_citations",
    "AnswerGenerator",
    "RAGComparison",
    # Indexing
    "DocumentIndexer",
    "IndexingProgress",
]
