"""
ragcore - Retrieval-augmented question answering over local documents.
"""

from ragcore.exceptions import (
    ExtractionError,
    InputError,
    NoRelevantContextError,
    ProviderError,
    RagCoreError,
    RateLimitedError,
    RerankingFailedError,
    StorageError,
    UnauthorizedError,
)
from ragcore.rag import (
    AnswerGenerator,
    Chunk,
    DocumentIndexer,
    MemoryChunkStore,
    OpenAIEmbedding,
    RAGAnswer,
    Reranker,
    RerankStrategy,
    SearchHit,
    SQLiteChunkStore,
    TextChunker,
    VectorRetriever,
    validate_citations,
)
from ragcore.providers import (
    AnthropicProvider,
    LLMProvider,
    OpenAIProvider,
    TokenRateLimiter,
    create_provider,
)
from ragcore.utils import RAGConfig, load_config

__version__ = "0.1.0"
__all__ = [
    # Errors
    "ExtractionError",
    "InputError",
    "NoRelevantContextError",
    "ProviderError",
    "RagCoreError",
    "RateLimitedError",
    "RerankingFailedError",
    "StorageError",
    "UnauthorizedError",
    # RAG
    "AnswerGenerator",
    "Chunk",
    "DocumentIndexer",
    "MemoryChunkStore",
    "OpenAIEmbedding",
    "RAGAnswer",
    "Reranker",
    "RerankStrategy",
    "SearchHit",
    "SQLiteChunkStore",
    "TextChunker",
    "VectorRetriever",
    "validate_citations",
    # Providers
    "AnthropicProvider",
    "LLMProvider",
    "OpenAIProvider",
    "TokenRateLimiter",
    "create_provider",
    # Config
    "RAGConfig",
    "load_config",
]
