"""Configuration and logging helpers."""

from .config import (
    ChunkingConfig,
    EmbeddingConfig,
    GenerationConfig,
    LLMConfig,
    RAGConfig,
    RerankConfig,
    StoreConfig,
    load_config,
)
from .logging import configure_logging, get_logger, set_log_level

__all__ = [
    "ChunkingConfig",
    "EmbeddingConfig",
    "GenerationConfig",
    "LLMConfig",
    "RAGConfig",
    "RerankConfig",
    "StoreConfig",
    "load_config",
    "configure_logging",
    "get_logger",
    "set_log_level",
]
