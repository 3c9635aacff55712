"""
Configuration values.

Every component receives its configuration explicitly through its
constructor; nothing reads process-wide settings at call time.
"""

import json
import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ragcore.exceptions import InputError


class ChunkingConfig(BaseModel):
    """Text segmentation settings.

    Attributes:
        chunk_size: Target chunk size in characters
        overlap_size: Characters shared between neighbouring chunks
        respect_paragraphs: Prefer cutting after a blank line
        respect_sentences: Prefer cutting after sentence punctuation
    """

    model_config = ConfigDict(frozen=True)

    chunk_size: int = 1000
    overlap_size: int = 200
    respect_paragraphs: bool = True
    respect_sentences: bool = True

    @model_validator(mode="after")
    def _check_sizes(self) -> "ChunkingConfig":
        if self.chunk_size <= 0:
            raise InputError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.overlap_size < 0:
            raise InputError(f"overlap_size must not be negative, got {self.overlap_size}")
        if self.overlap_size >= self.chunk_size:
            raise InputError(
                f"overlap_size ({self.overlap_size}) must be less than "
                f"chunk_size ({self.chunk_size})"
            )
        return self

    @classmethod
    def default(cls) -> "ChunkingConfig":
        return cls(chunk_size=1000, overlap_size=200)

    @classmethod
    def code(cls) -> "ChunkingConfig":
        """Larger chunks for source code so functions stay together."""
        return cls(
            chunk_size=3000,
            overlap_size=500,
            respect_paragraphs=True,
            respect_sentences=False,
        )

    @classmethod
    def large(cls) -> "ChunkingConfig":
        return cls(chunk_size=2000, overlap_size=400)


class EmbeddingConfig(BaseModel):
    """Settings for the embedding provider."""

    model: str = "text-embedding-3-small"
    api_key: Optional[str] = Field(default_factory=lambda: os.environ.get("OPENAI_API_KEY"))
    base_url: Optional[str] = None
    max_batch_size: int = Field(default=100, gt=0)
    batch_delay: float = Field(default=0.5, ge=0.0)
    timeout: float = Field(default=30.0, gt=0.0)


class LLMConfig(BaseModel):
    """Settings for the LLM capability."""

    provider: Literal["anthropic", "openai"] = "anthropic"
    model: str = "claude-3-7-sonnet-20250219"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = Field(default=4096, gt=0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout: float = Field(default=60.0, gt=0.0)

    # Shared token budget; None disables local rate limiting
    tokens_per_minute: Optional[int] = Field(default=None, gt=0)
    max_rate_limit_wait: float = Field(default=10.0, ge=0.0)

    def resolved_api_key(self) -> Optional[str]:
        """Return the configured key or the provider's environment variable."""
        if self.api_key:
            return self.api_key
        env_var = "ANTHROPIC_API_KEY" if self.provider == "anthropic" else "OPENAI_API_KEY"
        return os.environ.get(env_var)


class StoreConfig(BaseModel):
    """Settings for the chunk store."""

    backend: Literal["sqlite", "memory"] = "sqlite"
    path: str = Field(
        default_factory=lambda: str(Path.home() / ".ragcore" / "vectors.db")
    )


class RerankConfig(BaseModel):
    """Settings for reranking strategies."""

    llm_candidate_cap: int = Field(default=15, gt=0)
    llm_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    adaptive_floor: float = 0.3
    preview_chars: int = Field(default=300, gt=0)
    max_tokens: int = Field(default=1024, gt=0)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)


class GenerationConfig(BaseModel):
    """Settings for grounded answer generation."""

    llm_candidate_count: int = Field(default=15, gt=0)
    max_tokens: int = Field(default=4096, gt=0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    default_max_attempts: int = Field(default=2, gt=0)


class RAGConfig(BaseModel):
    """Top-level configuration bundling every component's settings."""

    # None keeps the per-format chunking presets
    chunking: Optional[ChunkingConfig] = None
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    rerank: RerankConfig = Field(default_factory=RerankConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "RAGConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> "RAGConfig":
        """Load configuration from file (YAML or JSON)."""
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        elif path.suffix == ".json":
            with open(path) as f:
                data = json.load(f)
            return cls(**data)
        else:
            raise InputError(f"Unsupported config file format: {path.suffix}")


def load_config(path: str | Path = "ragcore.yaml") -> RAGConfig:
    """
    Load configuration from file.

    Args:
        path: Path to config file

    Returns:
        RAGConfig instance (defaults when the file does not exist)
    """
    path = Path(path)

    if not path.exists():
        return RAGConfig()

    return RAGConfig.from_file(path)
