"""Document indexing: extract, chunk, embed and store."""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Callable, Iterable, Optional

from pydantic import BaseModel

from ragcore.exceptions import InputError, RagCoreError
from ragcore.utils.config import ChunkingConfig

from .base import BaseChunkStore, BaseEmbedding
from .chunking import TextChunker, config_for_format
from .document import Chunk, FormatTag, IndexingStatistics, StoreStatistics
from .extraction import ExtractedText, TextExtractor

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ("swift", "md", "txt")

SKIP_DIRS = frozenset({".build", ".git", "build", "DerivedData", "Pods", "node_modules"})


class IndexingProgress(BaseModel):
    """Snapshot reported after each file of a batch."""

    current_file: str
    completed: int
    total: int
    chunks_produced: int
    succeeded: bool

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 1.0


ProgressCallback = Callable[[IndexingProgress], None]


class DocumentIndexer:
    """Turn files and raw text into embedded chunks in a store.

    Re-indexing a source replaces all of its previous chunks. Embedding
    happens before the old rows are deleted, so a failed embedding call
    leaves the previous version of the source intact.

    Example:
        ```python
        indexer = DocumentIndexer(OpenAIEmbedding(), SQLiteChunkStore())
        stats = await indexer.index_directory("~/Projects/MyApp")
        print(f"{stats.documents_indexed} files, {stats.chunks_produced} chunks")
        ```
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        store: BaseChunkStore,
        extractor: Optional[TextExtractor] = None,
        chunking: Optional[ChunkingConfig] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        """Initialize the indexer.

        Args:
            embedding: Embedding provider for chunk content
            store: Chunk store that receives the chunks
            extractor: File reader (default: TextExtractor)
            chunking: Fixed chunking settings; when omitted the preset for
                each file's format is used
            progress: Called after every file of a batch
        """
        self.embedding = embedding
        self.store = store
        self.extractor = extractor or TextExtractor()
        self.chunking = chunking
        self.progress = progress

    def _chunker_for(self, format_tag: FormatTag) -> TextChunker:
        return TextChunker(self.chunking or config_for_format(format_tag))

    async def index_text(
        self,
        text: str,
        source_path: str,
        source_name: Optional[str] = None,
        format_tag: FormatTag = FormatTag.TEXT,
        language: Optional[str] = None,
    ) -> list[Chunk]:
        """Index in-memory text as the content of ``source_path``.

        Returns:
            The stored chunks, with embeddings. Empty text removes the
            source from the store.
        """
        extracted = ExtractedText.from_text(text, source_path, source_name)
        chunks = [
            chunk.model_copy(update={
                "metadata": chunk.metadata.model_copy(
                    update={"format_tag": format_tag, "language": language}
                ),
            })
            for chunk in self._chunker_for(format_tag).chunk_document(extracted)
        ]
        return await self._replace_source(source_path, chunks)

    async def index_file(self, path: str | Path) -> int:
        """Extract, chunk, embed and store one file.

        Returns:
            Number of chunks stored

        Raises:
            ExtractionError: If the file cannot be read
            ProviderError: If embedding fails
            StorageError: If the store fails
        """
        extracted = await self.extractor.extract(path)
        chunks = self._chunker_for(extracted.format_tag).chunk_document(extracted)
        stored = await self._replace_source(extracted.source_path, chunks)

        logger.info(f"Indexed {extracted.source_name}: {len(stored)} chunks")
        return len(stored)

    async def index_files(
        self,
        paths: Iterable[str | Path],
        concurrency: int = 1,
    ) -> IndexingStatistics:
        """Index several files; a failing file is recorded and skipped.

        Args:
            paths: Files to index
            concurrency: Maximum number of files processed at once
        """
        if concurrency < 1:
            raise InputError(f"concurrency must be at least 1, got {concurrency}")

        paths = [str(path) for path in paths]
        stats = IndexingStatistics()
        semaphore = asyncio.Semaphore(concurrency)
        start = time.perf_counter()
        completed = 0

        async def run(path: str) -> None:
            nonlocal completed
            async with semaphore:
                chunk_count = 0
                try:
                    chunk_count = await self.index_file(path)
                    stats.add_success(path, chunk_count)
                    succeeded = True
                except (RagCoreError, OSError) as e:
                    logger.warning(f"Failed to index {path}: {e}")
                    stats.add_failure(path, str(e))
                    succeeded = False

                completed += 1
                self._report(IndexingProgress(
                    current_file=path,
                    completed=completed,
                    total=len(paths),
                    chunks_produced=chunk_count,
                    succeeded=succeeded,
                ))

        await asyncio.gather(*(run(path) for path in paths))

        stats.processing_time = time.perf_counter() - start
        logger.info(
            f"Indexed {stats.documents_indexed}/{len(paths)} files "
            f"({stats.chunks_produced} chunks, {len(stats.failed_files)} failed) "
            f"in {stats.processing_time:.2f}s"
        )
        return stats

    async def index_directory(
        self,
        path: str | Path,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        skip_dirs: Iterable[str] = SKIP_DIRS,
        concurrency: int = 1,
    ) -> IndexingStatistics:
        """Recursively index matching files under ``path``.

        Hidden files and directories, and directories named in
        ``skip_dirs``, are not visited.
        """
        root = Path(path).expanduser()
        if not root.is_dir():
            raise InputError(f"Not a directory: {root}")

        files = find_files(root, extensions, skip_dirs)
        logger.info(f"Found {len(files)} files to index under {root}")
        return await self.index_files(files, concurrency=concurrency)

    async def remove_source(self, source_path: str) -> int:
        """Delete every chunk of one source."""
        return await self.store.delete_by_source(source_path)

    async def clear(self) -> int:
        """Delete every chunk in the store."""
        deleted = await self.store.delete_all()
        logger.info(f"Cleared {deleted} chunks from the index")
        return deleted

    async def statistics(self) -> StoreStatistics:
        return await self.store.statistics()

    async def _replace_source(self, source_path: str, chunks: list[Chunk]) -> list[Chunk]:
        embedded = await self.embedding.embed_chunks(chunks)
        await self.store.replace_source(source_path, embedded)
        return embedded

    def _report(self, progress: IndexingProgress) -> None:
        if self.progress is not None:
            self.progress(progress)


def find_files(
    root: Path,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    skip_dirs: Iterable[str] = SKIP_DIRS,
) -> list[Path]:
    """List files under ``root`` with one of ``extensions``, sorted."""
    wanted = {ext.lower().lstrip(".") for ext in extensions}
    skipped = set(skip_dirs)
    found = []

    for dirpath, dirnames, filenames in os.walk(root):
        # Prune in place so os.walk does not descend
        dirnames[:] = [d for d in dirnames if d not in skipped and not d.startswith(".")]
        for name in filenames:
            if name.startswith("."):
                continue
            if Path(name).suffix.lower().lstrip(".") in wanted:
                found.append(Path(dirpath) / name)

    return sorted(found)
