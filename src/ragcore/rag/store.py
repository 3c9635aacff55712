"""Chunk store implementations."""

import asyncio
import logging
import sqlite3
import struct
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from ragcore.exceptions import StorageError
from ragcore.utils.config import StoreConfig

from .base import BaseChunkStore
from .document import Chunk, ChunkMetadata, FormatTag, StoreStatistics

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FLOAT64 = struct.calcsize("<d")


def encode_embedding(embedding: list[float]) -> bytes:
    """Serialize a vector as little-endian IEEE-754 float64 values."""
    return struct.pack(f"<{len(embedding)}d", *embedding)


def decode_embedding(blob: bytes) -> list[float]:
    """Inverse of :func:`encode_embedding`; bit-exact."""
    if len(blob) % _FLOAT64:
        raise StorageError(
            f"Corrupt embedding blob: {len(blob)} bytes is not a multiple of {_FLOAT64}"
        )
    return list(struct.unpack(f"<{len(blob) // _FLOAT64}d", blob))


def _sort_key(chunk: Chunk) -> tuple[str, int]:
    return (chunk.source_path, chunk.sequence_index)


class MemoryChunkStore(BaseChunkStore):
    """In-memory chunk store for tests and throwaway sessions.

    Stores deep copies, so mutating a chunk after upsert or fetch never
    changes what the store holds.
    """

    def __init__(self) -> None:
        self._chunks: dict[str, Chunk] = {}
        self._lock = asyncio.Lock()

    async def upsert(self, chunk: Chunk) -> str:
        async with self._lock:
            self._chunks.pop(chunk.id, None)
            self._chunks[chunk.id] = chunk.model_copy(deep=True)
        return chunk.id

    async def upsert_many(self, chunks: list[Chunk]) -> list[str]:
        copies = [chunk.model_copy(deep=True) for chunk in chunks]
        async with self._lock:
            for chunk in copies:
                self._chunks.pop(chunk.id, None)
                self._chunks[chunk.id] = chunk
        logger.debug(f"Upserted {len(copies)} chunks into memory store")
        return [chunk.id for chunk in copies]

    async def get(self, id: str) -> Optional[Chunk]:
        async with self._lock:
            chunk = self._chunks.get(id)
            return chunk.model_copy(deep=True) if chunk else None

    async def fetch_all(self) -> list[Chunk]:
        async with self._lock:
            chunks = [c.model_copy(deep=True) for c in self._chunks.values()]
        return sorted(chunks, key=_sort_key)

    async def fetch_by_source(self, source_path: str) -> list[Chunk]:
        async with self._lock:
            chunks = [
                c.model_copy(deep=True)
                for c in self._chunks.values()
                if c.source_path == source_path
            ]
        return sorted(chunks, key=lambda c: c.sequence_index)

    async def delete_by_source(self, source_path: str) -> int:
        async with self._lock:
            ids = [id for id, c in self._chunks.items() if c.source_path == source_path]
            for id in ids:
                del self._chunks[id]
        return len(ids)

    async def replace_source(self, source_path: str, chunks: list[Chunk]) -> list[str]:
        copies = [chunk.model_copy(deep=True) for chunk in chunks]
        async with self._lock:
            stale = [id for id, c in self._chunks.items() if c.source_path == source_path]
            for id in stale:
                del self._chunks[id]
            for chunk in copies:
                self._chunks.pop(chunk.id, None)
                self._chunks[chunk.id] = chunk
        return [chunk.id for chunk in copies]

    async def delete_all(self) -> int:
        async with self._lock:
            count = len(self._chunks)
            self._chunks.clear()
        return count

    async def statistics(self) -> StoreStatistics:
        async with self._lock:
            return StoreStatistics(
                distinct_source_count=len({c.source_path for c in self._chunks.values()}),
                total_chunk_count=len(self._chunks),
            )

    async def list_sources(self) -> list[str]:
        async with self._lock:
            return sorted({c.source_path for c in self._chunks.values()})


class SQLiteChunkStore(BaseChunkStore):
    """SQLite-backed chunk store.

    Every operation runs on one dedicated worker thread that owns the
    connection, and callers queue behind an ``asyncio.Lock``. Operations
    are therefore applied one at a time in call order, and each write is a
    single transaction, so readers never observe half-written rows.
    """

    _COLUMNS = (
        "id, source_path, source_name, content, sequence_index, embedding, "
        "format_tag, start_line, end_line, token_estimate, language, created_at"
    )

    def __init__(self, config: Optional[StoreConfig] = None, path: Optional[str] = None):
        """Initialize SQLite store.

        Args:
            config: Store settings (``config.path`` is the database file)
            path: Explicit database path, overriding ``config``; ``":memory:"``
                keeps the database in memory for the life of the store
        """
        self.config = config or StoreConfig()
        self.db_path = path or self.config.path
        self._conn: Optional[sqlite3.Connection] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ragcore-sqlite")
        self._lock = asyncio.Lock()
        self._closed = False

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        """Run ``fn(conn, *args)`` on the store thread, one call at a time."""
        if self._closed:
            raise StorageError("Chunk store is closed")

        async with self._lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, self._call, fn, args)

    def _call(self, fn: Callable[..., T], args: tuple) -> T:
        try:
            return fn(self._connection(), *args)
        except sqlite3.Error as e:
            raise StorageError(f"SQLite error on {self.db_path}: {e}") from e

    def _connection(self) -> sqlite3.Connection:
        """Open the database and create the schema on first use."""
        if self._conn is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._ensure_table(conn)
            self._conn = conn
            logger.info(f"Opened chunk store at {self.db_path}")
        return self._conn

    def _ensure_table(self, conn: sqlite3.Connection) -> None:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS document_chunks (
                id TEXT PRIMARY KEY,
                source_path TEXT NOT NULL,
                source_name TEXT NOT NULL,
                content TEXT NOT NULL,
                sequence_index INTEGER NOT NULL,
                embedding BLOB,
                format_tag TEXT NOT NULL,
                start_line INTEGER,
                end_line INTEGER,
                token_estimate INTEGER NOT NULL,
                language TEXT,
                created_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_source_path ON document_chunks(source_path);
            CREATE INDEX IF NOT EXISTS idx_source_name ON document_chunks(source_name);
            CREATE INDEX IF NOT EXISTS idx_created_at ON document_chunks(created_at);
        """)
        conn.commit()

    @staticmethod
    def _to_row(chunk: Chunk) -> tuple:
        meta = chunk.metadata
        return (
            chunk.id,
            chunk.source_path,
            chunk.source_name,
            chunk.content,
            chunk.sequence_index,
            encode_embedding(chunk.embedding) if chunk.embedding is not None else None,
            meta.format_tag.value,
            meta.start_line,
            meta.end_line,
            meta.token_estimate,
            meta.language,
            chunk.created_at.isoformat(),
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Chunk:
        blob = row["embedding"]
        return Chunk(
            id=row["id"],
            source_path=row["source_path"],
            source_name=row["source_name"],
            content=row["content"],
            sequence_index=row["sequence_index"],
            embedding=decode_embedding(bytes(blob)) if blob is not None else None,
            metadata=ChunkMetadata(
                format_tag=FormatTag.parse(row["format_tag"]),
                start_line=row["start_line"],
                end_line=row["end_line"],
                token_estimate=row["token_estimate"],
                language=row["language"],
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _upsert_sync(self, conn: sqlite3.Connection, chunks: list[Chunk]) -> None:
        rows = [self._to_row(chunk) for chunk in chunks]
        with conn:
            conn.executemany(
                f"INSERT OR REPLACE INTO document_chunks ({self._COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )

    async def upsert(self, chunk: Chunk) -> str:
        await self._run(self._upsert_sync, [chunk])
        return chunk.id

    async def upsert_many(self, chunks: list[Chunk]) -> list[str]:
        if chunks:
            await self._run(self._upsert_sync, list(chunks))
            logger.debug(f"Upserted {len(chunks)} chunks into {self.db_path}")
        return [chunk.id for chunk in chunks]

    def _select_sync(self, conn: sqlite3.Connection, where: str, params: tuple) -> list[Chunk]:
        rows = conn.execute(
            f"SELECT {self._COLUMNS} FROM document_chunks {where}",
            params,
        ).fetchall()
        return [self._from_row(row) for row in rows]

    async def get(self, id: str) -> Optional[Chunk]:
        chunks = await self._run(self._select_sync, "WHERE id = ?", (id,))
        return chunks[0] if chunks else None

    async def fetch_all(self) -> list[Chunk]:
        return await self._run(
            self._select_sync, "ORDER BY source_path, sequence_index, rowid", ()
        )

    async def fetch_by_source(self, source_path: str) -> list[Chunk]:
        return await self._run(
            self._select_sync,
            "WHERE source_path = ? ORDER BY sequence_index, rowid",
            (source_path,),
        )

    def _delete_sync(self, conn: sqlite3.Connection, where: str, params: tuple) -> int:
        with conn:
            cursor = conn.execute(f"DELETE FROM document_chunks {where}", params)
        return cursor.rowcount

    async def delete_by_source(self, source_path: str) -> int:
        deleted = await self._run(self._delete_sync, "WHERE source_path = ?", (source_path,))
        logger.debug(f"Deleted {deleted} chunks for {source_path}")
        return deleted

    def _replace_sync(
        self, conn: sqlite3.Connection, source_path: str, chunks: list[Chunk]
    ) -> None:
        rows = [self._to_row(chunk) for chunk in chunks]
        with conn:
            conn.execute("DELETE FROM document_chunks WHERE source_path = ?", (source_path,))
            conn.executemany(
                f"INSERT OR REPLACE INTO document_chunks ({self._COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )

    async def replace_source(self, source_path: str, chunks: list[Chunk]) -> list[str]:
        await self._run(self._replace_sync, source_path, list(chunks))
        logger.debug(f"Replaced {source_path} with {len(chunks)} chunks")
        return [chunk.id for chunk in chunks]

    async def delete_all(self) -> int:
        return await self._run(self._delete_sync, "", ())

    def _statistics_sync(self, conn: sqlite3.Connection) -> StoreStatistics:
        row = conn.execute(
            "SELECT COUNT(DISTINCT source_path), COUNT(*) FROM document_chunks"
        ).fetchone()
        return StoreStatistics(distinct_source_count=row[0], total_chunk_count=row[1])

    async def statistics(self) -> StoreStatistics:
        return await self._run(self._statistics_sync)

    def _sources_sync(self, conn: sqlite3.Connection) -> list[str]:
        rows = conn.execute(
            "SELECT DISTINCT source_path FROM document_chunks ORDER BY source_path"
        ).fetchall()
        return [row[0] for row in rows]

    async def list_sources(self) -> list[str]:
        return await self._run(self._sources_sync)

    def _close_sync(self, conn: sqlite3.Connection) -> None:
        conn.close()
        self._conn = None

    async def close(self) -> None:
        """Close the connection and stop the worker thread."""
        if self._closed:
            return
        if self._conn is not None:
            await self._run(self._close_sync)
        self._closed = True
        self._executor.shutdown(wait=True)


def create_store(config: Optional[StoreConfig] = None) -> BaseChunkStore:
    """Build the chunk store named by ``config.backend``."""
    config = config or StoreConfig()
    if config.backend == "memory":
        return MemoryChunkStore()
    return SQLiteChunkStore(config)
