"""Brute-force vector retrieval over the chunk store."""

import logging
import math

from ragcore.exceptions import InputError

from .base import BaseChunkStore, BaseEmbedding
from .document import FormatTag, SearchHit, rerank_positions

logger = logging.getLogger(__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Calculate cosine similarity between two vectors.

    Returns 0.0 (never NaN) when either vector is empty or has zero
    magnitude. The result is clamped to [-1, 1] to absorb rounding.
    """
    if len(a) != len(b):
        raise InputError(f"Vectors must have the same dimension ({len(a)} != {len(b)})")

    if not a:
        return 0.0

    dot_product = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return max(-1.0, min(1.0, dot_product / (norm_a * norm_b)))


class VectorRetriever:
    """Linear-scan cosine-similarity search.

    Every query scores every stored chunk, so cost grows with the number of
    chunks. That is intended at document-collection scale.
    """

    def __init__(self, embedding: BaseEmbedding, store: BaseChunkStore):
        """Initialize the vector retriever.

        Args:
            embedding: Provider used to embed queries
            store: Chunk store to scan
        """
        self.embedding = embedding
        self.store = store

    async def retrieve(self, query: str, top_k: int = 5) -> list[SearchHit]:
        """Return up to ``top_k`` hits, most similar first.

        Ties keep the store's fetch order. Empty queries and non-positive
        ``top_k`` return ``[]``.
        """
        if not query or not query.strip() or top_k <= 0:
            return []

        query_embedding = await self.embedding.embed_query(query)
        chunks = await self.store.fetch_all()

        scored = []
        skipped = 0
        for chunk in chunks:
            if chunk.embedding is None:
                continue
            if len(chunk.embedding) != len(query_embedding):
                skipped += 1
                continue
            scored.append((chunk, cosine_similarity(query_embedding, chunk.embedding)))

        if skipped:
            logger.warning(
                f"Skipped {skipped} chunks whose embedding dimension differs "
                f"from the query ({len(query_embedding)})"
            )

        # sort() is stable, so equal scores keep fetch order
        scored.sort(key=lambda item: item[1], reverse=True)

        hits = [
            SearchHit(chunk=chunk, similarity=score, rank=i + 1)
            for i, (chunk, score) in enumerate(scored[:top_k])
        ]

        logger.debug(f"Retrieved {len(hits)}/{len(scored)} candidates for query")
        return hits

    async def retrieve_by_format(
        self,
        query: str,
        format_tag: FormatTag,
        top_k: int = 5,
    ) -> list[SearchHit]:
        """Search, then keep only chunks of one format.

        Only ``2 * top_k`` candidates are considered before filtering, so this
        may return fewer than ``top_k`` hits even when more matching chunks
        exist.
        """
        candidates = await self.retrieve(query, top_k * 2)
        filtered = [hit for hit in candidates if hit.chunk.metadata.format_tag == format_tag]
        return rerank_positions(filtered[:top_k])
