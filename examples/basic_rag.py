"""
Basic RAG example: index a project and ask questions about it.

Usage:
    python examples/basic_rag.py ~/Projects/MyApp "How does login work?"

Needs OPENAI_API_KEY (embeddings) and ANTHROPIC_API_KEY (answers).
"""

import asyncio
import sys

from ragcore import (
    AnswerGenerator,
    DocumentIndexer,
    OpenAIEmbedding,
    Reranker,
    RerankStrategy,
    VectorRetriever,
    create_provider,
    load_config,
    validate_citations,
)
from ragcore.rag import IndexingProgress, create_store
from ragcore.utils import configure_logging


def show_progress(progress: IndexingProgress) -> None:
    status = "ok" if progress.succeeded else "failed"
    print(f"  [{progress.completed}/{progress.total}] {progress.current_file} ({status})")


async def main(project_dir: str, question: str):
    configure_logging("INFO")
    config = load_config()

    embedding = OpenAIEmbedding(config.embedding)
    store = create_store(config.store)
    llm = create_provider(config.llm)

    try:
        # Index the project
        indexer = DocumentIndexer(
            embedding, store, chunking=config.chunking, progress=show_progress
        )
        print(f"Indexing {project_dir}...")
        stats = await indexer.index_directory(project_dir)
        print(
            f"Indexed {stats.documents_indexed} files into {stats.chunks_produced} chunks "
            f"in {stats.processing_time:.1f}s"
        )

        retriever = VectorRetriever(embedding, store)
        reranker = Reranker(llm, config.rerank)
        generator = AnswerGenerator(retriever, reranker, llm, config.generation)

        # Compare reranking strategies on the raw candidates
        candidates = await retriever.retrieve(question, top_k=15)
        comparison = await reranker.compare_strategies(candidates, question, top_k=5)
        print(comparison.summary())

        # Ask with mandatory citations
        answer = await generator.answer_with_mandatory_citations(
            question,
            top_k=5,
            strategy=RerankStrategy.adaptive(),
        )
        print(f"\nAnswer ({answer.attempts} attempt(s), {answer.elapsed_time:.1f}s):")
        print(answer.answer_text)
        print()
        print(validate_citations(answer.answer_text).summary())
    finally:
        await store.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(sys.argv[1], sys.argv[2]))
