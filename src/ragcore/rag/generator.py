"""Grounded answer generation."""

import logging
import time
from typing import TYPE_CHECKING, Callable, Optional

from pydantic import BaseModel

from ragcore.exceptions import InputError, NoRelevantContextError
from ragcore.utils.config import GenerationConfig

from .citations import CitationValidation, validate_citations
from .document import BaselineAnswer, RAGAnswer, SearchHit
from .reranker import Reranker, RerankKind, RerankStrategy
from .retriever import VectorRetriever

if TYPE_CHECKING:
    from ragcore.providers.base import LLMProvider

logger = logging.getLogger(__name__)

CitationValidator = Callable[[str], CitationValidation]


def build_context(hits: list[SearchHit]) -> str:
    """Render hits as numbered source blocks for the prompt."""
    blocks = []
    for i, hit in enumerate(hits):
        cleaned = " ".join(hit.chunk.content.split())
        blocks.append(
            f"[Source {i + 1}: {hit.chunk.source_name} - "
            f"Relevance: {hit.similarity * 100:.1f}%]\n"
            f"{cleaned}\n"
            "\n"
            "---\n"
        )
    return "\n".join(blocks)


class AnswerGenerator:
    """Retrieve, rerank and ask the LLM for an answer grounded in the hits.

    Example:
        ```python
        generator = AnswerGenerator(retriever, Reranker(llm), llm)
        answer = await generator.answer("How does login work?")
        print(answer.answer_text)
        ```
    """

    RAG_PROMPT = """You are an AI assistant that helps developers understand their code.

MANDATORY REQUIREMENTS:
1. Use ONLY information from the provided context
2. ALWAYS add [Source N] after EVERY statement
3. Include direct code quotes in ``` blocks
4. End the answer with a "Sources:" section listing every file you used
5. If the context does not contain the answer, say so honestly and do NOT make anything up

CONTEXT FROM THE CODEBASE:
{context}

USER QUESTION:
{question}

ANSWER FORMAT (REQUIRED):

[Main answer with [Source 1], [Source 2] markers after each fact]

[Code quotes in ``` blocks, if any]

Sources:
[1] FileName.swift - short description
[2] FileName.swift - short description

START THE ANSWER NOW:"""

    def __init__(
        self,
        retriever: VectorRetriever,
        reranker: Reranker,
        llm: "LLMProvider",
        config: Optional[GenerationConfig] = None,
        validator: CitationValidator = validate_citations,
    ):
        """Initialize the answer generator.

        Args:
            retriever: Retriever over the chunk store
            reranker: Reranker applied to retrieved candidates
            llm: LLM that writes the answer
            config: Candidate count and completion settings
            validator: Citation check used by the mandatory-citation loop
        """
        self.retriever = retriever
        self.reranker = reranker
        self.llm = llm
        self.config = config or GenerationConfig()
        self.validator = validator

    async def answer(
        self,
        question: str,
        top_k: int = 5,
        strategy: Optional[RerankStrategy] = None,
    ) -> RAGAnswer:
        """Answer a question from the indexed documents.

        Args:
            question: User question
            top_k: Maximum number of sources given to the LLM
            strategy: Reranking strategy (default: threshold at 0.5)

        Returns:
            The answer with the hits it was grounded on

        Raises:
            InputError: If the question is empty
            NoRelevantContextError: If nothing survives retrieval and reranking
            RerankingFailedError: If LLM-judged reranking cannot reach the LLM
            ProviderError: If the LLM call fails
        """
        start = time.perf_counter()
        hits = await self._find_sources(question, top_k, strategy)
        text = await self._generate(question, hits)

        return RAGAnswer(
            answer_text=text,
            source_hits=hits,
            question=question,
            elapsed_time=time.perf_counter() - start,
        )

    async def answer_with_mandatory_citations(
        self,
        question: str,
        top_k: int = 5,
        strategy: Optional[RerankStrategy] = None,
        max_attempts: Optional[int] = None,
    ) -> RAGAnswer:
        """Like :meth:`answer`, but regenerate until the answer cites its sources.

        Retrieval and reranking run once. Only the LLM call is repeated, at
        most ``max_attempts`` times in total.

        Raises:
            InputError: If ``max_attempts`` is less than 1 or the question is empty
            NoRelevantContextError: If no attempt produced valid citations
        """
        if max_attempts is None:
            max_attempts = self.config.default_max_attempts
        if max_attempts < 1:
            raise InputError(f"max_attempts must be at least 1, got {max_attempts}")

        start = time.perf_counter()
        hits = await self._find_sources(question, top_k, strategy)

        for attempt in range(1, max_attempts + 1):
            logger.info(f"Citation attempt {attempt}/{max_attempts}")
            text = await self._generate(question, hits)

            validation = self.validator(text)
            logger.debug(
                f"Citation check: markers={validation.has_source_markers}, "
                f"count={validation.citation_count}, "
                f"sources={validation.has_sources_section}"
            )

            if validation.is_valid:
                return RAGAnswer(
                    answer_text=text,
                    source_hits=hits,
                    question=question,
                    elapsed_time=time.perf_counter() - start,
                    attempts=attempt,
                )

        logger.warning(f"No answer with valid citations after {max_attempts} attempts")
        raise NoRelevantContextError(
            f"No answer with valid citations after {max_attempts} attempts"
        )

    async def answer_without_retrieval(self, question: str) -> BaselineAnswer:
        """Ask the LLM directly, with no context, for comparison."""
        self._check_question(question)

        start = time.perf_counter()
        text = await self.llm.complete(
            question,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        return BaselineAnswer(
            answer_text=text,
            question=question,
            elapsed_time=time.perf_counter() - start,
        )

    async def compare(
        self,
        question: str,
        top_k: int = 5,
        strategy: Optional[RerankStrategy] = None,
    ) -> "RAGComparison":
        """Answer the same question with and without retrieval."""
        with_rag = await self.answer(question, top_k=top_k, strategy=strategy)
        without_rag = await self.answer_without_retrieval(question)
        return RAGComparison(
            question=question,
            with_rag=with_rag,
            without_rag=without_rag,
        )

    def build_prompt(self, question: str, hits: list[SearchHit]) -> str:
        return self.RAG_PROMPT.format(context=build_context(hits), question=question)

    @staticmethod
    def _check_question(question: str) -> None:
        if not question or not question.strip():
            raise InputError("Question cannot be empty")

    async def _find_sources(
        self,
        question: str,
        top_k: int,
        strategy: Optional[RerankStrategy],
    ) -> list[SearchHit]:
        self._check_question(question)
        strategy = strategy or RerankStrategy.threshold(0.5)

        candidate_count = top_k
        if strategy.kind == RerankKind.LLM_JUDGED:
            candidate_count = max(top_k, self.config.llm_candidate_count)

        candidates = await self.retriever.retrieve(question, candidate_count)
        hits = await self.reranker.rerank(candidates, question, strategy, top_k)

        if not hits:
            raise NoRelevantContextError()

        logger.info(f"Using {len(hits)} sources ({strategy.label})")
        return hits

    async def _generate(self, question: str, hits: list[SearchHit]) -> str:
        return await self.llm.complete(
            self.build_prompt(question, hits),
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )


class RAGComparison(BaseModel):
    """The same question answered with and without retrieval."""

    question: str
    with_rag: RAGAnswer
    without_rag: BaselineAnswer

    def analysis(self) -> str:
        sources = "\n".join(
            f"  {i + 1}. {hit.chunk.source_name} - {hit.similarity * 100:.1f}%"
            for i, hit in enumerate(self.with_rag.source_hits)
        )
        return (
            "RAG vs. no RAG\n"
            f"Question: {self.question}\n"
            "\n"
            "Processing time:\n"
            f"  with RAG: {self.with_rag.elapsed_time:.2f}s\n"
            f"  without RAG: {self.without_rag.elapsed_time:.2f}s\n"
            "\n"
            f"Sources used: {len(self.with_rag.source_hits)}\n"
            f"{sources}"
        )
