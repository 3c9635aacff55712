"""Second-pass reranking of retrieved hits."""

import logging
import math
import re
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from ragcore.exceptions import InputError, ProviderError, RerankingFailedError
from ragcore.utils.config import RerankConfig

from .document import SearchHit, rerank_positions

if TYPE_CHECKING:
    from ragcore.providers.base import LLMProvider

logger = logging.getLogger(__name__)

_SCORE_ARRAY = re.compile(r"\[[\d\s,]+\]")
_SCORES = TypeAdapter(list[int])


class RerankKind(str, Enum):
    NONE = "none"
    THRESHOLD = "threshold"
    ADAPTIVE = "adaptive"
    LLM_JUDGED = "llm_judged"


class RerankStrategy(BaseModel):
    """Which reranking to apply; an immutable tagged value.

    Build instances through the constructors rather than by hand::

        RerankStrategy.none()
        RerankStrategy.threshold(0.6)
        RerankStrategy.adaptive()
        RerankStrategy.llm_judged()
    """

    model_config = ConfigDict(frozen=True)

    kind: RerankKind
    min_score: Optional[float] = Field(default=None, ge=-1.0, le=1.0)

    @model_validator(mode="after")
    def _check_min_score(self) -> "RerankStrategy":
        if self.kind == RerankKind.THRESHOLD and self.min_score is None:
            raise InputError("threshold strategy needs a min_score")
        if self.kind != RerankKind.THRESHOLD and self.min_score is not None:
            raise InputError(f"{self.kind.value} strategy takes no min_score")
        return self

    @classmethod
    def none(cls) -> "RerankStrategy":
        return cls(kind=RerankKind.NONE)

    @classmethod
    def threshold(cls, min_score: float) -> "RerankStrategy":
        return cls(kind=RerankKind.THRESHOLD, min_score=min_score)

    @classmethod
    def adaptive(cls) -> "RerankStrategy":
        return cls(kind=RerankKind.ADAPTIVE)

    @classmethod
    def llm_judged(cls) -> "RerankStrategy":
        return cls(kind=RerankKind.LLM_JUDGED)

    @property
    def label(self) -> str:
        if self.kind == RerankKind.THRESHOLD:
            return f"Threshold ({self.min_score:.0%})"
        return {
            RerankKind.NONE: "No filtering",
            RerankKind.ADAPTIVE: "Adaptive",
            RerankKind.LLM_JUDGED: "LLM-judged",
        }[self.kind]


class Reranker:
    """Apply a :class:`RerankStrategy` to retrieved hits.

    The statistical strategies (none, threshold, adaptive) never raise and
    never return an empty list when candidates exist: if nothing clears the
    threshold, the unfiltered top-``k`` comes back instead. Only the
    LLM-judged strategy can fail, with ``RerankingFailedError``, when the LLM
    call itself errors.

    Returned hits always carry ranks 1..n matching their positions.
    """

    RERANK_PROMPT = """Rate how relevant each fragment is for answering the user's question.

QUESTION: {question}

FRAGMENTS:
{fragments}

TASK:
Score every fragment on a scale from 0 to 10:
- 0-3: not relevant (does not help answer the question)
- 4-6: partially relevant (indirectly related)
- 7-8: relevant (contains useful information)
- 9-10: highly relevant (directly answers the question)

Return ONLY a JSON array of integers, for example: [8, 3, 9, 2, 7]
The order must match the order of the fragments."""

    def __init__(
        self,
        llm: Optional["LLMProvider"] = None,
        config: Optional[RerankConfig] = None,
    ):
        """Initialize the reranker.

        Args:
            llm: LLM used by the LLM-judged strategy (optional otherwise)
            config: Candidate cap, score weights and prompt settings
        """
        self.llm = llm
        self.config = config or RerankConfig()

    async def rerank(
        self,
        hits: list[SearchHit],
        question: str,
        strategy: RerankStrategy,
        top_k: int = 5,
    ) -> list[SearchHit]:
        """Rerank hits and keep at most ``top_k``.

        Args:
            hits: Candidates, most similar first
            question: Original user question
            strategy: Strategy to apply
            top_k: Maximum number of hits to return

        Returns:
            Reranked hits with fresh ranks
        """
        if top_k <= 0 or not hits:
            return []

        if strategy.kind == RerankKind.NONE:
            result = hits[:top_k]
        elif strategy.kind == RerankKind.THRESHOLD:
            result = self._filter(hits, strategy.min_score, top_k, "threshold")
        elif strategy.kind == RerankKind.ADAPTIVE:
            result = self._filter(hits, self.adaptive_threshold(hits), top_k, "adaptive")
        elif strategy.kind == RerankKind.LLM_JUDGED:
            result = await self._rerank_with_llm(hits, question, top_k)
        else:
            raise InputError(f"Unknown rerank strategy: {strategy.kind}")

        return rerank_positions(result)

    def adaptive_threshold(self, hits: list[SearchHit]) -> float:
        """``max(floor, mean - 0.5 * stddev)`` over the hit similarities."""
        similarities = [hit.similarity for hit in hits]
        mean = sum(similarities) / len(similarities)
        variance = sum((s - mean) ** 2 for s in similarities) / len(similarities)
        std_dev = math.sqrt(variance)

        threshold = max(self.config.adaptive_floor, mean - 0.5 * std_dev)
        logger.debug(
            f"Reranker: mean={mean:.2f}, std={std_dev:.2f}, "
            f"adaptive threshold={threshold:.1%}"
        )
        return threshold

    def _filter(
        self,
        hits: list[SearchHit],
        min_score: float,
        top_k: int,
        name: str,
    ) -> list[SearchHit]:
        filtered = [hit for hit in hits if hit.similarity >= min_score]

        if not filtered:
            best = max(hit.similarity for hit in hits)
            logger.warning(
                f"Reranker: no hits passed the {name} filter ({min_score:.1%}, "
                f"best {best:.1%}); falling back to top-{top_k} unfiltered"
            )
            return hits[:top_k]

        final = filtered[:top_k]
        logger.info(f"Reranker: {len(final)}/{len(hits)} hits passed the {name} filter")
        return final

    async def _rerank_with_llm(
        self,
        hits: list[SearchHit],
        question: str,
        top_k: int,
    ) -> list[SearchHit]:
        if self.llm is None:
            raise RerankingFailedError("no LLM provider configured")

        candidates = hits[:self.config.llm_candidate_cap]
        prompt = self.build_prompt(question, candidates)

        try:
            response = await self.llm.complete(
                prompt,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
        except ProviderError as e:
            raise RerankingFailedError(str(e)) from e

        scores = self.parse_scores(response, len(candidates))

        weight = self.config.llm_weight
        scored = []
        for i, hit in enumerate(candidates):
            scored.append((hit, (1 - weight) * hit.similarity + weight * scores[i]))

        scored.sort(key=lambda item: item[1], reverse=True)
        final = [hit for hit, _ in scored[:top_k]]

        logger.info(f"Reranker: LLM reranked {len(candidates)} -> {len(final)} hits")
        return final

    def build_prompt(self, question: str, hits: list[SearchHit]) -> str:
        """Build the single scoring prompt for all candidates."""
        fragments = []
        for i, hit in enumerate(hits):
            preview = hit.chunk.content[:self.config.preview_chars]
            fragments.append(
                f"[{i + 1}] File: {hit.chunk.source_name}\n"
                f"Content: {preview}..."
            )
        return self.RERANK_PROMPT.format(
            question=question,
            fragments="\n\n".join(fragments),
        )

    @staticmethod
    def parse_scores(response: str, count: int) -> list[float]:
        """Pull a 0-10 integer array out of free-form text, normalized to [0, 1].

        When no array of exactly ``count`` scores can be decoded, returns
        decreasing scores ``1 - i * 0.05`` that preserve the original order.
        """
        match = _SCORE_ARRAY.search(response)
        if match:
            try:
                values = _SCORES.validate_json(match.group(0))
            except ValidationError:
                values = []
            if len(values) == count:
                return [min(10.0, max(0.0, float(v))) / 10.0 for v in values]

        logger.warning("Reranker: failed to parse LLM scores, using positional fallback")
        return [1.0 - i * 0.05 for i in range(count)]

    async def compare_strategies(
        self,
        hits: list[SearchHit],
        question: str,
        top_k: int = 5,
        threshold: float = 0.6,
        include_llm: bool = False,
    ) -> "RerankingComparison":
        """Run the strategies side by side on the same candidates."""
        llm_hits = None
        if include_llm:
            llm_hits = await self.rerank(hits, question, RerankStrategy.llm_judged(), top_k)

        return RerankingComparison(
            question=question,
            original=hits,
            no_filter=await self.rerank(hits, question, RerankStrategy.none(), top_k),
            threshold=await self.rerank(
                hits, question, RerankStrategy.threshold(threshold), top_k
            ),
            threshold_value=threshold,
            adaptive=await self.rerank(hits, question, RerankStrategy.adaptive(), top_k),
            llm_judged=llm_hits,
        )


class RerankingComparison(BaseModel):
    """Outcome of several strategies applied to one candidate list."""

    question: str
    original: list[SearchHit]
    no_filter: list[SearchHit]
    threshold: list[SearchHit]
    threshold_value: float
    adaptive: list[SearchHit]
    llm_judged: Optional[list[SearchHit]] = None

    def summary(self) -> str:
        def lowest(hits: list[SearchHit]) -> str:
            return f"{hits[-1].similarity:.2f}" if hits else "n/a"

        lines = [
            "Reranking strategy comparison",
            f"Question: {self.question}",
            f"Candidates: {len(self.original)}",
            f"1. No filter: {len(self.no_filter)} hits (min similarity {lowest(self.no_filter)})",
            f"2. Threshold ({self.threshold_value:.0%}): {len(self.threshold)} hits "
            f"(min similarity {lowest(self.threshold)})",
            f"3. Adaptive: {len(self.adaptive)} hits (min similarity {lowest(self.adaptive)})",
        ]
        if self.llm_judged is None:
            lines.append("4. LLM-judged: not run")
        else:
            lines.append(f"4. LLM-judged: {len(self.llm_judged)} hits")
        return "\n".join(lines)
