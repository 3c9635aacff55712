"""Tests for reranking strategies."""

import pytest

from ragcore.exceptions import InputError, ProviderError, RerankingFailedError
from ragcore.rag import Reranker, RerankKind, RerankStrategy
from ragcore.utils.config import RerankConfig


class TestRerankStrategy:
    def test_constructors(self):
        assert RerankStrategy.none().kind == RerankKind.NONE
        assert RerankStrategy.threshold(0.7).min_score == 0.7
        assert RerankStrategy.adaptive().kind == RerankKind.ADAPTIVE
        assert RerankStrategy.llm_judged().kind == RerankKind.LLM_JUDGED

    def test_immutable(self):
        strategy = RerankStrategy.threshold(0.5)
        with pytest.raises(Exception):
            strategy.min_score = 0.9

    def test_threshold_requires_min_score(self):
        with pytest.raises(InputError):
            RerankStrategy(kind=RerankKind.THRESHOLD)
        with pytest.raises(InputError):
            RerankStrategy(kind=RerankKind.ADAPTIVE, min_score=0.5)
        assert RerankStrategy(kind=RerankKind.THRESHOLD, min_score=0.0).min_score == 0.0

    def test_labels(self):
        assert RerankStrategy.none().label == "No filtering"
        assert RerankStrategy.threshold(0.6).label == "Threshold (60%)"
        assert RerankStrategy.adaptive().label == "Adaptive"
        assert RerankStrategy.llm_judged().label == "LLM-judged"


class TestStatisticalReranking:
    """Tests for the none, threshold and adaptive strategies."""

    @pytest.mark.asyncio
    async def test_none_truncates(self, make_hits):
        hits = make_hits([0.9, 0.8, 0.7, 0.6])
        result = await Reranker().rerank(hits, "q", RerankStrategy.none(), top_k=2)

        assert [h.similarity for h in result] == [0.9, 0.8]
        assert [h.rank for h in result] == [1, 2]

    @pytest.mark.asyncio
    async def test_threshold_filters(self, make_hits):
        hits = make_hits([0.99, 0.11])
        result = await Reranker().rerank(hits, "q", RerankStrategy.threshold(0.9), top_k=5)

        assert [h.similarity for h in result] == [0.99]

    @pytest.mark.asyncio
    async def test_threshold_is_inclusive(self, make_hits):
        hits = make_hits([0.7, 0.5, 0.4])
        result = await Reranker().rerank(hits, "q", RerankStrategy.threshold(0.5), top_k=5)

        assert [h.similarity for h in result] == [0.7, 0.5]

    @pytest.mark.asyncio
    async def test_threshold_falls_back_when_nothing_passes(self, make_hits):
        hits = make_hits([0.4, 0.3, 0.2])
        result = await Reranker().rerank(hits, "q", RerankStrategy.threshold(0.9), top_k=2)

        assert [h.similarity for h in result] == [0.4, 0.3]

    @pytest.mark.asyncio
    async def test_adaptive_threshold(self, make_hits):
        # mean 0.6, population std 0.2 -> threshold 0.5
        hits = make_hits([0.8, 0.8, 0.4, 0.4])
        reranker = Reranker()

        assert reranker.adaptive_threshold(hits) == pytest.approx(0.5)
        result = await reranker.rerank(hits, "q", RerankStrategy.adaptive(), top_k=5)
        assert [h.similarity for h in result] == [0.8, 0.8]

    @pytest.mark.asyncio
    async def test_adaptive_floor(self, make_hits):
        hits = make_hits([0.35, 0.1, 0.05])
        reranker = Reranker()

        assert reranker.adaptive_threshold(hits) == pytest.approx(0.3)
        result = await reranker.rerank(hits, "q", RerankStrategy.adaptive(), top_k=5)
        assert [h.similarity for h in result] == [0.35]

    @pytest.mark.asyncio
    async def test_adaptive_falls_back(self, make_hits):
        hits = make_hits([0.2, 0.1])
        result = await Reranker().rerank(hits, "q", RerankStrategy.adaptive(), top_k=1)

        assert [h.similarity for h in result] == [0.2]

    @pytest.mark.asyncio
    async def test_empty_input(self):
        reranker = Reranker()
        for strategy in (
            RerankStrategy.none(),
            RerankStrategy.threshold(0.5),
            RerankStrategy.adaptive(),
            RerankStrategy.llm_judged(),
        ):
            assert await reranker.rerank([], "q", strategy, top_k=5) == []

    @pytest.mark.asyncio
    async def test_non_positive_top_k(self, make_hits):
        result = await Reranker().rerank(make_hits([0.9]), "q", RerankStrategy.none(), top_k=0)
        assert result == []


class TestLLMJudgedReranking:
    """Tests for the LLM-judged strategy."""

    @pytest.mark.asyncio
    async def test_combines_scores(self, make_hits, scripted_llm):
        llm = scripted_llm(["Scores: [2, 10, 5]"])
        hits = make_hits([0.9, 0.5, 0.7])

        result = await Reranker(llm).rerank(hits, "q", RerankStrategy.llm_judged(), top_k=3)

        # 0.4 * sim + 0.6 * llm / 10 -> 0.48, 0.80, 0.58
        assert [h.similarity for h in result] == [0.5, 0.7, 0.9]
        assert [h.rank for h in result] == [1, 2, 3]
        assert len(llm.prompts) == 1
        assert "fragment 0" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_scores_are_clamped(self, make_hits, scripted_llm):
        llm = scripted_llm(["[0, 50]"])
        hits = make_hits([0.9, 0.1])

        result = await Reranker(llm).rerank(hits, "q", RerankStrategy.llm_judged(), top_k=2)

        # 0.36 vs 0.04 + 0.6 = 0.64
        assert [h.similarity for h in result] == [0.1, 0.9]

    @pytest.mark.asyncio
    async def test_unparseable_response_keeps_order(self, make_hits, scripted_llm):
        llm = scripted_llm(["I think the second one is best."])
        hits = make_hits([0.8, 0.6, 0.4])

        result = await Reranker(llm).rerank(hits, "q", RerankStrategy.llm_judged(), top_k=3)

        assert [h.similarity for h in result] == [0.8, 0.6, 0.4]

    @pytest.mark.asyncio
    async def test_wrong_length_uses_fallback(self, make_hits, scripted_llm):
        llm = scripted_llm(["[10]"])
        hits = make_hits([0.8, 0.6])

        result = await Reranker(llm).rerank(hits, "q", RerankStrategy.llm_judged(), top_k=2)

        assert [h.similarity for h in result] == [0.8, 0.6]

    @pytest.mark.asyncio
    async def test_candidate_cap(self, make_hits, scripted_llm):
        llm = scripted_llm(["no scores"])
        hits = make_hits([1.0 - i * 0.01 for i in range(20)])
        reranker = Reranker(llm, RerankConfig(llm_candidate_cap=15))

        result = await reranker.rerank(hits, "q", RerankStrategy.llm_judged(), top_k=20)

        assert len(result) == 15
        assert "[15]" in llm.prompts[0]
        assert "[16]" not in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_llm_failure_raises(self, make_hits, scripted_llm):
        llm = scripted_llm([ProviderError("boom", status_code=500)])

        with pytest.raises(RerankingFailedError) as exc_info:
            await Reranker(llm).rerank(make_hits([0.9]), "q", RerankStrategy.llm_judged())

        assert "boom" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_without_llm_raises(self, make_hits):
        with pytest.raises(RerankingFailedError):
            await Reranker().rerank(make_hits([0.9]), "q", RerankStrategy.llm_judged())


class TestParseScores:
    def test_extracts_array_from_prose(self):
        scores = Reranker.parse_scores("Here you go: [8, 3, 9]. Done.", 3)
        assert scores == pytest.approx([0.8, 0.3, 0.9])

    def test_multiline_array(self):
        scores = Reranker.parse_scores("[\n 1,\n 2\n]", 2)
        assert scores == pytest.approx([0.1, 0.2])

    def test_fallback(self):
        assert Reranker.parse_scores("nothing", 3) == pytest.approx([1.0, 0.95, 0.9])

    def test_malformed_array_falls_back(self):
        assert Reranker.parse_scores("[1,,2]", 2) == pytest.approx([1.0, 0.95])


class TestCompareStrategies:
    @pytest.mark.asyncio
    async def test_without_llm(self, make_hits):
        hits = make_hits([0.9, 0.7, 0.5, 0.2])
        comparison = await Reranker().compare_strategies(hits, "q", top_k=3, threshold=0.6)

        assert len(comparison.no_filter) == 3
        assert [h.similarity for h in comparison.threshold] == [0.9, 0.7]
        assert comparison.llm_judged is None
        summary = comparison.summary()
        assert "Threshold (60%)" in summary
        assert "LLM-judged: not run" in summary

    @pytest.mark.asyncio
    async def test_with_llm(self, make_hits, scripted_llm):
        llm = scripted_llm(["[1, 9]"])
        hits = make_hits([0.9, 0.8])
        comparison = await Reranker(llm).compare_strategies(hits, "q", top_k=2, include_llm=True)

        assert [h.similarity for h in comparison.llm_judged] == [0.8, 0.9]
        assert "LLM-judged: 2 hits" in comparison.summary()
