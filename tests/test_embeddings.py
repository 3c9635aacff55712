"""Tests for the OpenAI embedding provider."""

import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from ragcore.exceptions import (
    InputError,
    ProviderError,
    RateLimitedError,
    UnauthorizedError,
)
from ragcore.rag import OpenAIEmbedding
from ragcore.utils.config import EmbeddingConfig


class FakeEmbeddingsAPI:
    """Stands in for ``client.embeddings``; vectors encode the input text length."""

    def __init__(self, error=None, delay=0.0, drop_last=False):
        self.requests: list[list[str]] = []
        self.error = error
        self.delay = delay
        self.drop_last = drop_last

    async def create(self, model, input):
        self.requests.append(list(input))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

        items = [
            SimpleNamespace(index=i, embedding=[float(len(text)), 1.0])
            for i, text in enumerate(input)
        ]
        if self.drop_last:
            items = items[:-1]
        # Out-of-order on purpose; callers must sort by index
        return SimpleNamespace(data=list(reversed(items)))


def make_embedding(api, **config):
    config.setdefault("api_key", "test-key")
    config.setdefault("batch_delay", 0.0)
    embedding = OpenAIEmbedding(EmbeddingConfig(**config))
    embedding._client = SimpleNamespace(embeddings=api)
    return embedding


def _response(status: int) -> httpx.Response:
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    return httpx.Response(status, request=request)


class TestOpenAIEmbedding:
    """Tests for OpenAIEmbedding."""

    def test_dimensions(self):
        assert OpenAIEmbedding(EmbeddingConfig(api_key="k")).dimension == 1536
        large = OpenAIEmbedding(EmbeddingConfig(api_key="k", model="text-embedding-3-large"))
        assert large.dimension == 3072

    @pytest.mark.asyncio
    async def test_order_preserved(self):
        api = FakeEmbeddingsAPI()
        embedding = make_embedding(api)

        vectors = await embedding.embed_documents(["a", "bbb", "cc"])

        assert vectors == [[1.0, 1.0], [3.0, 1.0], [2.0, 1.0]]

    @pytest.mark.asyncio
    async def test_batches_with_delay(self, monkeypatch):
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr("ragcore.rag.embeddings.asyncio.sleep", fake_sleep)
        api = FakeEmbeddingsAPI()
        embedding = make_embedding(api, max_batch_size=2, batch_delay=0.5)

        vectors = await embedding.embed_documents(["a", "bb", "ccc", "dddd", "eeeee"])

        assert [len(r) for r in api.requests] == [2, 2, 1]
        assert sleeps == [0.5, 0.5]
        assert [v[0] for v in vectors] == [1.0, 2.0, 3.0, 4.0, 5.0]

    @pytest.mark.asyncio
    async def test_empty_list(self):
        api = FakeEmbeddingsAPI()
        assert await make_embedding(api).embed_documents([]) == []
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self):
        api = FakeEmbeddingsAPI()
        embedding = make_embedding(api)

        with pytest.raises(InputError):
            await embedding.embed_documents(["ok", "  "])
        with pytest.raises(InputError):
            await embedding.embed_query("")
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_embed_query(self):
        embedding = make_embedding(FakeEmbeddingsAPI())
        assert await embedding.embed_query("four") == [4.0, 1.0]

    @pytest.mark.asyncio
    async def test_count_mismatch(self):
        embedding = make_embedding(FakeEmbeddingsAPI(drop_last=True))

        with pytest.raises(ProviderError):
            await embedding.embed_documents(["a", "b"])

    @pytest.mark.asyncio
    async def test_timeout(self):
        embedding = make_embedding(FakeEmbeddingsAPI(delay=1.0), timeout=0.05)

        with pytest.raises(ProviderError) as exc_info:
            await embedding.embed_query("slow")
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_rate_limit_mapped(self):
        error = openai.RateLimitError("slow down", response=_response(429), body=None)
        embedding = make_embedding(FakeEmbeddingsAPI(error=error))

        with pytest.raises(RateLimitedError) as exc_info:
            await embedding.embed_query("x")
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_auth_error_mapped(self):
        error = openai.AuthenticationError("bad key", response=_response(401), body=None)
        embedding = make_embedding(FakeEmbeddingsAPI(error=error))

        with pytest.raises(UnauthorizedError):
            await embedding.embed_query("x")

    @pytest.mark.asyncio
    async def test_server_error_mapped(self):
        error = openai.InternalServerError("oops", response=_response(500), body=None)
        embedding = make_embedding(FakeEmbeddingsAPI(error=error))

        with pytest.raises(ProviderError) as exc_info:
            await embedding.embed_query("x")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_failed_batch_aborts_call(self):
        api = FakeEmbeddingsAPI()
        embedding = make_embedding(api, max_batch_size=1)
        calls = 0
        original = api.create

        async def fail_second(model, input):
            nonlocal calls
            calls += 1
            if calls == 2:
                raise openai.InternalServerError("oops", response=_response(500), body=None)
            return await original(model, input)

        api.create = fail_second

        with pytest.raises(ProviderError):
            await embedding.embed_documents(["a", "b", "c"])
        assert calls == 2

    def test_missing_api_key(self):
        embedding = OpenAIEmbedding(EmbeddingConfig(api_key=None))

        with pytest.raises(UnauthorizedError):
            embedding._get_client()
