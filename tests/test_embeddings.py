"""Tests for the OpenAI-compatible embedding service."""

import json
import math

import httpx
import pytest

from secondbrain.errors import EmbeddingUnavailable
from secondbrain.services.embeddings import OpenAIEmbeddingService


def _ok_response(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    data = [
        {"index": i, "embedding": [3.0, 4.0] + [0.0] * (body["dimensions"] - 2)}
        for i in reversed(range(len(body["input"])))
    ]
    return httpx.Response(200, json={"data": data})


def _service(handler, **kwargs) -> OpenAIEmbeddingService:
    kwargs.setdefault("api_key", "sk-test")
    kwargs.setdefault("dimensions", 8)
    kwargs.setdefault("backoff_base", 0.0)
    kwargs.setdefault("backoff_max", 0.0)
    return OpenAIEmbeddingService(transport=httpx.MockTransport(handler), **kwargs)


class TestInit:

    def test_requires_key_for_openai(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="API key required"):
            OpenAIEmbeddingService()

    def test_local_api_needs_no_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        service = OpenAIEmbeddingService(api_base="http://localhost:11434/v1", dimensions=384)
        assert service.api_url == "http://localhost:11434/v1/embeddings"
        assert service.api_key == OpenAIEmbeddingService.LOCAL_API_KEY_PLACEHOLDER

    @pytest.mark.parametrize("dims", [0, 9000])
    def test_dimension_bounds(self, dims):
        with pytest.raises(ValueError, match="Dimensions"):
            OpenAIEmbeddingService(api_key="sk-test", dimensions=dims)

    def test_rejects_non_http_base(self):
        with pytest.raises(ValueError, match="HTTP"):
            OpenAIEmbeddingService(api_key="sk-test", api_base="ftp://example.com")

    def test_repr_masks_key(self):
        assert "sk-test" not in repr(OpenAIEmbeddingService(api_key="sk-test"))


class TestEmbed:

    async def test_embed_normalizes(self):
        service = _service(_ok_response)
        vector = await service.embed("hello")
        assert len(vector) == 8
        assert math.sqrt(sum(x * x for x in vector)) == pytest.approx(1.0)
        await service.close()

    async def test_batch_sorted_by_index(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return _ok_response(request)

        service = _service(handler)
        vectors = await service.embed_batch(["a  b", "c"])
        assert len(vectors) == 2
        assert seen["body"]["input"] == ["a b", "c"]
        assert seen["body"]["model"] == "text-embedding-3-small"

    async def test_sends_bearer_token(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            return _ok_response(request)

        await _service(handler).embed("x")
        assert seen["auth"] == "Bearer sk-test"

    async def test_retries_server_errors_then_succeeds(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) < 3:
                return httpx.Response(500)
            return _ok_response(request)

        vector = await _service(handler, max_retries=3).embed("x")
        assert len(attempts) == 3
        assert len(vector) == 8

    async def test_gives_up_after_max_retries(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(503)

        with pytest.raises(EmbeddingUnavailable):
            await _service(handler, max_retries=2).embed("x")
        assert len(attempts) == 2

    async def test_client_error_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(401, json={"error": "bad key"})

        with pytest.raises(EmbeddingUnavailable):
            await _service(handler, max_retries=3).embed("x")
        assert len(attempts) == 1

    async def test_rate_limit_is_retried(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) == 1:
                return httpx.Response(429)
            return _ok_response(request)

        await _service(handler).embed("x")
        assert len(attempts) == 2

    async def test_network_error_retried(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(EmbeddingUnavailable):
            await _service(handler, max_retries=2).embed("x")
        assert len(attempts) == 2

    async def test_context_manager_closes_client(self):
        async with _service(_ok_response) as service:
            await service.embed("x")
            client = service._client
        assert client.is_closed
