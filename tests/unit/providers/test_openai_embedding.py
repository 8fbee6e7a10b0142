"""Tests for OpenAI embedding provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from memento.errors import (
    AuthenticationError,
    ConfigurationError,
    InvalidResponseError,
    RateLimitError,
    TransientServerError,
)
from memento.providers.embedding.base import EmbeddingResponse
from memento.providers.embedding.openai import OpenAIEmbeddingProvider
from memento.providers.retry import RetryPolicy

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def api_response(*vectors: list[float], indexes: list[int] | None = None) -> MagicMock:
    response = MagicMock()
    indexes = indexes or list(range(len(vectors)))
    response.data = [
        MagicMock(embedding=vector, index=index) for vector, index in zip(vectors, indexes)
    ]
    response.usage = MagicMock(total_tokens=10, prompt_tokens=10)
    return response


class TestOpenAIEmbeddingProvider:
    """Tests for OpenAIEmbeddingProvider."""

    @pytest.fixture
    def provider(self) -> OpenAIEmbeddingProvider:
        """Create an OpenAI provider with mocked API key."""
        with patch.dict("os.environ", {"OPENAI_API_KEY": "test-key"}):
            return OpenAIEmbeddingProvider(model="text-embedding-3-small", dimensions=4)

    def test_requires_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should refuse to start without a key."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            OpenAIEmbeddingProvider()

    def test_dimensions_inferred_from_model(self) -> None:
        """Should infer the native model dimension."""
        provider = OpenAIEmbeddingProvider(api_key="k", model="text-embedding-3-large")
        assert provider.dimensions == 3072
        assert provider.provider_name == "openai"

    @pytest.mark.asyncio
    async def test_embed_texts(self, provider: OpenAIEmbeddingProvider) -> None:
        """Should embed multiple texts via API."""
        provider._client.embeddings.create = AsyncMock(
            return_value=api_response([0.1] * 4, [0.2] * 4)
        )

        response = await provider.embed(["Hello", "World"])

        assert isinstance(response, EmbeddingResponse)
        assert response.embeddings == [[0.1] * 4, [0.2] * 4]
        assert response.model == "text-embedding-3-small"
        assert response.usage == {"total_tokens": 10, "prompt_tokens": 10}

    @pytest.mark.asyncio
    async def test_sends_dimensions_for_v3_models(self, provider: OpenAIEmbeddingProvider) -> None:
        """text-embedding-3-* requests carry the dimensions parameter."""
        provider._client.embeddings.create = AsyncMock(return_value=api_response([0.1] * 4))

        await provider.embed(["Test"])

        call_args = provider._client.embeddings.create.call_args
        assert call_args.kwargs["dimensions"] == 4
        assert call_args.kwargs["input"] == ["Test"]

    @pytest.mark.asyncio
    async def test_omits_dimensions_for_ada(self) -> None:
        """ada-002 does not accept the dimensions parameter."""
        provider = OpenAIEmbeddingProvider(api_key="k", model="text-embedding-ada-002")
        provider._client.embeddings.create = AsyncMock(return_value=api_response([0.1] * 1536))

        await provider.embed(["Test"])

        assert "dimensions" not in provider._client.embeddings.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_restores_input_order(self, provider: OpenAIEmbeddingProvider) -> None:
        """Out-of-order response items are sorted by index."""
        provider._client.embeddings.create = AsyncMock(
            return_value=api_response([0.2] * 4, [0.1] * 4, indexes=[1, 0])
        )

        vectors = await provider.generate_embeddings(["first", "second"])

        assert vectors == [[0.1] * 4, [0.2] * 4]

    @pytest.mark.asyncio
    async def test_empty_data_is_invalid(self, provider: OpenAIEmbeddingProvider) -> None:
        provider._client.embeddings.create = AsyncMock(return_value=api_response())
        with pytest.raises(InvalidResponseError):
            await provider.embed(["x"])

    @pytest.mark.asyncio
    async def test_authentication_error(self, provider: OpenAIEmbeddingProvider) -> None:
        error = openai.AuthenticationError(
            "invalid key", response=httpx.Response(401, request=REQUEST), body=None
        )
        provider._client.embeddings.create = AsyncMock(side_effect=error)

        with pytest.raises(AuthenticationError):
            await provider.embed(["x"])

    @pytest.mark.asyncio
    async def test_rate_limit_carries_retry_after(self, provider: OpenAIEmbeddingProvider) -> None:
        error = openai.RateLimitError(
            "slow down",
            response=httpx.Response(429, headers={"retry-after": "7"}, request=REQUEST),
            body=None,
        )
        provider._client.embeddings.create = AsyncMock(side_effect=error)

        with pytest.raises(RateLimitError) as exc_info:
            await provider.embed(["x"])
        assert exc_info.value.retry_after == 7.0

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self, provider: OpenAIEmbeddingProvider) -> None:
        provider._client.embeddings.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=REQUEST)
        )
        with pytest.raises(TransientServerError):
            await provider.embed(["x"])

    @pytest.mark.asyncio
    async def test_retries_server_errors(self) -> None:
        """Transient failures are retried by the configured policy."""
        provider = OpenAIEmbeddingProvider(
            api_key="k",
            dimensions=4,
            retry_policy=RetryPolicy(max_attempts=2, initial_delay=0, jitter=False),
        )
        error = openai.InternalServerError(
            "oops", response=httpx.Response(500, request=REQUEST), body=None
        )
        provider._client.embeddings.create = AsyncMock(
            side_effect=[error, api_response([0.3] * 4)]
        )

        response = await provider.embed(["x"])

        assert response.embeddings == [[0.3] * 4]
        assert provider._client.embeddings.create.await_count == 2
