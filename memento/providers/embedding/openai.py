"""OpenAI embedding provider."""

import os
from typing import Any

import openai
from openai import AsyncOpenAI

from memento.config.dimensions import get_model_dimensions
from memento.errors import (
    AuthenticationError,
    ConfigurationError,
    InvalidResponseError,
    ProviderError,
    TransientServerError,
    error_from_status,
)
from memento.observability.logging import get_logger
from memento.providers.embedding.base import (
    EmbeddingProvider,
    EmbeddingProviderKind,
    EmbeddingResponse,
)
from memento.providers.retry import NO_RETRY, RetryPolicy, retry_async

logger = get_logger(__name__)


def _translate_error(error: openai.OpenAIError) -> ProviderError:
    """Convert an OpenAI SDK exception into the provider error taxonomy."""
    message = f"OpenAI API error: {error}"
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AuthenticationError(message, provider="openai")
    if isinstance(error, (openai.APITimeoutError, openai.APIConnectionError)):
        return TransientServerError(message, provider="openai")
    if isinstance(error, openai.APIStatusError):
        return error_from_status(
            error.status_code,
            str(error),
            provider="openai",
            retry_after=error.response.headers.get("retry-after"),
        )
    return ProviderError(message, provider="openai")


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embedding provider using the OpenAI API.

    Supports text-embedding-3-small, text-embedding-3-large and
    text-embedding-ada-002. The ``dimensions`` request parameter is only sent
    to text-embedding-3-* models, which support shortened outputs.
    """

    kind = EmbeddingProviderKind.OPENAI

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        dimensions: int | None = None,
        timeout: float = 60.0,
        batch_size: int = 100,
        retry_policy: RetryPolicy = NO_RETRY,
    ):
        """Initialize OpenAI embedding provider.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Model identifier
            dimensions: Output dimensions; inferred from the model when unset
            timeout: Request timeout in seconds
            batch_size: Maximum texts per request
            retry_policy: Backoff for rate limits and transient failures
        """
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self._api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable not set")

        self._model = model
        self._dimensions = dimensions or get_model_dimensions(model)
        self._retry_policy = retry_policy
        self.batch_size = batch_size
        # retry_async owns retries
        self._client = AsyncOpenAI(api_key=self._api_key, timeout=timeout, max_retries=0)

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(
        self,
        texts: list[str],
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> EmbeddingResponse:
        use_model = model or self._model

        api_kwargs: dict[str, Any] = {"input": texts, "model": use_model}
        if use_model.startswith("text-embedding-3-"):
            api_kwargs["dimensions"] = self._dimensions
        api_kwargs.update(kwargs)

        logger.debug(
            "openai_embed_request",
            model=use_model,
            dimensions=self._dimensions,
            num_texts=len(texts),
        )

        async def _call() -> Any:
            try:
                return await self._client.embeddings.create(**api_kwargs)
            except openai.OpenAIError as e:
                raise _translate_error(e) from e

        try:
            response = await retry_async(_call, self._retry_policy, operation_name="openai_embed")
        except ProviderError as e:
            logger.error(
                "openai_embed_error",
                model=use_model,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        if not response.data:
            raise InvalidResponseError("OpenAI returned no embeddings", provider="openai")

        items = sorted(response.data, key=lambda item: item.index)
        embeddings = [list(item.embedding) for item in items]

        usage = None
        if response.usage:
            usage = {
                "total_tokens": response.usage.total_tokens,
                "prompt_tokens": response.usage.prompt_tokens,
            }

        logger.debug(
            "openai_embed_success",
            model=use_model,
            num_embeddings=len(embeddings),
        )

        return EmbeddingResponse(
            embeddings=embeddings,
            model=use_model,
            dimensions=self._dimensions,
            usage=usage,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.close()

    async def __aenter__(self) -> "OpenAIEmbeddingProvider":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
