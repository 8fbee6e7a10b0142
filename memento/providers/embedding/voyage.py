"""Voyage AI embedding provider."""

import os
from typing import Any, Literal

import httpx

from memento.config.dimensions import get_model_dimensions
from memento.errors import (
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

VoyageInputType = Literal["document", "query"]


class VoyageEmbeddingProvider(EmbeddingProvider):
    """Embedding provider using the Voyage AI REST API.

    voyage-3 family models accept an ``output_dimension`` parameter, which is
    sent so the configured dimension is honoured; older models always return
    their native dimension.
    """

    BASE_URL = "https://api.voyageai.com/v1/embeddings"

    kind = EmbeddingProviderKind.VOYAGE
    version = "3.0.0"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "voyage-3-large",
        dimensions: int | None = None,
        input_type: VoyageInputType = "document",
        timeout: float = 60.0,
        batch_size: int = 128,
        retry_policy: RetryPolicy = NO_RETRY,
    ):
        """Initialize Voyage embedding provider.

        Args:
            api_key: Voyage API key (defaults to VOYAGE_API_KEY env var)
            model: Model identifier
            dimensions: Output dimensions; inferred from the model when unset
            input_type: Default input type hint (document or query)
            timeout: Request timeout in seconds
            batch_size: Maximum texts per request
            retry_policy: Backoff for rate limits and transient failures
        """
        self._api_key = api_key or os.environ.get("VOYAGE_API_KEY")
        if not self._api_key:
            raise ConfigurationError("VOYAGE_API_KEY environment variable not set")

        self._model = model
        self._dimensions = dimensions or get_model_dimensions(model)
        self._input_type = input_type
        self._retry_policy = retry_policy
        self.batch_size = batch_size
        self._client = httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "voyage"

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _supports_output_dimension(self, model: str) -> bool:
        return model.startswith("voyage-3")

    async def embed(
        self,
        texts: list[str],
        *,
        model: str | None = None,
        input_type: VoyageInputType | None = None,
        **kwargs: Any,
    ) -> EmbeddingResponse:
        """Generate embeddings using the Voyage API.

        Args:
            texts: List of texts to embed
            model: Model to use (defaults to configured model)
            input_type: Input type hint (defaults to configured input type)
            **kwargs: Additional options passed to the API
        """
        use_model = model or self._model
        use_input_type = input_type or self._input_type

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        payload: dict[str, Any] = {
            "input": texts,
            "model": use_model,
            "input_type": use_input_type,
        }
        if self._supports_output_dimension(use_model):
            payload["output_dimension"] = self._dimensions
        payload.update(kwargs)

        logger.debug(
            "voyage_embed_request",
            model=use_model,
            input_type=use_input_type,
            num_texts=len(texts),
        )

        async def _call() -> dict[str, Any]:
            try:
                response = await self._client.post(self.BASE_URL, headers=headers, json=payload)
            except httpx.TransportError as e:
                raise TransientServerError(
                    f"Voyage request failed: {e}", provider="voyage"
                ) from e
            if response.status_code != 200:
                raise error_from_status(
                    response.status_code,
                    response.text,
                    provider="voyage",
                    retry_after=response.headers.get("retry-after"),
                )
            try:
                return response.json()
            except ValueError as e:
                raise InvalidResponseError(
                    "Voyage returned a non-JSON body", provider="voyage"
                ) from e

        try:
            data = await retry_async(_call, self._retry_policy, operation_name="voyage_embed")
        except ProviderError as e:
            logger.error(
                "voyage_embed_error",
                model=use_model,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        items = data.get("data") if isinstance(data, dict) else None
        if not items:
            raise InvalidResponseError("Voyage returned no embeddings", provider="voyage")
        try:
            items = sorted(items, key=lambda item: item.get("index", 0))
            embeddings = [list(item["embedding"]) for item in items]
        except (KeyError, TypeError) as e:
            raise InvalidResponseError(
                f"Malformed Voyage embedding payload: {e}", provider="voyage"
            ) from e

        usage = None
        if isinstance(data.get("usage"), dict):
            usage = {"total_tokens": data["usage"].get("total_tokens", 0)}

        logger.debug(
            "voyage_embed_success",
            model=use_model,
            num_embeddings=len(embeddings),
        )

        return EmbeddingResponse(
            embeddings=embeddings,
            model=use_model,
            dimensions=self._dimensions,
            usage=usage,
            metadata={"input_type": use_input_type},
        )

    async def embed_query(self, text: str, **kwargs: Any) -> list[float]:
        """Embed a search query using the query input type."""
        vectors = await self.generate_embeddings([text], input_type="query", **kwargs)
        return vectors[0]

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "VoyageEmbeddingProvider":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
