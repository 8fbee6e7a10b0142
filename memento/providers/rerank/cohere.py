"""Cohere rerank provider."""

import os
from typing import Any

import httpx

from memento.errors import (
    ConfigurationError,
    InvalidResponseError,
    ProviderError,
    TransientServerError,
    error_from_status,
)
from memento.observability.logging import get_logger
from memento.providers.rerank.base import RerankProvider, RerankResponse, RerankResult
from memento.providers.retry import NO_RETRY, RetryPolicy, retry_async

logger = get_logger(__name__)


class CohereRerankProvider(RerankProvider):
    """Rerank provider using the Cohere rerank API."""

    BASE_URL = "https://api.cohere.ai/v1/rerank"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "rerank-english-v3.0",
        default_top_k: int = 10,
        timeout: float = 30.0,
        retry_policy: RetryPolicy = NO_RETRY,
    ):
        """Initialize Cohere rerank provider.

        Args:
            api_key: Cohere API key (defaults to COHERE_API_KEY env var)
            model: Model identifier
            default_top_k: Default number of results to return
            timeout: Request timeout in seconds
            retry_policy: Backoff for rate limits and transient failures
        """
        self._api_key = api_key or os.environ.get("COHERE_API_KEY")
        if not self._api_key:
            raise ConfigurationError("COHERE_API_KEY environment variable not set")

        self._model = model
        self._default_top_k = default_top_k
        self._retry_policy = retry_policy
        self._client = httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "cohere"

    async def rerank(
        self,
        query: str,
        documents: list[str],
        *,
        model: str | None = None,
        top_k: int | None = None,
        **kwargs: Any,
    ) -> RerankResponse:
        use_model = model or self._model
        if not documents:
            return RerankResponse(results=[], model=use_model, usage={"total_tokens": 0})

        use_top_k = min(top_k if top_k is not None else self._default_top_k, len(documents))

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        payload: dict[str, Any] = {
            "model": use_model,
            "query": query,
            "documents": documents,
            "top_n": use_top_k,
            "return_documents": False,
        }
        payload.update(kwargs)

        logger.debug(
            "cohere_rerank_request",
            model=use_model,
            query_len=len(query),
            num_documents=len(documents),
            top_k=use_top_k,
        )

        async def _call() -> dict[str, Any]:
            try:
                response = await self._client.post(self.BASE_URL, headers=headers, json=payload)
            except httpx.TransportError as e:
                raise TransientServerError(
                    f"Cohere request failed: {e}", provider="cohere"
                ) from e
            if response.status_code != 200:
                raise error_from_status(
                    response.status_code,
                    response.text,
                    provider="cohere",
                    retry_after=response.headers.get("retry-after"),
                )
            try:
                return response.json()
            except ValueError as e:
                raise InvalidResponseError(
                    "Cohere returned a non-JSON body", provider="cohere"
                ) from e

        try:
            data = await retry_async(_call, self._retry_policy, operation_name="cohere_rerank")
        except ProviderError as e:
            logger.error(
                "cohere_rerank_error",
                model=use_model,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        try:
            results = [
                RerankResult(
                    index=item["index"],
                    score=item["relevance_score"],
                    text=documents[item["index"]],
                )
                for item in data["results"]
            ]
        except (KeyError, IndexError, TypeError) as e:
            raise InvalidResponseError(
                f"Malformed Cohere rerank payload: {e}", provider="cohere"
            ) from e

        usage = None
        if "meta" in data and "billed_units" in data["meta"]:
            usage = {"total_tokens": data["meta"]["billed_units"].get("search_units", 0)}

        logger.debug(
            "cohere_rerank_success",
            model=use_model,
            num_results=len(results),
            top_score=results[0].score if results else 0,
        )

        return RerankResponse(results=results, model=use_model, usage=usage)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "CohereRerankProvider":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
