"""Reranking of search results with an external relevance model."""

from typing import Any

from pydantic import BaseModel, Field

from memento.errors import ProviderError
from memento.observability.logging import get_logger
from memento.observability.metrics import RERANK_REQUESTS
from memento.providers.rerank.base import RerankProvider
from memento.vector.models import ResultMetadata, SearchMethod, VectorSearchResult

logger = get_logger(__name__)


class RerankDocument(BaseModel):
    """A document submitted for reranking.

    ``metadata["original_score"]``, when present, is reported back as the
    reranked document's ``score``.
    """

    id: str
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class RerankedDocument(BaseModel):
    id: str
    score: float | None = Field(default=None, description="Score before reranking")
    relevance_score: float = Field(..., description="Reranker relevance score")
    metadata: dict[str, Any] = Field(default_factory=dict)


class RerankingAdapter:
    """Maps documents and search results onto a RerankProvider.

    Provider errors propagate with their typed classification
    (authentication, rate limit, transient server error or other); the
    adapter never returns partial or stale results in their place.
    """

    def __init__(self, provider: RerankProvider, default_top_n: int | None = None):
        self._provider = provider
        self._default_top_n = default_top_n

    @property
    def provider(self) -> RerankProvider:
        return self._provider

    async def rerank(
        self,
        query: str,
        documents: list[RerankDocument],
        top_n: int | None = None,
    ) -> list[RerankedDocument]:
        if not documents:
            return []

        count = top_n or self._default_top_n or len(documents)
        try:
            response = await self._provider.rerank(
                query, [doc.text for doc in documents], top_k=count
            )
        except ProviderError as e:
            RERANK_REQUESTS.labels(provider=self._provider.provider_name, outcome="error").inc()
            logger.error(
                "rerank_failed",
                provider=self._provider.provider_name,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        RERANK_REQUESTS.labels(provider=self._provider.provider_name, outcome="success").inc()

        reranked = []
        for result in response.results:
            original = documents[result.index]
            reranked.append(
                RerankedDocument(
                    id=original.id,
                    score=original.metadata.get("original_score"),
                    relevance_score=result.score,
                    metadata={
                        **original.metadata,
                        "rerank_score": result.score,
                        "rerank_index": result.index,
                    },
                )
            )

        logger.debug(
            "rerank_completed",
            provider=self._provider.provider_name,
            original_count=len(documents),
            returned_count=len(reranked),
        )
        return reranked

    async def rerank_vector_search_results(
        self,
        query: str,
        results: list[VectorSearchResult],
        entity_texts: dict[str, str],
        top_n: int | None = None,
    ) -> list[VectorSearchResult]:
        """Rerank search results, keeping their prior similarity in metadata.

        Entities missing from ``entity_texts`` are ranked by their id.
        """
        if not results:
            return []

        documents = [
            RerankDocument(
                id=result.id,
                text=entity_texts.get(result.id) or result.id,
                metadata={
                    **result.metadata.model_dump(exclude_none=True),
                    "original_score": result.similarity,
                },
            )
            for result in results
        ]
        reranked = await self.rerank(query, documents, top_n)

        output = []
        for doc in reranked:
            metadata = {k: v for k, v in doc.metadata.items() if k != "original_score"}
            metadata["original_similarity"] = doc.score
            metadata["search_method"] = SearchMethod.VECTOR_RERANK
            output.append(
                VectorSearchResult(
                    id=doc.id,
                    similarity=doc.relevance_score,
                    metadata=ResultMetadata(**metadata),
                )
            )
        return output
