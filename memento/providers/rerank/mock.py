"""Mock rerank provider for testing."""

from typing import Any

from memento.providers.rerank.base import RerankProvider, RerankResponse, RerankResult


class MockRerankProvider(RerankProvider):
    """Mock rerank provider scoring documents by word overlap (Jaccard)."""

    def __init__(
        self,
        default_model: str = "mock-rerank",
        fail_with: Exception | None = None,
    ):
        """Initialize mock provider.

        Args:
            default_model: Model name to report
            fail_with: Raise this exception on every call
        """
        self._default_model = default_model
        self._fail_with = fail_with
        self._call_history: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """Return history of calls for testing assertions."""
        return self._call_history

    def _compute_similarity(self, query: str, document: str) -> float:
        query_words = set(query.lower().split())
        doc_words = set(document.lower().split())

        if not query_words or not doc_words:
            return 0.0

        return len(query_words & doc_words) / len(query_words | doc_words)

    async def rerank(
        self,
        query: str,
        documents: list[str],
        *,
        model: str | None = None,
        top_k: int | None = None,
        **kwargs: Any,
    ) -> RerankResponse:
        self._call_history.append({
            "query": query,
            "documents": documents,
            "model": model or self._default_model,
            "top_k": top_k,
            "kwargs": kwargs,
        })
        if self._fail_with is not None:
            raise self._fail_with

        scored = [
            (i, self._compute_similarity(query, doc), doc)
            for i, doc in enumerate(documents)
        ]
        scored.sort(key=lambda x: x[1], reverse=True)
        if top_k is not None:
            scored = scored[:top_k]

        return RerankResponse(
            results=[RerankResult(index=i, score=score, text=text) for i, score, text in scored],
            model=model or self._default_model,
        )
