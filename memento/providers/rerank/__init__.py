"""Rerank providers for relevance reordering."""

from memento.providers.rerank.base import RerankProvider, RerankResponse, RerankResult
from memento.providers.rerank.cohere import CohereRerankProvider
from memento.providers.rerank.factory import create_rerank_provider
from memento.providers.rerank.mock import MockRerankProvider

__all__ = [
    "CohereRerankProvider",
    "MockRerankProvider",
    "RerankProvider",
    "RerankResponse",
    "RerankResult",
    "create_rerank_provider",
]
