"""External AI services: embedding and rerank providers.

Abstract interfaces with implementations for OpenAI, Voyage AI,
sentence-transformers (local), Cohere, and deterministic mocks.
"""

from memento.providers.embedding import EmbeddingProvider, MockEmbeddingProvider
from memento.providers.rerank import MockRerankProvider, RerankProvider

__all__ = [
    # Embedding
    "EmbeddingProvider",
    "MockEmbeddingProvider",
    # Rerank
    "RerankProvider",
    "MockRerankProvider",
]
