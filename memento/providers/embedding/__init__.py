"""Embedding providers for text vectorization."""

from memento.providers.embedding.base import (
    EmbeddingModelInfo,
    EmbeddingProvider,
    EmbeddingProviderKind,
    EmbeddingResponse,
)
from memento.providers.embedding.factory import create_embedding_provider
from memento.providers.embedding.fallback import FallbackEmbeddingProvider
from memento.providers.embedding.mock import MockEmbeddingProvider

__all__ = [
    "EmbeddingModelInfo",
    "EmbeddingProvider",
    "EmbeddingProviderKind",
    "EmbeddingResponse",
    "FallbackEmbeddingProvider",
    "MockEmbeddingProvider",
    "create_embedding_provider",
]
