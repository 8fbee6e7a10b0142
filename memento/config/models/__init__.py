"""Configuration model exports."""

from memento.config.models.observability import LoggingConfig, ObservabilityConfig
from memento.config.models.providers import (
    EmbeddingProviderConfig,
    ProvidersConfig,
    RerankProviderConfig,
    RetryConfig,
)
from memento.config.models.search import ReindexConfig, SearchConfig
from memento.config.models.storage import Neo4jConfig, StorageConfig

__all__ = [
    # Observability
    "LoggingConfig",
    "ObservabilityConfig",
    # Providers
    "EmbeddingProviderConfig",
    "ProvidersConfig",
    "RerankProviderConfig",
    "RetryConfig",
    # Search
    "ReindexConfig",
    "SearchConfig",
    # Storage
    "Neo4jConfig",
    "StorageConfig",
]
