"""EmbeddingProvider factory.

Dispatches on the explicit provider tag in configuration. When fallback
providers are configured the primary and its fallbacks are wrapped in a
:class:`FallbackEmbeddingProvider`.
"""

from memento.config.models.providers import EmbeddingProviderConfig, ProvidersConfig
from memento.errors import ConfigurationError
from memento.observability.logging import get_logger
from memento.providers.embedding.base import EmbeddingProvider, EmbeddingProviderKind
from memento.providers.embedding.fallback import FallbackEmbeddingProvider
from memento.providers.embedding.mock import MockEmbeddingProvider
from memento.providers.retry import RetryPolicy

logger = get_logger(__name__)


def create_single_provider(
    config: EmbeddingProviderConfig,
    *,
    dimensions: int,
    retry_policy: RetryPolicy,
) -> EmbeddingProvider:
    """Create one provider whose vectors have ``dimensions`` elements."""
    kind = EmbeddingProviderKind(config.provider)
    api_key = config.api_key.get_secret_value() if config.api_key else None

    logger.info(
        "creating_embedding_provider",
        provider=kind.value,
        model=config.model,
        dimensions=dimensions,
    )

    if kind is EmbeddingProviderKind.OPENAI:
        from memento.providers.embedding.openai import OpenAIEmbeddingProvider

        return OpenAIEmbeddingProvider(
            api_key=api_key,
            model=config.model,
            dimensions=dimensions,
            timeout=config.timeout,
            batch_size=config.batch_size,
            retry_policy=retry_policy,
        )

    if kind is EmbeddingProviderKind.VOYAGE:
        from memento.providers.embedding.voyage import VoyageEmbeddingProvider

        return VoyageEmbeddingProvider(
            api_key=api_key,
            model=config.model,
            dimensions=dimensions,
            input_type=config.input_type,
            timeout=config.timeout,
            batch_size=config.batch_size,
            retry_policy=retry_policy,
        )

    if kind is EmbeddingProviderKind.LOCAL:
        from memento.providers.embedding.local import LocalEmbeddingProvider

        return LocalEmbeddingProvider(
            model_name=config.model,
            dimensions=dimensions,
            batch_size=config.batch_size,
        )

    if kind is EmbeddingProviderKind.MOCK:
        return MockEmbeddingProvider(dimensions=dimensions, default_model=config.model)

    raise ConfigurationError(f"Unsupported embedding provider: {config.provider}")


def create_embedding_provider(config: ProvidersConfig, *, dimensions: int) -> EmbeddingProvider:
    """Create the configured embedding provider.

    Args:
        config: Provider configuration from settings
        dimensions: Resolved embedding dimension from the DimensionRegistry

    Raises:
        ConfigurationError: If a provider type is unsupported, its credentials
            are missing, or fallbacks cannot share ``dimensions``
    """
    retry_policy = RetryPolicy.from_config(config.retry)
    primary = create_single_provider(
        config.embedding, dimensions=dimensions, retry_policy=retry_policy
    )
    if not config.embedding_fallbacks:
        return primary

    providers = [primary]
    for fallback_config in config.embedding_fallbacks:
        providers.append(
            create_single_provider(
                fallback_config,
                dimensions=fallback_config.dimensions or dimensions,
                retry_policy=retry_policy,
            )
        )
    return FallbackEmbeddingProvider(providers)
