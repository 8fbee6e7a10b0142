"""RerankProvider factory."""

from memento.config.models.providers import RerankProviderConfig, RetryConfig
from memento.errors import ConfigurationError
from memento.observability.logging import get_logger
from memento.providers.rerank.base import RerankProvider
from memento.providers.rerank.cohere import CohereRerankProvider
from memento.providers.rerank.mock import MockRerankProvider
from memento.providers.retry import RetryPolicy

logger = get_logger(__name__)


def create_rerank_provider(
    config: RerankProviderConfig,
    retry: RetryConfig | None = None,
) -> RerankProvider | None:
    """Create the configured rerank provider, or None when reranking is disabled."""
    if not config.enabled:
        return None

    logger.info("creating_rerank_provider", provider=config.provider, model=config.model)

    if config.provider == "cohere":
        return CohereRerankProvider(
            api_key=config.api_key.get_secret_value() if config.api_key else None,
            model=config.model,
            default_top_k=config.top_n,
            timeout=config.timeout,
            retry_policy=RetryPolicy.from_config(retry) if retry else RetryPolicy(),
        )
    if config.provider == "mock":
        return MockRerankProvider(default_model=config.model)

    raise ConfigurationError(f"Unsupported rerank provider: {config.provider}")
