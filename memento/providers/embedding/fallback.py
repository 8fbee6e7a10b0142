"""Ordered fallback across embedding providers."""

from typing import Any

from memento.errors import AllProvidersFailedError, ConfigurationError
from memento.observability.logging import get_logger
from memento.observability.metrics import EMBEDDING_FALLBACKS
from memento.providers.embedding.base import (
    EmbeddingProvider,
    EmbeddingProviderKind,
    EmbeddingResponse,
)

logger = get_logger(__name__)


class FallbackEmbeddingProvider(EmbeddingProvider):
    """Tries each provider in order until one succeeds.

    All members must declare the same dimension; otherwise a fallback
    could store vectors that do not fit the index. Model info reports the
    primary provider, while every ``EmbeddingResponse`` names the model that
    actually produced it.
    """

    kind = EmbeddingProviderKind.FALLBACK

    def __init__(self, providers: list[EmbeddingProvider]):
        if not providers:
            raise ConfigurationError("FallbackEmbeddingProvider requires at least one provider")

        dimensions = [(p.provider_name, p.dimensions) for p in providers]
        if len({dims for _, dims in dimensions}) > 1:
            raise ConfigurationError(
                f"Fallback providers declare different dimensions: {dimensions}",
                dimensions=dimensions,
            )

        self._providers = providers
        self._last_provider: EmbeddingProvider | None = None

    @property
    def providers(self) -> list[EmbeddingProvider]:
        return list(self._providers)

    @property
    def primary(self) -> EmbeddingProvider:
        return self._providers[0]

    @property
    def provider_name(self) -> str:
        return "fallback(" + ",".join(p.provider_name for p in self._providers) + ")"

    @property
    def model_name(self) -> str:
        return self.primary.model_name

    @property
    def dimensions(self) -> int:
        return self.primary.dimensions

    @property
    def version(self) -> str:  # type: ignore[override]
        return self.primary.version

    @property
    def last_provider(self) -> EmbeddingProvider | None:
        """Provider that served the most recent successful call."""
        return self._last_provider

    async def embed(
        self,
        texts: list[str],
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> EmbeddingResponse:
        failures: list[tuple[str, Exception]] = []

        for provider in self._providers:
            try:
                response = await provider.embed(texts, model=model, **kwargs)
                provider._check_response(texts, response)
            except Exception as e:
                failures.append((provider.provider_name, e))
                EMBEDDING_FALLBACKS.labels(from_provider=provider.provider_name).inc()
                logger.warning(
                    "embedding_provider_failed",
                    provider=provider.provider_name,
                    error_type=type(e).__name__,
                    error=str(e),
                    remaining=len(self._providers) - len(failures),
                )
                continue

            self._last_provider = provider
            if failures:
                logger.info(
                    "embedding_fallback_succeeded",
                    provider=provider.provider_name,
                    failed_providers=[name for name, _ in failures],
                )
            response.metadata["served_by"] = provider.provider_name
            return response

        logger.error(
            "embedding_all_providers_failed",
            providers=[name for name, _ in failures],
        )
        raise AllProvidersFailedError(failures)

    async def close(self) -> None:
        for provider in self._providers:
            await provider.close()
