"""EmbeddingProvider abstract interface."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from memento.errors import InvalidResponseError, ProviderError
from memento.observability.logging import get_logger
from memento.observability.metrics import EMBEDDING_REQUESTS

logger = get_logger(__name__)


class EmbeddingProviderKind(str, Enum):
    """Variant tag used to dispatch provider construction."""

    OPENAI = "openai"
    VOYAGE = "voyage"
    LOCAL = "local"
    MOCK = "mock"
    FALLBACK = "fallback"


class EmbeddingModelInfo(BaseModel):
    """What a provider would produce. Immutable per provider instance."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Model identifier")
    dimensions: int = Field(..., gt=0, description="Vector length")
    version: str = Field(default="1.0.0", description="Provider implementation version")


class EmbeddingResponse(BaseModel):
    """Response from an embedding provider."""

    embeddings: list[list[float]] = Field(..., description="Embedding vectors")
    model: str = Field(..., description="Model used")
    dimensions: int = Field(..., description="Vector dimensions")
    usage: dict[str, int] | None = Field(default=None, description="Token usage stats")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Provider-specific metadata"
    )


class EmbeddingProvider(ABC):
    """Abstract interface for text embeddings.

    Implementations provide ``embed``, which maps directly onto one provider
    request. Callers use ``generate_embedding``/``generate_embeddings``,
    which split large inputs into provider-sized batches and check that the
    provider returned one vector of the declared dimension per input, in
    input order.
    """

    kind: EmbeddingProviderKind
    version: str = "1.0.0"
    batch_size: int = 100

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the configured model identifier."""

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Return the embedding dimensions."""

    @abstractmethod
    async def embed(
        self,
        texts: list[str],
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> EmbeddingResponse:
        """Generate embeddings for texts in a single provider request.

        Raises:
            ProviderError: Or one of its subclasses on failure
        """

    async def close(self) -> None:
        """Release client resources. No-op unless overridden."""

    def get_model_info(self) -> EmbeddingModelInfo:
        return EmbeddingModelInfo(
            name=self.model_name,
            dimensions=self.dimensions,
            version=self.version,
        )

    async def generate_embeddings(self, texts: list[str], **kwargs: Any) -> list[list[float]]:
        """Embed ``texts``, preserving input order in the output."""
        if not texts:
            return []

        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            response = await self.embed_checked(texts[start : start + self.batch_size], **kwargs)
            vectors.extend(response.embeddings)
        return vectors

    async def embed_checked(self, texts: list[str], **kwargs: Any) -> EmbeddingResponse:
        """One provider request whose response has been checked against ``texts``.

        The response names the model that produced the vectors, which can
        differ from ``model_name`` for composite providers.
        """
        try:
            response = await self.embed(texts, **kwargs)
            self._check_response(texts, response)
        except ProviderError:
            EMBEDDING_REQUESTS.labels(provider=self.provider_name, outcome="error").inc()
            raise
        EMBEDDING_REQUESTS.labels(provider=self.provider_name, outcome="success").inc()
        return response

    async def generate_embedding(self, text: str, **kwargs: Any) -> list[float]:
        """Embed a single text."""
        vectors = await self.generate_embeddings([text], **kwargs)
        return vectors[0]

    def _check_response(self, texts: list[str], response: EmbeddingResponse) -> None:
        if len(response.embeddings) != len(texts):
            raise InvalidResponseError(
                f"Expected {len(texts)} embeddings, received {len(response.embeddings)}",
                provider=self.provider_name,
            )
        for vector in response.embeddings:
            if len(vector) != self.dimensions:
                raise InvalidResponseError(
                    f"Provider returned a {len(vector)}-dimensional vector, "
                    f"declared {self.dimensions}",
                    provider=self.provider_name,
                )
