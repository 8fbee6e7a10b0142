"""AI provider configuration models."""

from typing import Literal

from pydantic import BaseModel, Field, SecretStr

EmbeddingProviderType = Literal["openai", "voyage", "local", "mock"]
RerankProviderType = Literal["cohere", "mock"]
VoyageInputType = Literal["document", "query"]


class EmbeddingProviderConfig(BaseModel):
    """Configuration for an embedding provider."""

    provider: EmbeddingProviderType = Field(
        default="openai",
        description="Provider type",
    )
    model: str = Field(
        default="text-embedding-3-small",
        description="Model identifier",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="API key (prefer env var)",
    )
    dimensions: int | None = Field(
        default=None,
        gt=0,
        description="Explicit embedding dimension override; inferred from the model when unset",
    )
    input_type: VoyageInputType = Field(
        default="document",
        description="Input type hint for providers that support one",
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Request timeout in seconds",
    )
    batch_size: int = Field(
        default=100,
        gt=0,
        description="Maximum texts per provider request",
    )


class RerankProviderConfig(BaseModel):
    """Configuration for a rerank provider."""

    enabled: bool = Field(default=False, description="Enable result reranking")
    provider: RerankProviderType = Field(
        default="cohere",
        description="Provider type",
    )
    model: str = Field(
        default="rerank-english-v3.0",
        description="Model identifier",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="API key (prefer env var)",
    )
    top_n: int = Field(
        default=10,
        gt=0,
        description="Number of results to return",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Request timeout in seconds",
    )


class RetryConfig(BaseModel):
    """Retry policy for retryable provider failures."""

    max_attempts: int = Field(default=3, ge=1, le=10, description="Attempts per call")
    initial_delay: float = Field(default=1.0, ge=0, description="First backoff delay (seconds)")
    max_delay: float = Field(default=30.0, ge=0, description="Backoff ceiling (seconds)")
    backoff_multiplier: float = Field(default=2.0, ge=1.0, description="Exponential factor")
    jitter: bool = Field(default=True, description="Add up to 25% random jitter")


class ProvidersConfig(BaseModel):
    """Configuration for AI providers."""

    embedding: EmbeddingProviderConfig = Field(
        default_factory=EmbeddingProviderConfig,
        description="Primary embedding provider",
    )
    embedding_fallbacks: list[EmbeddingProviderConfig] = Field(
        default_factory=list,
        description="Ordered fallback providers tried when the primary fails",
    )
    rerank: RerankProviderConfig = Field(
        default_factory=RerankProviderConfig,
        description="Rerank provider",
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Retry policy for provider calls",
    )
