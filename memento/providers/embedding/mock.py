"""Mock embedding provider for testing."""

import hashlib
from typing import Any

from memento.providers.embedding.base import (
    EmbeddingProvider,
    EmbeddingProviderKind,
    EmbeddingResponse,
)


class MockEmbeddingProvider(EmbeddingProvider):
    """Mock embedding provider for testing.

    Generates deterministic unit vectors from a hash of the text without
    making API calls. Failures can be injected per text to exercise error
    isolation in callers.
    """

    kind = EmbeddingProviderKind.MOCK

    def __init__(
        self,
        dimensions: int = 1536,
        default_model: str = "mock-embedding",
        fail_on: dict[str, Exception] | None = None,
        fail_always: Exception | None = None,
    ):
        """Initialize mock provider.

        Args:
            dimensions: Embedding vector dimensions
            default_model: Model name to report
            fail_on: Raise the mapped exception when a batch contains that text
            fail_always: Raise this exception on every call
        """
        self._dimensions = dimensions
        self._default_model = default_model
        self._fail_on = fail_on or {}
        self._fail_always = fail_always
        self._call_history: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def model_name(self) -> str:
        return self._default_model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """Return history of calls for testing assertions."""
        return self._call_history

    def clear_history(self) -> None:
        self._call_history.clear()

    def _generate_embedding(self, text: str) -> list[float]:
        """Generate a deterministic unit vector from the text hash."""
        text_hash = hashlib.sha256(text.encode()).digest()

        embedding = []
        for i in range(self._dimensions):
            byte_val = text_hash[i % len(text_hash)]
            embedding.append((byte_val / 127.5) - 1.0)

        magnitude = sum(x * x for x in embedding) ** 0.5
        if magnitude > 0:
            embedding = [x / magnitude for x in embedding]

        return embedding

    async def embed(
        self,
        texts: list[str],
        *,
        model: str | None = None,
        **kwargs: Any,
    ) -> EmbeddingResponse:
        self._call_history.append({
            "texts": texts,
            "model": model or self._default_model,
            "kwargs": kwargs,
        })

        if self._fail_always is not None:
            raise self._fail_always
        for text in texts:
            if text in self._fail_on:
                raise self._fail_on[text]

        return EmbeddingResponse(
            embeddings=[self._generate_embedding(text) for text in texts],
            model=model or self._default_model,
            dimensions=self._dimensions,
            usage={"total_tokens": sum(len(t) // 4 for t in texts)},
        )
