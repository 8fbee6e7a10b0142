"""Sentence-Transformers embedding provider for local embeddings."""

import asyncio
from typing import Any

from sentence_transformers import SentenceTransformer

from memento.errors import InvalidResponseError
from memento.providers.embedding.base import (
    EmbeddingProvider,
    EmbeddingProviderKind,
    EmbeddingResponse,
)


class LocalEmbeddingProvider(EmbeddingProvider):
    """Embedding provider running a sentence-transformers model in-process.

    The model is loaded lazily; encoding runs in the default executor so the
    event loop is not blocked.
    """

    kind = EmbeddingProviderKind.LOCAL

    def __init__(
        self,
        model_name: str = "all-mpnet-base-v2",
        dimensions: int | None = None,
        batch_size: int = 32,
    ):
        """Initialize sentence-transformers provider.

        Args:
            model_name: Model name to load
            dimensions: Declared dimensions; read from the model when unset
            batch_size: Batch size for encoding
        """
        self._model_name = model_name
        self._declared_dimensions = dimensions
        self.batch_size = batch_size
        self._model: SentenceTransformer | None = None

    def _ensure_model_loaded(self) -> SentenceTransformer:
        if self._model is None:
            self._model = SentenceTransformer(self._model_name)
        return self._model

    @property
    def provider_name(self) -> str:
        return "local"

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimensions(self) -> int:
        if self._declared_dimensions is not None:
            return self._declared_dimensions
        return self._ensure_model_loaded().get_sentence_embedding_dimension()

    async def embed(
        self,
        texts: list[str],
        *,
        model: str | None = None,  # noqa: ARG002
        **kwargs: Any,  # noqa: ARG002
    ) -> EmbeddingResponse:
        model_obj = self._ensure_model_loaded()

        loop = asyncio.get_running_loop()
        embeddings_array = await loop.run_in_executor(
            None,
            lambda: model_obj.encode(
                texts,
                batch_size=self.batch_size,
                convert_to_numpy=True,
                show_progress_bar=False,
            ),
        )
        if embeddings_array is None or len(embeddings_array) == 0:
            raise InvalidResponseError("Local model returned no embeddings", provider="local")

        return EmbeddingResponse(
            embeddings=embeddings_array.tolist(),
            model=self._model_name,
            dimensions=self.dimensions,
            usage={"total_tokens": sum(len(t.split()) for t in texts)},
        )
