"""Batch regeneration of entity embeddings."""

from memento.reindex.engine import ReindexEngine
from memento.reindex.models import (
    ReindexError,
    ReindexOptions,
    ReindexProgress,
    ReindexResult,
)
from memento.reindex.text import build_embedding_text, entity_text

__all__ = [
    "ReindexEngine",
    "ReindexError",
    "ReindexOptions",
    "ReindexProgress",
    "ReindexResult",
    "build_embedding_text",
    "entity_text",
]
