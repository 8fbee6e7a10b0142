"""Vector storage and hybrid (vector + keyword) search."""

from memento.vector.fusion import FusedItem, reciprocal_rank_fusion
from memento.vector.models import (
    ResultMetadata,
    SearchMethod,
    SearchOptions,
    SearchOutcome,
    SearchResponse,
    VectorSearchResult,
)
from memento.vector.store import EntityVectorStore

__all__ = [
    "EntityVectorStore",
    "FusedItem",
    "ResultMetadata",
    "SearchMethod",
    "SearchOptions",
    "SearchOutcome",
    "SearchResponse",
    "VectorSearchResult",
    "reciprocal_rank_fusion",
]
