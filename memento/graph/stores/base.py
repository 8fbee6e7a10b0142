"""GraphStore abstract interface.

The GraphStore is the only storage boundary of the embedding subsystem. It
exposes the property-graph operations the analyzer, migration engine,
reindex engine and vector store need:

- Population statistics (counts, dimension histogram, bounded samples)
- Embedding writes and removals, including the backup shadow fields
- Vector index administration and introspection
- Nearest-neighbor, keyword, pattern and recency queries

Every query is restricted to live entities. All mutations are single-entity
upserts; nothing spans entities in one transaction.
"""

from abc import ABC, abstractmethod
from typing import Any

from memento.graph.models import (
    Entity,
    EntityFilter,
    ScoredEntity,
    VectorIndexDefinition,
    VectorIndexInfo,
)


class GraphStore(ABC):
    """Abstract interface for entity embedding storage."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name."""

    # Population statistics

    @abstractmethod
    async def count_entities(self, has_embedding: bool | None = None) -> int:
        """Count live entities, optionally only those with/without an embedding."""

    @abstractmethod
    async def dimension_counts(self) -> dict[int, int]:
        """Histogram of embedding length to entity count."""

    @abstractmethod
    async def count_dimension_mismatches(self, expected: int) -> int:
        """Count embedded entities whose vector length differs from ``expected``."""

    @abstractmethod
    async def list_dimension_mismatches(self, expected: int, limit: int) -> list[Entity]:
        """Up to ``limit`` embedded entities whose vector length differs from ``expected``."""

    @abstractmethod
    async def list_missing_embeddings(self, limit: int) -> list[Entity]:
        """Up to ``limit`` entities without an embedding."""

    # Migration primitives

    @abstractmethod
    async def count_embeddings(self, mismatched_with: int | None = None) -> int:
        """Count embeddings, or only those whose length differs from ``mismatched_with``."""

    @abstractmethod
    async def clear_embeddings(self, mismatched_with: int | None = None) -> int:
        """Remove embeddings and their provenance. Returns the number removed."""

    @abstractmethod
    async def backup_embeddings(self) -> int:
        """Copy every present embedding into the backup shadow field."""

    @abstractmethod
    async def count_backups(self) -> int:
        """Count entities carrying a backup shadow field."""

    @abstractmethod
    async def restore_embeddings(self) -> int:
        """Copy backups to the live field and remove the shadow fields."""

    @abstractmethod
    async def cleanup_backups(self) -> int:
        """Remove backup shadow fields without restoring them."""

    @abstractmethod
    async def list_entity_names_needing_embeddings(
        self, target_dimensions: int, regenerate_all: bool = False
    ) -> list[str]:
        """Names of entities with no embedding or one of the wrong length."""

    # Index administration

    @abstractmethod
    async def get_vector_index(self, name: str) -> VectorIndexInfo | None:
        """Introspect a vector index, or None when it does not exist."""

    @abstractmethod
    async def create_vector_index(self, definition: VectorIndexDefinition) -> None:
        """Create a vector index."""

    @abstractmethod
    async def drop_vector_index(self, name: str) -> bool:
        """Drop a vector index if it exists. Returns whether one was dropped."""

    # Reindex primitives

    @abstractmethod
    async def select_entities(self, entity_filter: EntityFilter) -> list[Entity]:
        """Entities matching the filter, newest first (name breaks ties)."""

    @abstractmethod
    async def count_entities_matching(self, entity_filter: EntityFilter) -> int:
        """Number of entities ``select_entities`` would return."""

    @abstractmethod
    async def run_selection_query(self, query: str, params: dict[str, Any]) -> list[Entity]:
        """Run a caller-supplied selection returning name, type and observations."""

    @abstractmethod
    async def set_embedding(
        self,
        name: str,
        vector: list[float],
        *,
        model: str,
        dimensions: int,
    ) -> bool:
        """Overwrite an entity's embedding and provenance. False if the entity is missing."""

    @abstractmethod
    async def remove_embeddings(self, names: list[str]) -> int:
        """Remove embedding and provenance from the named entities."""

    # Search primitives

    @abstractmethod
    async def upsert_vector(
        self, name: str, vector: list[float], metadata: dict[str, Any] | None = None
    ) -> None:
        """Store a vector on the named entity, creating the entity if needed."""

    @abstractmethod
    async def remove_vector(self, name: str) -> bool:
        """Remove the vector from the named entity."""

    @abstractmethod
    async def vector_query(
        self, index_name: str, k: int, vector: list[float]
    ) -> list[ScoredEntity]:
        """Top-``k`` nearest neighbors from the vector index, best first."""

    @abstractmethod
    async def keyword_query(self, text: str, limit: int) -> list[ScoredEntity]:
        """Case-insensitive substring match over names and observations.

        Score is 2.0 for a name match plus 0.5 per matching observation;
        entities scoring zero are excluded.
        """

    @abstractmethod
    async def pattern_query(
        self, name_pattern: str, observation_pattern: str, limit: int
    ) -> list[ScoredEntity]:
        """Entities whose name or any observation matches the regex patterns."""

    @abstractmethod
    async def recent_entities(
        self, limit: int, exclude: list[str] | None = None
    ) -> list[ScoredEntity]:
        """Most recently created entities, newest first."""

    async def close(self) -> None:
        """Release backend resources."""

    async def __aenter__(self) -> "GraphStore":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
