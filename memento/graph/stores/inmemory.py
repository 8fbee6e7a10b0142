"""In-memory GraphStore implementation for testing and development.

Entities live in an insertion-ordered dictionary and similarity search uses
numpy. Vector index behaviour mirrors Neo4j: scores are normalised to
[0, 1], vectors of the wrong length are not indexed, and a newly created
index can be made to report POPULATING for a number of polls before it
comes online.
"""

import re
from collections.abc import Callable
from typing import Any

import numpy as np

from memento.errors import GraphStoreError, IndexNotReadyError
from memento.graph.models import (
    Entity,
    EntityFilter,
    ScoredEntity,
    VectorIndexDefinition,
    VectorIndexInfo,
    now_ms,
)
from memento.graph.stores.base import GraphStore

SelectionQuery = Callable[[list[Entity], dict[str, Any]], list[Entity]]


class InMemoryGraphStore(GraphStore):
    """In-memory graph store. Not safe for concurrent writers."""

    def __init__(self, populating_polls: int = 0):
        """Initialize in-memory store.

        Args:
            populating_polls: Number of ``get_vector_index`` calls a newly
                created index reports POPULATING before turning ONLINE
        """
        self._entities: dict[str, Entity] = {}
        self._metadata: dict[str, dict[str, Any]] = {}
        self._backups: dict[str, tuple[list[float], int]] = {}
        self._indexes: dict[str, VectorIndexInfo] = {}
        self._pending_polls: dict[str, int] = {}
        self._populating_polls = populating_polls
        self._queries: dict[str, SelectionQuery] = {}
        self.vector_query_calls: list[dict[str, Any]] = []

    @property
    def backend_name(self) -> str:
        return "inmemory"

    # Test and development helpers

    def add_entity(self, entity: Entity) -> Entity:
        """Insert or replace an entity."""
        self._entities[entity.name] = entity
        return entity

    def get_entity(self, name: str) -> Entity | None:
        return self._entities.get(name)

    def get_backup(self, name: str) -> list[float] | None:
        backup = self._backups.get(name)
        return backup[0] if backup else None

    def register_query(self, query: str, handler: SelectionQuery) -> None:
        """Register a handler that emulates a custom selection query."""
        self._queries[query] = handler

    def _live(self) -> list[Entity]:
        return [e for e in self._entities.values() if e.is_live]

    # Population statistics

    async def count_entities(self, has_embedding: bool | None = None) -> int:
        live = self._live()
        if has_embedding is None:
            return len(live)
        return sum(1 for e in live if e.has_embedding == has_embedding)

    async def dimension_counts(self) -> dict[int, int]:
        counts: dict[int, int] = {}
        for entity in self._live():
            if entity.embedding is not None:
                size = len(entity.embedding)
                counts[size] = counts.get(size, 0) + 1
        return counts

    def _mismatched(self, expected: int) -> list[Entity]:
        return [
            e for e in self._live()
            if e.embedding is not None and len(e.embedding) != expected
        ]

    async def count_dimension_mismatches(self, expected: int) -> int:
        return len(self._mismatched(expected))

    async def list_dimension_mismatches(self, expected: int, limit: int) -> list[Entity]:
        return [e.model_copy() for e in self._mismatched(expected)[:limit]]

    async def list_missing_embeddings(self, limit: int) -> list[Entity]:
        missing = [e for e in self._live() if e.embedding is None]
        return [e.model_copy() for e in missing[:limit]]

    # Migration primitives

    def _with_embeddings(self, mismatched_with: int | None) -> list[Entity]:
        if mismatched_with is None:
            return [e for e in self._live() if e.embedding is not None]
        return self._mismatched(mismatched_with)

    async def count_embeddings(self, mismatched_with: int | None = None) -> int:
        return len(self._with_embeddings(mismatched_with))

    async def clear_embeddings(self, mismatched_with: int | None = None) -> int:
        targets = self._with_embeddings(mismatched_with)
        for entity in targets:
            self._clear(entity)
        return len(targets)

    def _clear(self, entity: Entity) -> None:
        entity.embedding = None
        entity.embedding_model = None
        entity.embedding_dimensions = None
        entity.embedding_updated = None

    async def backup_embeddings(self) -> int:
        count = 0
        timestamp = now_ms()
        for entity in self._live():
            if entity.embedding is not None:
                self._backups[entity.name] = (list(entity.embedding), timestamp)
                count += 1
        return count

    async def count_backups(self) -> int:
        return sum(1 for name in self._backups if name in self._entities)

    async def restore_embeddings(self) -> int:
        count = 0
        for name, (vector, _) in list(self._backups.items()):
            entity = self._entities.get(name)
            if entity is None or not entity.is_live:
                continue
            entity.embedding = list(vector)
            entity.embedding_dimensions = len(vector)
            del self._backups[name]
            count += 1
        return count

    async def cleanup_backups(self) -> int:
        count = len(self._backups)
        self._backups.clear()
        return count

    async def list_entity_names_needing_embeddings(
        self, target_dimensions: int, regenerate_all: bool = False
    ) -> list[str]:
        return [
            e.name for e in self._live()
            if regenerate_all or e.embedding is None or len(e.embedding) != target_dimensions
        ]

    # Index administration

    async def get_vector_index(self, name: str) -> VectorIndexInfo | None:
        index = self._indexes.get(name)
        if index is None:
            return None
        remaining = self._pending_polls.get(name, 0)
        if remaining > 0:
            self._pending_polls[name] = remaining - 1
            return index.model_copy(update={"state": "POPULATING"})
        return index

    async def create_vector_index(self, definition: VectorIndexDefinition) -> None:
        if definition.name in self._indexes:
            return
        self._indexes[definition.name] = VectorIndexInfo(
            name=definition.name,
            state="ONLINE",
            dimensions=definition.dimensions,
            similarity_function=definition.similarity_function,
            label=definition.label,
            property_name=definition.property_name,
        )
        self._pending_polls[definition.name] = self._populating_polls

    async def drop_vector_index(self, name: str) -> bool:
        self._pending_polls.pop(name, None)
        return self._indexes.pop(name, None) is not None

    # Reindex primitives

    def _matching(self, entity_filter: EntityFilter) -> list[Entity]:
        pattern = re.compile(entity_filter.name_pattern) if entity_filter.name_pattern else None
        matches = []
        for entity in self._live():
            if entity_filter.entity_types and entity.entity_type not in entity_filter.entity_types:
                continue
            if pattern is not None and not pattern.fullmatch(entity.name):
                continue
            if entity_filter.missing_only and entity.embedding is not None:
                continue
            matches.append(entity)
        # Newest first, name ascending on ties
        matches.sort(key=lambda e: e.name)
        matches.sort(key=lambda e: e.created_at, reverse=True)
        if entity_filter.limit:
            matches = matches[: entity_filter.limit]
        return matches

    async def select_entities(self, entity_filter: EntityFilter) -> list[Entity]:
        return [e.model_copy() for e in self._matching(entity_filter)]

    async def count_entities_matching(self, entity_filter: EntityFilter) -> int:
        return len(self._matching(entity_filter))

    async def run_selection_query(self, query: str, params: dict[str, Any]) -> list[Entity]:
        handler = self._queries.get(query)
        if handler is None:
            raise GraphStoreError(f"Unsupported selection query for in-memory store: {query}")
        return [e.model_copy() for e in handler(self._live(), params)]

    async def set_embedding(
        self,
        name: str,
        vector: list[float],
        *,
        model: str,
        dimensions: int,
    ) -> bool:
        entity = self._entities.get(name)
        if entity is None or not entity.is_live:
            return False
        entity.embedding = list(vector)
        entity.embedding_model = model
        entity.embedding_dimensions = dimensions
        entity.embedding_updated = now_ms()
        return True

    async def remove_embeddings(self, names: list[str]) -> int:
        count = 0
        for name in names:
            entity = self._entities.get(name)
            if entity is not None and entity.embedding is not None:
                self._clear(entity)
                count += 1
        return count

    # Search primitives

    async def upsert_vector(
        self, name: str, vector: list[float], metadata: dict[str, Any] | None = None
    ) -> None:
        metadata = metadata or {}
        entity = self._entities.get(name)
        if entity is None:
            entity = self.add_entity(
                Entity(name=name, entity_type=str(metadata.get("entity_type", "")))
            )
        entity.embedding = list(vector)
        self._metadata[name] = dict(metadata)

    async def remove_vector(self, name: str) -> bool:
        entity = self._entities.get(name)
        self._metadata.pop(name, None)
        if entity is None or entity.embedding is None:
            return False
        entity.embedding = None
        return True

    def _score(self, function: str, query: np.ndarray, candidate: np.ndarray) -> float:
        if function == "euclidean":
            distance_sq = float(np.sum((query - candidate) ** 2))
            return 1.0 / (1.0 + distance_sq)
        norm = float(np.linalg.norm(candidate))
        if norm == 0:
            return 0.0
        cosine = float(np.dot(query, candidate) / (np.linalg.norm(query) * norm))
        return (1.0 + cosine) / 2.0

    async def vector_query(
        self, index_name: str, k: int, vector: list[float]
    ) -> list[ScoredEntity]:
        self.vector_query_calls.append({"index_name": index_name, "k": k, "vector": vector})

        index = self._indexes.get(index_name)
        if index is None:
            raise GraphStoreError(f"There is no such vector schema index: {index_name}")
        if self._pending_polls.get(index_name, 0) > 0:
            raise IndexNotReadyError(index_name, "POPULATING")
        if len(vector) != index.dimensions:
            raise GraphStoreError(
                f"Index query vector has {len(vector)} dimensions, "
                f"but indexed vectors have {index.dimensions}"
            )

        query = np.asarray(vector, dtype=float)
        if index.similarity_function != "euclidean" and float(np.linalg.norm(query)) == 0:
            raise GraphStoreError("Index query vector must have a non-zero norm for cosine")

        scored = []
        for entity in self._live():
            if entity.embedding is None or len(entity.embedding) != index.dimensions:
                continue
            score = self._score(
                index.similarity_function or "cosine",
                query,
                np.asarray(entity.embedding, dtype=float),
            )
            scored.append(
                ScoredEntity(
                    name=entity.name,
                    score=score,
                    entity_type=entity.entity_type,
                    observations=list(entity.observations),
                    metadata=dict(self._metadata.get(entity.name, {})),
                )
            )
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[:k]

    async def keyword_query(self, text: str, limit: int) -> list[ScoredEntity]:
        needle = text.lower()
        scored = []
        for entity in self._live():
            score = 2.0 if needle in entity.name.lower() else 0.0
            score += 0.5 * sum(1 for o in entity.observations if needle in o.lower())
            if score > 0:
                scored.append(
                    ScoredEntity(
                        name=entity.name,
                        score=score,
                        entity_type=entity.entity_type,
                        observations=list(entity.observations),
                    )
                )
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[:limit]

    async def pattern_query(
        self, name_pattern: str, observation_pattern: str, limit: int
    ) -> list[ScoredEntity]:
        name_re = re.compile(name_pattern)
        observation_re = re.compile(observation_pattern)
        matches = [
            ScoredEntity(
                name=e.name,
                score=0.0,
                entity_type=e.entity_type,
                observations=list(e.observations),
            )
            for e in self._live()
            if name_re.fullmatch(e.name) or any(observation_re.fullmatch(o) for o in e.observations)
        ]
        return matches[:limit]

    async def recent_entities(
        self, limit: int, exclude: list[str] | None = None
    ) -> list[ScoredEntity]:
        excluded = set(exclude or [])
        candidates = [e for e in self._live() if e.name not in excluded]
        candidates.sort(key=lambda e: e.created_at, reverse=True)
        return [
            ScoredEntity(
                name=e.name,
                score=0.0,
                entity_type=e.entity_type,
                observations=list(e.observations),
            )
            for e in candidates[:limit]
        ]
