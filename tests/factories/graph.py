"""Factories for graph entities and vectors."""

from typing import Any

from memento.graph.models import Entity


def make_entity(
    name: str,
    entity_type: str = "concept",
    observations: list[str] | None = None,
    embedding: list[float] | None = None,
    created_at: int = 1_700_000_000_000,
    **kwargs: Any,
) -> Entity:
    """Build an entity with a fixed creation time unless one is given."""
    return Entity(
        name=name,
        entity_type=entity_type,
        observations=observations or [],
        embedding=embedding,
        embedding_dimensions=len(embedding) if embedding is not None else None,
        created_at=created_at,
        **kwargs,
    )


def unit_vector(dimensions: int, hot: int = 0) -> list[float]:
    """One-hot vector of ``dimensions`` with 1.0 at index ``hot``."""
    vector = [0.0] * dimensions
    vector[hot] = 1.0
    return vector
