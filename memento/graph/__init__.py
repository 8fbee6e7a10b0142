"""Graph storage: entity models, the GraphStore boundary and its backends."""

from memento.graph.factory import create_graph_store
from memento.graph.models import (
    LIVE_VALID_TO,
    Entity,
    EntityFilter,
    ScoredEntity,
    VectorIndexDefinition,
    VectorIndexInfo,
)
from memento.graph.stores import GraphStore, InMemoryGraphStore

__all__ = [
    "LIVE_VALID_TO",
    "Entity",
    "EntityFilter",
    "GraphStore",
    "InMemoryGraphStore",
    "ScoredEntity",
    "VectorIndexDefinition",
    "VectorIndexInfo",
    "create_graph_store",
]
