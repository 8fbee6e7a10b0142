"""GraphStore interface and backends."""

from memento.graph.stores.base import GraphStore
from memento.graph.stores.inmemory import InMemoryGraphStore

__all__ = ["GraphStore", "InMemoryGraphStore"]
