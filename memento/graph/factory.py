"""GraphStore factory.

The Neo4j password may come from configuration or, preferably, from the
NEO4J_PASSWORD environment variable.
"""

import os

from memento.config.models.storage import StorageConfig
from memento.errors import ConfigurationError
from memento.graph.stores.base import GraphStore
from memento.graph.stores.inmemory import InMemoryGraphStore
from memento.observability.logging import get_logger

logger = get_logger(__name__)


def create_graph_store(config: StorageConfig) -> GraphStore:
    """Create a GraphStore instance based on configuration.

    Raises:
        ConfigurationError: If the backend type is not supported
    """
    if config.backend == "inmemory":
        logger.info("creating_graph_store", backend="inmemory")
        return InMemoryGraphStore()

    if config.backend == "neo4j":
        from memento.graph.stores.neo4j import Neo4jGraphStore

        neo4j = config.neo4j
        password = os.environ.get("NEO4J_PASSWORD") or neo4j.password.get_secret_value()
        logger.info(
            "creating_graph_store",
            backend="neo4j",
            uri=neo4j.uri,
            database=neo4j.database,
            vector_index=neo4j.vector_index,
        )
        return Neo4jGraphStore(
            uri=neo4j.uri,
            username=neo4j.username,
            password=password,
            database=neo4j.database,
            entity_label=neo4j.entity_label,
        )

    raise ConfigurationError(f"Unsupported graph store backend: {config.backend}")
