"""Storage backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field, SecretStr

GraphBackendType = Literal["neo4j", "inmemory"]
SimilarityFunction = Literal["cosine", "euclidean"]


class Neo4jConfig(BaseModel):
    """Neo4j connection and vector index configuration."""

    uri: str = Field(default="bolt://localhost:7687", description="Bolt connection URI")
    username: str = Field(default="neo4j", description="Database user")
    password: SecretStr = Field(
        default=SecretStr("memento_password"),
        description="Database password (prefer env var)",
    )
    database: str = Field(default="neo4j", description="Database name")
    entity_label: str = Field(default="Entity", description="Label of entity nodes")
    vector_index: str = Field(
        default="entity_embeddings",
        description="Name of the vector index over entity embeddings",
    )
    vector_dimensions: int | None = Field(
        default=None,
        gt=0,
        description="Explicit index dimension override; inherits the embedding dimension when unset",
    )
    similarity_function: SimilarityFunction = Field(
        default="cosine",
        description="Vector similarity function",
    )
    index_online_timeout: float = Field(
        default=60.0,
        ge=0,
        description="Seconds to wait for a recreated index to come online",
    )
    index_poll_interval: float = Field(
        default=1.0,
        gt=0,
        description="Seconds between index state polls",
    )


class StorageConfig(BaseModel):
    """Storage configuration."""

    backend: GraphBackendType = Field(default="neo4j", description="Graph store backend")
    neo4j: Neo4jConfig = Field(default_factory=Neo4jConfig, description="Neo4j settings")
