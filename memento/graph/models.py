"""Domain models for graph entities and vector index metadata."""

import time
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

# validTo value carried by the current version of a versioned entity
LIVE_VALID_TO = 9223372036854775807

IndexState = Literal["ONLINE", "POPULATING", "FAILED"]


def now_ms() -> int:
    """Current time as epoch milliseconds, matching Neo4j ``timestamp()``."""
    return int(time.time() * 1000)


class Entity(BaseModel):
    """A knowledge graph entity as seen by the embedding subsystem."""

    name: str = Field(..., description="Unique name within the current-version scope")
    id: str = Field(default_factory=lambda: str(uuid4()), description="Stable identifier")
    entity_type: str = Field(default="", description="Entity classifier")
    observations: list[str] = Field(default_factory=list, description="Ordered free-text facts")
    embedding: list[float] | None = Field(default=None, description="Embedding vector")
    embedding_model: str | None = Field(default=None, description="Model that produced the vector")
    embedding_dimensions: int | None = Field(default=None, description="Vector length at write time")
    embedding_updated: int | None = Field(default=None, description="Write time (epoch ms)")
    created_at: int = Field(default_factory=now_ms, description="Creation time (epoch ms)")
    valid_to: int | None = Field(default=None, description="Version end; live when null or max")

    @property
    def is_live(self) -> bool:
        return self.valid_to is None or self.valid_to == LIVE_VALID_TO

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None


class ScoredEntity(BaseModel):
    """An entity returned by a ranked storage query."""

    name: str
    score: float
    entity_type: str = ""
    observations: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class VectorIndexDefinition(BaseModel):
    """Parameters of a vector index to create."""

    name: str
    dimensions: int = Field(..., gt=0)
    similarity_function: Literal["cosine", "euclidean"] = "cosine"
    label: str = "Entity"
    property_name: str = "embedding"


class VectorIndexInfo(BaseModel):
    """Introspected state of an existing vector index."""

    name: str
    state: str
    dimensions: int | None = None
    similarity_function: str | None = None
    label: str | None = None
    property_name: str | None = None

    @property
    def is_online(self) -> bool:
        return self.state.upper() == "ONLINE"


class EntityFilter(BaseModel):
    """Selection criteria for batch embedding operations.

    Without ``force`` only entities lacking an embedding are selected;
    ``only_missing`` restricts to them even when ``force`` is set.
    """

    entity_types: list[str] | None = None
    name_pattern: str | None = None
    only_missing: bool = False
    force: bool = False
    limit: int | None = None

    @property
    def missing_only(self) -> bool:
        return self.only_missing or not self.force
