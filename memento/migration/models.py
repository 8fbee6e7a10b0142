"""Embedding state and migration result models."""

from enum import Enum

from pydantic import BaseModel, Field

DRY_RUN_LABEL = "[DRY RUN]"


class ConsistencyStatus(str, Enum):
    """Classification of an embedding population."""

    CONSISTENT = "consistent"
    INCONSISTENT = "inconsistent"
    NO_EMBEDDINGS = "no-embeddings"


class DimensionMismatch(BaseModel):
    """An entity whose embedding does not fit the expected dimension.

    ``current_dimensions`` is 0 when the entity has no embedding.
    """

    entity_name: str
    entity_type: str = ""
    current_dimensions: int
    expected_dimensions: int
    has_embedding: bool


class EmbeddingStateSummary(BaseModel):
    """Aggregate embedding state of the live entity population.

    ``mismatches`` holds bounded samples; ``mismatched_total`` and
    ``missing_total`` are exact, so the ``*_truncated`` properties tell
    whether more entries exist than were sampled.
    """

    expected_dimensions: int
    total_entities: int
    entities_with_embeddings: int
    entities_without_embeddings: int
    dimension_counts: dict[int, int] = Field(default_factory=dict)
    mismatches: list[DimensionMismatch] = Field(default_factory=list)
    mismatched_total: int = Field(default=0, description="Embedded entities of the wrong length")
    missing_total: int = Field(default=0, description="Entities without an embedding")
    mismatch_sample_limit: int
    missing_sample_limit: int
    consistency_status: ConsistencyStatus

    @property
    def sampled_mismatched(self) -> int:
        return sum(1 for m in self.mismatches if m.has_embedding)

    @property
    def sampled_missing(self) -> int:
        return sum(1 for m in self.mismatches if not m.has_embedding)

    @property
    def mismatches_truncated(self) -> bool:
        return self.mismatched_total > self.sampled_mismatched

    @property
    def missing_truncated(self) -> bool:
        return self.missing_total > self.sampled_missing


class IndexFailure(str, Enum):
    """Distinct ways a vector index can fail validation."""

    MISSING = "missing"
    NOT_ONLINE = "not_online"
    DIMENSION_MISMATCH = "dimension_mismatch"
    UNREADABLE = "unreadable"


class IndexValidation(BaseModel):
    """Result of checking a vector index against the expected dimension."""

    index_name: str
    expected_dimensions: int
    exists: bool
    is_online: bool = False
    state: str | None = None
    actual_dimensions: int | None = None
    is_valid: bool
    failure: IndexFailure | None = None
    message: str


class MigrationOperation(str, Enum):
    BACKUP = "backup"
    CLEAR_MISMATCHED = "clear_mismatched"
    CLEAR_ALL = "clear_all"
    RECREATE_INDEX = "recreate_index"
    RESTORE = "restore"
    CLEANUP_BACKUPS = "cleanup_backups"


class MigrationResult(BaseModel):
    """Structured outcome of one migration transition.

    In dry-run mode ``affected`` is the number of entities the operation
    would have changed.
    """

    operation: MigrationOperation
    dry_run: bool = False
    affected: int = 0
    no_op: bool = False
    message: str = ""
    backed_up: int | None = Field(default=None, description="Embeddings backed up first")
    completed_at: int | None = Field(
        default=None,
        description="Completion time (epoch ms); usable as a reindex skip_updated_since",
    )
    index: IndexValidation | None = Field(default=None, description="Index state afterwards")

    def describe(self) -> str:
        prefix = f"{DRY_RUN_LABEL} " if self.dry_run else ""
        return f"{prefix}{self.operation.value}: {self.message}"
