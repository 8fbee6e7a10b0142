"""Reindex options, progress events and results."""

import re
from typing import Any

from pydantic import BaseModel, Field

from memento.errors import ConfigurationError, PerItemProcessingError
from memento.graph.models import EntityFilter

MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 1000
RETURN_CLAUSE = re.compile(r"\bRETURN\b", re.IGNORECASE)


class ReindexOptions(BaseModel):
    """Selection and pacing for a reindex run.

    Without ``force`` only entities lacking an embedding are selected.
    ``custom_query`` replaces the filter fields entirely; it must return
    ``name``, ``entityType`` and ``observations`` columns.
    """

    batch_size: int = Field(default=10, description="Entities per batch")
    batch_delay: float = Field(default=1.0, description="Seconds to sleep between batches")
    entity_types: list[str] | None = Field(default=None, description="Entity type allow-list")
    name_pattern: str | None = Field(default=None, description="Regex the full name must match")
    only_missing: bool = Field(default=False, description="Restrict to entities without embedding")
    force: bool = Field(default=False, description="Regenerate existing embeddings")
    limit: int | None = Field(default=None, description="Maximum entities to process")
    dry_run: bool = Field(default=False, description="Select and report without writing")
    custom_query: str | None = Field(default=None, description="Selection query escape hatch")
    custom_query_params: dict[str, Any] = Field(default_factory=dict)
    skip_updated_since: int | None = Field(
        default=None,
        description="Skip entities whose embedding was written at or after this epoch ms",
    )

    def validate_options(self) -> None:
        """Reject options that cannot run.

        Raises:
            ConfigurationError: Describing the first invalid option
        """
        if not MIN_BATCH_SIZE <= self.batch_size <= MAX_BATCH_SIZE:
            raise ConfigurationError(
                f"batch_size must be between {MIN_BATCH_SIZE} and {MAX_BATCH_SIZE}, "
                f"got {self.batch_size}"
            )
        if self.limit is not None and self.limit < 1:
            raise ConfigurationError(f"limit must be at least 1 when given, got {self.limit}")
        if self.batch_delay < 0:
            raise ConfigurationError(f"batch_delay must be non-negative, got {self.batch_delay}")
        if self.custom_query is not None and not RETURN_CLAUSE.search(self.custom_query):
            raise ConfigurationError("custom_query must contain a RETURN clause")
        if self.entity_types is not None and not self.entity_types:
            raise ConfigurationError("entity_types must not be empty when given")

    def to_filter(self) -> EntityFilter:
        return EntityFilter(
            entity_types=self.entity_types,
            name_pattern=self.name_pattern,
            only_missing=self.only_missing,
            force=self.force,
            limit=self.limit,
        )


class ReindexProgress(BaseModel):
    """Progress event emitted after each processed entity."""

    total: int
    processed: int
    succeeded: int
    failed: int
    skipped: int
    percentage: float
    current_batch: int
    total_batches: int
    estimated_time_remaining: float | None = Field(
        default=None, description="Seconds, from the running average time per entity"
    )


class ReindexError(BaseModel):
    entity_name: str
    error: str
    error_type: str = ""

    @classmethod
    def from_failure(cls, failure: PerItemProcessingError) -> "ReindexError":
        return cls(
            entity_name=failure.entity_name,
            error=str(failure.cause),
            error_type=type(failure.cause).__name__,
        )


class ReindexResult(BaseModel):
    """Final outcome of a reindex run."""

    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[ReindexError] = Field(default_factory=list)
    duration: float = Field(default=0.0, description="Seconds")
    dry_run: bool = False
    cancelled: bool = False
