"""Embedding consistency analysis and migration."""

from memento.migration.analyzer import ConsistencyAnalyzer
from memento.migration.engine import MigrationEngine
from memento.migration.models import (
    DRY_RUN_LABEL,
    ConsistencyStatus,
    DimensionMismatch,
    EmbeddingStateSummary,
    IndexFailure,
    IndexValidation,
    MigrationOperation,
    MigrationResult,
)

__all__ = [
    "DRY_RUN_LABEL",
    "ConsistencyAnalyzer",
    "ConsistencyStatus",
    "DimensionMismatch",
    "EmbeddingStateSummary",
    "IndexFailure",
    "IndexValidation",
    "MigrationEngine",
    "MigrationOperation",
    "MigrationResult",
]
