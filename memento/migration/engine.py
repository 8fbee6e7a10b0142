"""Migration transitions for the stored embedding population.

Every operation accepts ``dry_run``. A dry run only reads: it reports how
many entities the operation would affect and leaves the store untouched.
"""

import asyncio
import time

from memento.errors import IndexNotReadyError
from memento.graph.models import VectorIndexDefinition, now_ms
from memento.graph.stores.base import GraphStore
from memento.migration.analyzer import ConsistencyAnalyzer
from memento.migration.models import (
    IndexValidation,
    MigrationOperation,
    MigrationResult,
)
from memento.observability.logging import get_logger
from memento.observability.metrics import MIGRATION_OPERATIONS

logger = get_logger(__name__)


class MigrationEngine:
    """Backs up, clears, restores and rebuilds embeddings and the vector index."""

    def __init__(
        self,
        graph_store: GraphStore,
        analyzer: ConsistencyAnalyzer | None = None,
        *,
        index_online_timeout: float = 60.0,
        index_poll_interval: float = 1.0,
    ):
        """Initialize the engine.

        Args:
            graph_store: Storage boundary
            analyzer: Used to validate a recreated index
            index_online_timeout: Seconds to wait for a new index to come online
            index_poll_interval: Seconds between index state polls
        """
        self._graph = graph_store
        self._analyzer = analyzer or ConsistencyAnalyzer(graph_store)
        self._online_timeout = index_online_timeout
        self._poll_interval = index_poll_interval

    def _record(self, result: MigrationResult) -> MigrationResult:
        MIGRATION_OPERATIONS.labels(
            operation=result.operation.value, dry_run=str(result.dry_run).lower()
        ).inc()
        logger.info(
            "migration_operation_completed",
            operation=result.operation.value,
            dry_run=result.dry_run,
            affected=result.affected,
            no_op=result.no_op,
            backed_up=result.backed_up,
        )
        return result

    async def backup(self, dry_run: bool = False) -> MigrationResult:
        """Copy every current embedding into its backup slot."""
        if dry_run:
            count = await self._graph.count_embeddings()
            return self._record(
                MigrationResult(
                    operation=MigrationOperation.BACKUP,
                    dry_run=True,
                    affected=count,
                    no_op=count == 0,
                    message=f"Would back up {count} embeddings",
                )
            )

        count = await self._graph.backup_embeddings()
        return self._record(
            MigrationResult(
                operation=MigrationOperation.BACKUP,
                affected=count,
                no_op=count == 0,
                message=f"Backed up {count} embeddings",
                completed_at=now_ms(),
            )
        )

    async def clear_mismatched(
        self, target_dimensions: int, dry_run: bool = False
    ) -> MigrationResult:
        """Remove embeddings whose length differs from ``target_dimensions``."""
        if dry_run:
            count = await self._graph.count_embeddings(mismatched_with=target_dimensions)
            return self._record(
                MigrationResult(
                    operation=MigrationOperation.CLEAR_MISMATCHED,
                    dry_run=True,
                    affected=count,
                    no_op=count == 0,
                    message=(
                        f"Would clear {count} embeddings not matching "
                        f"{target_dimensions} dimensions"
                    ),
                )
            )

        count = await self._graph.clear_embeddings(mismatched_with=target_dimensions)
        if count == 0:
            message = f"No embeddings mismatched {target_dimensions} dimensions"
        else:
            message = f"Cleared {count} embeddings not matching {target_dimensions} dimensions"
        return self._record(
            MigrationResult(
                operation=MigrationOperation.CLEAR_MISMATCHED,
                affected=count,
                no_op=count == 0,
                message=message,
                completed_at=now_ms(),
            )
        )

    async def clear_all(self, dry_run: bool = False, skip_backup: bool = False) -> MigrationResult:
        """Remove every embedding, backing them up first unless ``skip_backup``."""
        if dry_run:
            count = await self._graph.count_embeddings()
            backup_note = "" if skip_backup else " after backing them up"
            return self._record(
                MigrationResult(
                    operation=MigrationOperation.CLEAR_ALL,
                    dry_run=True,
                    affected=count,
                    no_op=count == 0,
                    backed_up=None if skip_backup else count,
                    message=f"Would clear {count} embeddings{backup_note}",
                )
            )

        backed_up = None
        if not skip_backup:
            backed_up = await self._graph.backup_embeddings()
        count = await self._graph.clear_embeddings()
        return self._record(
            MigrationResult(
                operation=MigrationOperation.CLEAR_ALL,
                affected=count,
                no_op=count == 0,
                backed_up=backed_up,
                message=f"Cleared {count} embeddings",
                completed_at=now_ms(),
            )
        )

    async def recreate_index(
        self,
        index_name: str,
        dimensions: int,
        similarity_function: str = "cosine",
        label: str = "Entity",
        dry_run: bool = False,
        wait_online: bool = True,
    ) -> MigrationResult:
        """Drop the vector index and create it again with ``dimensions``.

        When ``wait_online`` is set, polls until the new index is ONLINE.

        Raises:
            IndexNotReadyError: If the index is not online within the timeout
        """
        existing = await self._graph.get_vector_index(index_name)
        if dry_run:
            current = existing.dimensions if existing else None
            return self._record(
                MigrationResult(
                    operation=MigrationOperation.RECREATE_INDEX,
                    dry_run=True,
                    affected=1,
                    message=(
                        f"Would recreate index '{index_name}' "
                        f"({current} -> {dimensions} dimensions, {similarity_function})"
                    ),
                )
            )

        dropped = await self._graph.drop_vector_index(index_name)
        logger.info("vector_index_dropped", index_name=index_name, existed=dropped)
        await self._graph.create_vector_index(
            VectorIndexDefinition(
                name=index_name,
                dimensions=dimensions,
                similarity_function=similarity_function,  # type: ignore[arg-type]
                label=label,
            )
        )
        logger.info(
            "vector_index_created",
            index_name=index_name,
            dimensions=dimensions,
            similarity_function=similarity_function,
        )

        validation = None
        if wait_online:
            validation = await self.wait_for_index(index_name, dimensions)

        return self._record(
            MigrationResult(
                operation=MigrationOperation.RECREATE_INDEX,
                affected=1,
                message=f"Recreated index '{index_name}' with {dimensions} dimensions",
                completed_at=now_ms(),
                index=validation,
            )
        )

    async def wait_for_index(self, index_name: str, dimensions: int) -> IndexValidation:
        """Poll until the index is ONLINE, then validate it.

        Raises:
            IndexNotReadyError: If the index is not online within the timeout
        """
        deadline = time.monotonic() + self._online_timeout
        state = "MISSING"
        while True:
            index = await self._graph.get_vector_index(index_name)
            if index is not None:
                state = index.state
                if index.is_online:
                    return await self._analyzer.validate_index_definition(index_name, dimensions)
                if state.upper() == "FAILED":
                    raise IndexNotReadyError(index_name, state)
            if time.monotonic() >= deadline:
                logger.error(
                    "vector_index_not_online",
                    index_name=index_name,
                    state=state,
                    timeout=self._online_timeout,
                )
                raise IndexNotReadyError(index_name, state)
            logger.debug("vector_index_waiting", index_name=index_name, state=state)
            await asyncio.sleep(self._poll_interval)

    async def restore(self, dry_run: bool = False) -> MigrationResult:
        """Copy backups back into the live embedding slot and drop them."""
        count = await self._graph.count_backups()
        if count == 0:
            return self._record(
                MigrationResult(
                    operation=MigrationOperation.RESTORE,
                    dry_run=dry_run,
                    no_op=True,
                    message="No backups to restore",
                )
            )
        if dry_run:
            return self._record(
                MigrationResult(
                    operation=MigrationOperation.RESTORE,
                    dry_run=True,
                    affected=count,
                    message=f"Would restore {count} embeddings from backup",
                )
            )

        restored = await self._graph.restore_embeddings()
        return self._record(
            MigrationResult(
                operation=MigrationOperation.RESTORE,
                affected=restored,
                message=f"Restored {restored} embeddings from backup",
                completed_at=now_ms(),
            )
        )

    async def cleanup_backups(self, dry_run: bool = False) -> MigrationResult:
        """Delete backup slots without restoring them."""
        if dry_run:
            count = await self._graph.count_backups()
            return self._record(
                MigrationResult(
                    operation=MigrationOperation.CLEANUP_BACKUPS,
                    dry_run=True,
                    affected=count,
                    no_op=count == 0,
                    message=f"Would remove {count} embedding backups",
                )
            )

        count = await self._graph.cleanup_backups()
        return self._record(
            MigrationResult(
                operation=MigrationOperation.CLEANUP_BACKUPS,
                affected=count,
                no_op=count == 0,
                message=f"Removed {count} embedding backups",
                completed_at=now_ms(),
            )
        )

    async def list_entities_needing_embeddings(
        self, target_dimensions: int, regenerate_all: bool = False
    ) -> list[str]:
        """Names of live entities without an embedding of ``target_dimensions``."""
        return await self._graph.list_entity_names_needing_embeddings(
            target_dimensions, regenerate_all
        )
