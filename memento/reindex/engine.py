"""Batch reindexing of entity embeddings.

Entities are selected once, newest first, and processed sequentially in
fixed-size batches with a delay between batches. A failure on one entity is
recorded and the run continues; only loss of the store aborts it.
"""

import asyncio
import math
import time
from collections.abc import AsyncIterator

from memento.errors import EntityNotFoundError, PerItemProcessingError, StoreUnavailableError
from memento.graph.models import Entity
from memento.graph.stores.base import GraphStore
from memento.observability.logging import get_logger
from memento.observability.metrics import REINDEX_ENTITIES
from memento.providers.embedding.base import EmbeddingProvider
from memento.reindex.models import (
    ReindexError,
    ReindexOptions,
    ReindexProgress,
    ReindexResult,
)
from memento.reindex.text import entity_text

logger = get_logger(__name__)

# Rough provider latency used for previews only
ESTIMATED_SECONDS_PER_ENTITY = 0.5
SAMPLE_SIZE = 10


class ReindexEngine:
    """Regenerates and stores embeddings for a selected entity subset."""

    def __init__(self, graph_store: GraphStore, defaults: ReindexOptions | None = None):
        """Initialize the engine.

        Args:
            graph_store: Storage boundary
            defaults: Options used when a call passes none
        """
        self._graph = graph_store
        self._defaults = defaults or ReindexOptions()

    async def _select(self, options: ReindexOptions) -> list[Entity]:
        if options.custom_query:
            entities = await self._graph.run_selection_query(
                options.custom_query, dict(options.custom_query_params)
            )
            if options.limit is not None:
                entities = entities[: options.limit]
            return entities
        return await self._graph.select_entities(options.to_filter())

    async def count_entities_for_reindex(self, options: ReindexOptions | None = None) -> int:
        """Number of entities a run with ``options`` would process."""
        options = options or self._defaults
        options.validate_options()
        if options.custom_query:
            return len(await self._select(options))
        return await self._graph.count_entities_matching(options.to_filter())

    async def get_sample_entities(
        self, options: ReindexOptions | None = None, limit: int = SAMPLE_SIZE
    ) -> list[Entity]:
        """First ``limit`` entities a run would process, for previews."""
        options = options or self._defaults
        options.validate_options()
        capped = min(options.limit, limit) if options.limit is not None else limit
        return await self._select(options.model_copy(update={"limit": capped}))

    async def delete_embeddings(self, options: ReindexOptions | None = None) -> int:
        """Remove embeddings and provenance from the selected entities.

        Selection ignores ``only_missing`` and ``force``: every matching
        entity that has an embedding is cleared. Returns the number
        affected (or that would be, in dry-run mode).
        """
        options = options or self._defaults
        options.validate_options()
        selection = options.model_copy(update={"only_missing": False, "force": True})
        names = [e.name for e in await self._select(selection)]

        if options.dry_run:
            logger.info("reindex_delete_dry_run", entities=len(names))
            return len(names)

        removed = await self._graph.remove_embeddings(names)
        logger.info("reindex_embeddings_deleted", selected=len(names), removed=removed)
        return removed

    @staticmethod
    def estimate_duration(
        count: int,
        batch_size: int,
        batch_delay: float,
        seconds_per_entity: float = ESTIMATED_SECONDS_PER_ENTITY,
    ) -> float:
        """Rough run time in seconds for ``count`` entities."""
        if count <= 0:
            return 0.0
        batches = math.ceil(count / batch_size)
        return count * seconds_per_entity + max(batches - 1, 0) * batch_delay

    async def reindex(
        self,
        provider: EmbeddingProvider,
        options: ReindexOptions | None = None,
        *,
        progress: asyncio.Queue | None = None,
        cancel_event: asyncio.Event | None = None,
        deadline: float | None = None,
    ) -> ReindexResult:
        """Run to completion and return the result.

        Progress events are put on ``progress`` when given.
        """
        result = ReindexResult()
        async for event in self.run(
            provider, options, cancel_event=cancel_event, deadline=deadline
        ):
            if isinstance(event, ReindexResult):
                result = event
            elif progress is not None:
                await progress.put(event)
        return result

    async def run(
        self,
        provider: EmbeddingProvider,
        options: ReindexOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
        deadline: float | None = None,
    ) -> AsyncIterator[ReindexProgress | ReindexResult]:
        """Yield a progress event after each entity, then the final result.

        Args:
            provider: Embedding provider used for every entity
            options: Selection and pacing, defaults to the engine's
            cancel_event: Stops the run between entities once set
            deadline: ``time.monotonic()`` value after which the run stops

        Raises:
            ConfigurationError: If the options are invalid (before any work)
            StoreUnavailableError: If the store becomes unreachable
        """
        options = options or self._defaults
        options.validate_options()
        started = time.monotonic()

        entities = await self._select(options)
        total = len(entities)
        total_batches = math.ceil(total / options.batch_size) if total else 0
        logger.info(
            "reindex_started",
            total=total,
            total_batches=total_batches,
            batch_size=options.batch_size,
            dry_run=options.dry_run,
            custom_query=options.custom_query is not None,
        )

        if options.dry_run:
            logger.info(
                "reindex_dry_run",
                total=total,
                sample=[e.name for e in entities[:SAMPLE_SIZE]],
                estimated_duration=self.estimate_duration(
                    total, options.batch_size, options.batch_delay
                ),
            )
            yield ReindexResult(
                total=total, dry_run=True, duration=time.monotonic() - started
            )
            return

        succeeded = failed = skipped = processed = 0
        errors: list[ReindexError] = []
        cancelled = False
        work_started = time.monotonic()

        for batch_index in range(total_batches):
            batch = entities[
                batch_index * options.batch_size : (batch_index + 1) * options.batch_size
            ]
            logger.info(
                "reindex_batch_started",
                batch=batch_index + 1,
                total_batches=total_batches,
                size=len(batch),
            )

            for entity in batch:
                if _should_stop(cancel_event, deadline):
                    cancelled = True
                    break

                if _recently_updated(entity, options.skip_updated_since):
                    skipped += 1
                    REINDEX_ENTITIES.labels(outcome="skipped").inc()
                else:
                    try:
                        response = await provider.embed_checked([entity_text(entity)])
                        vector = response.embeddings[0]
                        stored = await self._graph.set_embedding(
                            entity.name, vector, model=response.model, dimensions=len(vector)
                        )
                        if not stored:
                            raise EntityNotFoundError(entity.name)
                        succeeded += 1
                        REINDEX_ENTITIES.labels(outcome="succeeded").inc()
                    except StoreUnavailableError:
                        raise
                    except Exception as e:
                        failure = PerItemProcessingError(entity.name, e)
                        failed += 1
                        errors.append(ReindexError.from_failure(failure))
                        REINDEX_ENTITIES.labels(outcome="failed").inc()
                        logger.error(
                            "reindex_entity_failed",
                            entity=entity.name,
                            error_type=type(e).__name__,
                            error=str(failure),
                        )

                processed += 1
                average = (time.monotonic() - work_started) / processed
                yield ReindexProgress(
                    total=total,
                    processed=processed,
                    succeeded=succeeded,
                    failed=failed,
                    skipped=skipped,
                    percentage=round(processed / total * 100, 2),
                    current_batch=batch_index + 1,
                    total_batches=total_batches,
                    estimated_time_remaining=average * (total - processed),
                )

            if cancelled:
                logger.warning("reindex_cancelled", processed=processed, total=total)
                break

            if batch_index < total_batches - 1 and options.batch_delay > 0:
                await asyncio.sleep(options.batch_delay)

        result = ReindexResult(
            total=total,
            processed=processed,
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            errors=errors,
            duration=time.monotonic() - started,
            cancelled=cancelled,
        )
        logger.info(
            "reindex_completed",
            total=total,
            processed=processed,
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            cancelled=cancelled,
            duration=round(result.duration, 3),
        )
        yield result


def _should_stop(cancel_event: asyncio.Event | None, deadline: float | None) -> bool:
    if cancel_event is not None and cancel_event.is_set():
        return True
    return deadline is not None and time.monotonic() >= deadline


def _recently_updated(entity: Entity, since: int | None) -> bool:
    if since is None or entity.embedding_updated is None:
        return False
    return entity.embedding_updated >= since
