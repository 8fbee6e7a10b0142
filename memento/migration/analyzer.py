"""Consistency analysis of the stored embedding population."""

from memento.errors import StoreUnavailableError
from memento.graph.models import Entity
from memento.graph.stores.base import GraphStore
from memento.migration.models import (
    ConsistencyStatus,
    DimensionMismatch,
    EmbeddingStateSummary,
    IndexFailure,
    IndexValidation,
)
from memento.observability.logging import get_logger
from memento.observability.metrics import EMBEDDING_STATE

logger = get_logger(__name__)

MISMATCH_SAMPLE_LIMIT = 1000
MISSING_SAMPLE_LIMIT = 100


def _vector_length(entity: Entity) -> int:
    if entity.embedding is not None:
        return len(entity.embedding)
    return entity.embedding_dimensions or 0


class ConsistencyAnalyzer:
    """Reports how the stored embeddings relate to an expected dimension.

    Sample lists are bounded (1000 mismatched, 100 missing by default);
    exact totals are always reported alongside them.
    """

    def __init__(
        self,
        graph_store: GraphStore,
        *,
        mismatch_sample_limit: int = MISMATCH_SAMPLE_LIMIT,
        missing_sample_limit: int = MISSING_SAMPLE_LIMIT,
    ):
        self._graph = graph_store
        self._mismatch_limit = mismatch_sample_limit
        self._missing_limit = missing_sample_limit

    async def analyze_embedding_state(self, expected_dimensions: int) -> EmbeddingStateSummary:
        total = await self._graph.count_entities()
        with_embeddings = await self._graph.count_entities(has_embedding=True)
        without_embeddings = total - with_embeddings
        dimension_counts = await self._graph.dimension_counts()
        mismatched_total = await self._graph.count_dimension_mismatches(expected_dimensions)

        mismatches = [
            DimensionMismatch(
                entity_name=entity.name,
                entity_type=entity.entity_type,
                current_dimensions=_vector_length(entity),
                expected_dimensions=expected_dimensions,
                has_embedding=True,
            )
            for entity in await self._graph.list_dimension_mismatches(
                expected_dimensions, self._mismatch_limit
            )
        ]
        mismatches.extend(
            DimensionMismatch(
                entity_name=entity.name,
                entity_type=entity.entity_type,
                current_dimensions=0,
                expected_dimensions=expected_dimensions,
                has_embedding=False,
            )
            for entity in await self._graph.list_missing_embeddings(self._missing_limit)
        )

        if with_embeddings == 0:
            status = ConsistencyStatus.NO_EMBEDDINGS
        elif mismatches:
            status = ConsistencyStatus.INCONSISTENT
        else:
            status = ConsistencyStatus.CONSISTENT

        summary = EmbeddingStateSummary(
            expected_dimensions=expected_dimensions,
            total_entities=total,
            entities_with_embeddings=with_embeddings,
            entities_without_embeddings=without_embeddings,
            dimension_counts=dimension_counts,
            mismatches=mismatches,
            mismatched_total=mismatched_total,
            missing_total=without_embeddings,
            mismatch_sample_limit=self._mismatch_limit,
            missing_sample_limit=self._missing_limit,
            consistency_status=status,
        )

        EMBEDDING_STATE.labels(state="with_embedding").set(with_embeddings)
        EMBEDDING_STATE.labels(state="without_embedding").set(without_embeddings)
        logger.info(
            "embedding_state_analyzed",
            expected_dimensions=expected_dimensions,
            total_entities=total,
            entities_with_embeddings=with_embeddings,
            entities_without_embeddings=without_embeddings,
            dimension_counts=dimension_counts,
            mismatched_total=mismatched_total,
            mismatches_truncated=summary.mismatches_truncated,
            missing_truncated=summary.missing_truncated,
            consistency_status=status.value,
        )
        return summary

    async def validate_index_definition(
        self, index_name: str, expected_dimensions: int
    ) -> IndexValidation:
        """Check that the index exists, is online and has the expected dimension."""
        try:
            index = await self._graph.get_vector_index(index_name)
        except StoreUnavailableError:
            raise
        except Exception as e:
            logger.error("vector_index_unreadable", index_name=index_name, error=str(e))
            return IndexValidation(
                index_name=index_name,
                expected_dimensions=expected_dimensions,
                exists=False,
                is_valid=False,
                failure=IndexFailure.UNREADABLE,
                message=f"Could not read index definition: {e}",
            )

        if index is None:
            validation = IndexValidation(
                index_name=index_name,
                expected_dimensions=expected_dimensions,
                exists=False,
                is_valid=False,
                failure=IndexFailure.MISSING,
                message=f"Vector index '{index_name}' does not exist",
            )
        elif not index.is_online:
            validation = IndexValidation(
                index_name=index_name,
                expected_dimensions=expected_dimensions,
                exists=True,
                is_online=False,
                state=index.state,
                actual_dimensions=index.dimensions,
                is_valid=False,
                failure=IndexFailure.NOT_ONLINE,
                message=f"Vector index '{index_name}' is not online (state: {index.state})",
            )
        elif index.dimensions != expected_dimensions:
            validation = IndexValidation(
                index_name=index_name,
                expected_dimensions=expected_dimensions,
                exists=True,
                is_online=True,
                state=index.state,
                actual_dimensions=index.dimensions,
                is_valid=False,
                failure=IndexFailure.DIMENSION_MISMATCH,
                message=(
                    f"Vector index '{index_name}' has {index.dimensions} dimensions, "
                    f"expected {expected_dimensions}"
                ),
            )
        else:
            validation = IndexValidation(
                index_name=index_name,
                expected_dimensions=expected_dimensions,
                exists=True,
                is_online=True,
                state=index.state,
                actual_dimensions=index.dimensions,
                is_valid=True,
                message=f"Vector index '{index_name}' is online with {index.dimensions} dimensions",
            )

        log = logger.info if validation.is_valid else logger.warning
        log(
            "vector_index_validated",
            index_name=index_name,
            is_valid=validation.is_valid,
            failure=validation.failure.value if validation.failure else None,
            actual_dimensions=validation.actual_dimensions,
            expected_dimensions=expected_dimensions,
        )
        return validation
