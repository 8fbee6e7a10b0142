"""Entity vector store with hybrid search.

Search is stateless per call. A query runs one of three paths:

- hybrid: nearest-neighbor and keyword queries run concurrently and are
  fused with Reciprocal Rank Fusion;
- vector: nearest-neighbor query with a similarity post-filter;
- fallback: deterministic pattern matching plus a recency fill, used when
  the query vector is degenerate, the primary path raises, or it finds
  nothing.

The fallback keeps search answering (with lower relevance) when the index is
unusable. ``search_with_outcome`` reports which of these happened.
"""

import asyncio
import time
from typing import Any

from memento.errors import DimensionMismatchError, GraphStoreError, StoreUnavailableError
from memento.graph.models import ScoredEntity, VectorIndexDefinition
from memento.graph.stores.base import GraphStore
from memento.observability.logging import get_logger
from memento.observability.metrics import SEARCH_FALLBACKS, SEARCH_LATENCY, SEARCH_REQUESTS
from memento.vector.fusion import reciprocal_rank_fusion
from memento.vector.guards import degenerate_reason, vector_stats
from memento.vector.models import (
    ResultMetadata,
    SearchMethod,
    SearchOptions,
    SearchOutcome,
    SearchResponse,
    VectorSearchResult,
)

logger = get_logger(__name__)

FALLBACK_VOCABULARY = ("test", "search", "keyword", "unique", "vector", "embedding")
FALLBACK_NAME_PATTERN = "(?i).*(" + "|".join(FALLBACK_VOCABULARY) + ").*"
FALLBACK_OBSERVATION_PATTERN = (
    "(?i).*(" + "|".join(FALLBACK_VOCABULARY + ("vectorsearch", "similarsearch")) + ").*"
)
PATTERN_MATCH_SCORE = 0.75
RECENCY_FILL_SCORE = 0.5
RECENCY_FILL_COUNT = 3


class EntityVectorStore:
    """Stores entity vectors and answers similarity queries against one index."""

    def __init__(
        self,
        graph_store: GraphStore,
        *,
        index_name: str = "entity_embeddings",
        dimensions: int = 1536,
        similarity_function: str = "cosine",
        entity_label: str = "Entity",
        default_options: SearchOptions | None = None,
    ):
        """Initialize the vector store.

        Args:
            graph_store: Storage boundary
            index_name: Vector index to query
            dimensions: Index dimension every stored and query vector must match
            similarity_function: cosine or euclidean, used when creating the index
            entity_label: Node label the index covers
            default_options: Options used when ``search`` is called without any
        """
        self._graph = graph_store
        self._index_name = index_name
        self._dimensions = dimensions
        self._similarity_function = similarity_function
        self._entity_label = entity_label
        self._default_options = default_options or SearchOptions()

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def index_name(self) -> str:
        return self._index_name

    async def initialize(self) -> None:
        """Create the vector index if missing and check its dimension.

        Raises:
            DimensionMismatchError: If the existing index has another dimension
        """
        index = await self._graph.get_vector_index(self._index_name)
        if index is None:
            logger.info(
                "creating_vector_index",
                index_name=self._index_name,
                dimensions=self._dimensions,
                similarity_function=self._similarity_function,
            )
            await self._graph.create_vector_index(
                VectorIndexDefinition(
                    name=self._index_name,
                    dimensions=self._dimensions,
                    similarity_function=self._similarity_function,
                    label=self._entity_label,
                )
            )
            return

        if index.dimensions is not None and index.dimensions != self._dimensions:
            logger.error(
                "vector_index_dimension_mismatch",
                index_name=self._index_name,
                index_dimensions=index.dimensions,
                expected_dimensions=self._dimensions,
            )
            raise DimensionMismatchError(
                self._dimensions, index.dimensions, context=f"vector index '{self._index_name}'"
            )

    def _check_dimensions(self, vector: list[float], context: str) -> None:
        if len(vector) != self._dimensions:
            raise DimensionMismatchError(self._dimensions, len(vector), context=context)

    async def add_vector(
        self,
        entity_id: str,
        vector: list[float],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Store ``vector`` on the entity.

        Raises:
            DimensionMismatchError: If the vector length differs from the index dimension
        """
        self._check_dimensions(vector, context=f"entity '{entity_id}'")
        await self._graph.upsert_vector(entity_id, list(vector), metadata)
        logger.debug("vector_added", entity=entity_id, dimensions=len(vector))

    async def remove_vector(self, entity_id: str) -> bool:
        removed = await self._graph.remove_vector(entity_id)
        logger.debug("vector_removed", entity=entity_id, removed=removed)
        return removed

    async def search(
        self,
        query_vector: list[float],
        options: SearchOptions | None = None,
    ) -> list[VectorSearchResult]:
        """Ranked results for ``query_vector``. See ``search_with_outcome``."""
        response = await self.search_with_outcome(query_vector, options)
        return response.results

    async def search_with_outcome(
        self,
        query_vector: list[float],
        options: SearchOptions | None = None,
    ) -> SearchResponse:
        """Search and report whether the primary path answered.

        Raises:
            DimensionMismatchError: If the query length differs from the index dimension
        """
        options = options or self._default_options
        self._check_dimensions(query_vector, context="query vector")

        stats = vector_stats(query_vector)
        logger.debug(
            "vector_search_request",
            dimensions=stats.length,
            norm=stats.norm,
            minimum=stats.minimum,
            maximum=stats.maximum,
            limit=options.limit,
            hybrid=options.hybrid_search,
        )

        reason = degenerate_reason(query_vector)
        if reason is not None:
            logger.warning("vector_search_degenerate_query", reason=reason)
            results = await self._fallback_search(options.limit, reason)
            return SearchResponse(
                results=results, outcome=SearchOutcome.DEGENERATE_INPUT, reason=reason
            )

        use_hybrid = options.hybrid_search and bool((options.query_text or "").strip())
        method = SearchMethod.HYBRID_RRF if use_hybrid else SearchMethod.VECTOR
        start = time.perf_counter()
        try:
            if use_hybrid:
                results = await self._hybrid_search(query_vector, options)
            else:
                results = await self._vector_search(query_vector, options)
        except Exception as e:
            failure = f"{type(e).__name__}: {e}"
            logger.warning(
                "vector_search_failed",
                search_method=method.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            results = await self._fallback_search(options.limit, failure)
            return SearchResponse(results=results, outcome=SearchOutcome.FAILED, reason=failure)

        if not results:
            logger.info("vector_search_empty", search_method=method.value)
            results = await self._fallback_search(options.limit, "no_results")
            return SearchResponse(
                results=results, outcome=SearchOutcome.FAILED, reason="no_results"
            )

        SEARCH_REQUESTS.labels(search_method=method.value).inc()
        SEARCH_LATENCY.labels(search_method=method.value).observe(time.perf_counter() - start)
        logger.debug(
            "vector_search_completed",
            search_method=method.value,
            num_results=len(results),
        )
        return SearchResponse(results=results, outcome=SearchOutcome.OK)

    async def _vector_search(
        self, query_vector: list[float], options: SearchOptions
    ) -> list[VectorSearchResult]:
        hits = await self._graph.vector_query(self._index_name, options.limit, query_vector)
        return [
            VectorSearchResult(
                id=hit.name,
                similarity=hit.score,
                metadata=ResultMetadata(
                    entity_type=hit.entity_type,
                    search_method=SearchMethod.VECTOR,
                    vector_score=hit.score,
                ),
            )
            for hit in hits
            if hit.score >= options.min_similarity
        ]

    async def _hybrid_search(
        self, query_vector: list[float], options: SearchOptions
    ) -> list[VectorSearchResult]:
        # Twice the limit on each side leaves headroom for fusion
        candidates = options.limit * 2
        vector_hits, keyword_hits = await asyncio.gather(
            self._graph.vector_query(self._index_name, candidates, query_vector),
            self._graph.keyword_query(options.query_text or "", candidates),
        )

        by_name: dict[str, dict[str, ScoredEntity]] = {}
        for source, hits in (("vector", vector_hits), ("keyword", keyword_hits)):
            for hit in hits:
                by_name.setdefault(hit.name, {}).setdefault(source, hit)

        fused = reciprocal_rank_fusion(
            {
                "vector": [hit.name for hit in vector_hits],
                "keyword": [hit.name for hit in keyword_hits],
            },
            k=options.rrf_k,
            limit=options.limit,
        )

        results = []
        for item in fused:
            sources = by_name[str(item.key)]
            vector_hit = sources.get("vector")
            keyword_hit = sources.get("keyword")
            entity_type = (vector_hit or keyword_hit).entity_type  # type: ignore[union-attr]
            results.append(
                VectorSearchResult(
                    id=str(item.key),
                    similarity=item.score,
                    metadata=ResultMetadata(
                        entity_type=entity_type,
                        search_method=SearchMethod.HYBRID_RRF,
                        vector_score=vector_hit.score if vector_hit else None,
                        bm25_score=keyword_hit.score if keyword_hit else None,
                        rrf_score=item.score,
                        vector_rank=item.ranks.get("vector"),
                        keyword_rank=item.ranks.get("keyword"),
                    ),
                )
            )

        logger.debug(
            "hybrid_search_fused",
            vector_candidates=len(vector_hits),
            keyword_candidates=len(keyword_hits),
            fused=len(results),
            rrf_k=options.rrf_k,
        )
        return results

    async def _fallback_search(self, limit: int, reason: str) -> list[VectorSearchResult]:
        """Pattern matches first, then the most recent entities, capped at ``limit``."""
        SEARCH_FALLBACKS.labels(reason=reason.split(":")[0]).inc()
        SEARCH_REQUESTS.labels(search_method=SearchMethod.FALLBACK.value).inc()

        try:
            matches = await self._graph.pattern_query(
                FALLBACK_NAME_PATTERN, FALLBACK_OBSERVATION_PATTERN, limit
            )
            results = [
                self._fallback_result(hit, PATTERN_MATCH_SCORE, reason, "pattern")
                for hit in matches[:limit]
            ]
            fill = min(RECENCY_FILL_COUNT, limit - len(results))
            if fill > 0:
                recent = await self._graph.recent_entities(
                    fill, exclude=[result.id for result in results]
                )
                results.extend(
                    self._fallback_result(hit, RECENCY_FILL_SCORE, reason, "recency")
                    for hit in recent[:fill]
                )
        except StoreUnavailableError:
            raise
        except GraphStoreError as e:
            logger.error("fallback_search_failed", reason=reason, error=str(e))
            return []

        logger.info("fallback_search_completed", reason=reason, num_results=len(results))
        return results

    def _fallback_result(
        self, hit: ScoredEntity, score: float, reason: str, source: str
    ) -> VectorSearchResult:
        return VectorSearchResult(
            id=hit.name,
            similarity=score,
            metadata=ResultMetadata(
                entity_type=hit.entity_type,
                search_method=SearchMethod.FALLBACK,
                fallback_reason=reason,
                fallback_source=source,
            ),
        )

    async def diagnostics(self) -> dict[str, Any]:
        """Index state and embedding population, for operators."""
        index = await self._graph.get_vector_index(self._index_name)
        return {
            "index_name": self._index_name,
            "index_exists": index is not None,
            "index_state": index.state if index else None,
            "index_dimensions": index.dimensions if index else None,
            "configured_dimensions": self._dimensions,
            "similarity_function": self._similarity_function,
            "entities": await self._graph.count_entities(),
            "entities_with_embeddings": await self._graph.count_entities(has_embedding=True),
            "dimension_counts": await self._graph.dimension_counts(),
        }
