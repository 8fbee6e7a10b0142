"""Component wiring.

Settings are resolved once and passed explicitly into every component
constructor; nothing below reads configuration on its own.
"""

from dataclasses import dataclass

from memento.config import Settings, get_settings
from memento.config.dimensions import DimensionRegistry, DimensionReport
from memento.graph.factory import create_graph_store
from memento.graph.stores.base import GraphStore
from memento.migration.analyzer import ConsistencyAnalyzer
from memento.migration.engine import MigrationEngine
from memento.observability.logging import get_logger, setup_logging
from memento.providers.embedding.base import EmbeddingProvider
from memento.providers.embedding.factory import create_embedding_provider
from memento.providers.rerank.factory import create_rerank_provider
from memento.reindex.engine import ReindexEngine
from memento.reindex.models import ReindexOptions
from memento.search.reranking import RerankingAdapter
from memento.vector.models import SearchOptions
from memento.vector.store import EntityVectorStore

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Everything a caller needs, built from one Settings instance."""

    settings: Settings
    dimension_report: DimensionReport
    graph_store: GraphStore
    embedding_provider: EmbeddingProvider | None
    vector_store: EntityVectorStore
    analyzer: ConsistencyAnalyzer
    migration: MigrationEngine
    reindex: ReindexEngine
    reindex_defaults: ReindexOptions
    reranker: RerankingAdapter | None = None

    async def close(self) -> None:
        if self.embedding_provider is not None:
            await self.embedding_provider.close()
        if self.reranker is not None:
            await self.reranker.provider.close()
        await self.graph_store.close()
        logger.info("context_closed")


def build_context(
    settings: Settings | None = None,
    *,
    graph_store: GraphStore | None = None,
    embedding_provider: EmbeddingProvider | None = None,
    with_provider: bool = True,
) -> AppContext:
    """Build every component from ``settings``.

    Args:
        settings: Resolved configuration (defaults to ``get_settings()``)
        graph_store: Use this store instead of the configured backend
        embedding_provider: Use this provider instead of the configured one
        with_provider: Build the embedding provider; commands that only touch
            the graph skip it so they run without provider credentials

    Raises:
        ConfigurationError: If dimensions are invalid and ``strict_dimensions``
            is set, or a provider cannot be constructed
    """
    settings = settings or get_settings()

    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_pii=log_config.redact_pii,
    )

    registry = DimensionRegistry.from_settings(settings)
    report = registry.validate(strict=settings.strict_dimensions)

    store = graph_store or create_graph_store(settings.storage)
    provider = embedding_provider
    if provider is None and with_provider:
        provider = create_embedding_provider(
            settings.providers, dimensions=report.embedding_dimensions
        )

    neo4j = settings.storage.neo4j
    vector_store = EntityVectorStore(
        store,
        index_name=neo4j.vector_index,
        dimensions=report.index_dimensions,
        similarity_function=neo4j.similarity_function,
        entity_label=neo4j.entity_label,
        default_options=SearchOptions(
            limit=settings.search.default_limit,
            min_similarity=settings.search.min_similarity,
            hybrid_search=settings.search.hybrid_enabled,
            rrf_k=settings.search.rrf_k,
        ),
    )

    analyzer = ConsistencyAnalyzer(store)
    migration = MigrationEngine(
        store,
        analyzer,
        index_online_timeout=neo4j.index_online_timeout,
        index_poll_interval=neo4j.index_poll_interval,
    )
    reindex_defaults = ReindexOptions(
        batch_size=settings.reindex.batch_size,
        batch_delay=settings.reindex.batch_delay,
    )
    reindex = ReindexEngine(store, reindex_defaults)

    rerank_config = settings.providers.rerank
    rerank_provider = create_rerank_provider(rerank_config, settings.providers.retry)
    reranker = (
        RerankingAdapter(rerank_provider, default_top_n=rerank_config.top_n)
        if rerank_provider is not None
        else None
    )

    logger.info(
        "context_built",
        backend=store.backend_name,
        embedding_provider=provider.provider_name if provider else None,
        embedding_dimensions=report.embedding_dimensions,
        index_dimensions=report.index_dimensions,
        rerank_enabled=reranker is not None,
    )
    return AppContext(
        settings=settings,
        dimension_report=report,
        graph_store=store,
        embedding_provider=provider,
        vector_store=vector_store,
        analyzer=analyzer,
        migration=migration,
        reindex=reindex,
        reindex_defaults=reindex_defaults,
        reranker=reranker,
    )
