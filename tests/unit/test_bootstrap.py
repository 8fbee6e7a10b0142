"""Tests for component wiring."""

import pytest

from memento.bootstrap import build_context
from memento.config import Settings
from memento.graph.stores.inmemory import InMemoryGraphStore
from memento.providers.embedding.mock import MockEmbeddingProvider
from memento.providers.rerank.mock import MockRerankProvider
from tests.factories.graph import make_entity


def settings(**overrides) -> Settings:  # type: ignore[no-untyped-def]
    data = {
        "storage": {"backend": "inmemory", "neo4j": {"vector_index": "test_index"}},
        "providers": {"embedding": {"provider": "mock", "model": "mock-embedding", "dimensions": 8}},
        "search": {"default_limit": 7, "rrf_k": 30},
        "reindex": {"batch_size": 25, "batch_delay": 0.0},
    }
    data.update(overrides)
    return Settings(**data)


class TestBuildContext:
    """Settings flow into every component."""

    @pytest.mark.asyncio
    async def test_components_share_one_configuration(self) -> None:
        ctx = build_context(settings())

        assert isinstance(ctx.graph_store, InMemoryGraphStore)
        assert isinstance(ctx.embedding_provider, MockEmbeddingProvider)
        assert ctx.embedding_provider.dimensions == 8
        assert ctx.vector_store.dimensions == 8
        assert ctx.vector_store.index_name == "test_index"
        assert ctx.reindex_defaults.batch_size == 25
        assert ctx.reranker is None
        await ctx.close()

    @pytest.mark.asyncio
    async def test_injected_components(self) -> None:
        store = InMemoryGraphStore()
        provider = MockEmbeddingProvider(dimensions=8)

        ctx = build_context(settings(), graph_store=store, embedding_provider=provider)

        assert ctx.graph_store is store
        assert ctx.embedding_provider is provider

    @pytest.mark.asyncio
    async def test_without_provider_needs_no_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        ctx = build_context(
            settings(providers={"embedding": {"provider": "openai"}}),
            with_provider=False,
        )

        assert ctx.embedding_provider is None
        assert ctx.vector_store.dimensions == ctx.dimension_report.index_dimensions
        await ctx.close()

    @pytest.mark.asyncio
    async def test_rerank_enabled(self) -> None:
        ctx = build_context(
            settings(
                providers={
                    "embedding": {"provider": "mock", "dimensions": 8},
                    "rerank": {"enabled": True, "provider": "mock", "top_n": 3},
                }
            )
        )
        assert ctx.reranker is not None
        assert isinstance(ctx.reranker.provider, MockRerankProvider)

    @pytest.mark.asyncio
    async def test_end_to_end_reindex_then_search(self) -> None:
        ctx = build_context(settings())
        store = ctx.graph_store
        assert isinstance(store, InMemoryGraphStore)
        store.add_entity(make_entity("graph databases", observations=["store nodes"]))
        store.add_entity(make_entity("cooking", observations=["pasta"], created_at=2))
        await ctx.vector_store.initialize()

        result = await ctx.reindex.reindex(ctx.embedding_provider)
        assert result.succeeded == 2

        query = await ctx.embedding_provider.generate_embedding("graph databases")
        results = await ctx.vector_store.search(query)
        assert {r.id for r in results} == {"graph databases", "cooking"}
        await ctx.close()
