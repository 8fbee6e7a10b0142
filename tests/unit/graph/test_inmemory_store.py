"""Tests for InMemoryGraphStore."""

import pytest

from memento.errors import GraphStoreError, IndexNotReadyError
from memento.graph.models import LIVE_VALID_TO, EntityFilter, VectorIndexDefinition
from memento.graph.stores.inmemory import InMemoryGraphStore
from tests.factories.graph import make_entity, unit_vector


@pytest.fixture
def populated_store(graph_store: InMemoryGraphStore) -> InMemoryGraphStore:
    graph_store.add_entity(make_entity("alpha", embedding=unit_vector(4), created_at=1))
    graph_store.add_entity(make_entity("beta", embedding=unit_vector(8), created_at=2))
    graph_store.add_entity(make_entity("gamma", entity_type="person", created_at=3))
    graph_store.add_entity(
        make_entity("retired", embedding=unit_vector(8), created_at=4, valid_to=1_000)
    )
    return graph_store


class TestPopulationStatistics:
    """Counts and samples over live entities."""

    @pytest.mark.asyncio
    async def test_counts_ignore_superseded_versions(
        self, populated_store: InMemoryGraphStore
    ) -> None:
        assert await populated_store.count_entities() == 3
        assert await populated_store.count_entities(has_embedding=True) == 2
        assert await populated_store.count_entities(has_embedding=False) == 1

    @pytest.mark.asyncio
    async def test_live_sentinel_counts_as_current(self, graph_store: InMemoryGraphStore) -> None:
        graph_store.add_entity(make_entity("current", valid_to=LIVE_VALID_TO))
        assert await graph_store.count_entities() == 1

    @pytest.mark.asyncio
    async def test_dimension_histogram(self, populated_store: InMemoryGraphStore) -> None:
        assert await populated_store.dimension_counts() == {4: 1, 8: 1}

    @pytest.mark.asyncio
    async def test_mismatches(self, populated_store: InMemoryGraphStore) -> None:
        assert await populated_store.count_dimension_mismatches(8) == 1
        mismatched = await populated_store.list_dimension_mismatches(8, limit=10)
        assert [e.name for e in mismatched] == ["alpha"]

    @pytest.mark.asyncio
    async def test_missing_sample_is_bounded(self, graph_store: InMemoryGraphStore) -> None:
        for i in range(5):
            graph_store.add_entity(make_entity(f"e{i}"))
        assert len(await graph_store.list_missing_embeddings(limit=2)) == 2


class TestMigrationPrimitives:
    """Clear, backup and restore."""

    @pytest.mark.asyncio
    async def test_clear_only_mismatched(self, populated_store: InMemoryGraphStore) -> None:
        cleared = await populated_store.clear_embeddings(mismatched_with=8)

        assert cleared == 1
        alpha = populated_store.get_entity("alpha")
        assert alpha is not None
        assert alpha.embedding is None
        assert alpha.embedding_dimensions is None
        assert populated_store.get_entity("beta").embedding is not None

    @pytest.mark.asyncio
    async def test_backup_then_restore(self, populated_store: InMemoryGraphStore) -> None:
        assert await populated_store.backup_embeddings() == 2
        await populated_store.clear_embeddings()

        assert await populated_store.count_backups() == 2
        assert await populated_store.restore_embeddings() == 2
        assert populated_store.get_entity("alpha").embedding == unit_vector(4)
        assert await populated_store.count_backups() == 0

    @pytest.mark.asyncio
    async def test_cleanup_backups(self, populated_store: InMemoryGraphStore) -> None:
        await populated_store.backup_embeddings()
        assert await populated_store.cleanup_backups() == 2
        assert populated_store.get_backup("alpha") is None

    @pytest.mark.asyncio
    async def test_names_needing_embeddings(self, populated_store: InMemoryGraphStore) -> None:
        names = await populated_store.list_entity_names_needing_embeddings(8)
        assert sorted(names) == ["alpha", "gamma"]
        everything = await populated_store.list_entity_names_needing_embeddings(8, True)
        assert len(everything) == 3


class TestIndexAdministration:
    """Vector index lifecycle."""

    @pytest.mark.asyncio
    async def test_create_get_drop(self, graph_store: InMemoryGraphStore) -> None:
        await graph_store.create_vector_index(VectorIndexDefinition(name="idx", dimensions=8))

        info = await graph_store.get_vector_index("idx")
        assert info is not None
        assert info.is_online
        assert info.dimensions == 8
        assert await graph_store.drop_vector_index("idx") is True
        assert await graph_store.drop_vector_index("idx") is False
        assert await graph_store.get_vector_index("idx") is None

    @pytest.mark.asyncio
    async def test_populating_polls(self) -> None:
        store = InMemoryGraphStore(populating_polls=2)
        await store.create_vector_index(VectorIndexDefinition(name="idx", dimensions=4))

        states = [(await store.get_vector_index("idx")).state for _ in range(3)]
        assert states == ["POPULATING", "POPULATING", "ONLINE"]

    @pytest.mark.asyncio
    async def test_query_while_populating_raises(self) -> None:
        store = InMemoryGraphStore(populating_polls=1)
        await store.create_vector_index(VectorIndexDefinition(name="idx", dimensions=4))
        with pytest.raises(IndexNotReadyError):
            await store.vector_query("idx", 5, unit_vector(4))


class TestSelection:
    """Reindex selection and writes."""

    @pytest.mark.asyncio
    async def test_newest_first_with_name_ties(self, graph_store: InMemoryGraphStore) -> None:
        graph_store.add_entity(make_entity("b", created_at=5))
        graph_store.add_entity(make_entity("a", created_at=5))
        graph_store.add_entity(make_entity("c", created_at=9))

        selected = await graph_store.select_entities(EntityFilter())
        assert [e.name for e in selected] == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_filters(self, populated_store: InMemoryGraphStore) -> None:
        by_type = await populated_store.select_entities(
            EntityFilter(entity_types=["person"], force=True)
        )
        assert [e.name for e in by_type] == ["gamma"]

        by_name = await populated_store.select_entities(
            EntityFilter(name_pattern="a.*", force=True)
        )
        assert [e.name for e in by_name] == ["alpha"]

    @pytest.mark.asyncio
    async def test_default_selects_missing_only(
        self, populated_store: InMemoryGraphStore
    ) -> None:
        assert await populated_store.count_entities_matching(EntityFilter()) == 1
        assert await populated_store.count_entities_matching(EntityFilter(force=True)) == 3
        assert await populated_store.count_entities_matching(EntityFilter(force=True, limit=2)) == 2

    @pytest.mark.asyncio
    async def test_unregistered_query_raises(self, graph_store: InMemoryGraphStore) -> None:
        with pytest.raises(GraphStoreError):
            await graph_store.run_selection_query("MATCH (n) RETURN n", {})

    @pytest.mark.asyncio
    async def test_registered_query(self, populated_store: InMemoryGraphStore) -> None:
        populated_store.register_query(
            "people", lambda entities, params: [e for e in entities if e.entity_type == "person"]
        )
        result = await populated_store.run_selection_query("people", {})
        assert [e.name for e in result] == ["gamma"]

    @pytest.mark.asyncio
    async def test_set_embedding_records_provenance(
        self, populated_store: InMemoryGraphStore
    ) -> None:
        ok = await populated_store.set_embedding("gamma", [0.1, 0.2], model="m", dimensions=2)

        gamma = populated_store.get_entity("gamma")
        assert ok is True
        assert gamma.embedding_model == "m"
        assert gamma.embedding_dimensions == 2
        assert gamma.embedding_updated is not None

    @pytest.mark.asyncio
    async def test_set_embedding_on_unknown_or_retired(
        self, populated_store: InMemoryGraphStore
    ) -> None:
        assert await populated_store.set_embedding("nope", [1.0], model="m", dimensions=1) is False
        assert (
            await populated_store.set_embedding("retired", [1.0], model="m", dimensions=1)
            is False
        )


class TestSearchPrimitives:
    """Vector, keyword, pattern and recency queries."""

    @pytest.mark.asyncio
    async def test_vector_query_normalises_cosine(self, graph_store: InMemoryGraphStore) -> None:
        await graph_store.create_vector_index(VectorIndexDefinition(name="idx", dimensions=2))
        graph_store.add_entity(make_entity("same", embedding=[1.0, 0.0]))
        graph_store.add_entity(make_entity("opposite", embedding=[-1.0, 0.0]))
        graph_store.add_entity(make_entity("short", embedding=[1.0]))

        results = await graph_store.vector_query("idx", 10, [1.0, 0.0])

        assert [(r.name, r.score) for r in results] == [("same", 1.0), ("opposite", 0.0)]

    @pytest.mark.asyncio
    async def test_vector_query_wrong_length(self, graph_store: InMemoryGraphStore) -> None:
        await graph_store.create_vector_index(VectorIndexDefinition(name="idx", dimensions=2))
        with pytest.raises(GraphStoreError):
            await graph_store.vector_query("idx", 10, [1.0, 0.0, 0.0])

    @pytest.mark.asyncio
    async def test_keyword_scores(self, graph_store: InMemoryGraphStore) -> None:
        graph_store.add_entity(make_entity("Python", observations=["python is fun"]))
        graph_store.add_entity(make_entity("Rust", observations=["faster than python"]))
        graph_store.add_entity(make_entity("Go"))

        results = await graph_store.keyword_query("PYTHON", limit=10)

        assert [(r.name, r.score) for r in results] == [("Python", 2.5), ("Rust", 0.5)]

    @pytest.mark.asyncio
    async def test_recent_excludes(self, graph_store: InMemoryGraphStore) -> None:
        for i in range(4):
            graph_store.add_entity(make_entity(f"e{i}", created_at=i))

        recent = await graph_store.recent_entities(2, exclude=["e3"])
        assert [r.name for r in recent] == ["e2", "e1"]
