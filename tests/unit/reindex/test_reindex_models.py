"""Tests for reindex options and embedding text."""

import pytest

from memento.errors import ConfigurationError
from memento.graph.models import Entity
from memento.reindex.models import ReindexOptions
from memento.reindex.text import build_embedding_text, entity_text


class TestReindexOptions:
    @pytest.mark.parametrize(
        "options",
        [
            ReindexOptions(batch_size=0),
            ReindexOptions(batch_size=1001),
            ReindexOptions(limit=-1),
            ReindexOptions(limit=0),
            ReindexOptions(batch_delay=-0.1),
            ReindexOptions(custom_query="MATCH (e:Entity)"),
            ReindexOptions(custom_query="MATCH (n:RETURNS) WITH n"),
            ReindexOptions(custom_query="MATCH (e:Entity {name: 'NORETURN'}) WITH e"),
            ReindexOptions(entity_types=[]),
        ],
    )
    def test_invalid(self, options: ReindexOptions) -> None:
        with pytest.raises(ConfigurationError):
            options.validate_options()

    def test_valid_bounds(self) -> None:
        ReindexOptions(batch_size=1).validate_options()
        ReindexOptions(batch_size=1000, limit=1, batch_delay=0).validate_options()
        ReindexOptions(custom_query="match (e) return e.name as name").validate_options()
        ReindexOptions(custom_query="MATCH (e)\nRETURN e.name AS name").validate_options()

    def test_to_filter(self) -> None:
        entity_filter = ReindexOptions(
            entity_types=["person"], name_pattern="A.*", force=True
        ).to_filter()

        assert entity_filter.entity_types == ["person"]
        assert entity_filter.name_pattern == "A.*"
        assert entity_filter.limit is None
        assert not entity_filter.missing_only

    def test_only_missing_wins_over_force(self) -> None:
        assert ReindexOptions(force=True, only_missing=True).to_filter().missing_only


class TestEmbeddingText:
    def test_with_observations(self) -> None:
        text = build_embedding_text("Ada", "person", ["mathematician", "wrote notes"])
        assert text == "Entity: Ada\nType: person\nObservations: mathematician; wrote notes"

    def test_without_observations(self) -> None:
        assert build_embedding_text("Ada", "person", []) == "Entity: Ada\nType: person"

    def test_entity_text(self) -> None:
        entity = Entity(name="Ada", entity_type="person", observations=["x"])
        assert entity_text(entity) == "Entity: Ada\nType: person\nObservations: x"
