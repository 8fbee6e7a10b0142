"""Unit tests for Settings class and get_settings function."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from memento.config import get_settings, reload_settings
from memento.config.models.providers import EmbeddingProviderConfig
from memento.config.settings import Settings


class TestSettings:
    """Tests for Settings model."""

    def test_default_values(self) -> None:
        """Settings has sensible defaults."""
        settings = Settings()
        assert settings.strict_dimensions is False
        assert settings.observability.logging.level == "INFO"

    def test_storage_defaults(self) -> None:
        """Storage configuration has defaults."""
        settings = Settings()
        assert settings.storage.backend == "neo4j"
        assert settings.storage.neo4j.vector_index == "entity_embeddings"
        assert settings.storage.neo4j.vector_dimensions is None
        assert settings.storage.neo4j.similarity_function == "cosine"

    def test_provider_defaults(self) -> None:
        """Provider configuration has defaults."""
        settings = Settings()
        assert settings.providers.embedding.provider == "openai"
        assert settings.providers.embedding.model == "text-embedding-3-small"
        assert settings.providers.embedding.dimensions is None
        assert settings.providers.embedding_fallbacks == []
        assert settings.providers.rerank.enabled is False

    def test_search_and_reindex_defaults(self) -> None:
        """Search and reindex configuration has defaults."""
        settings = Settings()
        assert settings.search.rrf_k == 60
        assert settings.search.default_limit == 5
        assert settings.reindex.batch_size == 10
        assert settings.reindex.batch_delay == 1.0

    def test_rejects_out_of_range_batch_size(self) -> None:
        """Reindex batch size is bounded."""
        with pytest.raises(ValidationError):
            Settings(reindex={"batch_size": 5000})

    def test_rejects_non_positive_dimensions(self) -> None:
        """Explicit dimensions must be positive."""
        with pytest.raises(ValidationError):
            EmbeddingProviderConfig(dimensions=0)

    def test_unknown_top_level_keys_ignored(self) -> None:
        """Keys without a setting are dropped instead of kept as attributes."""
        settings = Settings(app_name="legacy", log_level="DEBUG")  # type: ignore[call-arg]
        dumped = settings.model_dump()
        assert "app_name" not in dumped
        assert "log_level" not in dumped

    def test_api_key_is_secret(self) -> None:
        """API keys are not shown in reprs."""
        config = EmbeddingProviderConfig(api_key="sk-secret")
        assert "sk-secret" not in repr(config)
        assert config.api_key is not None
        assert config.api_key.get_secret_value() == "sk-secret"


class TestGetSettings:
    """Tests for get_settings function."""

    @pytest.fixture
    def configured(
        self,
        test_config_dir: Path,
        mock_toml_files,
        monkeypatch: pytest.MonkeyPatch,
    ) -> Path:
        mock_toml_files({
            "default.toml": (
                "strict_dimensions = true\n"
                "[storage.neo4j]\n"
                "uri = 'bolt://toml:7687'\n"
                "[providers.embedding]\n"
                "provider = 'voyage'\n"
                "model = 'voyage-3-lite'\n"
            ),
        })
        monkeypatch.setenv("MEMENTO_CONFIG_DIR", str(test_config_dir))
        monkeypatch.setenv("MEMENTO_ENV", "test")
        return test_config_dir

    def test_loads_toml_values(self, configured: Path) -> None:
        """Values from default.toml are applied."""
        settings = get_settings()
        assert settings.strict_dimensions is True
        assert settings.storage.neo4j.uri == "bolt://toml:7687"
        assert settings.providers.embedding.provider == "voyage"

    def test_env_overrides_toml(
        self, configured: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """MEMENTO_* variables override TOML values."""
        monkeypatch.setenv("MEMENTO_STRICT_DIMENSIONS", "false")
        settings = get_settings()
        assert settings.strict_dimensions is False

    def test_nested_env_override(
        self, configured: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Nested values are overridden with the __ delimiter."""
        monkeypatch.setenv("MEMENTO_SEARCH__RRF_K", "15")
        settings = get_settings()
        assert settings.search.rrf_k == 15

    def test_environment_file_overrides_default(
        self, configured: Path, mock_toml_files
    ) -> None:
        """config/{MEMENTO_ENV}.toml is merged over default.toml."""
        mock_toml_files({"test.toml": "[storage.neo4j]\nuri = 'bolt://test:7687'\n"})
        settings = get_settings()
        assert settings.storage.neo4j.uri == "bolt://test:7687"
        assert settings.providers.embedding.model == "voyage-3-lite"

    def test_returns_cached_instance(self, configured: Path) -> None:
        """get_settings is cached."""
        assert get_settings() is get_settings()

    def test_reload_settings(
        self, configured: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """reload_settings picks up changes."""
        first = get_settings()
        monkeypatch.setenv("MEMENTO_STRICT_DIMENSIONS", "false")
        second = reload_settings()
        assert first is not second
        assert first.strict_dimensions is True
        assert second.strict_dimensions is False
