"""Tests for the memento-embeddings command line."""

import pytest

from memento.cli import main as cli
from memento.config import Settings
from memento.reindex.models import ReindexOptions


def mock_settings(**overrides) -> Settings:  # type: ignore[no-untyped-def]
    data = {
        "storage": {"backend": "inmemory"},
        "providers": {"embedding": {"provider": "mock", "model": "mock-embedding", "dimensions": 8}},
        "reindex": {"batch_delay": 0.0},
        "observability": {"logging": {"level": "ERROR", "format": "console"}},
    }
    data.update(overrides)
    return Settings(**data)


@pytest.fixture
def use_settings(monkeypatch: pytest.MonkeyPatch):  # type: ignore[no-untyped-def]
    def _use(settings: Settings) -> None:
        monkeypatch.setattr(cli, "get_settings", lambda: settings)

    return _use


class TestParser:
    """Argument parsing."""

    def test_reindex_filters(self) -> None:
        args = cli.build_parser().parse_args(
            [
                "--dry-run",
                "reindex",
                "run",
                "--entity-type",
                "person",
                "--entity-type",
                "place",
                "--batch-size",
                "20",
                "--only-missing",
            ]
        )

        assert args.command == "reindex"
        assert args.entity_types == ["person", "place"]
        assert args.batch_size == 20
        assert args.dry_run is True

    def test_unknown_action_rejected(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["migrate", "explode"])

    def test_options_from_args_uses_defaults(self) -> None:
        args = cli.build_parser().parse_args(["reindex", "count", "--limit", "5"])
        options = cli.options_from_args(args, ReindexOptions(batch_size=7, batch_delay=3.0))

        assert options.batch_size == 7
        assert options.batch_delay == 3.0
        assert options.limit == 5
        assert options.dry_run is False

    def test_target_model_drops_dimension_override(self) -> None:
        settings = mock_settings()
        args = cli.build_parser().parse_args(
            ["--target-model", "text-embedding-3-large", "diagnose", "config"]
        )

        updated = cli.apply_overrides(settings, args)

        assert updated.providers.embedding.model == "text-embedding-3-large"
        assert updated.providers.embedding.dimensions is None
        assert settings.providers.embedding.dimensions == 8

    def test_no_target_model_keeps_settings(self) -> None:
        settings = mock_settings()
        args = cli.build_parser().parse_args(["diagnose", "config"])
        assert cli.apply_overrides(settings, args) is settings


class TestCommands:
    """End-to-end commands against the in-memory store."""

    def test_diagnose_config(self, use_settings, capsys: pytest.CaptureFixture[str]) -> None:  # type: ignore[no-untyped-def]
        use_settings(mock_settings())

        assert cli.main(["diagnose", "config"]) == 0
        out = capsys.readouterr().out
        assert "Embedding Configuration Summary" in out
        assert "Dimensions: 8D" in out

    def test_diagnose_config_invalid(self, use_settings, capsys: pytest.CaptureFixture[str]) -> None:  # type: ignore[no-untyped-def]
        use_settings(mock_settings(storage={"backend": "inmemory", "neo4j": {"vector_dimensions": 16}}))

        assert cli.main(["diagnose", "config"]) == 1
        assert "Fix configuration errors" in capsys.readouterr().out

    def test_strict_mismatch_exits_with_error(self, use_settings, capsys: pytest.CaptureFixture[str]) -> None:  # type: ignore[no-untyped-def]
        use_settings(
            mock_settings(
                strict_dimensions=True,
                storage={"backend": "inmemory", "neo4j": {"vector_dimensions": 16}},
            )
        )

        assert cli.main(["migrate", "analyze"]) == 2
        assert "Error:" in capsys.readouterr().err

    def test_migrate_analyze(self, use_settings, capsys: pytest.CaptureFixture[str]) -> None:  # type: ignore[no-untyped-def]
        use_settings(mock_settings())

        assert cli.main(["migrate", "analyze"]) == 0
        out = capsys.readouterr().out
        assert "Expected dimensions: 8" in out
        assert "Status: no-embeddings" in out

    def test_migrate_restore_dry_run(self, use_settings, capsys: pytest.CaptureFixture[str]) -> None:  # type: ignore[no-untyped-def]
        use_settings(mock_settings())

        assert cli.main(["--dry-run", "migrate", "restore"]) == 0
        assert "No backups to restore" in capsys.readouterr().out

    def test_reindex_count(self, use_settings, capsys: pytest.CaptureFixture[str]) -> None:  # type: ignore[no-untyped-def]
        use_settings(mock_settings())

        assert cli.main(["reindex", "count"]) == 0
        assert "0 entities match" in capsys.readouterr().out

    def test_invalid_reindex_options(self, use_settings, capsys: pytest.CaptureFixture[str]) -> None:  # type: ignore[no-untyped-def]
        use_settings(mock_settings())

        assert cli.main(["reindex", "count", "--batch-size", "0"]) == 2
        assert "batch_size" in capsys.readouterr().err

    def test_graph_commands_skip_embedding_credentials(
        self, use_settings, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:  # type: ignore[no-untyped-def]
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        use_settings(
            mock_settings(
                providers={"embedding": {"provider": "openai", "model": "text-embedding-3-small"}}
            )
        )

        assert cli.main(["migrate", "analyze"]) == 0
        assert cli.main(["reindex", "count"]) == 0
        assert "OPENAI_API_KEY" not in capsys.readouterr().err

    def test_reindex_run_requires_embedding_credentials(
        self, use_settings, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:  # type: ignore[no-untyped-def]
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        use_settings(
            mock_settings(
                providers={"embedding": {"provider": "openai", "model": "text-embedding-3-small"}}
            )
        )

        assert cli.main(["reindex", "run"]) == 2
        assert "OPENAI_API_KEY" in capsys.readouterr().err

    def test_zero_limit_rejected(self, use_settings, capsys: pytest.CaptureFixture[str]) -> None:  # type: ignore[no-untyped-def]
        use_settings(mock_settings())

        assert cli.main(["reindex", "run", "--limit", "0"]) == 2
        assert "limit" in capsys.readouterr().err
