"""Embedding and index dimension resolution.

The registry is the single place where the dimension-related knobs are
reconciled. Each of the two integers it produces is resolved independently:

1. An explicit override wins.
2. Otherwise the embedding dimension is inferred from the model name.
3. Otherwise the index dimension inherits the resolved embedding dimension.

The result is recomputed on every process start and never persisted.
"""

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from memento.errors import ConfigurationError
from memento.observability.logging import get_logger

if TYPE_CHECKING:
    from memento.config.settings import Settings

logger = get_logger(__name__)

DEFAULT_DIMENSIONS = 1536
VOYAGE_DEFAULT_DIMENSIONS = 1024

OPENAI_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

VOYAGE_MODEL_DIMENSIONS: dict[str, int] = {
    "voyage-3": 1024,
    "voyage-3-large": 1024,
    "voyage-3-lite": 512,
    "voyage-finance-2": 1024,
    "voyage-multilingual-2": 1024,
    "voyage-law-2": 1024,
    "voyage-code-2": 1536,
    "voyage-2": 1024,
    "voyage-large-2": 1536,
    "voyage-large-2-instruct": 1024,
}

MODEL_DIMENSIONS: dict[str, int] = {**OPENAI_MODEL_DIMENSIONS, **VOYAGE_MODEL_DIMENSIONS}

API_KEY_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "voyage": "VOYAGE_API_KEY",
}


def is_known_model(model: str) -> bool:
    return model in MODEL_DIMENSIONS


def get_model_dimensions(model: str) -> int:
    """Return the native dimension of ``model``.

    Unknown ``voyage-*`` models default to 1024, anything else to 1536.
    """
    if model in MODEL_DIMENSIONS:
        return MODEL_DIMENSIONS[model]
    if model.startswith("voyage-"):
        return VOYAGE_DEFAULT_DIMENSIONS
    return DEFAULT_DIMENSIONS


def _is_set(value: int | str | None) -> bool:
    return value is not None and str(value).strip() != ""


def _parse_override(value: int | str | None) -> tuple[int | None, str | None]:
    """Parse an override knob into (dimensions, error)."""
    if value is None:
        return None, None
    if isinstance(value, str):
        if not value.strip():
            return None, None
        try:
            parsed = int(value.strip())
        except ValueError:
            return None, f'"{value}" is not a number'
    else:
        parsed = int(value)
    if parsed <= 0:
        return None, f"{parsed} is not a positive dimension"
    return parsed, None


@dataclass
class DimensionReport:
    """Validation report for the resolved dimension configuration."""

    provider: str
    model: str
    embedding_dimensions: int
    dimensions_source: str
    index_dimensions: int
    index_source: str
    api_key_configured: bool
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def dimensions_match(self) -> bool:
        return self.embedding_dimensions == self.index_dimensions

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        lines = [
            "=== Embedding Configuration Summary ===",
            f"Provider: {self.provider}",
            f"Model: {self.model}",
            f"Dimensions: {self.embedding_dimensions}D ({self.dimensions_source})",
            f"Vector Index: {self.index_dimensions}D ({self.index_source})",
            f"Status: {'valid' if self.is_valid else 'INVALID'}",
        ]
        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            lines.extend(f"  - {w}" for w in self.warnings)
        if self.errors:
            lines.append("")
            lines.append("Errors:")
            lines.extend(f"  - {e}" for e in self.errors)
        return "\n".join(lines)


class DimensionRegistry:
    """Resolves the effective embedding and index dimensions.

    Overrides may be given as integers or raw strings (as read from a CLI
    flag or an environment variable); unparseable values are reported as
    errors and resolution falls back to inference.
    """

    def __init__(
        self,
        *,
        provider: str = "openai",
        model: str = "text-embedding-3-small",
        embedding_override: int | str | None = None,
        index_override: int | str | None = None,
        api_key_configured: bool = True,
    ) -> None:
        self._provider = provider
        self._model = model
        self._embedding_override = embedding_override
        self._index_override = index_override
        self._api_key_configured = api_key_configured

    @classmethod
    def from_settings(cls, settings: "Settings") -> "DimensionRegistry":
        """Build the registry from the process configuration."""
        embedding = settings.providers.embedding
        env_var = API_KEY_ENV_VARS.get(embedding.provider)
        if embedding.provider in ("mock", "local"):
            api_key_configured = True
        else:
            api_key_configured = embedding.api_key is not None or bool(
                env_var and os.environ.get(env_var)
            )
        return cls(
            provider=embedding.provider,
            model=embedding.model,
            embedding_override=embedding.dimensions,
            index_override=settings.storage.neo4j.vector_dimensions,
            api_key_configured=api_key_configured,
        )

    def resolve(self) -> DimensionReport:
        warnings: list[str] = []
        errors: list[str] = []
        is_mock = self._provider == "mock"

        if not is_known_model(self._model) and not is_mock:
            warnings.append(
                f'Unrecognized embedding model "{self._model}"; '
                f"assuming {get_model_dimensions(self._model)} dimensions. "
                f"Known models: {', '.join(MODEL_DIMENSIONS)}"
            )

        embedding_dims, parse_error = _parse_override(self._embedding_override)
        if parse_error:
            errors.append(f"Invalid embedding dimensions override: {parse_error}")
            embedding_dims = get_model_dimensions(self._model)
            dimensions_source = f"fallback: inferred from model {self._model}"
        elif embedding_dims is not None:
            dimensions_source = "explicit embedding dimensions override"
        else:
            embedding_dims = get_model_dimensions(self._model)
            dimensions_source = f"inferred from model {self._model}"

        index_dims, parse_error = _parse_override(self._index_override)
        if parse_error:
            errors.append(f"Invalid vector index dimensions override: {parse_error}")
            index_dims = embedding_dims
            index_source = f"fallback: matching embedding dimensions ({embedding_dims})"
        elif index_dims is not None:
            index_source = "explicit vector index dimensions override"
        else:
            index_dims = embedding_dims
            index_source = f"inferred from embedding config ({embedding_dims})"

        if embedding_dims != index_dims:
            errors.append(
                "Embedding dimensions mismatch: the embedding provider will generate "
                f"{embedding_dims}D vectors but the vector index expects {index_dims}D "
                "vectors. Vector storage and search will fail."
            )

        # Checked on the raw knobs, so it fires even when one of them lost precedence
        if (
            _is_set(self._embedding_override)
            and _is_set(self._index_override)
            and str(self._embedding_override).strip() != str(self._index_override).strip()
        ):
            warnings.append(
                f"Both the embedding dimensions override ({self._embedding_override}) and "
                f"the vector index dimensions override ({self._index_override}) are set "
                "with different values. This is likely unintentional."
            )

        if not self._api_key_configured and not is_mock:
            warnings.append(
                f"No API key configured for the {self._provider} embedding provider."
            )
        if is_mock:
            warnings.append(
                "Mock embedding provider is active (not suitable for production)."
            )

        return DimensionReport(
            provider=self._provider,
            model=self._model,
            embedding_dimensions=embedding_dims,
            dimensions_source=dimensions_source,
            index_dimensions=index_dims,
            index_source=index_source,
            api_key_configured=self._api_key_configured,
            warnings=warnings,
            errors=errors,
        )

    @property
    def embedding_dimensions(self) -> int:
        return self.resolve().embedding_dimensions

    @property
    def index_dimensions(self) -> int:
        return self.resolve().index_dimensions

    def validate(self, strict: bool = False) -> DimensionReport:
        """Resolve, log and optionally enforce the configuration.

        Raises:
            ConfigurationError: If ``strict`` and the report is invalid
        """
        report = self.resolve()
        self.log_report(report)
        if strict and not report.is_valid:
            raise ConfigurationError(
                "Invalid embedding configuration: " + "; ".join(report.errors),
                errors=report.errors,
            )
        return report

    def log_report(self, report: DimensionReport) -> None:
        logger.info(
            "embedding_config_resolved",
            provider=report.provider,
            model=report.model,
            embedding_dimensions=report.embedding_dimensions,
            dimensions_source=report.dimensions_source,
            index_dimensions=report.index_dimensions,
            index_source=report.index_source,
            dimensions_match=report.dimensions_match,
        )
        for warning in report.warnings:
            logger.warning("embedding_config_warning", warning=warning)
        for error in report.errors:
            logger.error("embedding_config_error", error=error)

    def recommendations(self, report: DimensionReport | None = None) -> list[str]:
        """Operator-facing suggestions for fixing the current configuration."""
        report = report or self.resolve()
        recommendations: list[str] = []

        if not report.is_valid:
            recommendations.append("Fix configuration errors before starting:")
            if not report.dimensions_match:
                recommendations.append(
                    f"  Set storage.neo4j.vector_dimensions = {report.embedding_dimensions} "
                    "or remove it so the index inherits the embedding dimension"
                )
        if not report.api_key_configured and report.provider != "mock":
            env_var = API_KEY_ENV_VARS.get(report.provider, "the provider API key")
            recommendations.append(f"  Set {env_var} to enable real embedding generation")
        if report.provider == "mock":
            recommendations.append("  Switch providers.embedding.provider away from mock for production use")

        recommendations.append("")
        recommendations.append("Best practices:")
        recommendations.append(
            f"  - Set providers.embedding.model to choose the model (current: {report.model})"
        )
        recommendations.append("  - Let dimensions auto-configure from the model")
        recommendations.append(
            "  - Only set storage.neo4j.vector_dimensions when an override is necessary"
        )
        return recommendations
