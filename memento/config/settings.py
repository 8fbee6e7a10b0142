"""Root settings model for Memento configuration."""

from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from memento.config.models.observability import ObservabilityConfig
from memento.config.models.providers import ProvidersConfig
from memento.config.models.search import ReindexConfig, SearchConfig
from memento.config.models.storage import StorageConfig

# TOML config consumed by TomlConfigSettingsSource
_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Set the TOML configuration to be used by Settings."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that reads from TOML configuration."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return _toml_config.copy()


class Settings(BaseSettings):
    """Root configuration object containing all nested configuration sections.

    Priority (highest first): constructor arguments, MEMENTO_* environment
    variables, config/*.toml files, model defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="MEMENTO_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    strict_dimensions: bool = Field(
        default=False,
        description="Refuse to start when embedding and index dimensions disagree",
    )

    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Graph store configuration",
    )
    providers: ProvidersConfig = Field(
        default_factory=ProvidersConfig,
        description="Embedding and rerank provider configuration",
    )
    search: SearchConfig = Field(
        default_factory=SearchConfig,
        description="Hybrid search configuration",
    )
    reindex: ReindexConfig = Field(
        default_factory=ReindexConfig,
        description="Batch reindex defaults",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )
