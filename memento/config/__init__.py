"""Configuration loading for Memento.

Configuration is loaded from TOML files with environment variable overrides
and built exactly once per process into a :class:`Settings` instance that is
passed explicitly into every component.

Usage:
    from memento.config import get_settings

    settings = get_settings()
    index = settings.storage.neo4j.vector_index
"""

from functools import lru_cache

from memento.config.loader import load_config
from memento.config.settings import Settings, set_toml_config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the singleton settings instance.

    Configuration is loaded in this order:
    1. Pydantic model defaults (in code)
    2. config/default.toml (base configuration)
    3. config/{MEMENTO_ENV}.toml (environment overrides)
    4. MEMENTO_* environment variables (runtime overrides)

    Call ``get_settings.cache_clear()`` to reload configuration.
    """
    set_toml_config(load_config())
    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]
