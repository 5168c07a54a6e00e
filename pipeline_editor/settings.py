"""
Configuration settings for the pipeline editor.

This module provides a settings class with support for loading configuration
from TOML files and environment variables.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)


class LayoutDirection(str, Enum):
    """Primary axis of the layered layout."""

    LEFT_RIGHT = "LR"
    TOP_BOTTOM = "TB"


class Settings(BaseSettings):
    """Main settings class for the pipeline editor.

    Values come from environment variables (``PIPELINE_EDITOR_`` prefix) first,
    then from ``settings.toml`` / ``settings.custom.toml`` in the working directory.
    """

    model_config = SettingsConfigDict(
        toml_file=["settings.toml", "settings.custom.toml"],
        env_prefix="PIPELINE_EDITOR_",
        extra="ignore",
    )

    # Backend API settings
    api_url: str = "http://localhost:8080/api/v1"
    api_token: str | None = None
    request_timeout: float = 30.0

    # Layout settings (node box size and spacing, in canvas units)
    layout_direction: LayoutDirection = LayoutDirection.LEFT_RIGHT
    node_width: float = 220.0
    node_height: float = 100.0
    node_sep: float = 60.0
    rank_sep: float = 150.0
    add_after_offset: float = 320.0

    # Logging settings
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str | None = None
    log_rotation: str = "20 MB"
    log_retention: str = "1 week"
    log_format: str | None = None

    @classmethod
    def settings_customize_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize the sources for settings.

        Priority order: explicit init arguments, environment variables, then TOML config files
        """
        return init_settings, env_settings, TomlConfigSettingsSource(settings_cls)

    def get_log_dir(self) -> Path:
        """Get the log directory path.

        Returns:
            Path to the log directory. Uses log_dir if specified,
            otherwise ``~/.pipeline_editor/logs``.
        """
        if self.log_dir:
            return Path(self.log_dir)
        return Path.home() / ".pipeline_editor" / "logs"


@lru_cache
def get_settings() -> Settings:
    """Get the settings instance, with caching.

    Returns:
        Cached Settings instance
    """
    return Settings()


# Create a global settings instance for easy imports
settings = get_settings()
