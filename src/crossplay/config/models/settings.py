"""Crossplay Settings Configuration Model.

Main Settings class that consolidates all configuration domains.
"""

from __future__ import annotations

import logging
from pathlib import Path

import toml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from crossplay.config.models.api_settings import APISettings
from crossplay.config.models.app_settings import AppSettings, LoggingSettings
from crossplay.config.models.cache_settings import CacheSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings facade providing unified configuration access.

    Values come from (highest first) init arguments, ``CROSSPLAY_*``
    environment variables, a ``.env`` file, then defaults. Nested fields use
    ``__``, e.g. ``CROSSPLAY_API__IGDB__CLIENT_ID``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CROSSPLAY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: APISettings = Field(default_factory=APISettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    overrides_file: Path | None = Field(
        default=None,
        description="TOML file of manual platform overrides",
    )

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> Settings:
        """Load settings from a TOML file.

        Environment variables fill in any value the file leaves out.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        raw_config = toml.load(file_path)
        return cls(**raw_config)

    def to_toml_file(self, file_path: str | Path) -> None:
        """Save settings to TOML file.

        Credentials are written too; the file is configuration, not a log.
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json", exclude_none=True)

        with open(file_path, "w", encoding="utf-8") as f:
            toml.dump(config_dict, f)
