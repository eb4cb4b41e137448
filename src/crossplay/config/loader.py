"""Settings loader and singleton manager.

This module handles:
- Configuration file loading from TOML
- Thread-safe singleton pattern for the Settings instance

Environment variables and the ``.env`` file are read by pydantic-settings
itself, so there is no separate dotenv step.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import toml
from pydantic import ValidationError

from crossplay.config.models.settings import Settings
from crossplay.shared.errors import ApplicationError, ErrorCode, ErrorContext

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS: tuple[Path, ...] = (
    Path("config/crossplay.toml"),
    Path("crossplay.toml"),
    Path.home() / ".crossplay" / "config.toml",
)


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking pattern to ensure thread-safety
    while minimizing lock overhead.
    """

    _instance: Settings | None = None
    _lock: threading.RLock = threading.RLock()

    def get_config(self) -> Settings:
        """Get the global settings instance (thread-safe).

        Returns:
            The global Settings instance, loading it if necessary.
        """
        # First check (without lock for performance)
        if self._instance is None:
            # Second check (with lock for thread-safety)
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings()

        return self._instance

    def reload_config(self, config_path: str | Path | None = None) -> Settings:
        """Reload the global settings instance from configuration files.

        Returns:
            The reloaded Settings instance.
        """
        with self._lock:
            self._instance = load_settings(config_path)

        return self._instance


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from TOML configuration file or environment.

    Args:
        config_path: Optional path to TOML configuration file. If None, the
            first existing default location is used, then plain environment.

    Returns:
        Settings instance loaded from the specified source

    Raises:
        ApplicationError: If the file cannot be parsed or fails validation
    """
    if config_path is None:
        config_path = next((p for p in DEFAULT_CONFIG_PATHS if p.exists()), None)

    if config_path is None:
        return Settings()

    try:
        settings = Settings.from_toml_file(config_path)
    except FileNotFoundError as e:
        raise ApplicationError(
            code=ErrorCode.CONFIG_MISSING,
            message=str(e),
            context=ErrorContext(
                operation="load_settings",
                additional_data={"config_path": str(config_path)},
            ),
            original_error=e,
        ) from e
    except (toml.TomlDecodeError, ValidationError) as e:
        raise ApplicationError(
            code=ErrorCode.CONFIG_INVALID,
            message=f"Invalid configuration file {config_path}: {e}",
            context=ErrorContext(
                operation="load_settings",
                additional_data={"config_path": str(config_path)},
            ),
            original_error=e,
        ) from e

    logger.debug("Loaded configuration from %s", config_path)
    return settings


# Global loader instance
_loader = SettingsLoader()


def get_config() -> Settings:
    """Get the global settings instance (thread-safe)."""
    return _loader.get_config()


def reload_config(config_path: str | Path | None = None) -> Settings:
    """Reload the global settings instance from configuration files."""
    return _loader.reload_config(config_path)


__all__ = [
    "DEFAULT_CONFIG_PATHS",
    "SettingsLoader",
    "get_config",
    "load_settings",
    "reload_config",
]
