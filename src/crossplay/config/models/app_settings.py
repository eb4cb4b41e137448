"""Application and logging configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AppSettings(BaseModel):
    """Application-level settings."""

    name: str = Field(default="crossplay", description="Application name")
    version: str = Field(default="0.6.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")


class LoggingSettings(BaseModel):
    """Logging configuration.

    Console output goes through rich unless ``json_console`` is set; the
    optional log file is always JSON lines.
    """

    level: str = Field(default="INFO", description="Logging level")
    file: str | None = Field(default=None, description="Optional log file path")
    json_console: bool = Field(
        default=False,
        description="Emit JSON lines on the console instead of rich output",
    )


__all__ = ["AppSettings", "LoggingSettings"]
