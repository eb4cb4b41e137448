"""
CLI Context Management Module

Global CLI state shared by all Typer commands, held in a ContextVar:
- log_level: Logging level (enum-based)
- json_output: JSON output mode
- config_file: Optional TOML configuration file
"""

from __future__ import annotations

import contextvars
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class LogLevel(str, Enum):
    """Log level enumeration for type safety."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CliContext(BaseModel):
    """
    CLI context model for managing global state.

    Attributes:
        log_level: Logging level override (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output in JSON format
        config_file: TOML configuration file overriding the default search
    """

    log_level: LogLevel | None = Field(
        default=None,
        description="Logging level; None defers to the configuration file",
    )
    json_output: bool = Field(default=False, description="Whether to output in JSON format")
    config_file: Path | None = Field(default=None, description="Configuration file")


_cli_context: contextvars.ContextVar[CliContext | None] = contextvars.ContextVar(
    "cli_context",
    default=None,
)


def get_cli_context() -> CliContext:
    """Return the current CLI context, or defaults when none was set."""
    context = _cli_context.get()
    return context if context is not None else CliContext()


def set_cli_context(context: CliContext) -> None:
    _cli_context.set(context)


__all__ = ["CliContext", "LogLevel", "get_cli_context", "set_cli_context"]
