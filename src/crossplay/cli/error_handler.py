"""
CLI Error Handling Utilities

Consistent error output for CLI commands: a rich message for people, or a
JSON document when --json is active.
"""

from __future__ import annotations

import logging
import sys

import orjson
from rich.console import Console
from rich.markup import escape

from crossplay.shared.errors import (
    ApplicationError,
    CrossplayError,
    DomainError,
    ErrorCode,
    InfrastructureError,
)

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2


def _exit_code_for(error: Exception) -> int:
    if isinstance(error, ApplicationError):
        return EXIT_CONFIG_ERROR
    return EXIT_ERROR


def _describe(error: Exception) -> tuple[str, str]:
    if isinstance(error, CrossplayError):
        return error.code.value, error.message
    return ErrorCode.CLI_UNEXPECTED_ERROR.value, str(error) or type(error).__name__


def handle_cli_error(
    error: Exception,
    command: str,
    *,
    json_output: bool = False,
) -> int:
    """Report ``error`` for ``command`` and return the exit code to use."""
    code, message = _describe(error)

    if isinstance(error, (DomainError, ApplicationError, InfrastructureError)):
        logger.error("%s failed: %s", command, error)
    else:
        logger.exception("Unexpected error in %s", command)

    if json_output:
        payload = {
            "success": False,
            "command": command,
            "errors": [{"code": code, "message": message}],
        }
        sys.stdout.buffer.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2) + b"\n")
        sys.stdout.flush()
    else:
        Console(stderr=True).print(
            f"[red bold]Error:[/red bold] {escape(message)} [dim]({code})[/dim]"
        )

    return _exit_code_for(error)


__all__ = ["EXIT_CONFIG_ERROR", "EXIT_ERROR", "EXIT_SUCCESS", "handle_cli_error"]
