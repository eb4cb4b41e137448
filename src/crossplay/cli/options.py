"""
Reusable Typer Options Module

Option definitions shared by the main callback and the commands, used as
``Annotated`` metadata.
"""

from __future__ import annotations

import typer

log_level_option = typer.Option(
    "--log-level",
    case_sensitive=False,
    help="Set the logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Default: from configuration.",
)

json_output_option = typer.Option(
    "--json",
    help="Enable machine-readable JSON output instead of human-readable format.",
)

config_file_option = typer.Option(
    "--config",
    "-c",
    help="TOML configuration file.",
    exists=True,
    dir_okay=False,
    readable=True,
)

version_option = typer.Option(
    "--version",
    "-V",
    help="Show version information and exit.",
    is_eager=True,
)

kind_option = typer.Option(
    "--kind",
    "-k",
    case_sensitive=False,
    help="Lookup kind: availability or review_score.",
)

optional_kind_option = typer.Option(
    "--kind",
    "-k",
    case_sensitive=False,
    help="Restrict to one lookup kind (default: all).",
)
