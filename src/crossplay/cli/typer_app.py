"""
Crossplay Typer CLI Application

Command-line access to the resolution engine: resolve single items or
batches, force refreshes and inspect or clear the cache.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Awaitable, Callable, List, Optional, TypeVar

import typer
from dependency_injector import providers
from rich.console import Console

from crossplay import __version__
from crossplay.cli.context import CliContext, LogLevel, get_cli_context, set_cli_context
from crossplay.cli.error_handler import handle_cli_error
from crossplay.cli.options import (
    config_file_option,
    json_output_option,
    kind_option,
    log_level_option,
    optional_kind_option,
    version_option,
)
from crossplay.cli.output import print_results, print_stats, write_json
from crossplay.config.loader import load_settings
from crossplay.containers import Container, shutdown
from crossplay.shared.logging import setup_structured_logger
from crossplay.shared.models import LookupItem, LookupKind

T = TypeVar("T")

app = typer.Typer(
    name="crossplay",
    help="Resolve console availability and critic scores for Steam games.",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def build_container(context: CliContext) -> Container:
    """Container wired with the CLI's configuration file and log level."""
    settings = load_settings(context.config_file)
    level = context.log_level.value if context.log_level else settings.logging.level
    setup_structured_logger(
        level=level,
        log_file=settings.logging.file,
        use_rich_console=not settings.logging.json_console,
    )

    container = Container()
    container.config.override(providers.Object(settings))
    return container


def run_command(command: str, work: Callable[[Container], Awaitable[T]]) -> T:
    """Run ``work`` on a fresh container, mapping failures to exit codes."""
    context = get_cli_context()

    async def runner() -> T:
        container = build_container(context)
        try:
            return await work(container)
        finally:
            await shutdown(container)

    try:
        return asyncio.run(runner())
    except typer.Exit:
        raise
    except Exception as e:  # noqa: BLE001
        exit_code = handle_cli_error(e, command, json_output=context.json_output)
        raise typer.Exit(exit_code) from e


def parse_item(value: str) -> LookupItem:
    """Parse ``APPID:NAME``; the name may itself contain colons."""
    item_id, sep, name = value.partition(":")
    if not sep or not item_id.strip() or not name.strip():
        msg = f"expected APPID:NAME, got {value!r}"
        raise typer.BadParameter(msg)
    return LookupItem(item_id.strip(), name.strip())


@app.callback(invoke_without_command=True)
def main(
    log_level: Annotated[Optional[LogLevel], log_level_option] = None,
    json_output: Annotated[bool, json_output_option] = False,
    config_file: Annotated[Optional[Path], config_file_option] = None,
    version: Annotated[bool, version_option] = False,
) -> None:
    """Process the common options before any command runs."""
    if version:
        typer.echo(f"crossplay {__version__}")
        raise typer.Exit

    set_cli_context(
        CliContext(
            log_level=log_level,
            json_output=json_output,
            config_file=config_file,
        )
    )


@app.command("resolve")
def resolve_command(
    appid: Annotated[str, typer.Argument(help="Steam application id.")],
    name: Annotated[str, typer.Argument(help="Game display name.")],
    kind: Annotated[LookupKind, kind_option] = LookupKind.AVAILABILITY,
) -> None:
    """Resolve one game, using the cache when it is fresh."""

    async def work(container: Container) -> None:
        result = await container.resolver().resolve(appid, name, kind)
        print_results({appid: result}, kind, json_output=get_cli_context().json_output)

    run_command("resolve", work)


@app.command("batch")
def batch_command(
    items: Annotated[
        List[str],
        typer.Argument(help="Games as APPID:NAME, e.g. '367520:Hollow Knight'."),
    ],
    kind: Annotated[LookupKind, kind_option] = LookupKind.AVAILABILITY,
) -> None:
    """Resolve several games; only cache misses reach the network."""
    lookup_items = [parse_item(value) for value in items]

    async def work(container: Container) -> None:
        results = await container.resolver().batch_resolve(lookup_items, kind)
        print_results(results, kind, json_output=get_cli_context().json_output)

    run_command("batch", work)


@app.command("refresh")
def refresh_command(
    appid: Annotated[str, typer.Argument(help="Steam application id.")],
    name: Annotated[str, typer.Argument(help="Game display name.")],
    kind: Annotated[LookupKind, kind_option] = LookupKind.AVAILABILITY,
) -> None:
    """Discard the cached entry and resolve again from the sources."""

    async def work(container: Container) -> None:
        result = await container.resolver().force_refresh(appid, name, kind)
        print_results({appid: result}, kind, json_output=get_cli_context().json_output)

    run_command("refresh", work)


@app.command("stats")
def stats_command(
    kind: Annotated[Optional[LookupKind], optional_kind_option] = None,
) -> None:
    """Show cache entry counts per lookup kind."""
    kinds = [kind] if kind is not None else list(LookupKind)

    async def work(container: Container) -> None:
        resolver = container.resolver()
        stats = {k.value: await resolver.get_cache_stats(k) for k in kinds}
        print_stats(stats, json_output=get_cli_context().json_output)

    run_command("stats", work)


@app.command("clear")
def clear_command(
    kind: Annotated[Optional[LookupKind], optional_kind_option] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
    """Delete cached entries (all kinds unless --kind is given)."""
    json_output = get_cli_context().json_output
    if not yes and not json_output:
        scope = kind.value if kind else "all"
        typer.confirm(f"Clear {scope} cache entries?", abort=True)

    async def work(container: Container) -> None:
        cleared = await container.resolver().clear_cache(kind)
        if json_output:
            write_json({"success": True, "cleared": cleared})
        else:
            Console().print(f"Cleared [bold]{cleared}[/bold] cache entries")

    run_command("clear", work)


__all__ = ["app", "build_container", "parse_item", "run_command"]
