"""Rendering of resolution results for the terminal."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from typing import Any, Mapping

import orjson
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from crossplay.shared.models import (
    CacheStats,
    LookupKind,
    PlatformStatus,
    ResolveResult,
    ReviewScore,
)

_STATUS_STYLES = {
    PlatformStatus.AVAILABLE: "green",
    PlatformStatus.UNAVAILABLE: "red",
    PlatformStatus.UNKNOWN: "yellow",
}


def write_json(payload: Any) -> None:
    """Write ``payload`` to stdout as indented JSON."""
    sys.stdout.buffer.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2) + b"\n")
    sys.stdout.flush()


def format_timestamp(ms: int | None) -> str:
    if ms is None:
        return "-"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def results_table(results: Mapping[str, ResolveResult], kind: LookupKind) -> Table:
    """One row per item; columns depend on the lookup kind."""
    table = Table(title=f"{kind.value.replace('_', ' ').title()} results")
    table.add_column("App ID", style="cyan", no_wrap=True)
    table.add_column("Name")

    if kind is LookupKind.AVAILABILITY:
        table.add_column("Nintendo")
        table.add_column("PlayStation")
        table.add_column("Xbox")
    else:
        table.add_column("Score", justify="right")
        table.add_column("Tier")
        table.add_column("Critics", justify="right")
        table.add_column("URL", overflow="fold")

    table.add_column("Source")
    table.add_column("Cached")

    for item_id, result in results.items():
        entry = result.entry
        if kind is LookupKind.AVAILABILITY:
            cells = [
                f"[{_STATUS_STYLES[data.status]}]{data.status.value}[/]"
                for data in entry.platforms.values()
            ]
        elif isinstance(entry.payload, ReviewScore):
            review = entry.payload
            cells = [
                str(review.score) if review.score is not None else "-",
                review.tier or "-",
                str(review.critic_count) if review.critic_count is not None else "-",
                escape(review.url),
            ]
        else:
            cells = ["-", "-", "-", "-"]

        table.add_row(
            item_id,
            escape(entry.display_name),
            *cells,
            entry.source.value,
            "yes" if result.from_cache else "no",
        )

    return table


def print_results(
    results: Mapping[str, ResolveResult],
    kind: LookupKind,
    *,
    json_output: bool,
    console: Console | None = None,
) -> None:
    if json_output:
        write_json(
            {
                "success": True,
                "results": {item_id: result.to_dict() for item_id, result in results.items()},
            }
        )
        return
    (console or Console()).print(results_table(results, kind))


def print_stats(
    stats: Mapping[str, CacheStats],
    *,
    json_output: bool,
    console: Console | None = None,
) -> None:
    if json_output:
        write_json({"success": True, "stats": {name: s.to_dict() for name, s in stats.items()}})
        return

    table = Table(title="Cache statistics")
    table.add_column("Kind", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Oldest entry")
    for name, s in stats.items():
        table.add_row(name, str(s.count), format_timestamp(s.oldest_resolved_at))
    (console or Console()).print(table)
