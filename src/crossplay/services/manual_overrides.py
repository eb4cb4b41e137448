"""Hand-maintained platform statuses.

Overrides sit between the cache and the network: a cache miss for an item
listed here is answered from the override without querying any source.
They apply to availability lookups only.

File format (TOML)::

    [overrides."367520"]
    nintendo = "available"
    playstation = "available"
    xbox = "unavailable"

Platforms left out of an item's table resolve as unknown.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import toml

from crossplay.shared.errors import ApplicationError, ErrorCode, ErrorContext
from crossplay.shared.models import Platform, PlatformStatus

logger = logging.getLogger(__name__)

OverrideStatuses = Mapping[Platform, PlatformStatus]


class ManualOverrides:
    """Read-only ``item_id -> {platform: status}`` map."""

    def __init__(self, overrides: Mapping[str, Mapping[Any, Any]] | None = None) -> None:
        parsed: dict[str, OverrideStatuses] = {}
        for item_id, statuses in (overrides or {}).items():
            parsed[str(item_id)] = MappingProxyType(_parse_statuses(str(item_id), statuses))
        self._overrides: Mapping[str, OverrideStatuses] = MappingProxyType(parsed)

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> ManualOverrides:
        """Load overrides from a TOML file with an ``[overrides]`` table.

        Raises:
            ApplicationError: If the file is missing or malformed
        """
        file_path = Path(file_path)
        context = ErrorContext(
            operation="load_manual_overrides",
            additional_data={"file_path": str(file_path)},
        )

        try:
            raw = toml.load(file_path)
        except FileNotFoundError as e:
            raise ApplicationError(
                ErrorCode.CONFIG_MISSING,
                f"Manual overrides file not found: {file_path}",
                context,
                e,
            ) from e
        except toml.TomlDecodeError as e:
            raise ApplicationError(
                ErrorCode.CONFIG_INVALID,
                f"Manual overrides file is not valid TOML: {e}",
                context,
                e,
            ) from e

        overrides = cls(raw.get("overrides", {}))
        logger.info("Loaded %d manual overrides from %s", len(overrides), file_path)
        return overrides

    def get(self, item_id: str) -> OverrideStatuses | None:
        return self._overrides.get(item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._overrides

    def __len__(self) -> int:
        return len(self._overrides)


def _parse_statuses(item_id: str, statuses: Mapping[Any, Any]) -> dict[Platform, PlatformStatus]:
    try:
        return {Platform(name): PlatformStatus(value) for name, value in statuses.items()}
    except (ValueError, AttributeError) as e:
        raise ApplicationError(
            ErrorCode.CONFIG_INVALID,
            f"Invalid manual override for item {item_id}: {e}",
            ErrorContext(operation="load_manual_overrides", item_id=item_id),
            e,
        ) from e


__all__ = ["ManualOverrides", "OverrideStatuses"]
