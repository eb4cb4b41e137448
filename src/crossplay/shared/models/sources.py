"""Source adapter models.

Transient values exchanged between the resolver and source adapters.
Nothing in this module is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from crossplay.shared.models.cache import Payload, Source

__all__ = ["LookupItem", "SearchCandidate", "SourceResult"]


@dataclass(frozen=True)
class LookupItem:
    """Catalog item to resolve: a stable id plus the caller's display name."""

    item_id: str
    display_name: str


@dataclass(frozen=True)
class SearchCandidate:
    """One hit from a source's text search endpoint.

    Attributes:
        id: Source-specific record id
        name: Record title as the source spells it
        distance_hint: Optional fuzzy distance some sources report
    """

    id: str
    name: str
    distance_hint: Optional[float] = None


@dataclass(frozen=True)
class SourceResult:
    """Normalized outcome of one adapter lookup.

    A result with ``found=False`` is a conclusive answer from a source that
    was reachable; it is cached as a negative entry by the resolver.
    """

    source: Source
    found: bool
    payload: Payload = None
    external_id: Optional[str] = None
    matched_name: Optional[str] = None

    @classmethod
    def not_found(cls, source: Source) -> SourceResult:
        return cls(source=source, found=False)
