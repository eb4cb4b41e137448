"""Shared data models."""

from .cache import (
    AvailabilityPayload,
    CacheEntry,
    CacheStats,
    LookupKey,
    LookupKind,
    Payload,
    Platform,
    PlatformData,
    PlatformStatus,
    ResolveResult,
    ReviewScore,
    Source,
    current_time_ms,
)
from .sources import LookupItem, SearchCandidate, SourceResult

__all__ = [
    "AvailabilityPayload",
    "CacheEntry",
    "CacheStats",
    "LookupItem",
    "LookupKey",
    "LookupKind",
    "Payload",
    "Platform",
    "PlatformData",
    "PlatformStatus",
    "ResolveResult",
    "ReviewScore",
    "SearchCandidate",
    "Source",
    "SourceResult",
    "current_time_ms",
]
