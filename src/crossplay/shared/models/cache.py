"""Cache entry models.

This module defines the lookup key, the two payload shapes (platform
availability and review score) and the persisted ``CacheEntry`` record.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Union

from crossplay.shared.constants import MS_PER_DAY, CacheConfig

__all__ = [
    "AvailabilityPayload",
    "CacheEntry",
    "CacheStats",
    "LookupKey",
    "LookupKind",
    "Payload",
    "Platform",
    "PlatformData",
    "PlatformStatus",
    "ResolveResult",
    "ReviewScore",
    "Source",
    "current_time_ms",
]


def current_time_ms() -> int:
    """Return the wall clock in milliseconds since the epoch."""
    return int(time.time() * 1000)


class LookupKind(str, Enum):
    """Category of lookup, each with its own cache namespace."""

    AVAILABILITY = "availability"
    REVIEW_SCORE = "review_score"

    @property
    def key_prefix(self) -> str:
        if self is LookupKind.AVAILABILITY:
            return CacheConfig.AVAILABILITY_KEY_PREFIX
        return CacheConfig.REVIEW_KEY_PREFIX


class Platform(str, Enum):
    """Console platforms tracked for availability."""

    NINTENDO = "nintendo"
    PLAYSTATION = "playstation"
    XBOX = "xbox"


class PlatformStatus(str, Enum):
    """Availability of a game on one platform."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class Source(str, Enum):
    """Provenance of a cache entry."""

    WIKIDATA = "wikidata"
    IGDB = "igdb"
    OPENCRITIC = "opencritic"
    MANUAL = "manual"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class LookupKey:
    """Identifies one cache slot."""

    item_id: str
    kind: LookupKind

    @property
    def cache_key(self) -> str:
        """Storage key, ``{namespace-prefix}{item_id}``."""
        return f"{self.kind.key_prefix}{self.item_id}"


@dataclass
class PlatformData:
    """Status and store link for one platform."""

    status: PlatformStatus
    store_url: str

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status.value, "storeUrl": self.store_url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlatformData:
        return cls(status=PlatformStatus(data["status"]), store_url=data["storeUrl"])


@dataclass
class ReviewScore:
    """Aggregated critic score for a game.

    Attributes:
        score: Rounded score in 0..100, if published
        tier: Source tier label (e.g. "Mighty"), if any
        critic_count: Number of critic reviews, if known
        url: Public page for the score
    """

    url: str
    score: Optional[int] = None
    tier: Optional[str] = None
    critic_count: Optional[int] = None

    def __post_init__(self) -> None:
        if self.score is not None and not 0 <= self.score <= 100:
            msg = f"score must be within 0..100, got {self.score}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "tier": self.tier,
            "criticCount": self.critic_count,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewScore:
        return cls(
            url=data["url"],
            score=data.get("score"),
            tier=data.get("tier"),
            critic_count=data.get("criticCount"),
        )


AvailabilityPayload = Dict[Platform, PlatformData]
Payload = Union[AvailabilityPayload, ReviewScore, None]


@dataclass
class CacheEntry:
    """Persisted resolution outcome for one LookupKey.

    ``payload`` is a full platform map for availability entries and a
    ``ReviewScore`` or ``None`` for review entries. ``None`` means the source
    was queried and has no score yet; it is cached like any other result.

    Example:
        >>> entry = CacheEntry(
        ...     item_id="367520",
        ...     display_name="Hollow Knight",
        ...     kind=LookupKind.REVIEW_SCORE,
        ...     payload=None,
        ...     source=Source.FALLBACK,
        ...     resolved_at=current_time_ms(),
        ... )
        >>> entry.is_valid()
        True
    """

    item_id: str
    display_name: str
    kind: LookupKind
    payload: Payload
    source: Source
    resolved_at: int
    ttl_days: int = CacheConfig.DEFAULT_TTL_DAYS
    external_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate fields.

        Raises:
            ValueError: If the item id is empty, the TTL is not positive, or
                the payload does not match the kind
        """
        if not self.item_id or not self.item_id.strip():
            msg = "item_id must be non-empty"
            raise ValueError(msg)

        if self.ttl_days <= 0:
            msg = f"ttl_days must be positive, got {self.ttl_days}"
            raise ValueError(msg)

        if self.kind is LookupKind.AVAILABILITY:
            if not isinstance(self.payload, dict):
                msg = "availability entries require a platform map payload"
                raise ValueError(msg)
            missing = [p.value for p in Platform if p not in self.payload]
            if missing:
                msg = f"availability payload is missing platforms: {', '.join(missing)}"
                raise ValueError(msg)
        elif self.payload is not None and not isinstance(self.payload, ReviewScore):
            msg = "review score entries require a ReviewScore or None payload"
            raise ValueError(msg)

    @property
    def key(self) -> LookupKey:
        return LookupKey(self.item_id, self.kind)

    @property
    def expires_at(self) -> int:
        return self.resolved_at + self.ttl_days * MS_PER_DAY

    def is_valid(self, now_ms: int | None = None) -> bool:
        """Return True while the entry is inside its TTL window."""
        now = current_time_ms() if now_ms is None else now_ms
        return self.expires_at > now

    @property
    def platforms(self) -> AvailabilityPayload:
        """Platform map of an availability entry."""
        if not isinstance(self.payload, dict):
            msg = f"{self.kind.value} entries have no platform map"
            raise TypeError(msg)
        return self.payload

    def with_display_name(self, display_name: str) -> CacheEntry:
        return replace(self, display_name=display_name)

    def to_dict(self) -> dict[str, Any]:
        payload: Any
        if isinstance(self.payload, dict):
            payload = {p.value: data.to_dict() for p, data in self.payload.items()}
        elif isinstance(self.payload, ReviewScore):
            payload = self.payload.to_dict()
        else:
            payload = None

        return {
            "itemId": self.item_id,
            "displayName": self.display_name,
            "kind": self.kind.value,
            "payload": payload,
            "source": self.source.value,
            "resolvedAt": self.resolved_at,
            "ttlDays": self.ttl_days,
            "externalId": self.external_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        kind = LookupKind(data["kind"])
        raw_payload = data.get("payload")
        payload: Payload
        if kind is LookupKind.AVAILABILITY:
            payload = {
                Platform(name): PlatformData.from_dict(value)
                for name, value in (raw_payload or {}).items()
            }
        elif raw_payload is None:
            payload = None
        else:
            payload = ReviewScore.from_dict(raw_payload)

        return cls(
            item_id=data["itemId"],
            display_name=data["displayName"],
            kind=kind,
            payload=payload,
            source=Source(data["source"]),
            resolved_at=int(data["resolvedAt"]),
            ttl_days=int(data["ttlDays"]),
            external_id=data.get("externalId"),
        )


@dataclass(frozen=True)
class CacheStats:
    """Row count and oldest resolution time for a cache namespace."""

    count: int
    oldest_resolved_at: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "oldestEntry": self.oldest_resolved_at}


@dataclass
class ResolveResult:
    """A resolved entry and whether it was served from the cache."""

    entry: CacheEntry
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.entry.to_dict(), "fromCache": self.from_cache}
