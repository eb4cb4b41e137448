"""Storefront URL helpers.

Every platform entry carries a link. When a source gives no official store
page, the link is a storefront search for the game's display name.
"""

from __future__ import annotations

from typing import Iterable, Mapping
from urllib.parse import quote

from crossplay.shared.constants import StoreSearchUrls
from crossplay.shared.models import AvailabilityPayload, Platform, PlatformData, PlatformStatus


def search_url(platform: Platform, name: str) -> str:
    """Storefront search URL for ``name`` on ``platform``."""
    return StoreSearchUrls.TEMPLATES[platform.value].format(query=quote(name, safe=""))


def build_availability(
    name: str,
    available_on: Iterable[Platform] = (),
    store_urls: Mapping[Platform, str] | None = None,
    *,
    found: bool = True,
) -> AvailabilityPayload:
    """Build a full platform map.

    When ``found`` is False every platform is Unknown; otherwise platforms in
    ``available_on`` are Available and the rest Unavailable. Official links
    from ``store_urls`` win over search links.
    """
    available = set(available_on)
    official = store_urls or {}
    payload: AvailabilityPayload = {}

    for platform in Platform:
        if not found:
            status = PlatformStatus.UNKNOWN
        elif platform in available:
            status = PlatformStatus.AVAILABLE
        else:
            status = PlatformStatus.UNAVAILABLE
        payload[platform] = PlatformData(
            status=status,
            store_url=official.get(platform) or search_url(platform, name),
        )

    return payload


def unknown_availability(name: str) -> AvailabilityPayload:
    """All platforms Unknown, linked to storefront searches."""
    return build_availability(name, found=False)


def override_availability(
    name: str,
    statuses: Mapping[Platform, PlatformStatus],
) -> AvailabilityPayload:
    """Platform map from a manual override; unlisted platforms are Unknown."""
    return {
        platform: PlatformData(
            status=statuses.get(platform, PlatformStatus.UNKNOWN),
            store_url=search_url(platform, name),
        )
        for platform in Platform
    }


def refresh_unknown_urls(payload: AvailabilityPayload, name: str) -> AvailabilityPayload:
    """Rebuild search links of Unknown platforms for a new display name.

    Known platforms keep their link, which may be an official store page.
    """
    return {
        platform: (
            PlatformData(status=data.status, store_url=search_url(platform, name))
            if data.status is PlatformStatus.UNKNOWN
            else data
        )
        for platform, data in payload.items()
    }


__all__ = [
    "build_availability",
    "override_availability",
    "refresh_unknown_urls",
    "search_url",
    "unknown_availability",
]
