"""Tests for cache entry models."""

from __future__ import annotations

import pytest

from crossplay.shared.constants import MS_PER_DAY
from crossplay.shared.models import (
    CacheEntry,
    CacheStats,
    LookupKey,
    LookupKind,
    Platform,
    PlatformData,
    PlatformStatus,
    ResolveResult,
    ReviewScore,
    Source,
)
from tests.fakes import BASE_TIME_MS


def _platforms(status: PlatformStatus = PlatformStatus.UNKNOWN) -> dict[Platform, PlatformData]:
    return {p: PlatformData(status, f"https://store.test/{p.value}") for p in Platform}


class TestLookupKey:
    """Namespaced storage keys."""

    def test_kinds_have_distinct_namespaces(self) -> None:
        availability = LookupKey("367520", LookupKind.AVAILABILITY)
        review = LookupKey("367520", LookupKind.REVIEW_SCORE)

        assert availability.cache_key == "crossplay_availability_367520"
        assert review.cache_key == "crossplay_review_367520"


class TestReviewScore:
    """ReviewScore validation."""

    @pytest.mark.parametrize("score", [0, 50, 100, None])
    def test_accepts_scores_in_range(self, score: int | None) -> None:
        assert ReviewScore(url="https://x.test", score=score).score == score

    @pytest.mark.parametrize("score", [-1, 101])
    def test_rejects_scores_out_of_range(self, score: int) -> None:
        with pytest.raises(ValueError, match="0..100"):
            ReviewScore(url="https://x.test", score=score)


class TestCacheEntry:
    """CacheEntry validation, expiry and serialization."""

    def test_empty_item_id_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="item_id"):
            CacheEntry(
                item_id="  ",
                display_name="x",
                kind=LookupKind.REVIEW_SCORE,
                payload=None,
                source=Source.FALLBACK,
                resolved_at=BASE_TIME_MS,
            )

    def test_non_positive_ttl_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="ttl_days"):
            CacheEntry(
                item_id="1",
                display_name="x",
                kind=LookupKind.REVIEW_SCORE,
                payload=None,
                source=Source.FALLBACK,
                resolved_at=BASE_TIME_MS,
                ttl_days=0,
            )

    def test_availability_payload_must_cover_every_platform(self) -> None:
        # Given
        partial = _platforms()
        del partial[Platform.XBOX]

        # When / Then
        with pytest.raises(ValueError, match="xbox"):
            CacheEntry(
                item_id="1",
                display_name="x",
                kind=LookupKind.AVAILABILITY,
                payload=partial,
                source=Source.WIKIDATA,
                resolved_at=BASE_TIME_MS,
            )

    def test_review_entry_rejects_platform_map(self) -> None:
        with pytest.raises(ValueError, match="ReviewScore"):
            CacheEntry(
                item_id="1",
                display_name="x",
                kind=LookupKind.REVIEW_SCORE,
                payload=_platforms(),
                source=Source.OPENCRITIC,
                resolved_at=BASE_TIME_MS,
            )

    def test_validity_window(self) -> None:
        """An entry is valid strictly before resolved_at + ttl."""
        # Given
        entry = CacheEntry(
            item_id="1",
            display_name="x",
            kind=LookupKind.REVIEW_SCORE,
            payload=None,
            source=Source.FALLBACK,
            resolved_at=BASE_TIME_MS,
            ttl_days=7,
        )

        # Then
        assert entry.expires_at == BASE_TIME_MS + 7 * MS_PER_DAY
        assert entry.is_valid(BASE_TIME_MS + 6 * MS_PER_DAY)
        assert not entry.is_valid(BASE_TIME_MS + 7 * MS_PER_DAY)
        assert not entry.is_valid(BASE_TIME_MS + 8 * MS_PER_DAY)

    def test_platforms_on_review_entry_raises(self) -> None:
        entry = CacheEntry(
            item_id="1",
            display_name="x",
            kind=LookupKind.REVIEW_SCORE,
            payload=None,
            source=Source.FALLBACK,
            resolved_at=BASE_TIME_MS,
        )

        with pytest.raises(TypeError):
            _ = entry.platforms

    def test_availability_dict_round_trip(self) -> None:
        # Given
        entry = CacheEntry(
            item_id="367520",
            display_name="Hollow Knight",
            kind=LookupKind.AVAILABILITY,
            payload=_platforms(PlatformStatus.AVAILABLE),
            source=Source.WIKIDATA,
            resolved_at=BASE_TIME_MS,
            external_id="Q19867536",
        )

        # When
        data = entry.to_dict()
        restored = CacheEntry.from_dict(data)

        # Then
        assert data["payload"]["nintendo"] == {
            "status": "available",
            "storeUrl": "https://store.test/nintendo",
        }
        assert data["source"] == "wikidata"
        assert restored == entry

    def test_review_dict_keeps_null_fields(self) -> None:
        entry = CacheEntry(
            item_id="367520",
            display_name="Hollow Knight",
            kind=LookupKind.REVIEW_SCORE,
            payload=ReviewScore(url="https://opencritic.com/game/7686/hollow-knight", score=91),
            source=Source.OPENCRITIC,
            resolved_at=BASE_TIME_MS,
        )

        data = entry.to_dict()

        assert data["payload"] == {
            "score": 91,
            "tier": None,
            "criticCount": None,
            "url": "https://opencritic.com/game/7686/hollow-knight",
        }
        assert CacheEntry.from_dict(data) == entry

    def test_with_display_name_keeps_everything_else(self) -> None:
        entry = CacheEntry(
            item_id="1",
            display_name="old",
            kind=LookupKind.REVIEW_SCORE,
            payload=None,
            source=Source.FALLBACK,
            resolved_at=BASE_TIME_MS,
        )

        renamed = entry.with_display_name("new")

        assert renamed.display_name == "new"
        assert renamed.resolved_at == entry.resolved_at
        assert entry.display_name == "old"


class TestResponseShapes:
    """Dict shapes used by the message router."""

    def test_cache_stats_to_dict(self) -> None:
        assert CacheStats(3, BASE_TIME_MS).to_dict() == {"count": 3, "oldestEntry": BASE_TIME_MS}
        assert CacheStats(0).to_dict() == {"count": 0, "oldestEntry": None}

    def test_resolve_result_to_dict(self) -> None:
        entry = CacheEntry(
            item_id="1",
            display_name="x",
            kind=LookupKind.REVIEW_SCORE,
            payload=None,
            source=Source.FALLBACK,
            resolved_at=BASE_TIME_MS,
        )

        data = ResolveResult(entry, from_cache=True).to_dict()

        assert data["fromCache"] is True
        assert data["data"]["itemId"] == "1"
