"""Tests for the cache-first resolution engine."""

from __future__ import annotations

import pytest
from pytest_mock import MockerFixture

from crossplay.services.cache_store import SQLiteCacheStore
from crossplay.services.manual_overrides import ManualOverrides
from crossplay.services.rate_limiter import SourceRateLimiter
from crossplay.services.resolver import Resolver
from crossplay.services.sources.igdb import IGDBAdapter
from crossplay.services.sources.opencritic import OpenCriticAdapter
from crossplay.services.store_urls import build_availability, search_url
from crossplay.services.token_manager import TwitchTokenManager
from crossplay.shared.errors import (
    ApplicationError,
    DomainError,
    ErrorCode,
    InfrastructureError,
    SourceConnectionError,
)
from crossplay.shared.models import (
    LookupItem,
    LookupKey,
    LookupKind,
    Platform,
    PlatformStatus,
    ReviewScore,
    Source,
    SourceResult,
)
from tests.fakes import FakeClock, FakeHttpClient, StubAdapter

AVAILABILITY = LookupKind.AVAILABILITY
REVIEW = LookupKind.REVIEW_SCORE


def _found(source: Source, name: str, *platforms: Platform) -> SourceResult:
    return SourceResult(
        source=source,
        found=True,
        payload=build_availability(name, platforms),
        external_id=f"{source.value}-{name}",
        matched_name=name,
    )


def _review(score: int) -> SourceResult:
    return SourceResult(
        source=Source.OPENCRITIC,
        found=True,
        payload=ReviewScore(url="https://opencritic.test/game/1/x", score=score),
        external_id="1",
        matched_name="Matched Title",
    )


def _down() -> SourceConnectionError:
    return SourceConnectionError(ErrorCode.NETWORK_ERROR, "connection refused")


def _resolver(
    cache_store: SQLiteCacheStore,
    clock: FakeClock,
    *chain: StubAdapter,
    overrides: ManualOverrides | None = None,
) -> Resolver:
    adapters: dict[LookupKind, list[StubAdapter]] = {}
    for adapter in chain:
        adapters.setdefault(adapter.kind, []).append(adapter)
    return Resolver(
        cache_store,
        adapters,
        manual_overrides=overrides,
        ttl_days=7,
        negative_ttl_days=7,
        clock=clock,
    )


class TestResolveFromSources:
    """Cache misses go through the source chain."""

    @pytest.mark.asyncio
    async def test_hit_is_cached_and_served_without_network(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        wikidata = StubAdapter(
            Source.WIKIDATA, AVAILABILITY, {"1145360": _found(Source.WIKIDATA, "Hades", Platform.NINTENDO)}
        )
        resolver = _resolver(cache_store, clock, wikidata)

        # When
        first = await resolver.resolve("1145360", "Hades", AVAILABILITY)
        second = await resolver.resolve("1145360", "Hades", AVAILABILITY)

        # Then
        assert first.from_cache is False
        assert first.entry.source is Source.WIKIDATA
        assert first.entry.platforms[Platform.NINTENDO].status is PlatformStatus.AVAILABLE
        assert second.from_cache is True
        assert second.entry == first.entry
        assert wikidata.network_calls == 1

    @pytest.mark.asyncio
    async def test_first_found_source_wins(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        wikidata = StubAdapter(Source.WIKIDATA, AVAILABILITY)
        igdb = StubAdapter(
            Source.IGDB, AVAILABILITY, {"1": _found(Source.IGDB, "Celeste", Platform.XBOX)}
        )
        resolver = _resolver(cache_store, clock, wikidata, igdb)

        # When
        result = await resolver.resolve("1", "Celeste", AVAILABILITY)

        # Then
        assert result.entry.source is Source.IGDB
        assert wikidata.resolve_calls == ["1"]
        assert igdb.resolve_calls == ["1"]

    @pytest.mark.asyncio
    async def test_later_sources_are_skipped_after_a_hit(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        wikidata = StubAdapter(
            Source.WIKIDATA, AVAILABILITY, {"1": _found(Source.WIKIDATA, "Celeste")}
        )
        igdb = StubAdapter(Source.IGDB, AVAILABILITY)
        resolver = _resolver(cache_store, clock, wikidata, igdb)

        await resolver.resolve("1", "Celeste", AVAILABILITY)

        assert igdb.network_calls == 0

    @pytest.mark.asyncio
    async def test_availability_display_name_comes_from_source_match(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        wikidata = StubAdapter(
            Source.WIKIDATA, AVAILABILITY, {"1": _found(Source.WIKIDATA, "Hollow Knight")}
        )
        resolver = _resolver(cache_store, clock, wikidata)

        result = await resolver.resolve("1", "hollow knight (steam)", AVAILABILITY)

        assert result.entry.display_name == "Hollow Knight"
        assert result.entry.external_id == "wikidata-Hollow Knight"

    @pytest.mark.asyncio
    async def test_review_display_name_is_callers(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        opencritic = StubAdapter(Source.OPENCRITIC, REVIEW, {"1": _review(88)})
        resolver = _resolver(cache_store, clock, opencritic)

        result = await resolver.resolve("1", "Caller Title", REVIEW)

        assert result.entry.display_name == "Caller Title"
        assert result.entry.payload.score == 88


class TestNegativeCaching:
    """Conclusive "not found" answers are cached."""

    @pytest.mark.asyncio
    async def test_not_found_everywhere_is_cached(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        wikidata = StubAdapter(Source.WIKIDATA, AVAILABILITY)
        igdb = StubAdapter(Source.IGDB, AVAILABILITY)
        resolver = _resolver(cache_store, clock, wikidata, igdb)

        # When
        first = await resolver.resolve("404", "Nowhere Game", AVAILABILITY)
        second = await resolver.resolve("404", "Nowhere Game", AVAILABILITY)

        # Then
        assert first.entry.source is Source.FALLBACK
        assert {d.status for d in first.entry.platforms.values()} == {PlatformStatus.UNKNOWN}
        assert first.from_cache is False
        assert second.from_cache is True
        assert wikidata.network_calls == 1
        assert igdb.network_calls == 1

    @pytest.mark.asyncio
    async def test_negative_entry_expires(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        opencritic = StubAdapter(Source.OPENCRITIC, REVIEW)
        resolver = _resolver(cache_store, clock, opencritic)
        await resolver.resolve("1", "Unscored", REVIEW)

        # When
        clock.advance_days(8)
        result = await resolver.resolve("1", "Unscored", REVIEW)

        # Then
        assert result.from_cache is False
        assert opencritic.network_calls == 2

    @pytest.mark.asyncio
    async def test_review_not_found_has_null_payload(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        opencritic = StubAdapter(Source.OPENCRITIC, REVIEW)
        resolver = _resolver(cache_store, clock, opencritic)

        result = await resolver.resolve("1", "Unscored", REVIEW)

        assert result.entry.payload is None
        assert result.entry.source is Source.FALLBACK
        assert await cache_store.get(LookupKey("1", REVIEW)) is not None


class TestTransientFailures:
    """Failures are never cached."""

    @pytest.mark.asyncio
    async def test_failure_returns_unknown_without_caching(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        opencritic = StubAdapter(Source.OPENCRITIC, REVIEW, {"1": _down()})
        resolver = _resolver(cache_store, clock, opencritic)

        # When
        first = await resolver.resolve("1", "Hollow Knight", REVIEW)
        second = await resolver.resolve("1", "Hollow Knight", REVIEW)

        # Then
        assert first.entry.source is Source.FALLBACK
        assert first.entry.payload is None
        assert second.from_cache is False
        assert opencritic.network_calls == 2
        assert await cache_store.get(LookupKey("1", REVIEW)) is None

    @pytest.mark.asyncio
    async def test_failure_then_not_found_is_not_cached(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        """One failing source taints an otherwise negative answer."""
        wikidata = StubAdapter(Source.WIKIDATA, AVAILABILITY, {"1": _down()})
        igdb = StubAdapter(Source.IGDB, AVAILABILITY)
        resolver = _resolver(cache_store, clock, wikidata, igdb)

        await resolver.resolve("1", "Game", AVAILABILITY)

        assert igdb.resolve_calls == ["1"]
        assert await cache_store.get(LookupKey("1", AVAILABILITY)) is None

    @pytest.mark.asyncio
    async def test_failure_then_hit_is_cached(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        wikidata = StubAdapter(Source.WIKIDATA, AVAILABILITY, {"1": _down()})
        igdb = StubAdapter(Source.IGDB, AVAILABILITY, {"1": _found(Source.IGDB, "Game")})
        resolver = _resolver(cache_store, clock, wikidata, igdb)

        result = await resolver.resolve("1", "Game", AVAILABILITY)

        assert result.entry.source is Source.IGDB
        assert await cache_store.get(LookupKey("1", AVAILABILITY)) is not None

    @pytest.mark.asyncio
    async def test_failed_batch_call_marks_every_item(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        wikidata = StubAdapter(
            Source.WIKIDATA, AVAILABILITY, supports_batch=True, batch_error=_down()
        )
        resolver = _resolver(cache_store, clock, wikidata)

        # When
        results = await resolver.batch_resolve(
            [LookupItem("1", "A"), LookupItem("2", "B")], AVAILABILITY
        )

        # Then
        assert {r.entry.source for r in results.values()} == {Source.FALLBACK}
        assert (await cache_store.stats(AVAILABILITY)).count == 0

    @pytest.mark.asyncio
    async def test_cache_read_failure_degrades_to_sources(
        self, cache_store: SQLiteCacheStore, clock: FakeClock, mocker: MockerFixture
    ) -> None:
        # Given
        mocker.patch.object(
            cache_store,
            "get",
            side_effect=InfrastructureError(ErrorCode.CACHE_READ_FAILED, "disk gone"),
        )
        opencritic = StubAdapter(Source.OPENCRITIC, REVIEW, {"1": _review(75)})
        resolver = _resolver(cache_store, clock, opencritic)

        # When
        result = await resolver.resolve("1", "Game", REVIEW)

        # Then
        assert result.entry.payload.score == 75
        assert opencritic.network_calls == 1


class TestManualOverrides:
    """Overrides answer availability misses without any network call."""

    @pytest.mark.asyncio
    async def test_override_is_used_and_persisted(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        wikidata = StubAdapter(Source.WIKIDATA, AVAILABILITY)
        overrides = ManualOverrides({"367520": {"nintendo": "available"}})
        resolver = _resolver(cache_store, clock, wikidata, overrides=overrides)

        # When
        first = await resolver.resolve("367520", "Hollow Knight", AVAILABILITY)
        second = await resolver.resolve("367520", "Hollow Knight", AVAILABILITY)

        # Then
        assert first.entry.source is Source.MANUAL
        assert first.entry.platforms[Platform.NINTENDO].status is PlatformStatus.AVAILABLE
        assert first.entry.platforms[Platform.XBOX].status is PlatformStatus.UNKNOWN
        assert second.from_cache is True
        assert wikidata.network_calls == 0

    @pytest.mark.asyncio
    async def test_overrides_do_not_apply_to_reviews(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        opencritic = StubAdapter(Source.OPENCRITIC, REVIEW, {"367520": _review(91)})
        overrides = ManualOverrides({"367520": {"nintendo": "available"}})
        resolver = _resolver(cache_store, clock, opencritic, overrides=overrides)

        result = await resolver.resolve("367520", "Hollow Knight", REVIEW)

        assert result.entry.source is Source.OPENCRITIC
        assert opencritic.network_calls == 1


class TestBatchResolve:
    """Partitioning and batching."""

    @pytest.mark.asyncio
    async def test_empty_batch(self, cache_store: SQLiteCacheStore, clock: FakeClock) -> None:
        wikidata = StubAdapter(Source.WIKIDATA, AVAILABILITY, supports_batch=True)
        resolver = _resolver(cache_store, clock, wikidata)

        assert await resolver.batch_resolve([], AVAILABILITY) == {}
        assert wikidata.network_calls == 0

    @pytest.mark.asyncio
    async def test_only_misses_reach_the_batch_source(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        wikidata = StubAdapter(
            Source.WIKIDATA,
            AVAILABILITY,
            {
                "1": _found(Source.WIKIDATA, "One"),
                "2": _found(Source.WIKIDATA, "Two"),
                "3": _found(Source.WIKIDATA, "Three"),
            },
            supports_batch=True,
        )
        overrides = ManualOverrides({"4": {"xbox": "available"}})
        resolver = _resolver(cache_store, clock, wikidata, overrides=overrides)
        await resolver.resolve("1", "One", AVAILABILITY)

        # When
        results = await resolver.batch_resolve(
            [LookupItem(str(n), f"Game {n}") for n in range(1, 5)], AVAILABILITY
        )

        # Then
        assert wikidata.batch_calls == [["2", "3"]]
        assert list(results) == ["1", "2", "3", "4"]
        assert results["1"].from_cache is True
        assert results["4"].entry.source is Source.MANUAL

    @pytest.mark.asyncio
    async def test_fully_cached_batch_makes_no_network_calls(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        wikidata = StubAdapter(Source.WIKIDATA, AVAILABILITY, supports_batch=True)
        resolver = _resolver(cache_store, clock, wikidata)
        items = [LookupItem("1", "A"), LookupItem("2", "B")]
        await resolver.batch_resolve(items, AVAILABILITY)
        calls_before = wikidata.network_calls

        # When
        results = await resolver.batch_resolve(items, AVAILABILITY)

        # Then
        assert wikidata.network_calls == calls_before
        assert all(r.from_cache for r in results.values())

    @pytest.mark.asyncio
    async def test_single_miss_uses_resolve_not_batch(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        wikidata = StubAdapter(Source.WIKIDATA, AVAILABILITY, supports_batch=True)
        resolver = _resolver(cache_store, clock, wikidata)

        await resolver.resolve("1", "A", AVAILABILITY)

        assert wikidata.resolve_calls == ["1"]
        assert wikidata.batch_calls == []

    @pytest.mark.asyncio
    async def test_duplicate_ids_resolve_once(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        opencritic = StubAdapter(Source.OPENCRITIC, REVIEW, {"1": _review(60)})
        resolver = _resolver(cache_store, clock, opencritic)

        results = await resolver.batch_resolve(
            [LookupItem("1", "First Name"), LookupItem("1", "Second Name")], REVIEW
        )

        assert list(results) == ["1"]
        assert results["1"].entry.display_name == "First Name"
        assert opencritic.resolve_calls == ["1"]

    @pytest.mark.asyncio
    async def test_empty_item_id_is_rejected(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        resolver = _resolver(cache_store, clock, StubAdapter(Source.OPENCRITIC, REVIEW))

        with pytest.raises(DomainError):
            await resolver.batch_resolve([LookupItem(" ", "x")], REVIEW)


class TestCachedEntryRefresh:
    """Cache hits carry the caller's current display name."""

    @pytest.mark.asyncio
    async def test_display_name_is_refreshed_and_persisted(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        wikidata = StubAdapter(Source.WIKIDATA, AVAILABILITY)
        resolver = _resolver(cache_store, clock, wikidata)
        first = await resolver.resolve("1", "Old Name", AVAILABILITY)
        clock.advance_days(1)

        # When
        second = await resolver.resolve("1", "New Name", AVAILABILITY)

        # Then
        assert second.from_cache is True
        assert second.entry.display_name == "New Name"
        assert second.entry.resolved_at == first.entry.resolved_at
        assert second.entry.platforms[Platform.XBOX].store_url == search_url(
            Platform.XBOX, "New Name"
        )
        stored = await cache_store.get(LookupKey("1", AVAILABILITY))
        assert stored.display_name == "New Name"

    @pytest.mark.asyncio
    async def test_known_platform_links_are_kept(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        wikidata = StubAdapter(
            Source.WIKIDATA, AVAILABILITY, {"1": _found(Source.WIKIDATA, "Hades", Platform.NINTENDO)}
        )
        resolver = _resolver(cache_store, clock, wikidata)
        first = await resolver.resolve("1", "Hades", AVAILABILITY)

        second = await resolver.resolve("1", "HADES", AVAILABILITY)

        assert second.entry.platforms == first.entry.platforms


class TestMaintenance:
    """force_refresh, stats and clearing."""

    @pytest.mark.asyncio
    async def test_force_refresh_queries_again(
        self, cache_store: SQLiteCacheStore, clock: FakeClock
    ) -> None:
        # Given
        opencritic = StubAdapter(Source.OPENCRITIC, REVIEW, {"1": _review(70)})
        resolver = _resolver(cache_store, clock, opencritic)
        await resolver.resolve("1", "Game", REVIEW)
        opencritic.outcomes["1"] = _review(72)

        # When
        result = await resolver.force_refresh("1", "Game", REVIEW)

        # Then
        assert result.from_cache is False
        assert result.entry.payload.score == 72
        assert opencritic.network_calls == 2

    @pytest.mark.asyncio
    async def test_stats_and_clear(self, cache_store: SQLiteCacheStore, clock: FakeClock) -> None:
        # Given
        resolver = _resolver(
            cache_store,
            clock,
            StubAdapter(Source.WIKIDATA, AVAILABILITY),
            StubAdapter(Source.OPENCRITIC, REVIEW),
        )
        await resolver.batch_resolve([LookupItem("1", "A"), LookupItem("2", "B")], REVIEW)
        await resolver.resolve("1", "A", AVAILABILITY)

        # When
        stats = await resolver.get_cache_stats(REVIEW)
        cleared = await resolver.clear_cache(REVIEW)

        # Then
        assert stats.count == 2
        assert stats.oldest_resolved_at == clock()
        assert cleared == 2
        assert (await resolver.get_cache_stats()).count == 1


class TestWiring:
    """Missing collaborators are configuration errors."""

    @pytest.mark.asyncio
    async def test_missing_cache(self, clock: FakeClock) -> None:
        resolver = Resolver(None, {REVIEW: [StubAdapter(Source.OPENCRITIC, REVIEW)]}, clock=clock)

        with pytest.raises(ApplicationError):
            await resolver.resolve("1", "x", REVIEW)
        with pytest.raises(ApplicationError):
            await resolver.get_cache_stats()

    @pytest.mark.asyncio
    async def test_missing_chain(self, cache_store: SQLiteCacheStore, clock: FakeClock) -> None:
        resolver = Resolver(cache_store, {AVAILABILITY: []}, clock=clock)

        with pytest.raises(ApplicationError):
            await resolver.resolve("1", "x", AVAILABILITY)
        with pytest.raises(ApplicationError):
            await resolver.force_refresh("1", "x", REVIEW)


class TestMalformedSourceData:
    """Unusable source records behave like transient failures."""

    SEARCH_URL = "https://oc.test/api/game/search"
    GAME_URL = "https://oc.test/api/game"
    IGDB_GAMES_URL = "https://igdb.test/v4/games"
    TOKEN_URL = "https://id.test/oauth2/token"

    def _review_resolver(
        self,
        cache_store: SQLiteCacheStore,
        clock: FakeClock,
        limiter: SourceRateLimiter,
        details: dict[str, object],
    ) -> Resolver:
        http = FakeHttpClient(
            {
                self.SEARCH_URL: [{"id": 7686, "name": "Hollow Knight"}],
                f"{self.GAME_URL}/7686": details,
            }
        )
        adapter = OpenCriticAdapter(
            http,  # type: ignore[arg-type]
            limiter,
            search_url=self.SEARCH_URL,
            game_url=self.GAME_URL,
        )
        return Resolver(cache_store, {REVIEW: [adapter]}, clock=clock)

    @pytest.mark.parametrize(
        "details",
        [
            {"id": 7686, "name": "Hollow Knight"},
            {"id": 7686, "name": "Hollow Knight", "topCriticScore": None},
            {"id": 7686, "name": "Hollow Knight", "topCriticScore": "90.5"},
        ],
        ids=["missing", "null", "string"],
    )
    @pytest.mark.asyncio
    async def test_unusable_review_score_is_not_cached(
        self,
        cache_store: SQLiteCacheStore,
        clock: FakeClock,
        instant_limiter: SourceRateLimiter,
        details: dict[str, object],
    ) -> None:
        # Given
        resolver = self._review_resolver(cache_store, clock, instant_limiter, details)

        # When
        result = await resolver.resolve("367520", "Hollow Knight", REVIEW)

        # Then
        assert result.entry.source is Source.FALLBACK
        assert result.entry.payload is None
        assert result.from_cache is False
        assert await cache_store.get(LookupKey("367520", REVIEW)) is None

    @pytest.mark.asyncio
    async def test_out_of_range_score_does_not_escape(
        self,
        cache_store: SQLiteCacheStore,
        clock: FakeClock,
        instant_limiter: SourceRateLimiter,
    ) -> None:
        details = {"id": 7686, "name": "Hollow Knight", "topCriticScore": 100.7}
        resolver = self._review_resolver(cache_store, clock, instant_limiter, details)

        result = await resolver.resolve("1", "Hollow Knight", REVIEW)

        assert result.entry.source is Source.FALLBACK
        assert await cache_store.get(LookupKey("1", REVIEW)) is None

    @pytest.mark.asyncio
    async def test_published_negative_sentinel_is_cached(
        self,
        cache_store: SQLiteCacheStore,
        clock: FakeClock,
        instant_limiter: SourceRateLimiter,
    ) -> None:
        details = {"id": 7686, "name": "Hollow Knight", "topCriticScore": -1}
        resolver = self._review_resolver(cache_store, clock, instant_limiter, details)

        await resolver.resolve("1", "Hollow Knight", REVIEW)

        cached = await cache_store.get(LookupKey("1", REVIEW))
        assert cached is not None
        assert cached.source is Source.FALLBACK
        assert cached.payload is None

    @pytest.mark.asyncio
    async def test_malformed_igdb_platforms_are_not_cached(
        self,
        cache_store: SQLiteCacheStore,
        clock: FakeClock,
        instant_limiter: SourceRateLimiter,
    ) -> None:
        # Given
        game = {
            "id": 14593,
            "name": "Hollow Knight",
            "platforms": [[130]],
            "external_games": [{"uid": "367520", "category": 1}],
        }
        http = FakeHttpClient(
            {
                self.TOKEN_URL: {"access_token": "tok", "expires_in": 3600},
                self.IGDB_GAMES_URL: [game],
            }
        )
        tokens = TwitchTokenManager(
            http,  # type: ignore[arg-type]
            "client",
            "secret",
            token_url=self.TOKEN_URL,
        )
        adapter = IGDBAdapter(
            http,  # type: ignore[arg-type]
            instant_limiter,
            tokens,
            api_url="https://igdb.test/v4",
        )
        resolver = Resolver(cache_store, {AVAILABILITY: [adapter]}, clock=clock)

        # When
        result = await resolver.resolve("367520", "Hollow Knight", AVAILABILITY)

        # Then
        assert result.entry.source is Source.FALLBACK
        assert all(
            data.status is PlatformStatus.UNKNOWN for data in result.entry.platforms.values()
        )
        assert await cache_store.get(LookupKey("367520", AVAILABILITY)) is None
