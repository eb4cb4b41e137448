"""IGDB availability source.

Requires Twitch client credentials. Each item is first looked up through
IGDB's Steam external-game cross reference; only when that finds nothing is
the display name searched and fuzzy matched, followed by a detail fetch of
the chosen record.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from crossplay.services.http_client import HttpClient
from crossplay.services.name_matcher import NameMatcher
from crossplay.services.rate_limiter import SourceRateLimiter
from crossplay.services.sources.base import SourceAdapter
from crossplay.services.store_urls import build_availability
from crossplay.services.token_manager import TwitchTokenManager
from crossplay.shared.constants import ContentTypes, HTTPHeaders, HTTPStatusCodes, IGDBConfig
from crossplay.shared.errors import (
    MalformedResponseError,
    SourceRequestError,
    create_malformed_response_error,
)
from crossplay.shared.models import (
    LookupItem,
    LookupKind,
    Platform,
    SearchCandidate,
    Source,
    SourceResult,
)

logger = logging.getLogger(__name__)

_GAME_FIELDS = (
    "fields id, name, platforms, websites.url, websites.category, "
    "external_games.uid, external_games.category;"
)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _steam_condition(steam_id: str) -> str:
    return (
        f"(external_games.uid = {_quote(steam_id)} & "
        f"external_games.category = {IGDBConfig.EXTERNAL_CATEGORY_STEAM})"
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class IGDBAdapter(SourceAdapter):
    """Availability from IGDB, by Steam cross reference or fuzzy name."""

    source = Source.IGDB
    kind = LookupKind.AVAILABILITY
    supports_batch = True

    def __init__(
        self,
        http: HttpClient,
        limiter: SourceRateLimiter,
        token_manager: TwitchTokenManager,
        matcher: NameMatcher | None = None,
        api_url: str = IGDBConfig.API_URL,
    ) -> None:
        super().__init__(http, limiter)
        self._tokens = token_manager
        self._matcher = matcher or NameMatcher()
        self.api_url = api_url.rstrip("/")

    async def resolve(self, item_id: str, name: str) -> SourceResult:
        games = await self._query(
            "games",
            f"{_GAME_FIELDS} where {_steam_condition(item_id)}; limit 1;",
        )
        if games:
            return self._to_result(games[0], name)
        return await self._resolve_by_name(name)

    async def resolve_many(self, items: Sequence[LookupItem]) -> dict[str, SourceResult]:
        names: dict[str, str] = {}
        for item in items:
            names.setdefault(item.item_id, item.display_name)
        ids = list(names)

        by_steam_id: dict[str, dict[str, Any]] = {}
        for start in range(0, len(ids), IGDBConfig.STEAM_BATCH_SIZE):
            chunk = ids[start : start + IGDBConfig.STEAM_BATCH_SIZE]
            conditions = " | ".join(_steam_condition(steam_id) for steam_id in chunk)
            games = await self._query(
                "games",
                f"{_GAME_FIELDS} where {conditions}; limit {len(chunk)};",
            )
            for game in games:
                steam_id = self._steam_uid(game)
                if steam_id is not None and steam_id not in by_steam_id:
                    by_steam_id[steam_id] = game

        results: dict[str, SourceResult] = {}
        for item_id, name in names.items():
            game = by_steam_id.get(item_id)
            if game is not None:
                results[item_id] = self._to_result(game, name)
            else:
                results[item_id] = await self._resolve_by_name(name)
        return results

    async def _resolve_by_name(self, name: str) -> SourceResult:
        hits = await self._query(
            "games",
            f"search {_quote(name)}; fields id, name; limit {IGDBConfig.SEARCH_LIMIT};",
        )
        candidates: list[SearchCandidate] = []
        for hit in hits:
            if not isinstance(hit, dict) or not isinstance(hit.get("name"), str):
                continue
            if not _is_int(hit.get("id")):
                raise self._malformed(f"IGDB search hit {hit.get('name')!r} has no numeric id")
            candidates.append(SearchCandidate(id=str(hit["id"]), name=hit["name"]))

        best = self._matcher.best_match(name, candidates)
        if best is None:
            logger.debug("IGDB has no confident match for %r", name)
            return SourceResult.not_found(self.source)

        details = await self._query(
            "games",
            f"{_GAME_FIELDS} where id = {best.id}; limit 1;",
        )
        if not details:
            return SourceResult.not_found(self.source)
        return self._to_result(details[0], name)

    async def _query(self, endpoint: str, body: str) -> list[Any]:
        token = await self._tokens.get_token()
        headers = {
            HTTPHeaders.CLIENT_ID: self._tokens.client_id,
            HTTPHeaders.AUTHORIZATION: f"Bearer {token}",
            HTTPHeaders.CONTENT_TYPE: ContentTypes.PLAIN_TEXT,
        }

        async def request() -> Any:
            return await self._http.post_json(
                f"{self.api_url}/{endpoint}",
                data=body,
                headers=headers,
                source=self.source.value,
            )

        try:
            data = await self._scheduled(request)
        except SourceRequestError as e:
            if e.status_code == HTTPStatusCodes.UNAUTHORIZED:
                self._tokens.invalidate()
            raise
        return self._expect_list(data, endpoint)

    def _malformed(self, message: str) -> MalformedResponseError:
        return create_malformed_response_error(message, source=self.source.value, operation="games")

    def _steam_uid(self, game: Any) -> str | None:
        if not isinstance(game, dict):
            raise self._malformed("IGDB game record is not an object")
        externals = game.get("external_games") or []
        if not isinstance(externals, list):
            raise self._malformed("IGDB external_games is not a list")
        for external in externals:
            if (
                isinstance(external, dict)
                and external.get("category") == IGDBConfig.EXTERNAL_CATEGORY_STEAM
                and external.get("uid") is not None
            ):
                return str(external["uid"])
        return None

    def _to_result(self, game: Any, caller_name: str) -> SourceResult:
        if not isinstance(game, dict):
            raise self._malformed("IGDB game record is not an object")
        platforms = game.get("platforms") or []
        if not isinstance(platforms, list) or not all(_is_int(p) for p in platforms):
            raise self._malformed(f"IGDB game {game.get('id')} has malformed platforms")
        websites = game.get("websites") or []
        if not isinstance(websites, list):
            raise self._malformed(f"IGDB game {game.get('id')} has malformed websites")

        igdb_name = game.get("name") if isinstance(game.get("name"), str) else None
        display_name = igdb_name or caller_name
        platform_ids = set(platforms)

        available_on = [
            platform
            for platform in Platform
            if platform_ids.intersection(IGDBConfig.PLATFORM_IDS[platform.value])
        ]

        store_urls: dict[Platform, str] = {}
        for platform in Platform:
            category = IGDBConfig.WEBSITE_CATEGORIES[platform.value]
            for website in websites:
                if (
                    isinstance(website, dict)
                    and website.get("category") == category
                    and isinstance(website.get("url"), str)
                    and website["url"]
                ):
                    store_urls[platform] = website["url"]
                    break

        return SourceResult(
            source=self.source,
            found=True,
            payload=build_availability(display_name, available_on, store_urls),
            external_id=str(game["id"]) if "id" in game else None,
            matched_name=igdb_name,
        )


__all__ = ["IGDBAdapter"]
