"""Wikidata availability source.

Games are matched by their Steam application id (P1733), so no fuzzy
matching is involved. One SPARQL query answers up to ``batch_size`` ids and
returns the platform items (P400) plus storefront ids for the Nintendo
eShop (P8084), PlayStation Store (P5944) and Microsoft Store (P5885).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Sequence

from crossplay.services.http_client import HttpClient
from crossplay.services.rate_limiter import SourceRateLimiter
from crossplay.services.sources.base import SourceAdapter
from crossplay.services.store_urls import build_availability
from crossplay.shared.constants import ContentTypes, HTTPHeaders, WikidataConfig
from crossplay.shared.errors import create_malformed_response_error
from crossplay.shared.models import LookupItem, LookupKind, Platform, Source, SourceResult

logger = logging.getLogger(__name__)

_QID_PATTERN = re.compile(r"^Q\d+$")
_STEAM_ID_PATTERN = re.compile(r"^\d+$")

_STORE_ID_VARS = {
    Platform.NINTENDO: "eshopId",
    Platform.PLAYSTATION: "psStoreId",
    Platform.XBOX: "msStoreId",
}


def is_wikidata_qid(value: str) -> bool:
    """True for bare item ids such as ``Q12345``.

    The label service returns the QID itself when an item has no English
    label, which is useless as a display name.
    """
    return bool(_QID_PATTERN.match(value))


def build_sparql_query(steam_ids: Sequence[str]) -> str:
    values = " ".join(f'"{steam_id}"' for steam_id in steam_ids)
    return f"""
SELECT ?item ?itemLabel ?steamId ?platform ?eshopId ?psStoreId ?msStoreId WHERE {{
  VALUES ?steamId {{ {values} }}
  ?item wdt:{WikidataConfig.STEAM_APP_ID} ?steamId .
  OPTIONAL {{ ?item wdt:{WikidataConfig.PLATFORM} ?platform . }}
  OPTIONAL {{ ?item wdt:{WikidataConfig.NINTENDO_ESHOP_ID} ?eshopId . }}
  OPTIONAL {{ ?item wdt:{WikidataConfig.PLAYSTATION_STORE_ID} ?psStoreId . }}
  OPTIONAL {{ ?item wdt:{WikidataConfig.MICROSOFT_STORE_ID} ?msStoreId . }}
  SERVICE wikibase:label {{ bd:serviceParam wikibase:language "en". }}
}}
""".strip()


@dataclass
class _WikidataGame:
    qid: str
    label: str | None = None
    platform_qids: set[str] = field(default_factory=set)
    store_ids: dict[Platform, str] = field(default_factory=dict)


def _binding_value(binding: dict[str, Any], name: str) -> str | None:
    cell = binding.get(name)
    if isinstance(cell, dict) and isinstance(cell.get("value"), str):
        return cell["value"]
    return None


def _entity_id(uri: str) -> str:
    if uri.startswith(WikidataConfig.ENTITY_URL_PREFIX):
        return uri[len(WikidataConfig.ENTITY_URL_PREFIX) :]
    return uri.rsplit("/", 1)[-1]


class WikidataAdapter(SourceAdapter):
    """Availability by Steam cross-reference, batched SPARQL lookups."""

    source = Source.WIKIDATA
    kind = LookupKind.AVAILABILITY
    supports_batch = True

    def __init__(
        self,
        http: HttpClient,
        limiter: SourceRateLimiter,
        endpoint: str = WikidataConfig.SPARQL_ENDPOINT,
        batch_size: int = WikidataConfig.BATCH_SIZE,
    ) -> None:
        super().__init__(http, limiter)
        self.endpoint = endpoint
        self.batch_size = batch_size

    async def resolve(self, item_id: str, name: str) -> SourceResult:
        results = await self.resolve_many([LookupItem(item_id, name)])
        return results[item_id]

    async def resolve_many(self, items: Sequence[LookupItem]) -> dict[str, SourceResult]:
        names: dict[str, str] = {}
        for item in items:
            names.setdefault(item.item_id, item.display_name)

        results: dict[str, SourceResult] = {}
        queryable: list[str] = []
        for item_id in names:
            if _STEAM_ID_PATTERN.match(item_id):
                queryable.append(item_id)
            else:
                # Not a Steam app id, so no P1733 statement can match it
                results[item_id] = SourceResult.not_found(self.source)

        for start in range(0, len(queryable), self.batch_size):
            chunk = queryable[start : start + self.batch_size]
            games = await self._query_chunk(chunk)
            for item_id in chunk:
                game = games.get(item_id)
                results[item_id] = (
                    self._to_result(game, names[item_id])
                    if game is not None
                    else SourceResult.not_found(self.source)
                )

        found = sum(1 for result in results.values() if result.found)
        logger.debug("Wikidata resolved %d of %d items", found, len(results))
        return results

    async def _query_chunk(self, steam_ids: list[str]) -> dict[str, _WikidataGame]:
        query = build_sparql_query(steam_ids)

        async def request() -> Any:
            return await self._http.get_json(
                self.endpoint,
                params={"query": query, "format": "json"},
                headers={HTTPHeaders.ACCEPT: ContentTypes.SPARQL_JSON},
                source=self.source.value,
            )

        data = self._expect_dict(await self._scheduled(request), "sparql")
        results = data.get("results")
        bindings = results.get("bindings") if isinstance(results, dict) else None
        if not isinstance(bindings, list):
            raise create_malformed_response_error(
                "Wikidata SPARQL response has no results.bindings list",
                source=self.source.value,
                operation="sparql",
            )
        return self._group_bindings(bindings)

    @staticmethod
    def _group_bindings(bindings: list[Any]) -> dict[str, _WikidataGame]:
        games: dict[str, _WikidataGame] = {}
        for binding in bindings:
            if not isinstance(binding, dict):
                continue
            steam_id = _binding_value(binding, "steamId")
            item_uri = _binding_value(binding, "item")
            if steam_id is None or item_uri is None:
                continue

            qid = _entity_id(item_uri)
            game = games.setdefault(steam_id, _WikidataGame(qid=qid))
            if game.qid != qid:
                # Several items share this Steam id; keep the first one
                continue

            label = _binding_value(binding, "itemLabel")
            if label and game.label is None:
                game.label = label

            platform_uri = _binding_value(binding, "platform")
            if platform_uri:
                game.platform_qids.add(_entity_id(platform_uri))

            for platform, var in _STORE_ID_VARS.items():
                store_id = _binding_value(binding, var)
                if store_id and platform not in game.store_ids:
                    game.store_ids[platform] = store_id
        return games

    def _to_result(self, game: _WikidataGame, caller_name: str) -> SourceResult:
        label = game.label if game.label and not is_wikidata_qid(game.label) else None
        display_name = label or caller_name

        available_on = [
            platform
            for platform in Platform
            if game.platform_qids.intersection(WikidataConfig.PLATFORM_ITEMS[platform.value])
        ]
        store_urls = {
            platform: WikidataConfig.STORE_URL_TEMPLATES[platform.value].format(id=store_id)
            for platform, store_id in game.store_ids.items()
        }

        return SourceResult(
            source=self.source,
            found=True,
            payload=build_availability(display_name, available_on, store_urls),
            external_id=game.qid,
            matched_name=label,
        )


__all__ = ["WikidataAdapter", "build_sparql_query", "is_wikidata_qid"]
