"""OpenCritic review score source.

The display name is searched, the closest title is picked with the name
matcher, and the chosen game's detail record supplies the score. OpenCritic
reports ``topCriticScore = -1`` for games without a published score; that is
a conclusive "no score" answer, not a failure. A missing, non-numeric or
out-of-range score is a malformed response.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from crossplay.services.http_client import HttpClient
from crossplay.services.name_matcher import NameMatcher, create_slug
from crossplay.services.rate_limiter import SourceRateLimiter
from crossplay.services.sources.base import SourceAdapter
from crossplay.shared.constants import OpenCriticConfig
from crossplay.shared.errors import create_malformed_response_error
from crossplay.shared.models import (
    LookupKind,
    ReviewScore,
    SearchCandidate,
    Source,
    SourceResult,
)

logger = logging.getLogger(__name__)


def round_score(value: float) -> int:
    """Round to the nearest integer, halves away from zero (90.5 -> 91)."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _critic_count(details: dict[str, Any]) -> int | None:
    """Top critic review count, else the overall review count."""
    for key in ("numTopCriticReviews", "numReviews"):
        value = details.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
    return None


class OpenCriticAdapter(SourceAdapter):
    """Review scores from OpenCritic, matched by name."""

    source = Source.OPENCRITIC
    kind = LookupKind.REVIEW_SCORE

    def __init__(
        self,
        http: HttpClient,
        limiter: SourceRateLimiter,
        matcher: NameMatcher | None = None,
        search_url: str = OpenCriticConfig.SEARCH_URL,
        game_url: str = OpenCriticConfig.GAME_URL,
        site_url: str = OpenCriticConfig.SITE_URL,
    ) -> None:
        super().__init__(http, limiter)
        self._matcher = matcher or NameMatcher()
        self.search_url = search_url
        self.game_url = game_url.rstrip("/")
        self.site_url = site_url.rstrip("/")

    async def resolve(self, item_id: str, name: str) -> SourceResult:
        hits = self._expect_list(
            await self._get(self.search_url, {"criteria": name}),
            "search",
        )
        candidates = [
            SearchCandidate(
                id=str(hit["id"]),
                name=hit["name"],
                distance_hint=hit.get("dist"),
            )
            for hit in hits
            if isinstance(hit, dict) and "id" in hit and isinstance(hit.get("name"), str)
        ]
        if not candidates:
            logger.debug("OpenCritic has no results for %r", name)
            return SourceResult.not_found(self.source)

        best = self._matcher.best_match(name, candidates)
        if best is None:
            logger.debug("OpenCritic has no confident match for %r", name)
            return SourceResult.not_found(self.source)

        details = self._expect_dict(
            await self._get(f"{self.game_url}/{best.id}"),
            "game",
        )

        top_score = details.get("topCriticScore")
        if isinstance(top_score, bool) or not isinstance(top_score, (int, float)):
            raise create_malformed_response_error(
                f"OpenCritic game {best.id} has no numeric topCriticScore",
                source=self.source.value,
                operation="game",
            )
        if top_score < OpenCriticConfig.MIN_SCORE:
            logger.debug("OpenCritic has no score yet for %r", best.name)
            return SourceResult.not_found(self.source)

        rounded = round_score(top_score)
        if rounded > OpenCriticConfig.MAX_SCORE:
            raise create_malformed_response_error(
                f"OpenCritic game {best.id} has out-of-range score {top_score}",
                source=self.source.value,
                operation="game",
            )

        game_id = details.get("id", best.id)
        game_name = details.get("name")
        if not isinstance(game_name, str) or not game_name:
            game_name = best.name
        tier = details.get("tier")
        score = ReviewScore(
            score=rounded,
            tier=tier if isinstance(tier, str) and tier else None,
            critic_count=_critic_count(details),
            url=f"{self.site_url}/{game_id}/{create_slug(game_name)}",
        )

        logger.info(
            "OpenCritic score for %r: %s (%s)",
            name,
            score.score,
            score.tier or "no tier",
        )
        return SourceResult(
            source=self.source,
            found=True,
            payload=score,
            external_id=str(game_id),
            matched_name=game_name,
        )

    async def _get(self, url: str, params: dict[str, str] | None = None) -> Any:
        async def request() -> Any:
            return await self._http.get_json(url, params=params, source=self.source.value)

        return await self._scheduled(request)


__all__ = ["OpenCriticAdapter", "round_score"]
