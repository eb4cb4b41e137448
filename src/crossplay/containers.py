"""Dependency Injection container for Crossplay.

This module provides a centralized DI container using dependency-injector
to wire the resolution engine without module-level state.

The container manages:
- Settings (Singleton)
- Shared HTTP client and SQLite cache store
- One rate limiter per source, behind a RequestScheduler
- Source adapter chains per lookup kind (IGDB only with credentials)
- Resolver and MessageRouter
"""

from __future__ import annotations

import logging
from typing import Sequence

from dependency_injector import containers, providers

from crossplay.config.loader import load_settings
from crossplay.config.models.settings import Settings
from crossplay.services import (
    HttpClient,
    ManualOverrides,
    MessageRouter,
    NameMatcher,
    RequestScheduler,
    Resolver,
    SQLiteCacheStore,
    TwitchTokenManager,
)
from crossplay.services.sources import (
    IGDBAdapter,
    OpenCriticAdapter,
    SourceAdapter,
    WikidataAdapter,
)
from crossplay.shared.models import LookupKind, Source

logger = logging.getLogger(__name__)


def build_scheduler(config: Settings) -> RequestScheduler:
    """One limiter per source, paced by its configured interval."""
    api = config.api
    return RequestScheduler.from_intervals(
        {
            Source.WIKIDATA.value: api.wikidata.min_interval,
            Source.IGDB.value: api.igdb.min_interval,
            Source.OPENCRITIC.value: api.opencritic.min_interval,
        },
        max_retries=api.retry.max_retries,
        initial_backoff=api.retry.initial_backoff,
        max_backoff=api.retry.max_backoff,
    )


def build_manual_overrides(config: Settings) -> ManualOverrides:
    if config.overrides_file is None:
        return ManualOverrides()
    return ManualOverrides.from_toml_file(config.overrides_file)


def build_adapter_chains(
    config: Settings,
    http: HttpClient,
    scheduler: RequestScheduler,
    matcher: NameMatcher,
) -> dict[LookupKind, Sequence[SourceAdapter]]:
    """Source chains in query order for each lookup kind.

    Disabled sources are left out; IGDB also needs Twitch credentials.
    """
    api = config.api
    availability: list[SourceAdapter] = []
    reviews: list[SourceAdapter] = []

    if api.wikidata.enabled:
        availability.append(
            WikidataAdapter(
                http,
                scheduler.limiter(Source.WIKIDATA.value),
                endpoint=api.wikidata.endpoint,
                batch_size=api.wikidata.batch_size,
            )
        )

    if api.igdb.enabled and api.igdb.has_credentials:
        igdb_limiter = scheduler.limiter(Source.IGDB.value)
        availability.append(
            IGDBAdapter(
                http,
                igdb_limiter,
                TwitchTokenManager(
                    http,
                    api.igdb.client_id,
                    api.igdb.client_secret,
                    token_url=api.igdb.token_url,
                    limiter=igdb_limiter,
                ),
                matcher=matcher,
                api_url=api.igdb.api_url,
            )
        )
    elif api.igdb.enabled:
        logger.debug("IGDB credentials not configured; IGDB source disabled")

    if api.opencritic.enabled:
        reviews.append(
            OpenCriticAdapter(
                http,
                scheduler.limiter(Source.OPENCRITIC.value),
                matcher=matcher,
                search_url=api.opencritic.search_url,
                game_url=api.opencritic.game_url,
                site_url=api.opencritic.site_url,
            )
        )

    return {LookupKind.AVAILABILITY: availability, LookupKind.REVIEW_SCORE: reviews}


class Container(containers.DeclarativeContainer):
    """Dependency Injection container for Crossplay services.

    Example:
        >>> container = Container()
        >>> container.config.override(providers.Object(Settings()))
        >>> resolver = container.resolver()
        >>> result = await resolver.resolve("367520", "Hollow Knight", LookupKind.REVIEW_SCORE)
    """

    # Configuration
    config = providers.Singleton(load_settings)

    # Infrastructure
    http_client = providers.Singleton(
        HttpClient,
        user_agent=providers.Callable(lambda config: config.api.http.user_agent, config=config),
        connect_timeout=providers.Callable(
            lambda config: config.api.http.connect_timeout, config=config
        ),
        total_timeout=providers.Callable(lambda config: config.api.http.total_timeout, config=config),
    )

    cache_store = providers.Singleton(
        SQLiteCacheStore,
        db_path=providers.Callable(lambda config: config.cache.db_path, config=config),
    )

    # Rate limiting
    request_scheduler = providers.Singleton(build_scheduler, config=config)

    # Matching
    name_matcher = providers.Singleton(
        NameMatcher,
        min_confidence=providers.Callable(
            lambda config: config.api.matching.min_confidence, config=config
        ),
    )

    manual_overrides = providers.Singleton(build_manual_overrides, config=config)

    # Sources
    adapters = providers.Singleton(
        build_adapter_chains,
        config=config,
        http=http_client,
        scheduler=request_scheduler,
        matcher=name_matcher,
    )

    # Resolution
    resolver = providers.Singleton(
        Resolver,
        cache_store=cache_store,
        adapters=adapters,
        manual_overrides=manual_overrides,
        ttl_days=providers.Callable(lambda config: config.cache.ttl_days, config=config),
        negative_ttl_days=providers.Callable(
            lambda config: config.cache.negative_ttl_days, config=config
        ),
    )

    message_router = providers.Singleton(
        MessageRouter,
        resolver=resolver,
        response_timeout=providers.Callable(
            lambda config: config.api.http.response_timeout, config=config
        ),
    )


async def shutdown(container: Container) -> None:
    """Release the HTTP session and the cache connection."""
    await container.http_client().close()
    container.cache_store().close()


__all__ = [
    "Container",
    "build_adapter_chains",
    "build_manual_overrides",
    "build_scheduler",
    "shutdown",
]
