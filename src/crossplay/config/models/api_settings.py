"""Third-party API configuration models.

One section per data source plus the shared HTTP and retry settings.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from crossplay.shared.constants import (
    IGDBConfig,
    MatchingConfig,
    NetworkConfig,
    OpenCriticConfig,
    WikidataConfig,
)


class HttpSettings(BaseModel):
    """Shared HTTP client settings."""

    connect_timeout: float = Field(default=NetworkConfig.CONNECT_TIMEOUT, gt=0)
    total_timeout: float = Field(default=NetworkConfig.TOTAL_TIMEOUT, gt=0)
    user_agent: str = Field(default=NetworkConfig.USER_AGENT)
    response_timeout: float = Field(
        default=NetworkConfig.DEFAULT_RESPONSE_TIMEOUT,
        gt=0,
        description="Seconds a message caller waits before getting a timeout response",
    )


class RetrySettings(BaseModel):
    """Backoff policy applied to rate-limit (HTTP 429) responses."""

    max_retries: int = Field(default=NetworkConfig.MAX_RETRIES, ge=0)
    initial_backoff: float = Field(default=NetworkConfig.INITIAL_BACKOFF, ge=0)
    max_backoff: float = Field(default=NetworkConfig.MAX_BACKOFF, gt=0)


class WikidataSettings(BaseModel):
    """Wikidata SPARQL source."""

    enabled: bool = Field(default=True)
    endpoint: str = Field(default=WikidataConfig.SPARQL_ENDPOINT)
    min_interval: float = Field(default=NetworkConfig.WIKIDATA_MIN_INTERVAL, ge=0)
    batch_size: int = Field(default=WikidataConfig.BATCH_SIZE, gt=0)


class IGDBSettings(BaseModel):
    """IGDB source. Only used when Twitch credentials are configured."""

    enabled: bool = Field(default=True)
    client_id: str = Field(default="")
    client_secret: str = Field(default="", repr=False)
    api_url: str = Field(default=IGDBConfig.API_URL)
    token_url: str = Field(default=IGDBConfig.TOKEN_URL)
    min_interval: float = Field(default=NetworkConfig.IGDB_MIN_INTERVAL, ge=0)

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def __repr__(self) -> str:
        masked = "****" if self.client_secret else "[empty]"
        return (
            f"IGDBSettings(enabled={self.enabled}, client_id={self.client_id!r}, "
            f"client_secret={masked}, min_interval={self.min_interval})"
        )


class OpenCriticSettings(BaseModel):
    """OpenCritic review score source."""

    enabled: bool = Field(default=True)
    search_url: str = Field(default=OpenCriticConfig.SEARCH_URL)
    game_url: str = Field(default=OpenCriticConfig.GAME_URL)
    site_url: str = Field(default=OpenCriticConfig.SITE_URL)
    min_interval: float = Field(default=NetworkConfig.OPENCRITIC_MIN_INTERVAL, ge=0)


class MatchingSettings(BaseModel):
    """Fuzzy name matching."""

    min_confidence: float = Field(
        default=MatchingConfig.DEFAULT_MIN_CONFIDENCE,
        ge=0,
        le=1,
    )


class APISettings(BaseModel):
    """Container for all external API configuration."""

    http: HttpSettings = Field(default_factory=HttpSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    wikidata: WikidataSettings = Field(default_factory=WikidataSettings)
    igdb: IGDBSettings = Field(default_factory=IGDBSettings)
    opencritic: OpenCriticSettings = Field(default_factory=OpenCriticSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)


__all__ = [
    "APISettings",
    "HttpSettings",
    "IGDBSettings",
    "MatchingSettings",
    "OpenCriticSettings",
    "RetrySettings",
    "WikidataSettings",
]
