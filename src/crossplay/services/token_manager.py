"""Twitch OAuth token management for IGDB.

IGDB authenticates with a Twitch app access token obtained through the
client-credentials flow. The token is kept in memory and refreshed a few
minutes before it expires.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable
from urllib.parse import urlencode

from crossplay.services.http_client import HttpClient
from crossplay.services.rate_limiter import SourceRateLimiter
from crossplay.shared.constants import ContentTypes, HTTPHeaders, IGDBConfig
from crossplay.shared.errors import create_config_error, create_malformed_response_error

logger = logging.getLogger(__name__)

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class TwitchTokenManager:
    """Acquires and caches the Twitch app access token.

    Args:
        http: Shared HTTP client
        client_id: Twitch application client id
        client_secret: Twitch application client secret
        token_url: OAuth token endpoint
        limiter: Optional limiter shared with IGDB requests
        clock: Wall clock in seconds, injectable for tests
    """

    def __init__(
        self,
        http: HttpClient,
        client_id: str,
        client_secret: str,
        token_url: str = IGDBConfig.TOKEN_URL,
        limiter: SourceRateLimiter | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not client_id or not client_secret:
            raise create_config_error(
                "Twitch client id and secret are required for IGDB",
                config_key="api.igdb",
                operation="twitch_token_manager",
            )
        self._http = http
        self.client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._limiter = limiter
        self._clock = clock
        self._lock = asyncio.Lock()
        self._access_token: str | None = None
        self._expires_at = 0.0

    def __repr__(self) -> str:
        return f"TwitchTokenManager(client_id={self.client_id!r}, client_secret=****)"

    def _token_is_fresh(self) -> bool:
        return self._expires_at - IGDBConfig.TOKEN_REFRESH_BUFFER_SECONDS > self._clock()

    async def get_token(self) -> str:
        """Return a valid access token, acquiring a new one if needed."""
        async with self._lock:
            if self._access_token is not None and self._token_is_fresh():
                return self._access_token
            return await self._acquire()

    def invalidate(self) -> None:
        """Drop the cached token, e.g. after IGDB rejected it."""
        self._access_token = None
        self._expires_at = 0.0

    async def _acquire(self) -> str:
        body = urlencode(
            {
                "client_id": self.client_id,
                "client_secret": self._client_secret,
                "grant_type": "client_credentials",
            }
        )
        headers = {
            HTTPHeaders.CONTENT_TYPE: _FORM_CONTENT_TYPE,
            HTTPHeaders.ACCEPT: ContentTypes.JSON,
        }

        async def request() -> object:
            return await self._http.post_json(
                self._token_url, data=body, headers=headers, source="twitch"
            )

        logger.debug("Acquiring new Twitch access token")
        if self._limiter is not None:
            data = await self._limiter.schedule(request)
        else:
            data = await request()

        if not isinstance(data, dict):
            raise create_malformed_response_error(
                "Twitch token response is not an object",
                source="twitch",
                operation="acquire_token",
            )
        access_token = data.get("access_token")
        expires_in = data.get("expires_in")
        if not access_token or not isinstance(expires_in, (int, float)):
            raise create_malformed_response_error(
                "Twitch token response lacks access_token or expires_in",
                source="twitch",
                operation="acquire_token",
            )

        self._access_token = str(access_token)
        self._expires_at = self._clock() + float(expires_in)
        logger.info("Twitch token acquired, expires in %d seconds", int(expires_in))
        return self._access_token


__all__ = ["TwitchTokenManager"]
