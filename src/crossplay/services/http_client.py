"""Shared async HTTP client for third-party sources.

Wraps a lazily created ``aiohttp.ClientSession`` and translates transport
outcomes into the typed source errors the rate limiter and resolver act on:

- HTTP 429 -> ``RateLimitedError`` (carries Retry-After when numeric)
- other non-2xx -> ``SourceRequestError``
- connection failures and timeouts -> ``SourceConnectionError``
- unparseable JSON -> ``MalformedResponseError``

The client does not retry; pacing and 429 backoff belong to the
``SourceRateLimiter`` wrapping each call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping

import aiohttp
import orjson

from crossplay.shared.constants import ContentTypes, HTTPHeaders, HTTPStatusCodes, NetworkConfig
from crossplay.shared.errors import (
    ErrorCode,
    ErrorContext,
    RateLimitedError,
    SourceConnectionError,
    SourceRequestError,
    create_malformed_response_error,
)
from crossplay.shared.logging import log_api_call

logger = logging.getLogger(__name__)


def parse_retry_after(value: str | None) -> float | None:
    """Parse a delta-seconds Retry-After header; HTTP-date values are ignored."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def _error_code_for_status(status: int) -> ErrorCode:
    if status in (HTTPStatusCodes.UNAUTHORIZED, HTTPStatusCodes.FORBIDDEN):
        return ErrorCode.API_AUTHENTICATION_FAILED
    if HTTPStatusCodes.is_server_error(status):
        return ErrorCode.API_SERVER_ERROR
    return ErrorCode.API_REQUEST_FAILED


class HttpClient:
    """JSON-over-HTTP client shared by all source adapters.

    Args:
        user_agent: User-Agent header sent with every request
        connect_timeout: Seconds allowed to establish a connection
        total_timeout: Seconds allowed for the whole request
        session: Pre-built session (tests); created lazily when omitted
    """

    def __init__(
        self,
        user_agent: str = NetworkConfig.USER_AGENT,
        connect_timeout: float = NetworkConfig.CONNECT_TIMEOUT,
        total_timeout: float = NetworkConfig.TOTAL_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.user_agent = user_agent
        self._timeout = aiohttp.ClientTimeout(total=total_timeout, connect=connect_timeout)
        self._session = session
        self._owns_session = session is None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    timeout=self._timeout,
                    headers={
                        HTTPHeaders.USER_AGENT: self.user_agent,
                        HTTPHeaders.ACCEPT: ContentTypes.JSON,
                    },
                )
                self._owns_session = True
                logger.debug("aiohttp.ClientSession created")
            return self._session

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def get_json(
        self,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        source: str = "http",
    ) -> Any:
        """GET ``url`` and decode the JSON body."""
        return await self.request_json(
            "GET", url, params=params, headers=headers, source=source
        )

    async def post_json(
        self,
        url: str,
        *,
        data: str | None = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        source: str = "http",
    ) -> Any:
        """POST a raw body (IGDB query text, form params) and decode the JSON reply."""
        return await self.request_json(
            "POST", url, data=data, params=params, headers=headers, source=source
        )

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        data: str | None = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        source: str = "http",
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            RateLimitedError: On HTTP 429
            SourceRequestError: On any other non-2xx status
            SourceConnectionError: On connection failure or timeout
            MalformedResponseError: If the body is not valid JSON
        """
        session = await self._get_session()
        context = ErrorContext(
            operation="http_request",
            additional_data={"source": source, "method": method, "url": url},
        )
        start = time.perf_counter()

        try:
            async with session.request(
                method,
                url,
                params=dict(params) if params else None,
                data=data,
                headers=dict(headers) if headers else None,
                timeout=self._timeout,
            ) as response:
                status = response.status
                duration_ms = (time.perf_counter() - start) * 1000
                log_api_call(
                    logger,
                    endpoint=url,
                    method=method,
                    status_code=status,
                    duration_ms=duration_ms,
                    context={"source": source},
                )

                if status == HTTPStatusCodes.TOO_MANY_REQUESTS:
                    raise RateLimitedError(
                        f"{source} answered 429 Too Many Requests",
                        context=context,
                        retry_after=parse_retry_after(
                            response.headers.get(HTTPHeaders.RETRY_AFTER)
                        ),
                    )

                if not HTTPStatusCodes.is_success(status):
                    raise SourceRequestError(
                        _error_code_for_status(status),
                        f"{source} answered HTTP {status}",
                        context,
                        status_code=status,
                    )

                body = await response.read()

        except asyncio.TimeoutError as e:
            raise SourceConnectionError(
                ErrorCode.API_TIMEOUT,
                f"{source} request timed out",
                context,
                original_error=e,
            ) from e
        except aiohttp.ClientError as e:
            raise SourceConnectionError(
                ErrorCode.NETWORK_ERROR,
                f"{source} request failed: {e!s}",
                context,
                original_error=e,
            ) from e

        try:
            return orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise create_malformed_response_error(
                f"{source} returned a body that is not valid JSON",
                source=source,
                operation="http_request",
                original_error=e,
            ) from e


__all__ = ["HttpClient", "parse_retry_after"]
