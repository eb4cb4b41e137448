"""Per-source request pacing with 429 backoff.

Each third-party source owns one ``SourceRateLimiter``. Requests to a source
are issued at least ``min_interval`` seconds apart no matter how many
coroutines call ``schedule`` at once; waiters are released in arrival order.
A rate-limited request (HTTP 429) is retried with exponential backoff and
re-queued behind whoever arrived meanwhile. Any other failure propagates
untouched.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Mapping, TypeVar

from crossplay.shared.constants import NetworkConfig
from crossplay.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    RateLimitedError,
    RateLimitExhaustedError,
    create_config_error,
)
from crossplay.shared.logging import log_operation_success

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class SourceRateLimiter:
    """FIFO request serializer for one source.

    Args:
        source_id: Name used in logs and errors
        min_interval: Minimum seconds between two request issuances
        max_retries: Retries allowed after a 429 before giving up
        initial_backoff: Delay before the first retry, doubled each attempt
        max_backoff: Upper bound for any single backoff delay
        sleep: Awaitable sleep, injectable for tests
        clock: Monotonic clock in seconds, injectable for tests
    """

    def __init__(
        self,
        source_id: str,
        min_interval: float,
        max_retries: int = NetworkConfig.MAX_RETRIES,
        initial_backoff: float = NetworkConfig.INITIAL_BACKOFF,
        max_backoff: float = NetworkConfig.MAX_BACKOFF,
        *,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        context = ErrorContext(
            operation="rate_limiter_init",
            additional_data={
                "source": source_id,
                "min_interval": min_interval,
                "max_retries": max_retries,
            },
        )

        if min_interval < 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"Minimum interval must not be negative, got: {min_interval}",
                context=context,
            )
        if max_retries < 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"Max retries must not be negative, got: {max_retries}",
                context=context,
            )

        self.source_id = source_id
        self.min_interval = min_interval
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self._sleep = sleep
        self._clock = clock
        # asyncio.Lock wakes waiters in FIFO order
        self._lock = asyncio.Lock()
        self._last_issued: float | None = None

        log_operation_success(
            logger=logger,
            operation="rate_limiter_init",
            duration_ms=0,
            context=context.additional_data,
        )

    def backoff_delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Delay before retry number ``attempt`` (0-based).

        The server's Retry-After wins when it asks for longer than the
        exponential schedule; either way the result is capped at max_backoff.
        """
        delay = self.initial_backoff * (2**attempt)
        if retry_after is not None and retry_after > delay:
            delay = retry_after
        return min(delay, self.max_backoff)

    async def schedule(self, request_fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``request_fn`` once this source's pacing allows it.

        Args:
            request_fn: Zero-argument coroutine factory; called once per attempt

        Returns:
            Whatever ``request_fn`` returns

        Raises:
            RateLimitExhaustedError: If every attempt was answered with 429
        """
        attempt = 0
        while True:
            await self._wait_for_slot()
            try:
                return await request_fn()
            except RateLimitedError as e:
                if attempt >= self.max_retries:
                    raise RateLimitExhaustedError(
                        ErrorCode.API_RATE_LIMIT,
                        f"{self.source_id}: rate limited after {self.max_retries} retries",
                        ErrorContext(
                            operation="rate_limiter_schedule",
                            additional_data={
                                "source": self.source_id,
                                "attempts": attempt + 1,
                            },
                        ),
                        original_error=e,
                        status_code=e.status_code,
                    ) from e

                delay = self.backoff_delay(attempt, e.retry_after)
                logger.warning(
                    "%s rate limited (attempt %d/%d), retrying in %.2fs",
                    self.source_id,
                    attempt + 1,
                    self.max_retries + 1,
                    delay,
                )
                await self._sleep(delay)
                attempt += 1

    async def _wait_for_slot(self) -> None:
        async with self._lock:
            if self._last_issued is not None:
                wait = self._last_issued + self.min_interval - self._clock()
                if wait > 0:
                    await self._sleep(wait)
            self._last_issued = self._clock()


class RequestScheduler:
    """Routes scheduled requests to the limiter owned by each source.

    Sources never share a limiter, so a slow or throttled source does not
    delay the others.
    """

    def __init__(self, limiters: Mapping[str, SourceRateLimiter]) -> None:
        self._limiters = dict(limiters)

    @classmethod
    def from_intervals(
        cls,
        intervals: Mapping[str, float],
        max_retries: int = NetworkConfig.MAX_RETRIES,
        initial_backoff: float = NetworkConfig.INITIAL_BACKOFF,
        max_backoff: float = NetworkConfig.MAX_BACKOFF,
    ) -> RequestScheduler:
        """Build one limiter per source from a ``{source_id: min_interval}`` map."""
        return cls(
            {
                source_id: SourceRateLimiter(
                    source_id,
                    interval,
                    max_retries=max_retries,
                    initial_backoff=initial_backoff,
                    max_backoff=max_backoff,
                )
                for source_id, interval in intervals.items()
            }
        )

    def limiter(self, source_id: str) -> SourceRateLimiter:
        """Return the limiter for ``source_id``.

        Raises:
            ApplicationError: If no limiter is configured for the source
        """
        try:
            return self._limiters[source_id]
        except KeyError as e:
            raise create_config_error(
                f"No rate limiter configured for source '{source_id}'",
                config_key="api",
                operation="request_scheduler",
                original_error=e,
            ) from e

    async def schedule(
        self,
        source_id: str,
        request_fn: Callable[[], Awaitable[T]],
    ) -> T:
        return await self.limiter(source_id).schedule(request_fn)


__all__ = ["RequestScheduler", "SleepFunc", "SourceRateLimiter"]
