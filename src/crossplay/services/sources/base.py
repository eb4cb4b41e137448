"""Common interface for third-party data sources.

An adapter turns one catalog item into a ``SourceResult``. A conclusive
"not found" is a normal return value; anything that prevents a conclusive
answer is raised as a ``TransientSourceError``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, ClassVar, Sequence

from crossplay.services.http_client import HttpClient
from crossplay.services.rate_limiter import SourceRateLimiter
from crossplay.shared.errors import create_malformed_response_error
from crossplay.shared.models import LookupItem, LookupKind, Source, SourceResult

logger = logging.getLogger(__name__)


class SourceAdapter(ABC):
    """Base class for source adapters.

    Subclasses set ``source`` and ``kind`` and implement ``resolve``.
    Adapters that can answer many items in one request set
    ``supports_batch`` and override ``resolve_many``.
    """

    source: ClassVar[Source]
    kind: ClassVar[LookupKind]
    supports_batch: ClassVar[bool] = False

    def __init__(self, http: HttpClient, limiter: SourceRateLimiter) -> None:
        self._http = http
        self._limiter = limiter

    @abstractmethod
    async def resolve(self, item_id: str, name: str) -> SourceResult:
        """Look up one item.

        Raises:
            TransientSourceError: If the source could not answer conclusively
        """

    async def resolve_many(self, items: Sequence[LookupItem]) -> dict[str, SourceResult]:
        """Look up several items; one result per distinct item id."""
        results: dict[str, SourceResult] = {}
        for item in items:
            if item.item_id not in results:
                results[item.item_id] = await self.resolve(item.item_id, item.display_name)
        return results

    async def _scheduled(self, request_fn: Callable[[], Awaitable[Any]]) -> Any:
        """Run one HTTP call under this source's rate limiter."""
        return await self._limiter.schedule(request_fn)

    def _expect_list(self, data: Any, operation: str) -> list[Any]:
        if not isinstance(data, list):
            raise create_malformed_response_error(
                f"{self.source.value} {operation} response is not a list",
                source=self.source.value,
                operation=operation,
            )
        return data

    def _expect_dict(self, data: Any, operation: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise create_malformed_response_error(
                f"{self.source.value} {operation} response is not an object",
                source=self.source.value,
                operation=operation,
            )
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source={self.source.value}, kind={self.kind.value})"


__all__ = ["SourceAdapter"]
