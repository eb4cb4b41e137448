"""Message boundary for host integrations.

Requests arrive as plain dicts tagged by ``type`` and are validated into a
closed set of pydantic models. Each handler runs as its own task raced
against a response timeout: when the timeout wins the caller gets a failure
response, but the task keeps running so its result still lands in the cache.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from crossplay.services.resolver import Resolver
from crossplay.shared.constants import NetworkConfig
from crossplay.shared.errors import CrossplayError, ErrorCode
from crossplay.shared.models import LookupItem, LookupKind, ResolveResult

logger = logging.getLogger(__name__)


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class GameRef(_Message):
    appid: str = Field(min_length=1)
    game_name: str = Field(alias="gameName", min_length=1)


class GetPlatformDataRequest(GameRef):
    type: Literal["GET_PLATFORM_DATA"]


class GetPlatformDataBatchRequest(_Message):
    type: Literal["GET_PLATFORM_DATA_BATCH"]
    games: List[GameRef] = Field(min_length=1)


class GetReviewScoreRequest(GameRef):
    type: Literal["GET_REVIEW_SCORE"]


class GetReviewScoresBatchRequest(_Message):
    type: Literal["GET_REVIEW_SCORES_BATCH"]
    games: List[GameRef] = Field(min_length=1)


class UpdateCacheRequest(GameRef):
    type: Literal["UPDATE_CACHE"]
    kind: LookupKind = LookupKind.AVAILABILITY


class GetCacheStatsRequest(_Message):
    type: Literal["GET_CACHE_STATS"]
    kind: Optional[LookupKind] = None


class ClearCacheRequest(_Message):
    type: Literal["CLEAR_CACHE"]
    kind: Optional[LookupKind] = None


Message = Annotated[
    Union[
        GetPlatformDataRequest,
        GetPlatformDataBatchRequest,
        GetReviewScoreRequest,
        GetReviewScoresBatchRequest,
        UpdateCacheRequest,
        GetCacheStatsRequest,
        ClearCacheRequest,
    ],
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[Any] = TypeAdapter(Message)

MESSAGE_TYPES = frozenset(
    {
        "GET_PLATFORM_DATA",
        "GET_PLATFORM_DATA_BATCH",
        "GET_REVIEW_SCORE",
        "GET_REVIEW_SCORES_BATCH",
        "UPDATE_CACHE",
        "GET_CACHE_STATS",
        "CLEAR_CACHE",
    }
)

Response = Dict[str, Any]


def error_response(code: ErrorCode, message: str) -> Response:
    return {"success": False, "error": message, "code": code.value}


def _single(result: ResolveResult) -> Response:
    return {"success": True, **result.to_dict()}


def _batch(results: Dict[str, ResolveResult]) -> Response:
    return {
        "success": True,
        "results": {item_id: result.to_dict() for item_id, result in results.items()},
    }


class MessageRouter:
    """Validates tagged request dicts and dispatches them to the resolver.

    Args:
        resolver: Resolution engine
        response_timeout: Seconds a caller waits before getting a timeout
            response; the work itself is not cancelled
    """

    def __init__(
        self,
        resolver: Resolver,
        response_timeout: float = NetworkConfig.DEFAULT_RESPONSE_TIMEOUT,
    ) -> None:
        self._resolver = resolver
        self.response_timeout = response_timeout
        self._background: set[asyncio.Task[Response]] = set()
        self._handlers: Dict[str, Callable[[Any], Awaitable[Response]]] = {
            "GET_PLATFORM_DATA": self._get_platform_data,
            "GET_PLATFORM_DATA_BATCH": self._get_platform_data_batch,
            "GET_REVIEW_SCORE": self._get_review_score,
            "GET_REVIEW_SCORES_BATCH": self._get_review_scores_batch,
            "UPDATE_CACHE": self._update_cache,
            "GET_CACHE_STATS": self._get_cache_stats,
            "CLEAR_CACHE": self._clear_cache,
        }

    @property
    def pending_tasks(self) -> int:
        """Handlers still running after their caller timed out."""
        return sum(1 for task in self._background if not task.done())

    async def handle(self, message: Any) -> Response:
        """Answer one request dict. Never raises for bad input."""
        message_type = message.get("type") if isinstance(message, dict) else None
        if not message_type or not isinstance(message_type, str):
            return error_response(ErrorCode.INVALID_MESSAGE, "Invalid message format")

        if message_type not in MESSAGE_TYPES:
            logger.warning("Rejected unknown message type %r", message_type)
            return error_response(
                ErrorCode.UNKNOWN_MESSAGE_TYPE,
                f"Unknown message type: {message_type}",
            )

        try:
            request = _message_adapter.validate_python(message)
        except ValidationError as e:
            return error_response(
                ErrorCode.INVALID_MESSAGE,
                f"Invalid {message_type} message: {e.error_count()} validation error(s)",
            )

        handler = self._handlers[request.type]
        return await self._respond_within_timeout(handler(request), request.type)

    async def drain(self) -> None:
        """Wait for handlers that outlived their caller."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def _respond_within_timeout(
        self,
        work: Awaitable[Response],
        message_type: str,
    ) -> Response:
        task: asyncio.Task[Response] = asyncio.ensure_future(self._guarded(work, message_type))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

        try:
            return await asyncio.wait_for(asyncio.shield(task), self.response_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "%s did not finish within %.1fs; continuing in background",
                message_type,
                self.response_timeout,
            )
            return error_response(
                ErrorCode.OPERATION_TIMEOUT,
                f"{message_type} timed out after {self.response_timeout}s",
            )

    @staticmethod
    async def _guarded(work: Awaitable[Response], message_type: str) -> Response:
        try:
            return await work
        except CrossplayError as e:
            logger.warning("%s failed: %s", message_type, e)
            return error_response(e.code, e.message)
        except Exception as e:  # noqa: BLE001
            logger.exception("Unexpected error handling %s", message_type)
            return error_response(ErrorCode.APPLICATION_ERROR, str(e))

    # ------------------------------------------------------------------
    # handlers
    # ------------------------------------------------------------------

    async def _get_platform_data(self, request: GetPlatformDataRequest) -> Response:
        result = await self._resolver.resolve(
            request.appid, request.game_name, LookupKind.AVAILABILITY
        )
        logger.info(
            "%s for %s (source: %s)",
            "Cache hit" if result.from_cache else "Resolved",
            request.appid,
            result.entry.source.value,
        )
        return _single(result)

    async def _get_platform_data_batch(self, request: GetPlatformDataBatchRequest) -> Response:
        items = [LookupItem(game.appid, game.game_name) for game in request.games]
        results = await self._resolver.batch_resolve(items, LookupKind.AVAILABILITY)
        cached = sum(1 for result in results.values() if result.from_cache)
        logger.info(
            "Batch complete: %d cached, %d resolved",
            cached,
            len(results) - cached,
        )
        return _batch(results)

    async def _get_review_score(self, request: GetReviewScoreRequest) -> Response:
        result = await self._resolver.resolve(
            request.appid, request.game_name, LookupKind.REVIEW_SCORE
        )
        return _single(result)

    async def _get_review_scores_batch(self, request: GetReviewScoresBatchRequest) -> Response:
        items = [LookupItem(game.appid, game.game_name) for game in request.games]
        results = await self._resolver.batch_resolve(items, LookupKind.REVIEW_SCORE)
        return _batch(results)

    async def _update_cache(self, request: UpdateCacheRequest) -> Response:
        result = await self._resolver.force_refresh(request.appid, request.game_name, request.kind)
        logger.info("Cache updated for %s (%s)", request.appid, request.kind.value)
        return _single(result)

    async def _get_cache_stats(self, request: GetCacheStatsRequest) -> Response:
        stats = await self._resolver.get_cache_stats(request.kind)
        return {"success": True, **stats.to_dict()}

    async def _clear_cache(self, request: ClearCacheRequest) -> Response:
        cleared = await self._resolver.clear_cache(request.kind)
        logger.info("Cache cleared (%d entries)", cleared)
        return {"success": True, "cleared": cleared}


__all__ = [
    "ClearCacheRequest",
    "GameRef",
    "GetCacheStatsRequest",
    "GetPlatformDataBatchRequest",
    "GetPlatformDataRequest",
    "GetReviewScoreRequest",
    "GetReviewScoresBatchRequest",
    "MESSAGE_TYPES",
    "Message",
    "MessageRouter",
    "UpdateCacheRequest",
    "error_response",
]
