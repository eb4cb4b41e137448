"""SQLite-backed resolution cache.

Entries are stored as orjson blobs keyed by ``{namespace-prefix}{item_id}``.
Every call reads or writes the database file; there is no in-memory layer,
so several processes can share one file (WAL mode). Expiry is logical:
expired rows stay on disk until overwritten or cleared, and ``get`` reports
them as absent.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Callable, TypeVar

import orjson

from crossplay.shared.constants import CacheConfig
from crossplay.shared.errors import ErrorCode, ErrorContext, InfrastructureError
from crossplay.shared.logging import log_operation_error, log_operation_success
from crossplay.shared.models import (
    CacheEntry,
    CacheStats,
    LookupKey,
    LookupKind,
    current_time_ms,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {CacheConfig.TABLE_NAME} (
    cache_key TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    item_id TEXT NOT NULL,
    entry_data BLOB NOT NULL,
    resolved_at INTEGER NOT NULL,
    expires_at INTEGER NOT NULL
)
"""

_INDEX = (
    f"CREATE INDEX IF NOT EXISTS idx_{CacheConfig.TABLE_NAME}_kind "
    f"ON {CacheConfig.TABLE_NAME} (kind)"
)


class SQLiteCacheStore:
    """Durable key-value store for ``CacheEntry`` records.

    Blocking sqlite calls run in a worker thread and are serialized by a
    lock, so the async methods are safe to call concurrently from one
    event loop.

    Attributes:
        db_path: Path to SQLite database file

    Example:
        >>> store = SQLiteCacheStore(Path("cache/crossplay_cache.db"))
        >>> await store.put(entry)
        >>> await store.get(entry.key)
        >>> store.close()
    """

    def __init__(
        self,
        db_path: Path | str,
        clock: Callable[[], int] = current_time_ms,
    ) -> None:
        """Open (or create) the cache database.

        Args:
            db_path: Path to SQLite database file
            clock: Returns the current time in ms since the epoch

        Raises:
            InfrastructureError: If the database cannot be opened
        """
        self.db_path = Path(db_path)
        self._clock = clock
        self._lock = threading.Lock()
        self.conn: sqlite3.Connection | None = None
        self._initialize_db()

    def _initialize_db(self) -> None:
        context = ErrorContext(
            operation="initialize_cache",
            additional_data={"db_path": str(self.db_path)},
        )

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                isolation_level=None,  # Auto-commit mode
            )
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
            self.conn.execute(_SCHEMA)
            self.conn.execute(_INDEX)

            log_operation_success(
                logger=logger,
                operation="initialize_cache",
                duration_ms=0,
                context=context.additional_data,
            )

        except (sqlite3.Error, OSError) as e:
            error = InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message=f"Failed to initialize SQLite cache: {e!s}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger=logger, error=error, operation="initialize_cache")
            raise error from e

    # ------------------------------------------------------------------
    # async API
    # ------------------------------------------------------------------

    async def get(self, key: LookupKey) -> CacheEntry | None:
        """Return the entry for ``key``, or None when missing or expired."""
        return await self._run(self._get_sync, key)

    async def put(self, entry: CacheEntry) -> None:
        """Store ``entry``, replacing any row with the same key."""
        await self._run(self._put_sync, entry)

    async def delete(self, key: LookupKey) -> bool:
        """Delete one row. Returns True if a row was removed."""
        return await self._run(self._delete_sync, key)

    async def stats(self, kind: LookupKind | None = None) -> CacheStats:
        """Count rows (expired ones included) and report the oldest entry."""
        return await self._run(self._stats_sync, kind)

    async def clear_all(self, kind: LookupKind | None = None) -> int:
        """Delete every row of ``kind`` (all kinds when None)."""
        return await self._run(self._clear_sync, kind)

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.debug("Closed SQLite cache connection: %s", self.db_path)

    async def _run(self, func: Callable[..., T], *args: object) -> T:
        return await asyncio.to_thread(self._locked, func, *args)

    def _locked(self, func: Callable[..., T], *args: object) -> T:
        with self._lock:
            return func(*args)

    # ------------------------------------------------------------------
    # blocking operations (called with the lock held)
    # ------------------------------------------------------------------

    def _connection(self, operation: str) -> sqlite3.Connection:
        if self.conn is None:
            raise InfrastructureError(
                code=ErrorCode.CACHE_ERROR,
                message="Database connection not initialized",
                context=ErrorContext(operation=operation),
            )
        return self.conn

    def _get_sync(self, key: LookupKey) -> CacheEntry | None:
        conn = self._connection("cache_get")
        try:
            row = conn.execute(
                f"SELECT entry_data, expires_at FROM {CacheConfig.TABLE_NAME} "
                "WHERE cache_key = ?",
                (key.cache_key,),
            ).fetchone()
        except sqlite3.Error as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_READ_FAILED,
                message=f"Failed to read cache entry: {e!s}",
                context=ErrorContext(operation="cache_get", item_id=key.item_id),
                original_error=e,
            ) from e

        if row is None:
            return None

        entry_data, expires_at = row
        if expires_at <= self._clock():
            return None

        try:
            return CacheEntry.from_dict(orjson.loads(entry_data))
        except (orjson.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            logger.warning(
                "Discarding unreadable cache row %s: %s",
                key.cache_key,
                str(e),
            )
            return None

    def _put_sync(self, entry: CacheEntry) -> None:
        conn = self._connection("cache_put")
        key = entry.key
        try:
            conn.execute(
                f"INSERT OR REPLACE INTO {CacheConfig.TABLE_NAME} "
                "(cache_key, kind, item_id, entry_data, resolved_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    key.cache_key,
                    entry.kind.value,
                    entry.item_id,
                    orjson.dumps(entry.to_dict()),
                    entry.resolved_at,
                    entry.expires_at,
                ),
            )
        except sqlite3.Error as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Failed to write cache entry: {e!s}",
                context=ErrorContext(operation="cache_put", item_id=entry.item_id),
                original_error=e,
            ) from e

    def _delete_sync(self, key: LookupKey) -> bool:
        conn = self._connection("cache_delete")
        try:
            cursor = conn.execute(
                f"DELETE FROM {CacheConfig.TABLE_NAME} WHERE cache_key = ?",
                (key.cache_key,),
            )
        except sqlite3.Error as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Failed to delete cache entry: {e!s}",
                context=ErrorContext(operation="cache_delete", item_id=key.item_id),
                original_error=e,
            ) from e
        return cursor.rowcount > 0

    def _stats_sync(self, kind: LookupKind | None) -> CacheStats:
        conn = self._connection("cache_stats")
        query = f"SELECT COUNT(*), MIN(resolved_at) FROM {CacheConfig.TABLE_NAME}"
        params: tuple[str, ...] = ()
        if kind is not None:
            query += " WHERE kind = ?"
            params = (kind.value,)

        try:
            count, oldest = conn.execute(query, params).fetchone()
        except sqlite3.Error as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_READ_FAILED,
                message=f"Failed to read cache statistics: {e!s}",
                context=ErrorContext(operation="cache_stats"),
                original_error=e,
            ) from e
        return CacheStats(count=count, oldest_resolved_at=oldest)

    def _clear_sync(self, kind: LookupKind | None) -> int:
        conn = self._connection("cache_clear")
        query = f"DELETE FROM {CacheConfig.TABLE_NAME}"
        params: tuple[str, ...] = ()
        if kind is not None:
            query += " WHERE kind = ?"
            params = (kind.value,)

        try:
            cursor = conn.execute(query, params)
        except sqlite3.Error as e:
            raise InfrastructureError(
                code=ErrorCode.CACHE_WRITE_FAILED,
                message=f"Failed to clear cache: {e!s}",
                context=ErrorContext(operation="cache_clear"),
                original_error=e,
            ) from e

        cleared = cursor.rowcount
        logger.info(
            "Cleared %d cache entries (%s)",
            cleared,
            kind.value if kind else "all kinds",
        )
        return cleared


__all__ = ["SQLiteCacheStore"]
