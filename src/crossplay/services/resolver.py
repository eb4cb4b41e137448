"""Resolution engine.

Answers "where is this game available?" and "what did critics score it?"
for catalog items, in this order:

1. Cache: a valid entry is returned as is (display name refreshed).
2. Manual overrides (availability only).
3. The kind's source chain, in order; the first source that finds the item
   wins.
4. If every source answered "not found", a negative entry is cached so the
   sources are not asked again until it expires.
5. If any source failed transiently and none found the item, an unknown
   entry is returned but not cached, so the next lookup retries.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Mapping, Sequence

from crossplay.services.cache_store import SQLiteCacheStore
from crossplay.services.manual_overrides import ManualOverrides
from crossplay.services.sources.base import SourceAdapter
from crossplay.services.store_urls import (
    override_availability,
    refresh_unknown_urls,
    unknown_availability,
)
from crossplay.shared.constants import CacheConfig
from crossplay.shared.errors import (
    ErrorContext,
    InfrastructureError,
    TransientSourceError,
    create_config_error,
    create_validation_error,
)
from crossplay.shared.logging import (
    log_operation_error,
    log_operation_start,
    log_operation_success,
)
from crossplay.shared.models import (
    CacheEntry,
    CacheStats,
    LookupItem,
    LookupKey,
    LookupKind,
    ResolveResult,
    Source,
    SourceResult,
    current_time_ms,
)

logger = logging.getLogger(__name__)


class Resolver:
    """Cache-first resolver over a fixed chain of sources per lookup kind.

    Args:
        cache_store: Durable cache; required for every operation
        adapters: Source chain per kind, tried in order
        manual_overrides: Optional availability overrides
        ttl_days: Lifetime of entries built from a source hit or override
        negative_ttl_days: Lifetime of "not found anywhere" entries
        clock: Current time in ms since the epoch
    """

    def __init__(
        self,
        cache_store: SQLiteCacheStore | None,
        adapters: Mapping[LookupKind, Sequence[SourceAdapter]],
        manual_overrides: ManualOverrides | None = None,
        ttl_days: int = CacheConfig.DEFAULT_TTL_DAYS,
        negative_ttl_days: int = CacheConfig.DEFAULT_NEGATIVE_TTL_DAYS,
        clock: Callable[[], int] = current_time_ms,
    ) -> None:
        self._cache = cache_store
        self._adapters = {kind: tuple(chain) for kind, chain in adapters.items()}
        self._overrides = manual_overrides or ManualOverrides()
        self.ttl_days = ttl_days
        self.negative_ttl_days = negative_ttl_days
        self._clock = clock

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    async def resolve(self, item_id: str, display_name: str, kind: LookupKind) -> ResolveResult:
        """Resolve one item.

        Raises:
            ApplicationError: If the cache or the kind's sources are not wired
            DomainError: If ``item_id`` is empty
        """
        results = await self.batch_resolve([LookupItem(item_id, display_name)], kind)
        return results[item_id]

    async def batch_resolve(
        self,
        items: Sequence[LookupItem],
        kind: LookupKind,
    ) -> dict[str, ResolveResult]:
        """Resolve many items, querying sources only for cache misses.

        Items are partitioned up front into cached, overridden and
        needs-query groups; duplicate ids are resolved once. Batch-capable
        sources receive all remaining items in one call.
        """
        if not items:
            return {}

        cache = self._require_cache()
        chain = self._require_chain(kind)

        names: dict[str, str] = {}
        for item in items:
            if not item.item_id or not item.item_id.strip():
                raise create_validation_error(
                    "item_id must be non-empty",
                    field="item_id",
                    operation="resolve",
                )
            names.setdefault(item.item_id, item.display_name)

        start = time.perf_counter()
        log_operation_start(
            logger,
            "batch_resolve",
            {"kind": kind.value, "items": len(names)},
        )

        results: dict[str, ResolveResult] = {}
        needs_query: list[LookupItem] = []

        for item_id, name in names.items():
            cached = await self._cache_get(cache, LookupKey(item_id, kind))
            if cached is not None:
                entry = await self._refresh_display_name(cache, cached, name)
                results[item_id] = ResolveResult(entry, from_cache=True)
                continue

            override = self._override_entry(item_id, name, kind)
            if override is not None:
                await self._cache_put(cache, override)
                logger.info("Using manual override for %s", item_id)
                results[item_id] = ResolveResult(override, from_cache=False)
                continue

            needs_query.append(LookupItem(item_id, name))

        if needs_query:
            results.update(await self._query_chain(cache, chain, needs_query, kind))

        log_operation_success(
            logger,
            "batch_resolve",
            (time.perf_counter() - start) * 1000,
            result_info={
                "kind": kind.value,
                "cached": sum(1 for r in results.values() if r.from_cache),
                "queried": len(needs_query),
            },
        )
        return {item_id: results[item_id] for item_id in names}

    async def force_refresh(
        self,
        item_id: str,
        display_name: str,
        kind: LookupKind,
    ) -> ResolveResult:
        """Drop the cached entry and resolve again from the sources."""
        cache = self._require_cache()
        self._require_chain(kind)
        await cache.delete(LookupKey(item_id, kind))
        logger.info("Forcing refresh of %s (%s)", item_id, kind.value)
        return await self.resolve(item_id, display_name, kind)

    async def get_cache_stats(self, kind: LookupKind | None = None) -> CacheStats:
        return await self._require_cache().stats(kind)

    async def clear_cache(self, kind: LookupKind | None = None) -> int:
        return await self._require_cache().clear_all(kind)

    # ------------------------------------------------------------------
    # wiring
    # ------------------------------------------------------------------

    def _require_cache(self) -> SQLiteCacheStore:
        if self._cache is None:
            raise create_config_error(
                "Resolver has no cache store configured",
                config_key="cache",
                operation="resolve",
            )
        return self._cache

    def _require_chain(self, kind: LookupKind) -> tuple[SourceAdapter, ...]:
        chain = self._adapters.get(kind)
        if not chain:
            raise create_config_error(
                f"No data sources configured for {kind.value} lookups",
                config_key="api",
                operation="resolve",
            )
        return chain

    # ------------------------------------------------------------------
    # source chain
    # ------------------------------------------------------------------

    async def _query_chain(
        self,
        cache: SQLiteCacheStore,
        chain: Sequence[SourceAdapter],
        items: list[LookupItem],
        kind: LookupKind,
    ) -> dict[str, ResolveResult]:
        results: dict[str, ResolveResult] = {}
        pending = list(items)
        failed: set[str] = set()

        for adapter in chain:
            if not pending:
                break

            outcomes = await self._ask_adapter(adapter, pending, failed)
            still_pending: list[LookupItem] = []
            for item in pending:
                outcome = outcomes.get(item.item_id)
                if outcome is not None and outcome.found:
                    entry = self._entry_from_result(item, kind, outcome)
                    await self._cache_put(cache, entry)
                    results[item.item_id] = ResolveResult(entry, from_cache=False)
                else:
                    still_pending.append(item)
            pending = still_pending

        for item in pending:
            fallback = self._fallback_entry(item, kind)
            if item.item_id in failed:
                logger.warning(
                    "No source could answer for %s (%s); returning unknown without caching",
                    item.item_id,
                    kind.value,
                )
            else:
                await self._cache_put(cache, fallback)
            results[item.item_id] = ResolveResult(fallback, from_cache=False)

        return results

    async def _ask_adapter(
        self,
        adapter: SourceAdapter,
        items: list[LookupItem],
        failed: set[str],
    ) -> dict[str, SourceResult]:
        """Query one adapter; items it could not answer are added to ``failed``."""
        if adapter.supports_batch and len(items) > 1:
            try:
                return await adapter.resolve_many(items)
            except TransientSourceError as e:
                self._log_source_failure(adapter, e, len(items))
                failed.update(item.item_id for item in items)
                return {}

        outcomes: dict[str, SourceResult] = {}
        for item in items:
            try:
                outcomes[item.item_id] = await adapter.resolve(item.item_id, item.display_name)
            except TransientSourceError as e:
                self._log_source_failure(adapter, e, 1, item.item_id)
                failed.add(item.item_id)
        return outcomes

    @staticmethod
    def _log_source_failure(
        adapter: SourceAdapter,
        error: TransientSourceError,
        item_count: int,
        item_id: str | None = None,
    ) -> None:
        log_operation_error(
            logger,
            error,
            operation="query_source",
            additional_context=ErrorContext(
                operation="query_source",
                item_id=item_id,
                additional_data={"source": adapter.source.value, "items": item_count},
            ),
            level=logging.WARNING,
        )

    # ------------------------------------------------------------------
    # entry construction
    # ------------------------------------------------------------------

    def _entry_from_result(
        self,
        item: LookupItem,
        kind: LookupKind,
        result: SourceResult,
    ) -> CacheEntry:
        display_name = item.display_name
        if kind is LookupKind.AVAILABILITY and result.matched_name:
            display_name = result.matched_name

        return CacheEntry(
            item_id=item.item_id,
            display_name=display_name,
            kind=kind,
            payload=result.payload,
            source=result.source,
            resolved_at=self._clock(),
            ttl_days=self.ttl_days,
            external_id=result.external_id,
        )

    def _override_entry(self, item_id: str, name: str, kind: LookupKind) -> CacheEntry | None:
        if kind is not LookupKind.AVAILABILITY:
            return None
        statuses = self._overrides.get(item_id)
        if statuses is None:
            return None
        return CacheEntry(
            item_id=item_id,
            display_name=name,
            kind=kind,
            payload=override_availability(name, statuses),
            source=Source.MANUAL,
            resolved_at=self._clock(),
            ttl_days=self.ttl_days,
        )

    def _fallback_entry(self, item: LookupItem, kind: LookupKind) -> CacheEntry:
        payload = unknown_availability(item.display_name) if kind is LookupKind.AVAILABILITY else None
        return CacheEntry(
            item_id=item.item_id,
            display_name=item.display_name,
            kind=kind,
            payload=payload,
            source=Source.FALLBACK,
            resolved_at=self._clock(),
            ttl_days=self.negative_ttl_days,
        )

    async def _refresh_display_name(
        self,
        cache: SQLiteCacheStore,
        entry: CacheEntry,
        display_name: str,
    ) -> CacheEntry:
        """Store the caller's current name on a cached entry.

        Search links of Unknown platforms follow the new name; official store
        links and ``resolved_at`` are kept.
        """
        if entry.display_name == display_name:
            return entry

        updated = entry.with_display_name(display_name)
        if entry.kind is LookupKind.AVAILABILITY:
            updated = replace(updated, payload=refresh_unknown_urls(entry.platforms, display_name))
        await self._cache_put(cache, updated)
        return updated

    # ------------------------------------------------------------------
    # cache access
    # ------------------------------------------------------------------

    @staticmethod
    async def _cache_get(cache: SQLiteCacheStore, key: LookupKey) -> CacheEntry | None:
        try:
            return await cache.get(key)
        except InfrastructureError as e:
            log_operation_error(logger, e, operation="cache_get", level=logging.WARNING)
            return None

    @staticmethod
    async def _cache_put(cache: SQLiteCacheStore, entry: CacheEntry) -> None:
        try:
            await cache.put(entry)
        except InfrastructureError as e:
            log_operation_error(logger, e, operation="cache_put", level=logging.WARNING)


__all__ = ["Resolver"]
