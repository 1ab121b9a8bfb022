"""Persistent, expiring storage for search results."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from typeahead.db.models.cache import CachedSearchResult
from typeahead.db.session import Database
from typeahead.logging import logger
from typeahead.services.exceptions import StorageError
from typeahead.utils.datetime import epoch_millis

DEFAULT_TTL = timedelta(minutes=30)


class CorruptEntryError(StorageError):
    pass


def normalize_key(term: str) -> str:
    return term.strip().lower()


def _to_millis(ttl: timedelta) -> int:
    return ttl // timedelta(milliseconds=1)


class SearchResultCache:
    """Key -> title list store whose entries expire after a fixed TTL.

    Every operation opens its own session and commits before returning, so
    no transaction is held across the caller's other awaits. Storage
    failures are logged and degrade to a miss (``get``), a no-op (``set``,
    ``remove``) or zero removed rows (``clear_expired``).
    """

    def __init__(
        self,
        database: Database,
        *,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], int] = epoch_millis,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Cache TTL must be positive.")
        self._database = database
        self._ttl_ms = _to_millis(ttl)
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return timedelta(milliseconds=self._ttl_ms)

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._database.session() as session:
                yield session
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"Cache {operation} failed: {exc}") from exc
        except (ValueError, TypeError) as exc:
            # Row decoded to something other than a JSON list of titles.
            raise CorruptEntryError(f"Cache {operation} found a corrupt row: {exc}") from exc

    def _is_expired(self, entry: CachedSearchResult, now: int) -> bool:
        ttl_ms = entry.ttl_ms if entry.ttl_ms is not None else self._ttl_ms
        return now >= entry.created_at + ttl_ms

    async def get(self, key: str) -> list[str] | None:
        key = normalize_key(key)
        try:
            async with self._transaction("read") as session:
                result = await session.execute(
                    select(CachedSearchResult).where(CachedSearchResult.key == key)
                )
                entry = result.scalar_one_or_none()
                if entry is None:
                    return None
                if self._is_expired(entry, self._clock()):
                    await session.delete(entry)
                    logger.debug("search_cache_entry_expired", key=key)
                    return None
                if not isinstance(entry.value, list):
                    raise TypeError(f"expected a list, got {type(entry.value).__name__}")
                return list(entry.value)
        except CorruptEntryError as exc:
            logger.warning("search_cache_entry_corrupt", key=key, error=str(exc))
            await self.remove(key)
            return None
        except StorageError as exc:
            logger.warning("search_cache_read_failed", key=key, error=str(exc))
            return None

    async def set(
        self,
        key: str,
        value: Sequence[str],
        *,
        ttl: timedelta | None = None,
    ) -> None:
        key = normalize_key(key)
        if not key:
            return
        ttl_ms = _to_millis(ttl) if ttl is not None else None
        try:
            async with self._transaction("write") as session:
                # Replace rather than load-and-update so a corrupt prior row
                # never blocks a fresh write.
                await session.execute(
                    delete(CachedSearchResult).where(CachedSearchResult.key == key)
                )
                session.add(
                    CachedSearchResult(
                        key=key,
                        value=list(value),
                        created_at=self._clock(),
                        ttl_ms=ttl_ms,
                    )
                )
        except StorageError as exc:
            logger.warning("search_cache_write_failed", key=key, error=str(exc))

    async def remove(self, key: str) -> None:
        key = normalize_key(key)
        try:
            async with self._transaction("remove") as session:
                await session.execute(
                    delete(CachedSearchResult).where(CachedSearchResult.key == key)
                )
        except StorageError as exc:
            logger.warning("search_cache_remove_failed", key=key, error=str(exc))

    async def clear_expired(self) -> int:
        now = self._clock()
        deadline = CachedSearchResult.created_at + func.coalesce(
            CachedSearchResult.ttl_ms, self._ttl_ms
        )
        try:
            async with self._transaction("sweep") as session:
                result = await session.execute(
                    delete(CachedSearchResult).where(deadline <= now)
                )
                removed = result.rowcount or 0
        except StorageError as exc:
            logger.warning("search_cache_sweep_failed", error=str(exc))
            return 0
        if removed:
            logger.info("search_cache_swept", removed=removed)
        return removed


class ExpirySweeper:
    """Background task that periodically drops expired cache rows."""

    def __init__(self, cache: SearchResultCache, interval_seconds: float) -> None:
        self._cache = cache
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._cache.clear_expired()
            except Exception:
                logger.exception("search_cache_sweep_crashed")


__all__ = [
    "CorruptEntryError",
    "DEFAULT_TTL",
    "ExpirySweeper",
    "SearchResultCache",
    "normalize_key",
]
