"""Shared pytest fixtures for cache and coordinator tests."""

from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio

from typeahead.config import CacheSettings
from typeahead.db.session import Database
from typeahead.services.cache import SearchResultCache


class ManualClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta // timedelta(milliseconds=1)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def cache_settings(tmp_path) -> CacheSettings:
    return CacheSettings(dsn=f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")


@pytest_asyncio.fixture
async def database(cache_settings):
    db = Database(cache_settings)
    await db.create_schema()
    try:
        yield db
    finally:
        await db.dispose()


@pytest_asyncio.fixture
async def cache(database, clock) -> SearchResultCache:
    return SearchResultCache(database, ttl=timedelta(minutes=30), clock=clock)
