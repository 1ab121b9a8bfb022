"""Application wiring: builds every component once and hands out a session."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import timedelta

import httpx

from typeahead.config import TypeaheadSettings, get_settings
from typeahead.db.session import Database
from typeahead.logging import configure_logging, logger
from typeahead.services.cache import ExpirySweeper, SearchResultCache
from typeahead.services.coordinator import RequestCoordinator
from typeahead.services.fallback import FallbackResolver
from typeahead.services.search import WikipediaSearchClient
from typeahead.services.session import Emitter, SuggestionSession


@asynccontextmanager
async def open_suggestion_session(
    emit: Emitter,
    settings: TypeaheadSettings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[SuggestionSession]:
    """Yield a ready ``SuggestionSession`` and tear everything down on exit.

    ``http_client`` lets callers supply their own transport; when omitted a
    client is created and closed here. Each resource is released in reverse
    order even when setup or another teardown step fails.
    """

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    async with AsyncExitStack() as stack:
        database = Database(settings.cache)
        stack.push_async_callback(database.dispose)
        await database.create_schema()

        cache = SearchResultCache(database, ttl=timedelta(minutes=settings.cache.ttl_minutes))
        await cache.clear_expired()

        client = http_client
        if client is None:
            client = await stack.enter_async_context(
                httpx.AsyncClient(
                    timeout=settings.search_api.request_timeout_seconds,
                    follow_redirects=True,
                )
            )
        coordinator = RequestCoordinator(
            cache=cache,
            client=WikipediaSearchClient(client, settings.search_api),
            fallback=FallbackResolver(cache),
        )

        sweeper = ExpirySweeper(cache, settings.cache.sweep_interval_seconds)
        sweeper.start()
        stack.push_async_callback(sweeper.stop)

        session = SuggestionSession(
            coordinator,
            emit,
            quiet_period=settings.debounce.quiet_period_seconds,
        )
        stack.push_async_callback(session.aclose)

        logger.info("suggestion_session_started", dsn=settings.cache.dsn)
        yield session


__all__ = ["open_suggestion_session"]
