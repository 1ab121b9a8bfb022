"""Orchestrates cache lookups, remote fetches and fallbacks per search term.

Only the most recently issued request may produce an observable outcome.
Each request gets a strictly increasing generation number and a
cancellation token; issuing a new request cancels the previous token, and
the generation is re-checked after every await before anything is written
to the cache or returned as a result.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from typeahead.domain.models import SearchOutcome
from typeahead.logging import logger
from typeahead.services.exceptions import SearchCancelled, TransportError, UserVisibleError
from typeahead.utils.cancellation import CancellationToken


class ResultCache(Protocol):
    async def get(self, key: str) -> list[str] | None: ...

    async def set(self, key: str, value: Sequence[str]) -> None: ...


class SearchClient(Protocol):
    async def search(self, term: str, token: CancellationToken | None = None) -> list[str]: ...


class Fallback(Protocol):
    async def resolve(self, term: str) -> list[str]: ...


@dataclass(slots=True)
class SearchRequest:
    term: str
    generation: int
    token: CancellationToken = field(default_factory=CancellationToken)


class RequestCoordinator:
    def __init__(self, cache: ResultCache, client: SearchClient, fallback: Fallback) -> None:
        self._cache = cache
        self._client = client
        self._fallback = fallback
        self._generations = itertools.count(1)
        self._generation = 0
        self._active: SearchRequest | None = None

    @property
    def generation(self) -> int:
        """Generation of the most recently issued request (0 before any)."""

        return self._generation

    @property
    def active(self) -> SearchRequest | None:
        """Request currently allowed to apply its outcome; observability hook."""

        return self._active

    def is_current(self, request: SearchRequest) -> bool:
        return (
            self._active is request
            and request.generation == self._generation
            and not request.token.cancelled
        )

    def _issue(self, term: str) -> SearchRequest:
        self._generation = next(self._generations)
        request = SearchRequest(term=term, generation=self._generation)
        previous, self._active = self._active, request
        if previous is not None:
            previous.token.cancel("superseded")
        return request

    def retire_active(self) -> None:
        """Strip the active request of its right to produce an outcome."""

        if self._active is not None:
            self._active.token.cancel("retired")
            self._active = None

    def _superseded(self, request: SearchRequest, stage: str) -> SearchOutcome:
        logger.debug(
            "search_superseded",
            term=request.term,
            generation=request.generation,
            latest_generation=self._generation,
            stage=stage,
        )
        return SearchOutcome.superseded(request.term)

    async def resolve(self, term: str) -> SearchOutcome:
        term = term.strip()
        if not term:
            return SearchOutcome.found(term, [], source="none")

        request = self._issue(term)

        cached = await self._cache.get(term)
        if not self.is_current(request):
            return self._superseded(request, "cache_read")
        if cached is not None:
            logger.debug("search_cache_hit", term=term, generation=request.generation)
            return SearchOutcome.found(term, cached, source="cache")

        try:
            results = await self._client.search(term, request.token)
        except SearchCancelled:
            return self._superseded(request, "remote")
        except TransportError as exc:
            logger.warning(
                "search_remote_failed",
                term=term,
                generation=request.generation,
                status_code=exc.status_code,
                error=str(exc),
            )
            return await self._recover(request)

        if not self.is_current(request):
            return self._superseded(request, "remote")
        logger.debug(
            "search_remote_success",
            term=term,
            generation=request.generation,
            count=len(results),
        )
        if not results:
            return SearchOutcome.found(term, [], source="remote")

        await self._cache.set(term, results)
        if not self.is_current(request):
            return self._superseded(request, "cache_write")
        return SearchOutcome.found(term, results, source="remote")

    async def _recover(self, request: SearchRequest) -> SearchOutcome:
        fallback = await self._fallback.resolve(request.term)
        if not self.is_current(request):
            return self._superseded(request, "fallback")
        if fallback:
            logger.info("search_fallback_used", term=request.term, count=len(fallback))
            return SearchOutcome.found(request.term, fallback, source="fallback")
        logger.warning("search_failed", term=request.term, generation=request.generation)
        return SearchOutcome.failed(request.term, UserVisibleError())


__all__ = ["RequestCoordinator", "SearchRequest"]
