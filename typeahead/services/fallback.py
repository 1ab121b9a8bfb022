"""Best-effort answers from the local cache when the remote lookup fails."""

from __future__ import annotations

from typeahead.logging import logger
from typeahead.services.cache import SearchResultCache


class FallbackResolver:
    def __init__(self, cache: SearchResultCache) -> None:
        self._cache = cache

    async def resolve(self, term: str) -> list[str]:
        # Exact normalized-key lookup only; no prefix matching over cached keys.
        try:
            cached = await self._cache.get(term)
        except Exception:
            logger.exception("search_fallback_failed", term=term)
            return []
        return list(cached or [])


__all__ = ["FallbackResolver"]
