"""Client for the remote OpenSearch title-suggestion endpoint."""

from __future__ import annotations

from typing import Any

import httpx

from typeahead.config import SearchApiSettings
from typeahead.logging import logger
from typeahead.services.exceptions import TransportError
from typeahead.utils.cancellation import CancellationToken
from typeahead.utils.retry import retry_async


def decode_titles(payload: Any) -> list[str]:
    """Extract the title list from an OpenSearch response body.

    OpenSearch answers ``[query, [titles...], [descriptions...], [urls...]]``;
    anything that does not look like that decodes to an empty list.
    """

    if not isinstance(payload, list) or len(payload) < 2:
        return []
    titles = payload[1]
    if not isinstance(titles, list):
        return []
    return [title for title in titles if isinstance(title, str)]


class WikipediaSearchClient:
    """Fetch ordered title suggestions for a search term."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: SearchApiSettings | None = None,
    ) -> None:
        self._client = http_client
        self._settings = settings or SearchApiSettings()

    def _params(self, term: str) -> dict[str, str]:
        return {
            "action": "opensearch",
            "format": "json",
            "search": term,
            "limit": str(self._settings.result_limit),
            "namespace": str(self._settings.namespace),
            "origin": "*",
        }

    async def search(self, term: str, token: CancellationToken | None = None) -> list[str]:
        term = term.strip()
        if not term:
            return []
        if token is None:
            return await self._fetch(term)
        token.raise_if_cancelled()
        return await token.run(self._fetch(term))

    async def _fetch(self, term: str) -> list[str]:
        params = self._params(term)
        headers = {"Accept": "application/json", "User-Agent": self._settings.user_agent}

        async def _request():
            response = await self._client.get(
                str(self._settings.base_url),
                params=params,
                headers=headers,
                timeout=self._settings.request_timeout_seconds,
            )
            response.raise_for_status()
            return response

        try:
            response = await retry_async(
                _request,
                max_attempts=self._settings.max_attempts,
                base_delay=self._settings.retry_delay_seconds,
                retry_on=(httpx.TransportError,),
                logger=logger,
                operation_name="opensearch_request",
            )
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            raise TransportError(
                f"Search request failed ({status_code})", status_code=status_code
            ) from exc
        except httpx.RequestError as exc:
            raise TransportError(f"Search request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            logger.warning("opensearch_invalid_json", term=term)
            return []
        return decode_titles(payload)


__all__ = ["WikipediaSearchClient", "decode_titles"]
