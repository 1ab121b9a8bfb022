"""Entry point the presentation layer drives on every keystroke."""

from __future__ import annotations

from typing import Callable

from typeahead.domain.models import Cleared, Failed, Loading, Results, SearchEmission
from typeahead.logging import logger
from typeahead.services.coordinator import RequestCoordinator
from typeahead.services.debounce import DebounceGate

Emitter = Callable[[SearchEmission], None]


class SuggestionSession:
    """Turns raw input changes into ``SearchEmission`` messages.

    Each debounced lookup emits ``Loading`` and then exactly one ``Results``
    or ``Failed``, unless a newer lookup superseded it, in which case nothing
    more is emitted for it. Blank input emits ``Cleared`` immediately.
    """

    def __init__(
        self,
        coordinator: RequestCoordinator,
        emit: Emitter,
        *,
        quiet_period: float = 0.3,
    ) -> None:
        self._coordinator = coordinator
        self._emit = emit
        self._gate = DebounceGate(self._lookup, self._clear, quiet_period=quiet_period)

    @property
    def gate(self) -> DebounceGate:
        """Underlying debounce gate, exposed so callers can await ``wait_idle``."""

        return self._gate

    def on_input_changed(self, text: str) -> None:
        self._gate.push(text)

    async def _lookup(self, text: str) -> None:
        term = text.strip()
        self._emit(Loading(term=term))
        outcome = await self._coordinator.resolve(term)
        if not outcome.observable:
            return
        if outcome.status == "error":
            self._emit(Failed(term=term, message=outcome.error or ""))
        else:
            self._emit(Results(term=term, results=outcome.results))

    def _clear(self) -> None:
        self._coordinator.retire_active()
        self._emit(Cleared())

    async def aclose(self) -> None:
        await self._gate.aclose()
        self._coordinator.retire_active()
        logger.debug("suggestion_session_closed")


__all__ = ["Emitter", "SuggestionSession"]
