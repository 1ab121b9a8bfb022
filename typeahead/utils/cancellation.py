"""Cooperative cancellation tokens for superseded lookups."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, TypeVar

from typeahead.services.exceptions import SearchCancelled

T = TypeVar("T")


class CancellationToken:
    """One-shot flag signalling that a request's effects must be abandoned."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "superseded") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SearchCancelled(self.reason or "cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        When the token wins the race the wrapped task is cancelled and
        ``SearchCancelled`` is raised.
        """

        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if self.cancelled:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task
            raise SearchCancelled(self.reason or "cancelled")
        return task.result()


__all__ = ["CancellationToken"]
