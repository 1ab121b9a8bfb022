"""Coalesce bursts of input changes into a single lookup."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, Callable

from typeahead.logging import logger


class DebounceGate:
    """Invoke ``callback`` with the latest text once input has been quiet.

    Every ``push`` re-arms the timer. Blank input cancels the timer and calls
    ``on_clear`` right away. Once the quiet period has elapsed the invocation
    runs detached from the timer, so later pushes never cancel it; an
    invocation that has been scheduled but not yet started is dropped if any
    ``push`` or ``cancel`` happens first.
    """

    def __init__(
        self,
        callback: Callable[[str], Awaitable[None]],
        on_clear: Callable[[], None],
        *,
        quiet_period: float = 0.3,
    ) -> None:
        self._callback = callback
        self._on_clear = on_clear
        self.quiet_period = quiet_period
        self._timer: asyncio.Task[None] | None = None
        self._running: set[asyncio.Task[None]] = set()
        # Bumped by every push/cancel; stale invocations compare against it.
        self._epoch = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def push(self, text: str) -> None:
        self.cancel()
        if not text.strip():
            self._on_clear()
            return
        self._timer = asyncio.create_task(self._wait_then_fire(text, self._epoch))

    def cancel(self) -> None:
        """Disarm the pending timer without invoking the callback."""

        self._epoch += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _wait_then_fire(self, text: str, epoch: int) -> None:
        await asyncio.sleep(self.quiet_period)
        if epoch != self._epoch:
            return
        self._timer = None
        task = asyncio.create_task(self._invoke(text, epoch))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _invoke(self, text: str, epoch: int) -> None:
        if epoch != self._epoch:
            logger.debug("debounced_callback_skipped", text=text)
            return
        try:
            await self._callback(text)
        except Exception:
            logger.exception("debounced_callback_failed", text=text)

    async def wait_idle(self) -> None:
        """Wait for the armed timer and any running invocations to finish.

        Used by shutdown paths and tests that need the gate quiescent before
        inspecting what was emitted.
        """

        if self._timer is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def aclose(self) -> None:
        self.cancel()
        running = list(self._running)
        for task in running:
            task.cancel()
        for task in running:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._running.clear()


__all__ = ["DebounceGate"]
