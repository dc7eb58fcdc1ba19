# src/marginalia/core/scheduler.py
"""Keyed debounce timers and in-flight task tracking on a single event loop."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

from marginalia.core.logs import get_logger

logger = get_logger(__name__)

Action = Callable[[], Awaitable[Any] | Any]


class Debouncer:
    """Map of key -> pending timer; rescheduling a key cancels its previous timer.

    Actions may be plain callables or coroutine functions. Coroutines started
    by a fired timer (and any task handed to :meth:`track`) are remembered so
    :meth:`cancel_all` can stop every continuation owned by the debouncer.

    Timers run on one event loop at a time. The running loop is picked up on
    first use and again whenever the remembered one has been closed.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._timers: dict[Hashable, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule(self, key: Hashable, delay: float, action: Action) -> None:
        """Run ``action`` after ``delay`` seconds unless ``key`` is rescheduled first."""
        if self._closed:
            return
        self.cancel(key)
        self._timers[key] = self.loop.call_later(max(delay, 0.0), self._fire, key, action)

    def cancel(self, key: Hashable) -> bool:
        """Cancel the pending timer for ``key``; return True if one was pending."""
        handle = self._timers.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def pending(self, key: Hashable | None = None) -> bool:
        if key is None:
            return bool(self._timers)
        return key in self._timers

    def pending_keys(self) -> list[Hashable]:
        return list(self._timers)

    def track(self, awaitable: Awaitable[Any]) -> asyncio.Task[Any]:
        """Run ``awaitable`` as a task that :meth:`cancel_all` will cancel."""
        task = asyncio.ensure_future(awaitable, loop=self.loop)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _fire(self, key: Hashable, action: Action) -> None:
        self._timers.pop(key, None)
        if self._closed:
            return
        result = action()
        if inspect.isawaitable(result):
            self.track(result)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed: %s", exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait until every tracked task has finished (timers are not awaited)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self) -> None:
        """Cancel all timers and in-flight tasks and refuse further scheduling."""
        self._closed = True
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        for task in list(self._tasks):
            task.cancel()


__all__ = ["Debouncer"]
