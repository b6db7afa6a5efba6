"""Keyed timer scheduler on the running asyncio loop.

All debounce, retry, and transition delays go through one scheduler so a
single :meth:`TimerScheduler.cancel_all` on teardown guarantees nothing
fires against a destroyed surface.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

_logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[Any] | None]


class TimerScheduler:
    """Owns debounce and backoff timers, one pending timer per key."""

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, key: str, delay: float, callback: TimerCallback) -> asyncio.TimerHandle | None:
        """Run *callback* after *delay* seconds, replacing any timer under *key*.

        Coroutine callbacks are run as tasks tracked by the scheduler.
        Returns ``None`` once the scheduler has been closed.
        """
        if self._closed:
            _logger.debug("Scheduler closed; dropping timer %s", key)
            return None
        self.cancel(key)
        handle = self._get_loop().call_later(max(0.0, delay), self._fire, key, callback)
        self._handles[key] = handle
        return handle

    def cancel(self, key: str) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_prefix(self, prefix: str) -> int:
        """Cancel every timer whose key starts with *prefix*."""
        keys = [key for key in self._handles if key.startswith(prefix)]
        for key in keys:
            self.cancel(key)
        return len(keys)

    def is_pending(self, key: str) -> bool:
        return key in self._handles

    def pending_keys(self) -> list[str]:
        return sorted(self._handles)

    def cancel_all(self) -> None:
        """Cancel every pending timer and in-flight timer task."""
        for key in list(self._handles):
            self.cancel(key)
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def close(self) -> None:
        self.cancel_all()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _fire(self, key: str, callback: TimerCallback) -> None:
        self._handles.pop(key, None)
        try:
            result = callback()
        except Exception:
            _logger.exception("Timer %s callback failed", key)
            return
        if inspect.isawaitable(result):
            task = self._get_loop().create_task(self._await(key, result))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _await(key: str, awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.exception("Timer %s task failed", key)
