"""Timer helpers for the single-threaded UI event loop.

Everything here runs on one asyncio loop. A ``Debouncer`` coalesces bursts of
triggers into one callback fired ``delay_ms`` after the last trigger; the
callback reads live state when it fires, never state captured at schedule
time.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

log = structlog.get_logger()


def ms_to_seconds(delay_ms: float) -> float:
    return max(delay_ms, 0) / 1000


class Debouncer:
    """Restartable single-shot timer.

    ``schedule()`` cancels any pending run before arming a new one, so only
    the last trigger in a burst reaches ``callback``. Must be used from code
    running on the event loop.
    """

    def __init__(self, delay_ms: float, callback: Callable[[], None], *, name: str = "") -> None:
        self._delay = ms_to_seconds(delay_ms)
        self._callback = callback
        self._name = name
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Run a pending callback now instead of waiting for the timer."""
        if self._handle is None:
            return
        self.cancel()
        self._fire()

    def _fire(self) -> None:
        self._handle = None
        try:
            self._callback()
        except Exception:
            # A failing UI callback must not take the event loop down with it
            log.error("debounced_callback_failed", timer=self._name, exc_info=True)


class KeyedTimers:
    """One restartable timer per key (e.g. copy feedback per list item)."""

    def __init__(self, delay_ms: float) -> None:
        self._delay = ms_to_seconds(delay_ms)
        self._handles: dict[str, asyncio.TimerHandle] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._handles

    def start(self, key: str, callback: Callable[[], None]) -> None:
        self.clear(key)

        def _fire() -> None:
            self._handles.pop(key, None)
            callback()

        self._handles[key] = asyncio.get_running_loop().call_later(self._delay, _fire)

    def clear(self, key: str) -> None:
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def clear_all(self) -> None:
        for key in list(self._handles):
            self.clear(key)
