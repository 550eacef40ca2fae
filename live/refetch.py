# file: live/refetch.py
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

log = logging.getLogger("refetch")

Fetch = Callable[[], Awaitable[Any]]

def loop_call_later(delay: float, callback: Callable[[], None]):
    return asyncio.get_running_loop().call_later(delay, callback)

class DebouncedRefetcher:
    """Coalesces bursts of invalidate() calls into one fetch.

    Every call restarts the window, so the fetch fires once the burst has
    been quiet for `window` seconds. At most one timer is pending.
    """

    def __init__(self, fetch: Fetch, window: float = 2.0,
                 call_later: Callable = loop_call_later, name: str = "list"):
        self.fetch = fetch
        self.window = window
        self.name = name
        self._call_later = call_later
        self._handle = None
        self._task: Optional[asyncio.Future] = None
        self.fetch_count = 0
        self.last_error: Optional[BaseException] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def invalidate(self):
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._call_later(self.window, self._fire)

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self):
        self._handle = None
        self._task = asyncio.ensure_future(self._run())

    async def _run(self):
        try:
            await self.fetch()
        except Exception as e:
            # Nobody awaits a timer-driven fetch; keep the error for the next caller
            self.last_error = e
            log.exception("%s refetch failed", self.name)
            return
        self.fetch_count += 1
        self.last_error = None
        log.debug("%s refetch #%d done", self.name, self.fetch_count)

    async def flush(self):
        """Fetch now instead of waiting for the window; errors propagate."""
        self.cancel()
        await self.fetch()
        self.fetch_count += 1
        self.last_error = None

    async def join(self):
        """Wait for a timer-driven fetch that is already running."""
        if self._task is not None:
            await self._task

class ThrottledRefresher:
    """Immediate but rate-limited refresh with an in-flight guard.

    Calls arriving while a fetch is running, or sooner than `min_interval`
    after the last successful one, are dropped rather than queued.
    """

    def __init__(self, fetch: Fetch, min_interval: float = 1.2,
                 clock: Callable[[], float] = time.monotonic):
        self.fetch = fetch
        self.min_interval = min_interval
        self.clock = clock
        self._in_flight = False
        self._last: Optional[float] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def refresh(self) -> bool:
        now = self.clock()
        if self._in_flight:
            log.debug("refresh dropped: fetch in flight")
            return False
        if self._last is not None and now - self._last < self.min_interval:
            log.debug("refresh dropped: %.2fs since last", now - self._last)
            return False
        self._in_flight = True
        try:
            await self.fetch()
            self._last = self.clock()
        finally:
            self._in_flight = False
        return True
