# file: live/dedupe.py
import asyncio
import logging
import time
from typing import Callable, Dict, Optional

log = logging.getLogger("dedupe")

class EventDeduplicator:
    """Time-windowed idempotency filter over push-event keys.

    Advisory only: it suppresses redundant UI churn (a second toast for the
    same new lead), it is never relied on for correctness.
    """

    def __init__(self, window: float = 8.0, clock: Callable[[], float] = time.monotonic):
        self.window = window
        self.clock = clock
        self._seen: Dict[str, float] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def seen(self, key) -> bool:
        """Return True if `key` was seen within the window, recording it either way."""
        k = "" if key is None else str(key)
        now = self.clock()
        last = self._seen.get(k)
        self._seen[k] = now
        if last is not None and now - last <= self.window:
            log.debug("duplicate event key=%s age=%.2fs", k, now - last)
            return True
        return False

    def purge(self) -> int:
        """Drop keys older than the window; returns how many were removed."""
        now = self.clock()
        stale = [k for k, t in self._seen.items() if now - t > self.window]
        for k in stale:
            del self._seen[k]
        if stale:
            log.debug("purged %d stale keys, %d remain", len(stale), len(self._seen))
        return len(stale)

    def __len__(self) -> int:
        return len(self._seen)

    async def _sweep(self):
        while True:
            await asyncio.sleep(self.window)
            self.purge()

    def start(self):
        """Run `purge()` every window length on the current event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep())

    async def stop(self):
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
