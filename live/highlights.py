# file: live/highlights.py
import logging
from typing import Callable, Dict, Optional, Set
from live.refetch import loop_call_later

log = logging.getLogger("highlights")

class HighlightTracker:
    """Flags rows as recently changed for a fixed display duration.

    Re-marking an id cancels its pending expiry and schedules a new one, so an
    id has at most one timer and it always belongs to the latest mark.
    """

    def __init__(self, duration: float = 2.5, call_later: Callable = loop_call_later,
                 on_expire: Optional[Callable[[str], None]] = None):
        self.duration = duration
        self._call_later = call_later
        self._timers: Dict[str, object] = {}
        self._ids: Set[str] = set()
        self.on_expire = on_expire

    def mark_changed(self, lead_id):
        if not lead_id:
            return
        k = str(lead_id)
        timer = self._timers.pop(k, None)
        if timer is not None:
            timer.cancel()
        self._ids.add(k)
        self._timers[k] = self._call_later(self.duration, lambda: self._expire(k))

    def _expire(self, k: str):
        self._timers.pop(k, None)
        if k not in self._ids:
            return
        self._ids.discard(k)
        log.debug("highlight expired id=%s", k)
        if self.on_expire:
            self.on_expire(k)

    def is_highlighted(self, lead_id) -> bool:
        return str(lead_id) in self._ids

    def ids(self) -> Set[str]:
        return set(self._ids)

    def clear(self):
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._ids.clear()
