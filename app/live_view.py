# file: app/live_view.py
import asyncio
from collections import Counter, deque
from functools import partial
from typing import Any, Callable, Deque, Dict, List, Optional, Set
from pydantic import ValidationError
from app.config import get_settings
from app.filters import LeadFilters
from app.logging_utils import log_event, logger
from app.schema import EventKind, FeedEvent, Lead
from live import (
    EventDeduplicator, DebouncedRefetcher, ThrottledRefresher,
    PageCache, HighlightTracker
)
from live.events import assigned_ids, call_lead_id, dedupe_key, summarize
from live.refetch import loop_call_later

class LiveView:
    """One live, filtered page of leads kept in step with push events.

    Push events -> dedupe -> patch the row if it is on this page -> flag it
    -> debounced re-fetch of the page from the server. Each screen watching a
    record set gets its own instance.
    """

    def __init__(self, client, filters: Optional[LeadFilters] = None, page: int = 1,
                 page_size: Optional[int] = None, refresh_window: Optional[float] = None,
                 call_later: Callable = loop_call_later,
                 dedupe: Optional[EventDeduplicator] = None,
                 name: str = "leads"):
        s = get_settings()
        self.client = client
        self.name = name
        self.filters = filters or LeadFilters()
        self.page = page
        self.page_size = page_size or s.page_size
        self.cache = PageCache()
        self.dedupe = dedupe or EventDeduplicator(s.dedup_window)
        self.highlights = HighlightTracker(s.highlight_seconds, call_later)
        self.refetcher = DebouncedRefetcher(
            self.refresh, refresh_window or s.list_refresh_window, call_later, name
        )
        self.soft_refresher = ThrottledRefresher(self._load_all, s.min_refresh_interval)
        self.all_leads: List[Lead] = []
        # bumped whenever filters/page change; older fetch results are discarded
        self._generation = 0
        self.feed: Deque[dict] = deque(maxlen=s.feed_max)
        self._subscribers: Set[asyncio.Queue] = set()
        self._transport = None
        self._bound: Dict[EventKind, Callable] = {}
        self._handlers = {
            EventKind.INTAKE: self._on_intake,
            EventKind.CREATED: self._on_created,
            EventKind.UPDATED: self._on_updated,
            EventKind.STATUS_UPDATED: self._on_status_updated,
            EventKind.ACTIVITY: self._on_activity,
            EventKind.CALL_LOGGED: self._on_call_logged,
            EventKind.ASSIGNED: self._on_assigned,
        }

    @classmethod
    def for_dashboard(cls, client, **kwargs) -> "LiveView":
        kwargs.setdefault("refresh_window", get_settings().dashboard_refresh_window)
        kwargs.setdefault("name", "dashboard")
        return cls(client, **kwargs)

    # ------------------------------------------------------------ fetching

    async def refresh(self) -> bool:
        """Fetch the watched page; returns False if the view moved on meanwhile."""
        generation = self._generation
        result = await self.client.fetch_page(self.filters, self.page, self.page_size)
        if generation != self._generation:
            logger.debug("%s: dropping stale page %d result", self.name, result.page)
            return False
        self.cache.replace(result)
        logger.debug("%s: page %d refreshed, %d rows", self.name, self.page, len(self.cache))
        return True

    async def set_view(self, filters: Optional[LeadFilters] = None, page: Optional[int] = None,
                       page_size: Optional[int] = None):
        """Change what this view watches and fetch it right away."""
        if filters is not None:
            self.filters = filters
        if page is not None:
            self.page = page
        if page_size is not None:
            self.page_size = page_size
        self._generation += 1
        await self.refetcher.flush()

    async def _load_all(self):
        self.all_leads = await self.client.fetch_all(self.filters)

    async def soft_refresh(self) -> bool:
        """Reload every matching lead, at most once per interval."""
        return await self.soft_refresher.refresh()

    def agent_load(self) -> Dict[str, int]:
        """Lead count per assigned agent over the last full load."""
        return dict(Counter(l.assigned_to for l in self.all_leads if l.assigned_to))

    # ------------------------------------------------------------ feed

    def notify(self, title: str, message: str, **payload):
        evt = FeedEvent(**log_event(self.name, f"{title}: {message}", "notification", payload)
                       ).model_dump(mode="json")
        self.feed.appendleft(evt)
        logger.info("%s: %s - %s", self.name, title, message)
        for q in list(self._subscribers):
            try:
                q.put_nowait(evt)
            except asyncio.QueueFull:
                logger.warning("%s: feed subscriber queue full (drop)", self.name)

    def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=256)
        self._subscribers.add(q)
        return q

    def unsubscribe(self, q: asyncio.Queue):
        self._subscribers.discard(q)

    # ------------------------------------------------------------ push events

    def handle(self, kind, payload: Optional[Dict[str, Any]] = None) -> bool:
        """Process one push event; returns False if it was dropped as a duplicate."""
        kind = EventKind(kind)
        p = payload or {}
        if self.dedupe.seen(dedupe_key(kind, p)):
            logger.debug("%s: duplicate %s dropped", self.name, kind.value)
            return False
        try:
            self._handlers[kind](p)
        except ValidationError as e:
            # Unusable patch; the server copy will arrive with the refetch
            logger.warning("%s: bad %s payload: %s", self.name, kind.value, e)
            self.refetcher.invalidate()
        return True

    def attach(self, transport):
        """Register a handler per event kind on a transport with on()/off()."""
        self.detach()
        self._transport = transport
        for kind in self._handlers:
            self._bound[kind] = partial(self.handle, kind)
            transport.on(kind.value, self._bound[kind])

    def detach(self):
        if self._transport is None:
            return
        for kind, handler in self._bound.items():
            self._transport.off(kind.value, handler)
        self._bound.clear()
        self._transport = None

    def _upsert(self, payload: Dict[str, Any], lead_id: str):
        self.cache.upsert(payload)
        self.highlights.mark_changed(lead_id)
        self.refetcher.invalidate()

    def _on_intake(self, p):
        s = summarize(p)
        self._upsert(p, s["id"])
        self.notify("New web lead", "A new lead submitted through the website.",
                    tone="success", lead=s)

    def _on_created(self, p):
        s = summarize(p)
        self._upsert(p, s["id"])
        self.notify("New lead created", "A new lead has been added.", lead_id=s["id"], name=s["name"])

    def _on_updated(self, p):
        s = summarize(p)
        self._upsert(p, s["id"])
        self.notify("Lead updated", "Lead details were updated.", lead_id=s["id"], name=s["name"])

    def _on_status_updated(self, p):
        s = summarize(p)
        lead = p.get("lead") if isinstance(p.get("lead"), dict) else {}
        self._upsert({**lead, "_id": s["id"], "status": p.get("status")}, s["id"])
        self.notify("Lead status changed", f"Status updated to: {p.get('status') or 'updated'}.",
                    lead_id=s["id"], name=s["name"])

    def _on_activity(self, p):
        s = summarize(p)
        action = (p.get("activity") or {}).get("action")
        self.refetcher.invalidate()
        self.highlights.mark_changed(s["id"])
        self.notify("Lead activity", f"{action or 'Activity'} recorded.",
                    lead_id=s["id"], name=s["name"] or f"Lead #{s['id']}")

    def _on_call_logged(self, p):
        lead_id = call_lead_id(p)
        outcome = (p.get("call") or {}).get("outcome")
        self.refetcher.invalidate()
        self.highlights.mark_changed(lead_id)
        self.notify("Call logged", f"Call outcome: {outcome or 'completed'}.",
                    tone="success", lead_id=lead_id)

    def _on_assigned(self, p):
        ids = assigned_ids(p)
        self.refetcher.invalidate()
        for lead_id in ids:
            self.highlights.mark_changed(lead_id)
        self.notify("Leads assigned", f"{len(ids) or 1} lead(s) assigned to a caller.",
                    lead_ids=ids)

    # ------------------------------------------------------------ lifecycle

    def snapshot(self) -> Dict[str, Any]:
        """What the table renders: rows, which of them to flash, paging."""
        return {
            "records": [r.model_dump(mode="json") for r in self.cache.records],
            "highlighted": sorted(self.highlights.ids()),
            "page": self.cache.page,
            "limit": self.cache.limit,
            "total": self.cache.total,
            "total_pages": self.cache.total_pages,
        }

    def start(self):
        self.dedupe.start()

    async def stop(self):
        self.detach()
        self.refetcher.cancel()
        self.highlights.clear()
        await self.dedupe.stop()
