# file: live/reconciler.py
import logging
from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from app.schema import Lead, PageResult
from live.events import normalize_lead

log = logging.getLogger("reconciler")

def _is_empty(v: Any) -> bool:
    return v is None or v == "" or (isinstance(v, (list, dict)) and not v)

def merge_lead(old: Lead, patch: Dict[str, Any]) -> Lead:
    """Shallow merge: a patched field wins only if present and non-empty.

    Fields that fail validation are dropped one by one, keeping the old value,
    so one unparseable timestamp does not cost the rest of the patch.
    """
    current = old.model_dump()
    applied = {k: v for k, v in patch.items() if k in current and not _is_empty(v)}
    try:
        return Lead(**{**current, **applied})
    except ValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err["loc"]} & applied.keys()
        if not bad:
            raise
        log.warning("lead %s: ignoring invalid patch fields %s", old.key, sorted(bad))
        for k in bad:
            applied.pop(k)
    return Lead(**{**current, **applied})

class PageCache:
    """The current page of leads, as last fetched from the server.

    Two writers only: `replace()` with a fresh fetch result and `upsert()`
    patching one row that is already on the page. Rows are never inserted by
    a push event; the page is a filtered, ranked slice the server owns.
    """

    def __init__(self):
        self._records: List[Lead] = []
        self.page = 1
        self.limit = 20
        self.total = 0
        self.total_pages = 1

    @property
    def records(self) -> List[Lead]:
        return list(self._records)

    def ids(self) -> List[str]:
        return [r.key for r in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def _index(self, lead_id: str) -> int:
        for i, r in enumerate(self._records):
            if lead_id and lead_id in (r.id, r.lead_id):
                return i
        return -1

    def get(self, lead_id: str) -> Optional[Lead]:
        i = self._index(str(lead_id))
        return self._records[i] if i >= 0 else None

    def replace(self, result: PageResult):
        self._records = list(result.records)
        self.page = result.page
        self.limit = result.limit
        self.total = result.total
        self.total_pages = result.total_pages
        log.debug("page %d replaced: %d rows of %d", self.page, len(self._records), self.total)

    def upsert(self, payload: Dict[str, Any]) -> bool:
        """Patch the matching row in place; returns False if it is not on this page."""
        patch = normalize_lead(payload)
        lead_id = patch.get("id") or patch.get("lead_id") or ""
        i = self._index(lead_id)
        if i < 0:
            log.debug("lead %s not on page %d, deferring to refetch", lead_id or "?", self.page)
            return False
        # Never rewrite the identity of the row we matched
        patch.pop("id", None)
        patch.pop("lead_id", None)
        self._records[i] = merge_lead(self._records[i], patch)
        return True
