# file: live/events.py
"""Helpers for reading push-event payloads.

The transport gives no schema guarantee beyond "the lead id is somewhere in
the payload", so every reader here tolerates missing or aliased keys.
"""
from typing import Any, Dict, List, Optional, Union
from app.schema import EventKind

# Aliases the backend has used for the lead identifier, in lookup order
ID_KEYS = ("_id", "id", "lead_id", "leadId")

# payload key -> Lead field, first present alias wins
_PATCH_ALIASES = {
    "lead_id": ("lead_id", "leadId"),
    "field_data": ("fieldData", "field_data"),
    "status": ("status",),
    "assigned_to": ("assigned_to", "assignedTo"),
    "campaign_id": ("campaignId", "campaign_id"),
    "created_time": ("created_time", "createdTime", "created_at", "createdAt"),
    "updated_at": ("updatedAt", "updated_at"),
    "last_call_at": ("lastCallAt", "last_call_at"),
    "follow_up_at": ("followUpAt", "follow_up_at"),
    "call_count": ("callCount", "call_count"),
    "op_bookings": ("opBookings", "op_bookings"),
    "ip_bookings": ("ipBookings", "ip_bookings"),
}

def _first(p: Dict[str, Any], keys) -> Any:
    for k in keys:
        v = p.get(k)
        if v not in (None, ""):
            return v
    return None

def lead_identifier(payload: Optional[Dict[str, Any]]) -> str:
    """Find the lead id under any known alias, including a nested `lead`."""
    p = payload or {}
    found = _first(p, ID_KEYS)
    if found is None and isinstance(p.get("lead"), dict):
        found = _first(p["lead"], ID_KEYS)
    return str(found) if found is not None else ""

def call_lead_id(payload: Optional[Dict[str, Any]]) -> str:
    """Lead id of a call:logged payload, where the top-level id is the call's."""
    p = payload or {}
    lead = p.get("lead") if isinstance(p.get("lead"), dict) else {}
    found = _first(lead, ("id", "_id")) or _first(p, ("leadId", "lead_id"))
    return str(found) if found is not None else ""

def _ref_id(v: Any) -> Any:
    # assignedTo may arrive populated as a user object
    if isinstance(v, dict):
        return v.get("_id") or v.get("id")
    return v

def normalize_lead(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Map a raw backend/push payload onto Lead field names.

    Only keys actually present in the payload are returned, so the result can
    be used both to build a full Lead and as a partial patch.
    """
    p = payload or {}
    out: Dict[str, Any] = {}
    ident = _first(p, ("_id", "id"))
    if ident is not None:
        out["id"] = str(ident)
    for field, aliases in _PATCH_ALIASES.items():
        v = _first(p, aliases)
        if v is None:
            continue
        if field in ("lead_id", "campaign_id"):
            v = str(v)
        elif field == "assigned_to":
            v = _ref_id(v)
        out[field] = v
    if "id" not in out and "lead_id" in out:
        out["id"] = out["lead_id"]
    return out

def get_field(field_data: List[Dict[str, Any]], name: str) -> str:
    wanted = str(name).lower()
    for f in field_data or []:
        if (f.get("name") or "").lower() == wanted:
            values = f.get("values")
            if isinstance(values, list):
                return str(values[0]) if values and values[0] else ""
            return str(values or "")
    return ""

def summarize(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Display summary used in feed notifications."""
    p = payload or {}
    s = p.get("summary") or {}
    fd = p.get("fieldData") or p.get("field_data") or []
    return {
        "id": lead_identifier(p),
        "name": s.get("name") or get_field(fd, "full_name") or get_field(fd, "name")
                or get_field(fd, "lead_name") or None,
        "phone": s.get("phone") or get_field(fd, "phone_number") or get_field(fd, "phone")
                 or get_field(fd, "mobile") or None,
        "email": s.get("email") or get_field(fd, "email") or get_field(fd, "email_address") or None,
        "source": s.get("source") or get_field(fd, "source") or get_field(fd, "page_name") or "Website",
        "message": s.get("concern") or s.get("message") or get_field(fd, "concern")
                   or get_field(fd, "message") or get_field(fd, "comments") or None,
    }

def assigned_ids(payload: Optional[Dict[str, Any]]) -> List[str]:
    raw = (payload or {}).get("leadIds")
    if raw is None:
        raw = (payload or {}).get("lead_ids")
    if isinstance(raw, (list, tuple)):
        return [str(x) for x in raw if x]
    return [str(raw)] if raw else []

def dedupe_key(kind: Union[EventKind, str], payload: Optional[Dict[str, Any]]) -> str:
    """Stable key for one logical occurrence of an event."""
    kind = EventKind(kind)
    p = payload or {}
    lid = lead_identifier(p)

    if kind in (EventKind.INTAKE, EventKind.CREATED):
        return f"{kind.value}:{lid}"
    if kind == EventKind.UPDATED:
        return f"{kind.value}:{lid}:{p.get('updatedAt') or p.get('updated_at') or ''}"
    if kind == EventKind.STATUS_UPDATED:
        return f"{kind.value}:{lid}:{p.get('status') or ''}"
    if kind == EventKind.ACTIVITY:
        act = p.get("activity") or {}
        return f"{kind.value}:{lid}:{act.get('_id') or act.get('action') or ''}"
    if kind == EventKind.CALL_LOGGED:
        call = p.get("call") or {}
        return f"{kind.value}:{call_lead_id(p)}:{call.get('_id') or ''}"
    return f"{kind.value}:{','.join(assigned_ids(p))}"
