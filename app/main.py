# file: app/main.py
import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict
import aiohttp
from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import StreamingResponse, JSONResponse
from app.config import get_settings
from app.filters import LeadFilters
from app.live_view import LiveView
from app.logging_utils import setup_logging
from app.preferences import PreferenceStore
from app.schema import (
    AllocationRequest, AssignmentRequest, BulkUpdateByFilterRequest, BulkUpdateRequest,
    EqualSplitRequest, EventKind, SmartAssignRequest, ViewRequest
)
from clients.registry import ClientRegistry
from distribution import (
    AllocationMode, AssignmentError, AssignmentExecutor, BulkUpdateError,
    allocate, equal_split, preview
)

setup_logging()
log = logging.getLogger("api")

settings = get_settings()
app = FastAPI(title="Lead Console", version="0.1.0")
registry = ClientRegistry()
view = LiveView(registry.get_lead_client())
executor = AssignmentExecutor(registry.get_lead_client())
prefs = PreferenceStore(settings.preferences_file)

@app.on_event("startup")
async def startup():
    """Open the backend session and start the dedupe sweep"""
    await registry.connect()
    view.start()

@app.on_event("shutdown")
async def shutdown():
    await view.stop()
    await registry.close()

def _mode(value: str) -> AllocationMode:
    try:
        return AllocationMode(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown distribution mode: {value}")

def _slices(slices) -> list:
    return [{"agent_id": s.agent_id, "lead_ids": s.lead_ids} for s in slices]

def _partial_failure(e: AssignmentError) -> JSONResponse:
    log.warning("assignment stopped: %s", e)
    return JSONResponse(status_code=502, content={
        "error": str(e.cause),
        "completed": _slices(e.completed),
        "failed": _slices([e.failed]),
        "remaining": _slices(e.remaining),
    })

@app.get("/health")
async def health():
    """Backend reachability and live view state"""
    backend = await registry.health_check()
    return {
        "status": "healthy" if all(v == "healthy" for v in backend.values()) else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": backend,
        "view": {
            "rows": len(view.cache),
            "highlighted": len(view.highlights.ids()),
            "refetch_pending": view.refetcher.pending,
            "seen_keys": len(view.dedupe),
        },
    }

@app.get("/view")
async def get_view():
    """Current page, highlighted rows and paging meta"""
    return view.snapshot()

@app.post("/view")
async def set_view(request: ViewRequest):
    """Change filters/page and fetch the page now"""
    filters = LeadFilters(**request.filters)
    try:
        await view.set_view(filters, request.page, request.page_size)
    except aiohttp.ClientError as e:
        raise HTTPException(status_code=502, detail=f"Lead backend error: {e}")
    prefs.update(filters=request.filters, page_size=view.page_size)
    return view.snapshot()

@app.post("/events/{kind:path}")
async def push_event(kind: str, payload: Dict[str, Any] = Body(default_factory=dict)):
    """Webhook ingress for push events, same handling as the socket transport"""
    try:
        event_kind = EventKind(kind)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown event: {kind}")
    accepted = view.handle(event_kind, payload)
    return {"accepted": accepted}

async def stream_feed() -> AsyncGenerator[bytes, None]:
    """Stream NDJSON feed events: recent history first, then live"""
    q = view.subscribe()
    try:
        for event in reversed(list(view.feed)):
            yield (json.dumps(event) + "\n").encode()
        while True:
            event = await q.get()
            yield (json.dumps(event) + "\n").encode()
    finally:
        view.unsubscribe(q)

@app.get("/feed")
async def feed():
    if not settings.live_feed_enabled:
        raise HTTPException(status_code=404, detail="Live feed disabled")
    return StreamingResponse(stream_feed(), media_type="application/x-ndjson")

@app.post("/allocation/equal-split")
async def allocation_equal_split(request: EqualSplitRequest):
    """Raw values for the "distribute equally" button"""
    mode = _mode(request.mode)
    values = equal_split(request.agent_ids, request.pool_size, mode)
    return {"values": values, "preview": asdict(preview(request.pool_size, request.agent_ids, mode, values))}

@app.post("/allocation/preview")
async def allocation_preview(request: AllocationRequest):
    """Running total vs target while the admin types"""
    mode = _mode(request.mode)
    return asdict(preview(request.pool_size, request.agent_ids, mode, request.values))

@app.post("/assignments")
async def create_assignments(request: AssignmentRequest):
    """Allocate the selected leads across agents and assign them slice by slice"""
    mode = _mode(request.mode)
    pool_size = len(request.lead_ids)
    check = preview(pool_size, request.agent_ids, mode, request.values)
    if not check.valid:
        raise HTTPException(status_code=400, detail={
            "message": "Distribution does not add up to its target",
            "target": check.target,
            "total": check.total,
            "remaining": check.remaining,
            "fractional": check.fractional,
        })

    allocations = allocate(pool_size, request.agent_ids, mode, request.values)
    try:
        report = await executor.run(request.lead_ids, allocations)
    except AssignmentError as e:
        view.refetcher.invalidate()
        return _partial_failure(e)

    view.refetcher.invalidate()
    return {
        "assigned": report.assigned_count,
        "agents": report.agent_count,
        "slices": _slices(report.completed),
    }

@app.post("/assignments/smart")
async def smart_assign(request: SmartAssignRequest):
    """Round-robin the selection over agents, least loaded first"""
    try:
        await view.soft_refresh()
    except aiohttp.ClientError as e:
        raise HTTPException(status_code=502, detail=f"Lead backend error: {e}")
    try:
        report = await executor.smart_assign(request.lead_ids, request.agent_ids, view.agent_load())
    except AssignmentError as e:
        view.refetcher.invalidate()
        return _partial_failure(e)
    view.refetcher.invalidate()
    return {"assigned": report.assigned_count, "slices": _slices(report.completed)}

@app.post("/leads/bulk-update")
async def bulk_update(request: BulkUpdateRequest):
    """Bulk edit: optional distribution across agents plus field/status updates"""
    updates = dict(request.updates)
    if request.distribution:
        d = request.distribution
        mode = _mode(d.mode)
        check = preview(len(request.lead_ids), d.agent_ids, mode, d.values)
        if not check.valid:
            raise HTTPException(status_code=400, detail={
                "message": "Distribution does not add up to its target",
                "remaining": check.remaining,
                "fractional": check.fractional,
            })
        updates["distribute"] = allocate(len(request.lead_ids), d.agent_ids, mode, d.values)
    if not updates:
        return {"success": True, "count": 0}

    try:
        res = await executor.bulk_update(request.lead_ids, updates)
    except AssignmentError as e:
        view.refetcher.invalidate()
        return _partial_failure(e)
    except BulkUpdateError as e:
        raise HTTPException(status_code=502, detail=str(e))
    view.refetcher.invalidate()
    return res

@app.post("/leads/bulk-update-by-filter")
async def bulk_update_by_filter(request: BulkUpdateByFilterRequest):
    """Apply field/status updates to every lead matching the filter bar"""
    filters = LeadFilters(**request.filters)
    try:
        res = await registry.get_lead_client().bulk_update_by_filter(filters, request.updates)
    except aiohttp.ClientError as e:
        raise HTTPException(status_code=502, detail=f"Lead backend error: {e}")
    view.refetcher.invalidate()
    return res

@app.get("/leads/filter-meta")
async def filter_meta():
    """Sources, statuses and per-caller lead counts for the filter bar"""
    try:
        return await registry.get_lead_client().fetch_filter_meta()
    except aiohttp.ClientError as e:
        raise HTTPException(status_code=502, detail=f"Lead backend error: {e}")

@app.get("/agents")
async def agents():
    """Callers available as distribution targets"""
    try:
        return await registry.get_lead_client().list_agents()
    except aiohttp.ClientError as e:
        raise HTTPException(status_code=502, detail=f"Lead backend error: {e}")

@app.get("/preferences")
async def get_preferences():
    return prefs.data

@app.put("/preferences")
async def put_preferences(values: Dict[str, Any] = Body(...)):
    saved = prefs.update(**values)
    return {"saved": saved, "preferences": prefs.data}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
