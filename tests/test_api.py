# file: tests/test_api.py
import pytest
from unittest.mock import AsyncMock, Mock
from fastapi.testclient import TestClient
import app.main as main
from app.live_view import LiveView
from app.preferences import PreferenceStore
from app.schema import Agent, Lead, PageResult
from distribution.executor import AssignmentExecutor
from live.dedupe import EventDeduplicator

@pytest.fixture
def backend():
    c = Mock()
    c.fetch_page = AsyncMock(return_value=PageResult(records=[Lead(id="1", status="new")], total=1))
    c.fetch_all = AsyncMock(return_value=[Lead(id="1", assigned_to="a1")])
    c.assign = AsyncMock(return_value={"success": True})
    c.bulk_update = AsyncMock(return_value={"success": True, "modified": 2})
    c.bulk_update_by_filter = AsyncMock(return_value={"success": True, "modified": 40})
    c.fetch_filter_meta = AsyncMock(return_value={"sources": ["Website"], "callerCounts": {"a1": 3}})
    c.list_agents = AsyncMock(return_value=[Agent(id="a1", name="Ravi")])
    return c

@pytest.fixture
def api(monkeypatch, backend, timers, clock, tmp_path):
    view = LiveView(backend, call_later=timers.call_later, dedupe=EventDeduplicator(clock=clock))
    monkeypatch.setattr(main, "view", view)
    monkeypatch.setattr(main.registry, "leads", backend)
    monkeypatch.setattr(main, "executor", AssignmentExecutor(backend))
    monkeypatch.setattr(main, "prefs", PreferenceStore(str(tmp_path / "prefs.json")))
    return TestClient(main.app)

def test_health(api, monkeypatch):
    monkeypatch.setattr(main.registry, "health_check", AsyncMock(return_value={"leads": "healthy"}))
    body = api.get("/health").json()
    assert body["status"] == "healthy"
    assert body["view"]["rows"] == 0

def test_set_view_fetches_and_saves_preferences(api, backend):
    r = api.post("/view", json={"filters": {"statuses": ["new"]}, "page": 1, "page_size": 10})
    assert r.status_code == 200
    assert r.json()["records"][0]["id"] == "1"
    assert backend.fetch_page.await_args.args[1:] == (1, 10)
    assert main.prefs.get("page_size") == 10
    assert main.prefs.get("filters") == {"statuses": ["new"]}

def test_push_event_ingress(api):
    r = api.post("/events/lead:created", json={"_id": "7"})
    assert r.json() == {"accepted": True}
    r = api.post("/events/lead:created", json={"_id": "7"})
    assert r.json() == {"accepted": False}
    assert "7" in api.get("/view").json()["highlighted"]

def test_unknown_event_kind(api):
    assert api.post("/events/lead:deleted", json={}).status_code == 404

def test_equal_split(api):
    r = api.post("/allocation/equal-split", json={"pool_size": 7, "agent_ids": ["x", "y", "z"]})
    body = r.json()
    assert body["values"] == {"x": 3, "y": 2, "z": 2}
    assert body["preview"]["valid"] is True

def test_preview_percentage(api):
    r = api.post("/allocation/preview", json={
        "pool_size": 10, "agent_ids": ["a", "b", "c"], "mode": "percentage",
        "values": {"a": 33, "b": 33, "c": 30},
    })
    body = r.json()
    assert body["remaining"] == 4
    assert body["valid"] is False

def test_unknown_mode_is_rejected(api):
    r = api.post("/allocation/preview", json={"pool_size": 1, "agent_ids": ["a"], "mode": "ratio"})
    assert r.status_code == 422

def test_assignment_rejected_when_counts_do_not_add_up(api, backend):
    r = api.post("/assignments", json={
        "lead_ids": ["A", "B", "C"], "agent_ids": ["a1", "a2"], "values": {"a1": 1, "a2": 1},
    })
    assert r.status_code == 400
    assert r.json()["detail"]["remaining"] == 1
    backend.assign.assert_not_awaited()

def test_assignment_runs_slices(api, backend):
    r = api.post("/assignments", json={
        "lead_ids": ["A", "B", "C", "D", "E"], "agent_ids": ["a1", "a2", "a3"],
        "values": {"a1": 2, "a2": 0, "a3": 3},
    })
    assert r.status_code == 200
    assert r.json()["assigned"] == 5
    assert backend.assign.await_count == 2
    assert main.view.refetcher.pending

def test_assignment_partial_failure(api, backend):
    backend.assign.side_effect = [{"success": True}, ConnectionError("timeout")]
    r = api.post("/assignments", json={
        "lead_ids": ["A", "B", "C", "D"], "agent_ids": ["a1", "a2"], "mode": "percentage",
        "values": {"a1": 50, "a2": 50},
    })
    assert r.status_code == 502
    body = r.json()
    assert body["completed"] == [{"agent_id": "a1", "lead_ids": ["A", "B"]}]
    assert body["failed"] == [{"agent_id": "a2", "lead_ids": ["C", "D"]}]
    assert body["remaining"] == []

def test_smart_assign(api, backend):
    r = api.post("/assignments/smart", json={"lead_ids": ["X", "Y"], "agent_ids": ["a1", "a2"]})
    assert r.json()["assigned"] == 2
    # a2 has no leads yet so it goes first
    assert backend.assign.await_args_list[0].args == (["X"], "a2")

def test_bulk_update_with_distribution(api, backend):
    r = api.post("/leads/bulk-update", json={
        "lead_ids": ["A", "B"], "updates": {"status": "contacted"},
        "distribution": {"agent_ids": ["a1"], "values": {"a1": 2}},
    })
    assert r.json() == {"success": True, "modified": 2}
    backend.assign.assert_awaited_once_with(["A", "B"], "a1")
    backend.bulk_update.assert_awaited_once_with(["A", "B"], {"status": "contacted"})

def test_preferences_roundtrip(api):
    r = api.put("/preferences", json={"visible_columns": ["name"]})
    assert r.json()["saved"] is True
    assert api.get("/preferences").json()["visible_columns"] == ["name"]

def test_fractional_counts_rejected_before_assigning(api, backend):
    r = api.post("/assignments", json={
        "lead_ids": ["A", "B", "C", "D", "E"], "agent_ids": ["x", "y"],
        "values": {"x": 2.5, "y": 2.5},
    })
    assert r.status_code == 400
    assert r.json()["detail"]["fractional"] == ["x", "y"]
    backend.assign.assert_not_awaited()

def test_bulk_update_by_filter(api, backend):
    r = api.post("/leads/bulk-update-by-filter", json={
        "filters": {"source": "Google"}, "updates": {"status": "contacted"},
    })
    assert r.json()["modified"] == 40
    filters, updates = backend.bulk_update_by_filter.await_args.args
    assert filters.source == "Google"
    assert updates == {"status": "contacted"}
    assert main.view.refetcher.pending

def test_filter_meta_and_agents(api):
    assert api.get("/leads/filter-meta").json()["callerCounts"] == {"a1": 3}
    agents = api.get("/agents").json()
    assert agents[0]["id"] == "a1"
    assert agents[0]["name"] == "Ravi"
