# file: tests/test_reconciler.py
from app.schema import Lead, PageResult
from live.reconciler import PageCache, merge_lead

def _page(*leads):
    return PageResult(records=list(leads), page=1, limit=20, total=len(leads), total_pages=1)

def _lead(id, **kw):
    return Lead(id=id, field_data=[{"name": "full_name", "values": [f"Lead {id}"]}], **kw)

def test_patch_visible_row():
    cache = PageCache()
    cache.replace(_page(_lead("1", status="new"), _lead("2", status="new")))
    assert cache.upsert({"_id": "2", "status": "contacted"}) is True
    row = cache.get("2")
    assert row.status == "contacted"
    # untouched fields survive the shallow merge
    assert row.name == "Lead 2"
    assert cache.ids() == ["1", "2"]

def test_unknown_lead_is_never_inserted():
    cache = PageCache()
    cache.replace(_page(_lead("1")))
    before = cache.records
    assert cache.upsert({"_id": "99", "status": "new"}) is False
    assert cache.records == before
    assert len(cache) == 1

def test_empty_values_do_not_overwrite():
    old = _lead("1", status="interested", assigned_to="a1")
    merged = merge_lead(old, {"status": "", "assigned_to": None, "field_data": []})
    assert merged.status == "interested"
    assert merged.assigned_to == "a1"
    assert merged.name == "Lead 1"

def test_match_by_lead_id_alias():
    cache = PageCache()
    cache.replace(_page(Lead(id="mongo-1", lead_id="fb-77")))
    assert cache.upsert({"leadId": "fb-77", "callCount": 3}) is True
    row = cache.get("mongo-1")
    assert row.call_count == 3
    assert row.id == "mongo-1"

def test_camel_case_payload_and_populated_assignee():
    cache = PageCache()
    cache.replace(_page(_lead("1")))
    cache.upsert({"_id": "1", "assignedTo": {"_id": "agent-9", "name": "Sam"},
                  "fieldData": [{"name": "full_name", "values": ["Renamed"]}]})
    row = cache.get("1")
    assert row.assigned_to == "agent-9"
    assert row.name == "Renamed"

def test_payload_without_id_is_ignored():
    cache = PageCache()
    cache.replace(_page(_lead("1")))
    assert cache.upsert({"status": "new"}) is False

def test_replace_takes_paging_meta():
    cache = PageCache()
    cache.replace(PageResult(records=[_lead("5")], page=3, limit=10, total=25, total_pages=3))
    assert (cache.page, cache.limit, cache.total, cache.total_pages) == (3, 10, 25, 3)

def test_invalid_field_is_dropped_rest_of_patch_applies():
    cache = PageCache()
    cache.replace(_page(_lead("1", status="new", call_count=2)))
    assert cache.upsert({"_id": "1", "status": "contacted", "updatedAt": "t1",
                         "callCount": "lots"}) is True
    row = cache.get("1")
    assert row.status == "contacted"
    assert row.updated_at is None
    assert row.call_count == 2
