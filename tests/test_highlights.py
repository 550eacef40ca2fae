# file: tests/test_highlights.py
from live.highlights import HighlightTracker

def test_mark_then_expire(timers):
    expired = []
    h = HighlightTracker(2.5, timers.call_later, on_expire=expired.append)
    h.mark_changed("42")
    assert h.is_highlighted("42")
    timers.advance(2.4)
    assert h.is_highlighted("42")
    timers.advance(0.2)
    assert not h.is_highlighted("42")
    assert expired == ["42"]

def test_remark_reschedules_single_expiry(timers):
    expired = []
    h = HighlightTracker(2.5, timers.call_later, on_expire=expired.append)
    h.mark_changed("42")
    timers.advance(2.0)
    h.mark_changed("42")
    assert len(timers.active) == 1
    timers.advance(2.0)
    # first deadline (2.5) has passed but the flag belongs to the second mark
    assert h.is_highlighted("42")
    timers.advance(0.6)
    assert not h.is_highlighted("42")
    assert expired == ["42"]

def test_ids_are_independent(timers):
    h = HighlightTracker(2.5, timers.call_later)
    h.mark_changed("a")
    timers.advance(1.0)
    h.mark_changed(7)
    timers.advance(1.6)
    assert h.ids() == {"7"}

def test_empty_id_is_ignored(timers):
    h = HighlightTracker(2.5, timers.call_later)
    h.mark_changed("")
    h.mark_changed(None)
    assert h.ids() == set()
    assert timers.handles == []

def test_clear_cancels_timers(timers):
    expired = []
    h = HighlightTracker(2.5, timers.call_later, on_expire=expired.append)
    h.mark_changed("a")
    h.mark_changed("b")
    h.clear()
    timers.advance(5)
    assert h.ids() == set()
    assert expired == []
