# file: tests/test_preferences.py
import json
from app.preferences import DEFAULTS, PreferenceStore

def test_missing_file_gives_defaults(tmp_path):
    store = PreferenceStore(str(tmp_path / "none.json"))
    assert store.data == DEFAULTS

def test_update_persists(tmp_path):
    path = tmp_path / "sub" / "prefs.json"
    store = PreferenceStore(str(path))
    assert store.update(page_size=50, visible_columns=["name", "status"]) is True
    reloaded = PreferenceStore(str(path))
    assert reloaded.get("page_size") == 50
    assert reloaded.get("visible_columns") == ["name", "status"]

def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json")
    store = PreferenceStore(str(path))
    assert store.get("page_size") == 20

def test_stored_values_override_defaults(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({"page_size": 100}))
    store = PreferenceStore(str(path))
    assert store.get("page_size") == 100
    assert store.get("filters") == {}

def test_failed_save_returns_false(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    # parent "directory" is a regular file
    store = PreferenceStore(str(blocker / "prefs.json"))
    assert store.update(page_size=10) is False
    assert store.get("page_size") == 10
