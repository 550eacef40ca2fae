# file: app/preferences.py
import json
import logging
from pathlib import Path
from typing import Any, Dict

log = logging.getLogger("preferences")

DEFAULTS: Dict[str, Any] = {
    "page_size": 20,
    "visible_columns": [],
    "filters": {},
}

class PreferenceStore:
    """View preferences kept in a local JSON file.

    Best effort throughout: a missing or unreadable file gives defaults and a
    failed write is logged, never raised.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.data = self._load()

    def _load(self) -> Dict[str, Any]:
        prefs = dict(DEFAULTS)
        if not self.path.exists():
            return prefs
        try:
            with open(self.path, encoding="utf-8") as f:
                stored = json.load(f)
        except (OSError, ValueError) as e:
            log.warning("ignoring unreadable preferences %s: %s", self.path, e)
            return prefs
        if isinstance(stored, dict):
            prefs.update(stored)
        return prefs

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def update(self, **values) -> bool:
        self.data.update(values)
        return self.save()

    def save(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.data, f, indent=2, default=str)
        except OSError as e:
            log.warning("could not save preferences to %s: %s", self.path, e)
            return False
        return True
