# app/config.py
from __future__ import annotations
import os
from dataclasses import dataclass

def _as_bool(v: str | None, default: bool = False) -> bool:
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")

@dataclass
class Settings:
    # Lead backend (REST)
    api_base_url: str = os.getenv("LEAD_API_BASE_URL", "http://127.0.0.1:5000/api/v1")
    api_token: str | None = os.getenv("LEAD_API_TOKEN") or None
    api_timeout: float = float(os.getenv("LEAD_API_TIMEOUT", "30"))

    # Live feed timings (seconds)
    dedup_window: float = float(os.getenv("DEDUP_WINDOW_SECONDS", "8"))
    list_refresh_window: float = float(os.getenv("LIST_REFRESH_SECONDS", "2.0"))
    dashboard_refresh_window: float = float(os.getenv("DASHBOARD_REFRESH_SECONDS", "1.2"))
    min_refresh_interval: float = float(os.getenv("MIN_REFRESH_INTERVAL_SECONDS", "1.2"))
    highlight_seconds: float = float(os.getenv("HIGHLIGHT_SECONDS", "2.5"))

    # Current page window
    page_size: int = int(os.getenv("PAGE_SIZE", "20"))

    # Notifications kept for the live feed
    feed_max: int = int(os.getenv("FEED_MAX", "40"))
    live_feed_enabled: bool = _as_bool(os.getenv("LIVE_FEED_ENABLED"), True)

    # Local view preferences (best effort)
    preferences_file: str = os.getenv("PREFERENCES_FILE", "data/preferences.json")

_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
