# file: app/logging_utils.py
import logging
import os
from datetime import datetime, timezone
from rich.logging import RichHandler

def setup_logging(level=None):
    """Configure rich logging"""
    level = level or os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)]
    )

def log_event(source: str, message: str, type: str = "notification", payload: dict = None) -> dict:
    """Create a live-feed event for streaming"""
    return {
        "ts": datetime.now(timezone.utc).isoformat(),
        "type": type,
        "source": source,
        "message": message,
        "payload": payload or {}
    }

logger = logging.getLogger("live_view")
