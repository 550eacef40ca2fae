# file: live/__init__.py
from .dedupe import EventDeduplicator
from .refetch import DebouncedRefetcher, ThrottledRefresher
from .reconciler import PageCache, merge_lead
from .highlights import HighlightTracker

__all__ = [
    "EventDeduplicator", "DebouncedRefetcher", "ThrottledRefresher",
    "PageCache", "merge_lead", "HighlightTracker"
]
