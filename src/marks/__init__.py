"""
Live marks: venue client protocol, shared mark cache, bounded-concurrency fetcher.

Depends on positions_core for MarkRef/MarkInfo; no dependency from positions_core back to marks.
"""

from marks.cache import MarkCache
from marks.client import StaticMarkClient, VenueMarkClient, mark_info_from_dict
from marks.fetcher import MarkFetcher, RefreshProgress, collect_mark_refs

__all__ = [
    "collect_mark_refs",
    "MarkCache",
    "MarkFetcher",
    "mark_info_from_dict",
    "RefreshProgress",
    "StaticMarkClient",
    "VenueMarkClient",
]
