"""
Shared mark cache keyed by "<venue>:<symbol>".

Owned by whoever orchestrates refreshes; written only by merge_all.
"""

import threading
from types import MappingProxyType
from typing import Mapping

from positions_core.contracts import MarkInfo


class MarkCache:
    """Key-value store of MarkInfo. Each merge lands as one atomic step."""

    def __init__(self, initial: Mapping[str, MarkInfo] | None = None) -> None:
        self._lock = threading.Lock()
        self._marks: dict[str, MarkInfo] = dict(initial or {})
        self._generation = 0

    def get(self, key: str) -> MarkInfo | None:
        return self._marks.get(key)

    def snapshot(self) -> Mapping[str, MarkInfo]:
        """Read-only view of the current mapping; a later merge swaps in a new dict."""
        return MappingProxyType(self._marks)

    def merge_all(self, results: Mapping[str, MarkInfo]) -> None:
        """Overlay *results* on the current marks in a single swap."""
        with self._lock:
            merged = dict(self._marks)
            merged.update(results)
            self._marks = merged
            self._generation += 1

    @property
    def generation(self) -> int:
        """Number of merges applied so far."""
        return self._generation

    def __len__(self) -> int:
        return len(self._marks)

    def __contains__(self, key: object) -> bool:
        return key in self._marks
