"""
Concurrent Mark Fetcher: dedupe leg refs, fetch in fixed-size batches, merge once.

Each batch is issued concurrently and fully settled before the next starts,
so at most ``batch_size`` venue calls are in flight. A failed call becomes a
null mark and an error count; it never aborts the run. Results reach the
cache in one merge after the last batch.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Mapping

from positions_core.contracts import MarkInfo, MarkRef, Structure, Venue
from positions_core.mark_refs import get_leg_mark_ref

from marks.cache import MarkCache
from marks.client import VenueMarkClient

logger = logging.getLogger("optstruct.marks")

DEFAULT_BATCH_SIZE = 5

NULL_MARK = MarkInfo(price=None, multiplier=None)


@dataclass(frozen=True)
class RefreshProgress:
    in_progress: bool = False
    total: int = 0
    done: int = 0
    errors: int = 0


def collect_mark_refs(structures: Iterable[Structure]) -> list[MarkRef]:
    """Unique MarkRefs across all structures and legs, in first-seen order."""
    seen: set[str] = set()
    refs: list[MarkRef] = []
    for structure in structures:
        for leg in structure.legs:
            ref = get_leg_mark_ref(structure, leg)
            if ref is None or ref.key in seen:
                continue
            seen.add(ref.key)
            refs.append(ref)
    return refs


class MarkFetcher:
    """
    Refresh live marks for a set of structures into a MarkCache.

    One client per venue. Overlapping refresh() calls are serialized: the
    second run starts after the first has merged.
    """

    def __init__(
        self,
        clients: Mapping[Venue, VenueMarkClient],
        cache: MarkCache,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        event_logger: Any = None,
        on_progress: Callable[[RefreshProgress], None] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._clients = dict(clients)
        self._cache = cache
        self._batch_size = batch_size
        self._events = event_logger
        self._on_progress = on_progress
        self._progress = RefreshProgress()
        self._lock = asyncio.Lock()

    @property
    def progress(self) -> RefreshProgress:
        return self._progress

    @property
    def cache(self) -> MarkCache:
        return self._cache

    async def refresh(self, structures: Iterable[Structure]) -> RefreshProgress:
        """Fetch marks for every unique leg ref in *structures*. Always completes."""
        async with self._lock:
            return await self._run(collect_mark_refs(structures))

    async def _fetch(self, ref: MarkRef) -> MarkInfo:
        client = self._clients.get(ref.venue)
        if client is None:
            raise LookupError(f"No mark client registered for venue '{ref.venue.value}'")
        return await client.get_best(ref.symbol)

    def _publish(self, progress: RefreshProgress) -> None:
        self._progress = progress
        if self._on_progress is not None:
            self._on_progress(progress)

    async def _run(self, refs: list[MarkRef]) -> RefreshProgress:
        self._progress = RefreshProgress(in_progress=True, total=len(refs))
        if self._events is not None:
            self._events.refresh_start(total=len(refs))
        logger.info("Refreshing %d mark(s) in batches of %d", len(refs), self._batch_size)

        results: dict[str, MarkInfo] = {}
        for batch_no, start in enumerate(range(0, len(refs), self._batch_size), start=1):
            batch = refs[start:start + self._batch_size]
            outcomes = await asyncio.gather(
                *(self._fetch(ref) for ref in batch),
                return_exceptions=True,
            )

            errors = 0
            for ref, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    errors += 1
                    results[ref.key] = NULL_MARK
                    logger.warning("Mark fetch failed for %s: %s", ref.key, outcome)
                    if self._events is not None:
                        self._events.fetch_failed(key=ref.key, error=str(outcome))
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    results[ref.key] = outcome

            progress = replace(
                self._progress,
                done=min(self._progress.done + len(batch), self._progress.total),
                errors=self._progress.errors + errors,
            )
            self._publish(progress)
            if self._events is not None:
                self._events.batch_complete(
                    batch=batch_no,
                    done=progress.done,
                    total=progress.total,
                    errors=progress.errors,
                )

        self._cache.merge_all(results)

        final = replace(self._progress, in_progress=False)
        self._progress = final
        if self._events is not None:
            self._events.refresh_complete(total=final.total, errors=final.errors)
        logger.info("Mark refresh complete: %d/%d fetched, %d error(s)", final.done, final.total, final.errors)
        return final
