"""Tests for the concurrent mark fetcher: dedupe, batching, failure tolerance, atomic merge."""

import asyncio
import math
from datetime import datetime

import pytest

from factories import make_trade
from marks import MarkCache, MarkFetcher, RefreshProgress, collect_mark_refs
from marks.fetcher import NULL_MARK
from positions_core.aggregator import build_structures
from positions_core.contracts import MarkInfo, Venue


class RecordingClient:
    """Fake venue client: tracks concurrency and what the cache held during each call."""

    def __init__(self, *, fail: set[str] | None = None, cache: MarkCache | None = None) -> None:
        self.fail = set(fail or ())
        self.cache = cache
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cache_sizes: list[int] = []

    async def get_best(self, symbol: str) -> MarkInfo:
        self.calls.append(symbol)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        if self.cache is not None:
            self.cache_sizes.append(len(self.cache))
        await asyncio.sleep(0)
        self.in_flight -= 1
        if symbol in self.fail:
            raise ConnectionError(f"timeout for {symbol}")
        return MarkInfo(price=float(len(self.calls)), multiplier=None)


class RecordingEvents:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def refresh_start(self, **kw) -> None:
        self.events.append(("refresh_start", kw))

    def batch_complete(self, **kw) -> None:
        self.events.append(("batch_complete", kw))

    def fetch_failed(self, **kw) -> None:
        self.events.append(("fetch_failed", kw))

    def refresh_complete(self, **kw) -> None:
        self.events.append(("refresh_complete", kw))


def _structures(n_legs: int, *, structure_id: str = "S1", venue: Venue = Venue.DERIBIT, now: datetime | None = None):
    trades = [
        make_trade("buy", 1, 0.01, strike=1000.0 * (i + 1), structure_id=structure_id, venue=venue)
        for i in range(n_legs)
    ]
    return build_structures(trades, now=now).structures


def _symbol(strike: int) -> str:
    return f"BTC-28JUN24-{strike}-C"


# ---------------------------------------------------------------------------
# Dedupe
# ---------------------------------------------------------------------------


def test_collect_refs_dedupes_across_structures(now: datetime) -> None:
    structures = _structures(3, structure_id="A", now=now) + _structures(4, structure_id="B", now=now)
    refs = collect_mark_refs(structures)
    assert len(refs) == 4
    assert len({r.key for r in refs}) == 4


def test_each_instrument_fetched_once(now: datetime) -> None:
    client = RecordingClient()
    structures = _structures(3, structure_id="A", now=now) + _structures(3, structure_id="B", now=now)
    fetcher = MarkFetcher({Venue.DERIBIT: client}, MarkCache())
    progress = asyncio.run(fetcher.refresh(structures))
    assert progress.total == 3
    assert sorted(client.calls) == sorted(_symbol(s) for s in (1000, 2000, 3000))


# ---------------------------------------------------------------------------
# Batching
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("n", [1, 5, 6, 12])
def test_batch_count_and_concurrency_cap(n: int, now: datetime) -> None:
    client = RecordingClient()
    seen: list[RefreshProgress] = []
    fetcher = MarkFetcher({Venue.DERIBIT: client}, MarkCache(), on_progress=seen.append)
    asyncio.run(fetcher.refresh(_structures(n, now=now)))
    assert len(seen) == math.ceil(n / 5)
    assert client.max_in_flight == min(n, 5)
    assert [p.done for p in seen] == [min(5 * (i + 1), n) for i in range(len(seen))]
    assert all(p.in_progress for p in seen)


def test_custom_batch_size(now: datetime) -> None:
    client = RecordingClient()
    seen: list[RefreshProgress] = []
    fetcher = MarkFetcher({Venue.DERIBIT: client}, MarkCache(), batch_size=2, on_progress=seen.append)
    asyncio.run(fetcher.refresh(_structures(5, now=now)))
    assert len(seen) == 3
    assert client.max_in_flight == 2


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        MarkFetcher({}, MarkCache(), batch_size=0)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_partial_failure_does_not_abort(now: datetime) -> None:
    failing = {_symbol(2000), _symbol(9000)}
    client = RecordingClient(fail=failing)
    cache = MarkCache()
    events = RecordingEvents()
    fetcher = MarkFetcher({Venue.DERIBIT: client}, cache, event_logger=events)
    progress = asyncio.run(fetcher.refresh(_structures(12, now=now)))

    assert progress == RefreshProgress(in_progress=False, total=12, done=12, errors=2)
    assert len(cache) == 12
    assert cache.get(f"deribit:{_symbol(2000)}") == NULL_MARK
    assert cache.get(f"deribit:{_symbol(1000)}").price is not None
    assert cache.get(f"deribit:{_symbol(3000)}").price is not None
    failed = [kw["key"] for name, kw in events.events if name == "fetch_failed"]
    assert sorted(failed) == sorted(f"deribit:{s}" for s in failing)


def test_venue_without_client_counts_as_failure(now: datetime) -> None:
    client = RecordingClient()
    structures = _structures(2, now=now) + _structures(1, structure_id="C", venue=Venue.COINCALL, now=now)
    fetcher = MarkFetcher({Venue.DERIBIT: client}, MarkCache())
    progress = asyncio.run(fetcher.refresh(structures))
    assert progress.total == 3
    assert progress.errors == 1
    assert fetcher.cache.get("coincall:BTCUSD-28JUN24-1000-C") == NULL_MARK


def test_error_count_accumulates_across_batches(now: datetime) -> None:
    failing = {_symbol(1000), _symbol(7000), _symbol(11000)}
    seen: list[RefreshProgress] = []
    fetcher = MarkFetcher({Venue.DERIBIT: RecordingClient(fail=failing)}, MarkCache(), on_progress=seen.append)
    progress = asyncio.run(fetcher.refresh(_structures(11, now=now)))
    assert [p.errors for p in seen] == [1, 2, 3]
    assert progress.errors == 3


# ---------------------------------------------------------------------------
# Cache atomicity
# ---------------------------------------------------------------------------


def test_cache_untouched_until_run_completes(now: datetime) -> None:
    cache = MarkCache({"deribit:OLD": MarkInfo(1.0, None)})
    client = RecordingClient(cache=cache)
    fetcher = MarkFetcher({Venue.DERIBIT: client}, cache)
    asyncio.run(fetcher.refresh(_structures(12, now=now)))
    assert client.cache_sizes == [1] * 12
    assert len(cache) == 13
    assert cache.generation == 1


def test_empty_run_still_merges_once() -> None:
    cache = MarkCache()
    fetcher = MarkFetcher({}, cache)
    progress = asyncio.run(fetcher.refresh([]))
    assert progress == RefreshProgress(in_progress=False, total=0, done=0, errors=0)
    assert cache.generation == 1


def test_events_sequence(now: datetime) -> None:
    events = RecordingEvents()
    fetcher = MarkFetcher({Venue.DERIBIT: RecordingClient()}, MarkCache(), event_logger=events)
    asyncio.run(fetcher.refresh(_structures(7, now=now)))
    names = [name for name, _ in events.events]
    assert names == ["refresh_start", "batch_complete", "batch_complete", "refresh_complete"]
    assert events.events[0][1] == {"total": 7}
    assert events.events[-1][1] == {"total": 7, "errors": 0}


# ---------------------------------------------------------------------------
# Re-entrancy
# ---------------------------------------------------------------------------


def test_overlapping_refreshes_are_serialized(now: datetime) -> None:
    client = RecordingClient()
    events = RecordingEvents()
    cache = MarkCache()
    fetcher = MarkFetcher({Venue.DERIBIT: client}, cache, event_logger=events)
    first = _structures(5, structure_id="A", now=now)
    second = _structures(5, structure_id="B", now=now)

    async def run_both():
        return await asyncio.gather(fetcher.refresh(first), fetcher.refresh(second))

    results = asyncio.run(run_both())
    assert [r.total for r in results] == [5, 5]
    assert client.max_in_flight == 5
    assert cache.generation == 2
    names = [name for name, _ in events.events]
    assert names.index("refresh_complete") < names.index("refresh_start", 1)
    assert not fetcher.progress.in_progress


def test_progress_attribute_after_run(now: datetime) -> None:
    fetcher = MarkFetcher({Venue.DERIBIT: RecordingClient()}, MarkCache())
    assert fetcher.progress == RefreshProgress()
    asyncio.run(fetcher.refresh(_structures(3, now=now)))
    assert fetcher.progress == RefreshProgress(in_progress=False, total=3, done=3, errors=0)


def test_legs_without_symbol_builder_are_not_fetched(now: datetime) -> None:
    client = RecordingClient()
    fetcher = MarkFetcher({Venue.DERIBIT: client}, MarkCache())
    progress = asyncio.run(fetcher.refresh(_structures(2, venue=Venue.CME, now=now)))
    assert progress.total == 0
    assert client.calls == []
