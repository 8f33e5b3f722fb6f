# tests/test_pipeline.py
"""
Refresh runs end to end with stub fetchers: ordering, placeholders,
single-flight, atomic publish and the [refresh][summary] line.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Dict, List

import pytest

from src.cache import AGGREGATE_KEY, ResourceCache
from src.pipeline import Refresher, assemble_resources, per_source_deadline
from src.query import query_resources
from src.sources.base import BaseFetcher
from src.sources.errors import FetchFailed
from src.sources.multi_source import FetchOutcome
from src.sources.types import ExtractionResult, Source

SOURCES = [
    Source(name="Legal Aid Ontario", url="https://www.legalaid.on.ca/"),
    Source(name="Steps to Justice", url="https://stepstojustice.ca/"),
    Source(name="Ontario Courts", url="https://www.ontariocourts.ca/"),
]


class PageFetcher(BaseFetcher):
    """Serves canned titles; urls listed in *failing* raise FetchFailed."""

    def __init__(self, titles: Dict[str, str], failing=(), delay_s: float = 0.0) -> None:
        self.titles = titles
        self.failing = set(failing)
        self.delay_s = delay_s
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def fetch(self, source: Source) -> ExtractionResult:
        with self._lock:
            self.calls.append(source.url)
        if self.delay_s:
            time.sleep(self.delay_s)
        if source.url in self.failing:
            raise FetchFailed(source.url, "timeout after 10s")
        return ExtractionResult(title=self.titles[source.url], description="desc", url=source.url)


TITLES = {
    "https://www.legalaid.on.ca/": "Legal Aid Ontario | Home",
    "https://stepstojustice.ca/": "Steps to Justice",
    "https://www.ontariocourts.ca/": "Ontario Courts",
}


def _refresher(fetcher: BaseFetcher, cache: ResourceCache | None = None, **kwargs) -> Refresher:
    return Refresher(
        SOURCES,
        cache if cache is not None else ResourceCache(default_ttl_s=3600),
        fetchers={"http": fetcher, "browser": fetcher},
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------

def test_snapshot_empty_before_first_refresh():
    r = _refresher(PageFetcher(TITLES))
    assert r.snapshot() == ()
    assert query_resources(r.snapshot()).total == 0


def test_refresh_publishes_in_source_order_with_positional_ids():
    r = _refresher(PageFetcher(TITLES))
    summary = r.refresh()

    snap = r.snapshot()
    assert [x.id for x in snap] == [1, 2, 3]
    assert [x.url for x in snap] == [s.url for s in SOURCES]
    assert summary.sources_run == 3
    assert summary.fetched == 3
    assert summary.failed == 0


def test_timed_out_source_becomes_placeholder_scenario():
    fetcher = PageFetcher(TITLES, failing={"https://www.ontariocourts.ca/"})
    r = _refresher(fetcher)
    summary = r.refresh()

    snap = r.snapshot()
    assert len(snap) == 3
    assert snap[2].title == "Ontario Courts"
    assert snap[2].description == "Failed to fetch data."
    assert summary.failed == 1

    page = query_resources(snap, page=1, limit=2)
    assert page.total == 3
    assert len(page.resources) == 2


def test_refresh_is_idempotent_for_same_content():
    r1 = _refresher(PageFetcher(TITLES))
    r2 = _refresher(PageFetcher(TITLES))
    r1.refresh()
    r2.refresh()
    r2.refresh()
    assert [x.model_dump_json() for x in r1.snapshot()] == [x.model_dump_json() for x in r2.snapshot()]


def test_second_refresh_within_ttl_reuses_per_source_cache():
    fetcher = PageFetcher(TITLES)
    r = _refresher(fetcher)
    r.refresh()
    summary = r.refresh()
    assert len(fetcher.calls) == 3
    assert summary.cached == 3


def test_failed_sources_are_retried_next_refresh():
    fetcher = PageFetcher(TITLES, failing={"https://stepstojustice.ca/"})
    r = _refresher(fetcher)
    r.refresh()
    fetcher.failing.clear()
    r.refresh()
    assert fetcher.calls.count("https://stepstojustice.ca/") == 2
    assert r.snapshot()[1].title == "Steps to Justice"


def test_per_source_entries_expire_ahead_of_aggregate():
    cache = ResourceCache(default_ttl_s=100, clock=lambda: 50.0)
    r = _refresher(PageFetcher(TITLES), cache=cache)
    summary = r.refresh()
    assert summary.expires_at == 150.0
    assert cache.expires_at(AGGREGATE_KEY) == 150.0
    for s in SOURCES:
        assert cache.expires_at(s.url) == pytest.approx(140.0)


def test_per_source_grace_is_capped_at_one_hour():
    assert per_source_deadline(0.0, 86_400) == 86_400 - 3_600
    assert per_source_deadline(10.0, 600) == pytest.approx(550.0)


@pytest.mark.parametrize("second_run_at", [86_400.003, 86_400.005, 86_399.0, 83_000.0])
def test_daily_refresh_at_ttl_boundary_refetches(second_run_at):
    now = [0.005]
    cache = ResourceCache(default_ttl_s=86_400, clock=lambda: now[0])
    fetcher = PageFetcher(TITLES)
    r = _refresher(fetcher, cache=cache)
    r.refresh()

    # next scheduled run lands at, or just short of, one full TTL later
    now[0] = second_run_at
    summary = r.refresh()

    assert summary.fetched == 3
    assert summary.cached == 0
    assert len(fetcher.calls) == 6


def test_expired_aggregate_is_still_served():
    now = [0.0]
    cache = ResourceCache(default_ttl_s=10, clock=lambda: now[0])
    r = _refresher(PageFetcher(TITLES), cache=cache)
    r.refresh()
    now[0] = 10_000.0
    assert len(r.snapshot()) == 3


def test_bounded_concurrency_preserves_order():
    fetcher = PageFetcher(TITLES, delay_s=0.01)
    r = _refresher(fetcher, max_workers=3)
    r.refresh()
    assert [x.url for x in r.snapshot()] == [s.url for s in SOURCES]
    assert sorted(fetcher.calls) == sorted(s.url for s in SOURCES)


def test_assemble_resources_numbers_from_one():
    outs = [
        FetchOutcome(result=ExtractionResult("A", "a", "https://a/"), status="fetched", strategy="http"),
        FetchOutcome(result=ExtractionResult("B", "b", "https://b/"), status="cached", strategy="http"),
    ]
    res = assemble_resources(outs)
    assert [(x.id, x.title) for x in res] == [(1, "A"), (2, "B")]


# ---------------------------------------------------------------------------
# Single-flight + atomicity
# ---------------------------------------------------------------------------

class BlockingFetcher(PageFetcher):
    def __init__(self) -> None:
        super().__init__(TITLES)
        self.started = threading.Event()
        self.release = threading.Event()

    def fetch(self, source: Source) -> ExtractionResult:
        self.started.set()
        assert self.release.wait(5)
        return super().fetch(source)


def test_overlapping_trigger_is_ignored():
    fetcher = BlockingFetcher()
    r = _refresher(fetcher)

    t = threading.Thread(target=r.refresh)
    t.start()
    assert fetcher.started.wait(5)
    assert r.running is True

    assert r.refresh() is None

    fetcher.release.set()
    t.join(5)
    assert r.running is False
    assert len(fetcher.calls) == 3


def test_reader_never_sees_partial_list():
    cache = ResourceCache(default_ttl_s=3600)
    old = _refresher(PageFetcher(TITLES), cache=cache)
    old.refresh()
    before = old.snapshot()

    # fresh per-source entries force real fetches on the next run
    for s in SOURCES:
        cache.delete(s.url)

    fetcher = BlockingFetcher()
    r = _refresher(fetcher, cache=cache)
    t = threading.Thread(target=r.refresh)
    t.start()
    assert fetcher.started.wait(5)

    observed = [r.snapshot() for _ in range(50)]
    fetcher.release.set()
    t.join(5)

    for snap in observed:
        assert snap is before
    assert len(r.snapshot()) == 3


def test_summary_line_logged(caplog: pytest.LogCaptureFixture):
    r = _refresher(PageFetcher(TITLES, failing={"https://stepstojustice.ca/"}))
    with caplog.at_level(logging.INFO, logger="src.pipeline"):
        r.refresh()

    lines = [rec.getMessage() for rec in caplog.records if "[refresh][summary]" in rec.getMessage()]
    assert len(lines) == 1
    assert "sources_run=3" in lines[0]
    assert "fetched=2" in lines[0]
    assert "failed=1" in lines[0]
