from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from . import config
from .cache import AGGREGATE_KEY, ResourceCache
from .models import Resource
from .sources.base import BaseFetcher
from .sources.multi_source import (
    STATUS_CACHED,
    STATUS_FAILED,
    STATUS_FETCHED,
    FetchOutcome,
    build_fetchers,
    fetch_source,
)
from .sources.types import Source

logger = logging.getLogger(__name__)

# Per-source entries expire this far ahead of the aggregate, so a refresh
# on a cadence equal to the TTL always re-fetches instead of hitting them.
PER_SOURCE_GRACE_FRACTION = 0.1
MAX_PER_SOURCE_GRACE_S = 60 * 60


def per_source_deadline(cycle_start: float, ttl_s: float) -> float:
    return cycle_start + ttl_s - min(ttl_s * PER_SOURCE_GRACE_FRACTION, MAX_PER_SOURCE_GRACE_S)


@dataclass(frozen=True)
class RefreshSummary:
    sources_run: int
    fetched: int
    cached: int
    failed: int
    published_at: float
    expires_at: float
    duration_s: float


def assemble_resources(outcomes: Sequence[FetchOutcome]) -> Tuple[Resource, ...]:
    """Positional ids, source-list order."""
    return tuple(
        Resource(id=idx, title=o.result.title, url=o.result.url, description=o.result.description)
        for idx, o in enumerate(outcomes, start=1)
    )


class Refresher:
    """
    One refresh = fetch every source, build the full list, publish it with a
    single cache write.

    Single-flight: refresh() returns None immediately if another refresh is
    running. Both the startup trigger and the daily cron call refresh().
    """

    def __init__(
        self,
        sources: Iterable[Source],
        cache: ResourceCache,
        *,
        fetchers: Optional[Mapping[str, BaseFetcher]] = None,
        blocked_patterns: Iterable[str] = (),
        max_workers: int = 1,
    ) -> None:
        self.sources: Tuple[Source, ...] = tuple(sources)
        self.cache = cache
        self.fetchers = dict(fetchers) if fetchers is not None else build_fetchers()
        self.blocked_patterns = tuple(blocked_patterns)
        self.max_workers = max(1, max_workers)
        self._lock = threading.Lock()
        self.last_summary: Optional[RefreshSummary] = None

    @classmethod
    def from_config(cls, sources: Iterable[Source], cache: Optional[ResourceCache] = None) -> "Refresher":
        return cls(
            sources,
            cache or ResourceCache(default_ttl_s=config.CACHE_TTL_SECONDS),
            fetchers=build_fetchers(
                http_timeout_s=config.HTTP_TIMEOUT_SECONDS,
                render_timeout_s=config.RENDER_TIMEOUT_SECONDS,
            ),
            blocked_patterns=config.BLOCKED_URL_PATTERNS,
            max_workers=config.REFRESH_MAX_WORKERS,
        )

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def snapshot(self) -> Tuple[Resource, ...]:
        """Current published list; stale data is still served, never-refreshed is ()."""
        data = self.cache.get(AGGREGATE_KEY, allow_stale=True)
        return data if data is not None else ()

    def refresh(self) -> Optional[RefreshSummary]:
        if not self._lock.acquire(blocking=False):
            logger.info("[refresh] skipped: a refresh is already running")
            return None
        try:
            return self._run()
        finally:
            self._lock.release()

    def _fetch_one(self, source: Source, expires_at: float) -> FetchOutcome:
        return fetch_source(
            source,
            self.cache,
            self.fetchers,
            blocked_patterns=self.blocked_patterns,
            expires_at=expires_at,
        )

    def _run(self) -> RefreshSummary:
        t0 = time.perf_counter()
        cycle_start = self.cache.now()
        ttl_s = self.cache.default_ttl_s
        expires_at = cycle_start + ttl_s
        source_expires_at = per_source_deadline(cycle_start, ttl_s)
        logger.info("[refresh] start sources=%d max_workers=%d", len(self.sources), self.max_workers)

        outcomes: List[FetchOutcome]
        if self.max_workers == 1 or len(self.sources) <= 1:
            outcomes = [self._fetch_one(s, source_expires_at) for s in self.sources]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="refresh") as pool:
                # map() yields in submission order regardless of completion order
                outcomes = list(pool.map(lambda s: self._fetch_one(s, source_expires_at), self.sources))

        resources = assemble_resources(outcomes)
        self.cache.set(AGGREGATE_KEY, resources, expires_at=expires_at)

        summary = RefreshSummary(
            sources_run=len(outcomes),
            fetched=sum(1 for o in outcomes if o.status == STATUS_FETCHED),
            cached=sum(1 for o in outcomes if o.status == STATUS_CACHED),
            failed=sum(1 for o in outcomes if o.status == STATUS_FAILED),
            published_at=self.cache.now(),
            expires_at=expires_at,
            duration_s=time.perf_counter() - t0,
        )
        self.last_summary = summary

        # grep '[refresh][summary]'
        logger.info(
            "[refresh][summary] sources_run=%d fetched=%d cached=%d failed=%d published=%d duration_s=%.2f",
            summary.sources_run,
            summary.fetched,
            summary.cached,
            summary.failed,
            len(resources),
            summary.duration_s,
        )
        return summary
