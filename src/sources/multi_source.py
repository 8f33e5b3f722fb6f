from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional
from urllib.parse import urlparse

from .. import config
from ..cache import ResourceCache
from .base import BaseFetcher
from .errors import SourceError
from .registry import classify_url, get_fetcher
from .types import ExtractionResult, Source

logger = logging.getLogger(__name__)

STATUS_CACHED = "cached"
STATUS_FETCHED = "fetched"
STATUS_FAILED = "failed"


def _hardcoded_sources_fallback() -> List[Source]:
    return [
        Source(name="Legal Aid Ontario", url="https://www.legalaid.on.ca/"),
        Source(name="Steps to Justice", url="https://stepstojustice.ca/"),
        Source(name="Community Legal Education Ontario", url="https://www.cleo.on.ca/en"),
        Source(name="Ontario Family Law", url="https://www.ontario.ca/page/family-law"),
        Source(name="Ontario Courts", url="https://www.ontariocourts.ca/"),
        Source(name="Law Society of Ontario", url="https://lso.ca/public-resources"),
    ]


def _log_sources(mode: str, sources: List[Source]) -> None:
    logger.info("[sources] mode=%s count=%d", mode, len(sources))
    for s in sources:
        logger.info("[sources] - name=%r url=%s", s.name, s.url)


def _source_from_entry(entry: Any) -> Optional[Source]:
    if isinstance(entry, str):
        url = entry.strip()
        name = urlparse(url).hostname or url
    elif isinstance(entry, dict):
        url = str(entry.get("url") or "").strip()
        name = str(entry.get("name") or "").strip() or (urlparse(url).hostname or url)
    else:
        return None
    if not url.startswith(("http://", "https://")):
        return None
    return Source(name=name, url=url)


def parse_sources(raw: str) -> List[Source]:
    """
    Parse an EXTERNAL_SOURCES value: a JSON list of URL strings or
    {"name": ..., "url": ...} objects. Invalid entries are dropped;
    a duplicate url keeps its first position.
    """
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("EXTERNAL_SOURCES must be a JSON list")

    out: List[Source] = []
    seen: set[str] = set()
    for entry in data:
        src = _source_from_entry(entry)
        if src is None:
            logger.warning("[sources] skipping malformed entry: %r", entry)
            continue
        if src.url in seen:
            continue
        seen.add(src.url)
        out.append(src)
    return out


def load_sources(raw: Optional[str] = None) -> List[Source]:
    """
    EXTERNAL_SOURCES first.
    Falls back to hardcoded sources if the variable is missing, malformed or empty.
    """
    raw = config.EXTERNAL_SOURCES if raw is None else raw
    if not raw or not raw.strip():
        sources = _hardcoded_sources_fallback()
        _log_sources("HARDCODED (EXTERNAL_SOURCES unset)", sources)
        return sources

    try:
        sources = parse_sources(raw)
    except ValueError as e:
        sources = _hardcoded_sources_fallback()
        _log_sources(f"FALLBACK (EXTERNAL_SOURCES invalid: {type(e).__name__}: {e})", sources)
        return sources

    if not sources:
        sources = _hardcoded_sources_fallback()
        _log_sources("FALLBACK (EXTERNAL_SOURCES empty)", sources)
        return sources

    _log_sources("ENV", sources)
    return sources


def build_fetchers(
    *,
    http_timeout_s: int = config.HTTP_TIMEOUT_SECONDS,
    render_timeout_s: int = config.RENDER_TIMEOUT_SECONDS,
) -> dict[str, BaseFetcher]:
    return {
        "http": get_fetcher("http", timeout_s=http_timeout_s),
        "browser": get_fetcher("browser", timeout_s=render_timeout_s),
    }


@dataclass(frozen=True)
class FetchOutcome:
    result: ExtractionResult
    status: str  # cached | fetched | failed
    strategy: str


def fetch_source(
    source: Source,
    cache: ResourceCache,
    fetchers: Mapping[str, BaseFetcher],
    *,
    blocked_patterns: Iterable[str] = (),
    expires_at: Optional[float] = None,
) -> FetchOutcome:
    """
    Resolve one source to an ExtractionResult.

    A live per-url cache entry short-circuits all I/O. Otherwise the classified
    fetcher runs; its success is cached (until *expires_at* when given).
    Any failure yields the placeholder, which is not cached, and is never raised.
    """
    strategy = classify_url(source.url, blocked_patterns)

    cached = cache.get(source.url)
    if cached is not None:
        logger.debug("[source] cache hit url=%s", source.url)
        return FetchOutcome(result=cached, status=STATUS_CACHED, strategy=strategy)

    fetcher = fetchers[strategy]
    try:
        result = fetcher.fetch(source)
    except SourceError as e:
        logger.warning("[source] ERROR %s failed url=%s: %s", strategy, source.url, e.reason)
        return FetchOutcome(result=ExtractionResult.placeholder(source), status=STATUS_FAILED, strategy=strategy)
    except Exception as e:
        logger.exception("[source] ERROR %s crashed url=%s: %s: %s", strategy, source.url, type(e).__name__, e)
        return FetchOutcome(result=ExtractionResult.placeholder(source), status=STATUS_FAILED, strategy=strategy)

    cache.set(source.url, result, expires_at=expires_at)
    logger.info("[source] done url=%s strategy=%s title=%r", source.url, strategy, result.title)
    return FetchOutcome(result=result, status=STATUS_FETCHED, strategy=strategy)
