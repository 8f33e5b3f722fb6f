# src/cache.py
"""
In-memory TTL cache shared by the refresh pipeline and the read API.

Two key classes live here:
  - per-source entries, keyed by source url, holding an ExtractionResult
  - AGGREGATE_KEY, holding the published tuple of Resource

Every operation takes the same lock, so concurrent get/set from fetch
workers and request handlers is safe. Values are replaced wholesale and
never mutated in place.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

AGGREGATE_KEY = "__resources__"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResourceCache:
    def __init__(self, default_ttl_s: float = 24 * 60 * 60, clock: Callable[[], float] = time.time) -> None:
        self.default_ttl_s = default_ttl_s
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def get(self, key: str, *, allow_stale: bool = False) -> Optional[Any]:
        """
        Return the value for *key*, or None on a miss.

        Expired entries count as misses unless allow_stale is set; they are
        kept around so that stale reads still have something to return.
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if not allow_stale and entry.is_expired(self.now()):
            return None
        return entry.value

    def set(
        self,
        key: str,
        value: Any,
        *,
        ttl_s: Optional[float] = None,
        expires_at: Optional[float] = None,
    ) -> CacheEntry:
        if expires_at is None:
            expires_at = self.now() + (self.default_ttl_s if ttl_s is None else ttl_s)
        entry = CacheEntry(key=key, value=value, expires_at=expires_at)
        with self._lock:
            self._entries[key] = entry
        return entry

    def expires_at(self, key: str) -> Optional[float]:
        with self._lock:
            entry = self._entries.get(key)
        return entry.expires_at if entry else None

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
