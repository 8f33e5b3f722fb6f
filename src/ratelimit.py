from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional


class FixedWindowRateLimiter:
    """
    Per-identifier request counter over fixed windows.

    Counters are per identifier within the current window index, the same
    bucketing as ratelimit:{resource}:{identifier}:{window} keys, held in
    process memory. The whole table is dropped when the window rolls over,
    so each hit is O(1).
    """

    def __init__(self, max_requests: int, window_s: int, clock: Callable[[], float] = time.time) -> None:
        self.max_requests = max_requests
        self.window_s = max(1, window_s)
        self._clock = clock
        self._window: Optional[int] = None
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.max_requests > 0

    def hit(self, identifier: str) -> bool:
        """Count one request; False when the identifier is over its limit."""
        if not self.enabled:
            return True
        window = int(self._clock() // self.window_s)
        with self._lock:
            if window != self._window:
                # new window: every previous counter is stale
                self._window = window
                self._counts = {}
            n = self._counts.get(identifier, 0) + 1
            self._counts[identifier] = n
        return n <= self.max_requests
