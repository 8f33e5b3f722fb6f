from __future__ import annotations


class SourceError(Exception):
    """Base class for per-source retrieval failures."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class FetchFailed(SourceError):
    """Plain HTTP fetch failed: transport error, timeout or non-2xx status."""


class RenderFailed(SourceError):
    """Headless browser session failed to launch, navigate or evaluate."""
