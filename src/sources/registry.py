from __future__ import annotations

from typing import Dict, Iterable, Type
from urllib.parse import urlparse

from .base import BaseFetcher
from .adapters.plain_http import PlainHttpFetcher
from .adapters.browser import BrowserFetcher


FETCHERS: Dict[str, Type[BaseFetcher]] = {
    "http": PlainHttpFetcher,
    "browser": BrowserFetcher,
}


def get_fetcher(name: str, **kwargs) -> BaseFetcher:
    cls = FETCHERS[name]
    return cls(**kwargs)


def _host(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def classify_url(url: str, blocked_patterns: Iterable[str]) -> str:
    """
    Return "browser" when the url's host is a blocked pattern or a subdomain
    of one (www.ontario.ca matches ontario.ca), otherwise "http".
    """
    host = _host(url)
    if host:
        for pattern in blocked_patterns:
            p = pattern.strip().lower()
            if p and (host == p or host.endswith("." + p)):
                return "browser"
    return "http"
