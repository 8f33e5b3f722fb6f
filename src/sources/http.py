from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .errors import FetchFailed, RenderFailed

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

_META_DESCRIPTION_JS = """
() => {
  for (const m of document.querySelectorAll('meta[name]')) {
    if (m.getAttribute('name').trim().toLowerCase() === 'description') {
      return m.getAttribute('content');
    }
  }
  return null;
}
"""


@dataclass
class HttpResult:
    url: str
    status_code: int
    text: str
    content: bytes = b""
    # charset from Content-Type, None when the header does not declare one
    encoding: Optional[str] = None


@dataclass
class RenderedPage:
    url: str
    title: Optional[str]
    description: Optional[str]


def http_get(url: str, *, timeout_s: int = 10) -> HttpResult:
    """GET with a browser User-Agent. Raises FetchFailed on any non-2xx outcome."""
    logger.debug("http_get(): url=%s timeout_s=%s", url, timeout_s)
    try:
        r = requests.get(
            url,
            timeout=timeout_s,
            headers={
                "User-Agent": BROWSER_USER_AGENT,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-CA,en;q=0.9",
            },
        )
    except requests.Timeout as e:
        raise FetchFailed(url, f"timeout after {timeout_s}s") from e
    except requests.RequestException as e:
        raise FetchFailed(url, f"{type(e).__name__}: {e}") from e

    if not 200 <= r.status_code < 300:
        raise FetchFailed(url, f"HTTP {r.status_code}")

    declared = "charset=" in r.headers.get("Content-Type", "").lower()
    return HttpResult(
        url=r.url,
        status_code=r.status_code,
        text=r.text,
        content=r.content,
        encoding=r.encoding if declared else None,
    )


def render_page(url: str, *, timeout_s: int = 30) -> RenderedPage:
    """
    Load the page in an isolated headless Chromium and read title + meta
    description from the live DOM.

    The browser is closed on every exit path, including navigation errors.
    """
    logger.debug("render_page(): url=%s timeout_s=%s", url, timeout_s)
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=True)
            try:
                context = browser.new_context(user_agent=BROWSER_USER_AGENT)
                page = context.new_page()
                response = page.goto(url, wait_until="domcontentloaded", timeout=timeout_s * 1000)
                if response is not None and not response.ok:
                    raise RenderFailed(url, f"HTTP {response.status}")

                title = page.title()
                description = page.evaluate(_META_DESCRIPTION_JS)
                final_url = page.url
            finally:
                browser.close()
    except PlaywrightError as e:
        raise RenderFailed(url, f"{type(e).__name__}: {e}") from e

    logger.debug("render_page(): final_url=%s title=%r", final_url, title)
    return RenderedPage(url=final_url, title=title, description=description)
