from __future__ import annotations

from ..base import BaseFetcher
from ..extract import build_result
from ..http import render_page
from ..types import ExtractionResult, Source


class BrowserFetcher(BaseFetcher):
    """
    Strategy:
    - Launch headless Chromium, wait for DOM content
    - Read document.title and the meta description in-page
    Slow; reserved for hosts classified as blocked.
    """

    name = "browser"

    def __init__(self, timeout_s: int = 30) -> None:
        self.timeout_s = timeout_s

    def fetch(self, source: Source) -> ExtractionResult:
        page = render_page(source.url, timeout_s=self.timeout_s)
        return build_result(page.title, page.description, source)
