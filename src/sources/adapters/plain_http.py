from __future__ import annotations

from ..base import BaseFetcher
from ..extract import extract_title_description
from ..http import http_get
from ..types import ExtractionResult, Source


class PlainHttpFetcher(BaseFetcher):
    """
    Strategy:
    - Single GET with a browser User-Agent
    - Parse <title> and meta description from the static HTML
    Fast, but sites with bot protection answer 403 / challenge pages.
    """

    name = "http"

    def __init__(self, timeout_s: int = 10) -> None:
        self.timeout_s = timeout_s

    def fetch(self, source: Source) -> ExtractionResult:
        res = http_get(source.url, timeout_s=self.timeout_s)
        # raw bytes: BeautifulSoup reads <meta charset> when the header has none
        return extract_title_description(res.content, source, encoding=res.encoding)
