# src/sources/extract.py
"""
Title / description extraction shared by both fetchers.

Rules:
  1. title = text of the first <title>; empty or missing -> source name
  2. description = content of <meta name="description">;
     empty or missing -> "No description available."

Both values are trimmed and runs of inner whitespace (newlines, tabs,
indentation from pretty-printed markup) collapse to a single space.

Bytes input is decoded by BeautifulSoup: the declared header charset when
given, otherwise <meta charset> sniffing.

Never raises: a page with neither field still yields a result.
"""
from __future__ import annotations

from typing import Optional, Union

from bs4 import BeautifulSoup

from .types import NO_DESCRIPTION, ExtractionResult, Source


def _clean(value: Optional[str]) -> str:
    return " ".join((value or "").split())


def build_result(title: Optional[str], description: Optional[str], source: Source) -> ExtractionResult:
    return ExtractionResult(
        title=_clean(title) or source.name,
        description=_clean(description) or NO_DESCRIPTION,
        url=source.url,
    )


def _meta_description(soup: BeautifulSoup) -> Optional[str]:
    for meta in soup.find_all("meta"):
        name = meta.get("name")
        if isinstance(name, str) and name.strip().lower() == "description":
            content = meta.get("content")
            return content if isinstance(content, str) else None
    return None


def extract_title_description(
    html: Union[str, bytes],
    source: Source,
    *,
    encoding: Optional[str] = None,
) -> ExtractionResult:
    if isinstance(html, bytes):
        soup = BeautifulSoup(html, "html.parser", from_encoding=encoding)
    else:
        soup = BeautifulSoup(html or "", "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text() if title_tag else None

    return build_result(title, _meta_description(soup), source)
