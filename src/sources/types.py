from __future__ import annotations

from dataclasses import dataclass

NO_DESCRIPTION = "No description available."
FETCH_FAILED_DESCRIPTION = "Failed to fetch data."


@dataclass(frozen=True)
class Source:
    """One configured external page. Identity is the url."""
    name: str
    url: str


@dataclass(frozen=True)
class ExtractionResult:
    title: str
    description: str
    url: str

    @classmethod
    def placeholder(cls, source: Source) -> "ExtractionResult":
        return cls(title=source.name, description=FETCH_FAILED_DESCRIPTION, url=source.url)
