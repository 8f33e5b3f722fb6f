from __future__ import annotations

from abc import ABC, abstractmethod

from .types import ExtractionResult, Source


class BaseFetcher(ABC):
    """A way of turning a Source into an ExtractionResult."""

    name: str = "base"

    @abstractmethod
    def fetch(self, source: Source) -> ExtractionResult:
        """Return the extraction, or raise a SourceError subclass."""
