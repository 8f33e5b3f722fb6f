from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict


class Resource(BaseModel):
    """Externally visible unit. id is the 1-based position in the source list."""
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    url: str
    description: str


class ResourcePage(BaseModel):
    total: int
    page: int
    limit: int
    resources: List[Resource]
