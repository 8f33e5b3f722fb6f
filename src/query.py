from __future__ import annotations

from typing import Any, Optional, Sequence

from .models import Resource, ResourcePage

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def coerce_positive_int(value: Any, default: int) -> int:
    """Permissive parse: non-numeric, missing or < 1 -> default."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        n = value
    else:
        try:
            n = int(str(value).strip())
        except (TypeError, ValueError):
            return default
    return n if n >= 1 else default


def matches_keyword(resource: Resource, keyword: str) -> bool:
    k = keyword.lower()
    return k in resource.title.lower() or k in resource.description.lower()


def query_resources(
    snapshot: Sequence[Resource],
    page: Any = DEFAULT_PAGE,
    limit: Any = DEFAULT_LIMIT,
    keyword: Optional[str] = None,
) -> ResourcePage:
    page = coerce_positive_int(page, DEFAULT_PAGE)
    limit = coerce_positive_int(limit, DEFAULT_LIMIT)

    if keyword:
        filtered = [r for r in snapshot if matches_keyword(r, keyword)]
    else:
        filtered = list(snapshot)

    start = (page - 1) * limit
    return ResourcePage(
        total=len(filtered),
        page=page,
        limit=limit,
        resources=filtered[start:start + limit],
    )
