"""Page/limit clamping and pagination metadata."""

import math
from typing import Any, NamedTuple

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class PageRequest(NamedTuple):
    page: int
    limit: int
    offset: int


def _parse_int(value: Any, default: int) -> int:
    """Integer value of ``value``; anything unparsable (or 0) falls back to ``default``."""
    if isinstance(value, bool):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed or default


def resolve_pagination(
    page: Any = None,
    limit: Any = None,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> PageRequest:
    """Clamp page to >= 1 and limit to [1, max_limit], never rejecting input."""
    page = max(1, _parse_int(page, DEFAULT_PAGE))
    limit = max(1, min(_parse_int(limit, default_limit), max_limit))
    return PageRequest(page=page, limit=limit, offset=(page - 1) * limit)


def build_pagination_metadata(page: int, limit: int, total_count: int) -> dict:
    total_pages = math.ceil(total_count / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total_count": total_count,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
