import math
from typing import Tuple
from music_tutoring.errors import ValidationError

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 20

def page_window(page: int, limit: int, max_limit: int = MAX_PAGE_SIZE) -> Tuple[int, int, int]:
    """Clamp limit to max_limit and return (page, limit, offset). page is 1-indexed."""
    if page is None or page < 1:
        raise ValidationError("page: must be a positive integer")
    if limit is None or limit < 1:
        raise ValidationError("limit: must be a positive integer")
    limit = min(limit, max_limit)
    return page, limit, (page - 1) * limit

def pagination_meta(page: int, limit: int, total: int) -> dict:
    """Pagination block sent next to every list."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_more": page < total_pages,
    }
