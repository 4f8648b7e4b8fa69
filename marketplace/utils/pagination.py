from typing import Optional, Tuple

from marketplace.core.config import settings


def clamp_pagination(
    page: Optional[int], limit: Optional[int], *, default_limit: Optional[int] = None
) -> Tuple[int, int]:
    """
    Bring ``page``/``limit`` into range instead of rejecting them.

    ``page`` is kept within ``1..MAX_PAGE``; ``limit`` within ``1..MAX_PAGE_SIZE``.
    Any page past the last one is simply empty.
    """
    default_limit = default_limit or settings.DEFAULT_PAGE_SIZE
    page = min(page, settings.MAX_PAGE) if page and page > 0 else 1
    if limit is None or limit <= 0:
        limit = default_limit
    limit = min(limit, settings.MAX_PAGE_SIZE)
    return page, limit


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit  # Ceiling division
