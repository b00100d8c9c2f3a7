# Overview: Page/limit handling shared by list endpoints.

from __future__ import annotations

from flask import current_app


def normalize_page(page, limit) -> tuple[int, int]:
    """Clamp page >= 1 and 1 <= limit <= MAX_PAGE_SIZE (default DEFAULT_PAGE_SIZE)."""
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)
    try:
        page = int(page) if page is not None else 1
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit) if limit is not None else default_limit
    except (TypeError, ValueError):
        limit = default_limit
    return max(page, 1), max(1, min(limit, max_limit))


def paginate(query, page=None, limit=None) -> tuple[list, dict]:
    """
    Run a query one page at a time.

    Returns (rows, meta) where meta carries totalCount, totalPages and
    currentPage, the keys the back-office UI reads.
    """
    page, limit = normalize_page(page, limit)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "totalCount": total,
        "totalPages": (total + limit - 1) // limit if total > 0 else 0,
        "currentPage": page,
    }
