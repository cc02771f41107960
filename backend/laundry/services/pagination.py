from __future__ import annotations

from flask import current_app

from ..errors import ValidationError


def paginate(query, *, page: int | None, per_page: int | None, serialize) -> dict:
    """
    Offset pagination with the same envelope for every list endpoint.

    per_page defaults to DEFAULT_PAGE_SIZE and is capped at MAX_PAGE_SIZE.
    """
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)

    if per_page is not None and per_page < 1:
        raise ValidationError("per_page must be >= 1", field="per_page")
    per_page = min(per_page or default_size, max_size)
    page = max(page or 1, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 0

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(row) for row in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
