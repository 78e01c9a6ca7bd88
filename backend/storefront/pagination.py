# Overview: Offset pagination for list endpoints.

from __future__ import annotations

import math

from flask import current_app, request


def page_args() -> tuple[int, int]:
    """Read ?page= and ?per_page= from the request, clamped to config limits."""
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 15)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)

    page = request.args.get("page", 1, type=int) or 1
    per_page = request.args.get("per_page", default_size, type=int) or default_size

    page = max(page, 1)
    per_page = min(max(per_page, 1), max_size)
    return page, per_page


def paginate(query, serialize=None, page: int | None = None, per_page: int | None = None) -> dict:
    """
    Run `query` for one page and build the list envelope.

    serialize defaults to each row's to_dict().
    """
    if page is None or per_page is None:
        req_page, req_per_page = page_args()
        page = page or req_page
        per_page = per_page or req_per_page

    total = query.order_by(None).count()
    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    serialize = serialize or (lambda row: row.to_dict())

    return {
        "data": [serialize(row) for row in rows],
        "current_page": page,
        "per_page": per_page,
        "total": total,
        "last_page": max(1, math.ceil(total / per_page)),
    }
