# Overview: Service-layer operations for pagination; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..errors import ValidationError


def paginate(query, first: int | None = None, offset: int | None = None, serialize=None) -> dict:
    """
    Offset pagination over an ordered query.

    Returns {"items", "total_count", "has_more"}; first defaults to
    DEFAULT_PAGE_SIZE and is clamped to MAX_PAGE_SIZE.
    """
    if first is None:
        first = current_app.config["DEFAULT_PAGE_SIZE"]
    if offset is None:
        offset = 0
    if first < 0:
        raise ValidationError("first must be >= 0")
    if offset < 0:
        raise ValidationError("offset must be >= 0")
    first = min(first, current_app.config["MAX_PAGE_SIZE"])

    total = query.order_by(None).count()
    rows = query.offset(offset).limit(first).all()
    serialize = serialize or (lambda row: row.to_dict())

    return {
        "items": [serialize(row) for row in rows],
        "total_count": total,
        "has_more": offset + len(rows) < total,
    }
