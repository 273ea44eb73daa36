"""
Response envelope helpers.

Every REST response has the same shape:

    {"success": true, "data": ..., "message": "..."}
    {"success": false, "error": "..."}

Paginated lists add {"pagination": {"page", "limit", "total", "totalPages"}}.
"""

from typing import Any

from fastapi.encoders import jsonable_encoder


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": jsonable_encoder(data)}
    if message:
        body["message"] = message
    return body


def created(data: Any = None, message: str = "Created successfully") -> dict[str, Any]:
    return ok(data, message)


def paginated(
    items: list[Any],
    page: int,
    limit: int,
    total: int,
    message: str | None = None,
) -> dict[str, Any]:
    body = ok(items, message)
    body["pagination"] = page_info(page, limit, total)
    return body


def page_info(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": (total + limit - 1) // limit if limit > 0 else 0,
    }


def error(message: str, data: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": message}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return body
