"""
Standardized Pagination for all routers.

Usage:
    from rest_api.routers._common.pagination import Pagination, get_pagination

    @router.get("/products")
    def list_products(
        pagination: Pagination = Depends(get_pagination),
        db: Session = Depends(get_db),
    ):
        stmt = stmt.offset(pagination.offset).limit(pagination.limit)
        return response.paginated(items, **pagination.to_dict(total=count))
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from shared.config.constants import Limits


@dataclass
class Pagination:
    """
    Page-based pagination parameters.

    Attributes:
        page: 1-indexed page number
        limit: Maximum items per page (1 to max_limit)
        max_limit: Maximum allowed limit
    """

    page: int
    limit: int
    max_limit: int = Limits.MAX_PAGE_SIZE

    def __post_init__(self):
        """Validate and normalize values."""
        self.limit = min(max(1, self.limit), self.max_limit)
        self.page = max(1, self.page)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_dict(self, total: int) -> dict[str, Any]:
        """Keyword arguments for shared.utils.response.paginated."""
        return {"page": self.page, "limit": self.limit, "total": total}

    def apply(self, db: Session, stmt: Select) -> tuple[list[Any], int]:
        """Run a select for the current page and count the full result set."""
        total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
        items = list(db.scalars(stmt.offset(self.offset).limit(self.limit)).all())
        return items, total


def get_pagination(
    page: int = Query(
        default=Limits.DEFAULT_PAGE,
        ge=1,
        description="Page number (1-indexed)",
    ),
    limit: int = Query(
        default=Limits.DEFAULT_PAGE_SIZE,
        ge=1,
        le=Limits.MAX_PAGE_SIZE,
        description="Maximum number of items per page",
    ),
) -> Pagination:
    """
    FastAPI dependency for pagination.

    Usage:
        @router.get("/items")
        def list_items(pagination: Pagination = Depends(get_pagination)):
            ...
    """
    return Pagination(page=page, limit=limit)
