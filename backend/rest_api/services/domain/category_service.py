"""
Category Service.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rest_api.models import Category, Product
from rest_api.routers._common.pagination import Pagination
from rest_api.services.base_service import BaseCRUDService
from shared.utils.exceptions import ConflictError, DuplicateEntityError
from shared.utils.schemas import CategoryOutput


class CategoryService(BaseCRUDService[Category, CategoryOutput]):
    """
    Service for menu categories.

    Business rules:
    - Names are unique among active categories (case-insensitive)
    - A category with active products cannot be deleted
    """

    def __init__(self, db: Session):
        super().__init__(db=db, model=Category, output_schema=CategoryOutput, entity_name="Category")

    def _product_count(self, category_id: int) -> int:
        return self._db.scalar(
            select(func.count(Product.id)).where(
                Product.category_id == category_id,
                Product.is_active.is_(True),
            )
        ) or 0

    def to_output(self, entity: Category) -> CategoryOutput:
        return CategoryOutput(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            is_active=entity.is_active,
            product_count=self._product_count(entity.id),
        )

    def list_categories(self, pagination: Pagination, search: str | None = None) -> tuple[list[CategoryOutput], int]:
        stmt = self.base_query()
        if search:
            stmt = stmt.where(Category.name.ilike(f"%{search}%"))
        return self.list_page(pagination, stmt.order_by(Category.name))

    def _ensure_unique_name(self, name: str, exclude_id: int | None = None) -> None:
        stmt = self.base_query().where(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        if self._db.scalar(stmt) is not None:
            raise DuplicateEntityError("Category", name)

    def _validate_create(self, data: dict[str, Any]) -> None:
        self._ensure_unique_name(data["name"])

    def _validate_update(self, entity: Category, data: dict[str, Any]) -> None:
        name = data.get("name")
        if name is not None and name.lower() != entity.name.lower():
            self._ensure_unique_name(name, exclude_id=entity.id)

    def _validate_delete(self, entity: Category) -> None:
        if self._product_count(entity.id):
            raise ConflictError("Cannot delete a category with active products", category_id=entity.id)
