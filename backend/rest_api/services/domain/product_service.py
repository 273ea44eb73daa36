"""
Product Service.

Usage:
    from rest_api.services.domain import ProductService

    service = ProductService(db)
    products, total = service.list_products(pagination, category_id=3)
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session, selectinload

from rest_api.models import Category, Product
from rest_api.routers._common.pagination import Pagination
from rest_api.services.base_service import BaseCRUDService
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import NotFoundError, ValidationError
from shared.utils.schemas import ProductOutput


class ProductService(BaseCRUDService[Product, ProductOutput]):
    """
    Service for menu products.

    Business rules:
    - Products belong to an active category
    - is_available hides a product from ordering without deleting it
    """

    def __init__(self, db: Session):
        super().__init__(db=db, model=Product, output_schema=ProductOutput, entity_name="Product")

    def to_output(self, entity: Product) -> ProductOutput:
        return ProductOutput(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            price_cents=entity.price_cents,
            image_url=entity.image_url,
            category_id=entity.category_id,
            category_name=entity.category.name if entity.category else None,
            is_available=entity.is_available,
            is_active=entity.is_active,
        )

    def list_products(
        self,
        pagination: Pagination,
        category_id: int | None = None,
        available: bool | None = None,
        search: str | None = None,
        min_price_cents: int | None = None,
        max_price_cents: int | None = None,
    ) -> tuple[list[ProductOutput], int]:
        stmt = self.base_query().options(selectinload(Product.category))
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        if available is not None:
            stmt = stmt.where(Product.is_available.is_(available))
        if search:
            stmt = stmt.where(Product.name.ilike(f"%{search}%"))
        if min_price_cents is not None:
            stmt = stmt.where(Product.price_cents >= min_price_cents)
        if max_price_cents is not None:
            stmt = stmt.where(Product.price_cents <= max_price_cents)
        return self.list_page(pagination, stmt.order_by(Product.name))

    def list_by_category(self, category_id: int) -> list[ProductOutput]:
        self._ensure_category(category_id)
        return self.list_all(
            self.base_query()
            .options(selectinload(Product.category))
            .where(Product.category_id == category_id)
            .order_by(Product.name)
        )

    def set_availability(self, product_id: int, is_available: bool) -> ProductOutput:
        entity = self.get_entity(product_id)
        entity.is_available = is_available
        safe_commit(self._db)
        self._db.refresh(entity)
        return self.to_output(entity)

    def _ensure_category(self, category_id: int) -> Category:
        category = self._db.get(Category, category_id)
        if category is None or not category.is_active:
            raise NotFoundError("Category", category_id)
        return category

    def _validate_create(self, data: dict[str, Any]) -> None:
        self._ensure_category(data["category_id"])

    def _validate_update(self, entity: Product, data: dict[str, Any]) -> None:
        if data.get("category_id") is not None:
            self._ensure_category(data["category_id"])
        if "price_cents" in data and data["price_cents"] is None:
            raise ValidationError("priceCents cannot be null")
