"""
Product endpoints.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rest_api.core.dependencies import require_day_open
from rest_api.routers._common.pagination import Pagination, get_pagination
from rest_api.services.domain import ProductService
from shared.config.constants import ALL_STAFF_ROLES, MANAGEMENT_ROLES, STAFF_ROLES, DayCloseCategory
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, require_roles
from shared.utils import response
from shared.utils.schemas import ProductAvailabilityUpdate, ProductCreate, ProductUpdate


router = APIRouter(prefix="/api/products", tags=["catalog"])

day_open = [Depends(require_day_open(DayCloseCategory.GENERAL))]


@router.get("")
def list_products(
    category_id: int | None = Query(default=None, alias="categoryId"),
    available: bool | None = None,
    search: str | None = None,
    min_price: int | None = Query(default=None, alias="minPrice", ge=0),
    max_price: int | None = Query(default=None, alias="maxPrice", ge=0),
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    products, total = ProductService(db).list_products(
        pagination,
        category_id=category_id,
        available=available,
        search=search,
        min_price_cents=min_price,
        max_price_cents=max_price,
    )
    return response.paginated(products, **pagination.to_dict(total))


@router.get("/category/{category_id}")
def list_products_by_category(
    category_id: int,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    return response.ok(ProductService(db).list_by_category(category_id))


@router.get("/{product_id}")
def get_product(product_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    return response.ok(ProductService(db).get_by_id(product_id))


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=day_open)
def create_product(body: ProductCreate, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    return response.created(ProductService(db).create(body.model_dump()), "Product created successfully")


@router.put("/{product_id}", dependencies=day_open)
def update_product(
    product_id: int,
    body: ProductUpdate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    product = ProductService(db).update(product_id, body.model_dump(exclude_unset=True))
    return response.ok(product, "Product updated successfully")


@router.patch("/{product_id}/availability", dependencies=day_open)
def set_product_availability(
    product_id: int,
    body: ProductAvailabilityUpdate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    # Waiters can mark a dish as sold out
    require_roles(ctx, STAFF_ROLES)
    product = ProductService(db).set_availability(product_id, body.is_available)
    return response.ok(product, "Product availability updated")


@router.delete("/{product_id}", dependencies=day_open)
def delete_product(product_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    ProductService(db).delete(product_id)
    return response.ok(None, "Product deleted successfully")
