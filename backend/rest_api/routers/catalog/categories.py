"""
Category endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.core.dependencies import require_day_open
from rest_api.routers._common.pagination import Pagination, get_pagination
from rest_api.services.domain import CategoryService
from shared.config.constants import ALL_STAFF_ROLES, MANAGEMENT_ROLES, DayCloseCategory
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, require_roles
from shared.utils import response
from shared.utils.schemas import CategoryCreate, CategoryUpdate


router = APIRouter(prefix="/api/categories", tags=["catalog"])

day_open = [Depends(require_day_open(DayCloseCategory.GENERAL))]


@router.get("")
def list_categories(
    search: str | None = None,
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    categories, total = CategoryService(db).list_categories(pagination, search=search)
    return response.paginated(categories, **pagination.to_dict(total))


@router.get("/{category_id}")
def get_category(category_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    return response.ok(CategoryService(db).get_by_id(category_id))


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=day_open)
def create_category(body: CategoryCreate, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    return response.created(CategoryService(db).create(body.model_dump()), "Category created successfully")


@router.put("/{category_id}", dependencies=day_open)
def update_category(
    category_id: int,
    body: CategoryUpdate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    category = CategoryService(db).update(category_id, body.model_dump(exclude_unset=True))
    return response.ok(category, "Category updated successfully")


@router.delete("/{category_id}", dependencies=day_open)
def delete_category(category_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    CategoryService(db).delete(category_id)
    return response.ok(None, "Category deleted successfully")
