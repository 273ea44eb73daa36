"""
Staff user management endpoints. ADMIN and MANAGER only.

MANAGER cannot create, promote or modify ADMIN accounts.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.core.dependencies import require_day_open
from rest_api.routers._common.pagination import Pagination, get_pagination
from rest_api.services.domain import UserService
from shared.config.constants import MANAGEMENT_ROLES, DayCloseCategory, Roles
from shared.infrastructure.db import get_db
from shared.security.auth import ctx_user_id, current_user_context, require_roles
from shared.utils import response
from shared.utils.exceptions import ForbiddenError
from shared.utils.schemas import UserCreate, UserStatusUpdate, UserUpdate


router = APIRouter(prefix="/api/users", tags=["users"])

day_open = [Depends(require_day_open(DayCloseCategory.GENERAL))]


def _guard_admin_accounts(ctx: dict, *roles: str | None) -> None:
    if ctx["role"] != Roles.ADMIN and Roles.ADMIN in roles:
        raise ForbiddenError("manage ADMIN accounts", user=ctx["sub"])


@router.get("")
def list_users(
    role: str | None = None,
    search: str | None = None,
    include_inactive: bool = False,
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    users, total = UserService(db).list_users(pagination, role=role, search=search, include_inactive=include_inactive)
    return response.paginated(users, **pagination.to_dict(total))


@router.get("/{user_id}")
def get_user(user_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    return response.ok(UserService(db).get_by_id(user_id, include_inactive=True))


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=day_open)
def create_user(body: UserCreate, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    _guard_admin_accounts(ctx, body.role)
    user = UserService(db).create(body.model_dump())
    return response.created(user, "User created successfully")


@router.put("/{user_id}", dependencies=day_open)
def update_user(
    user_id: int,
    body: UserUpdate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = UserService(db)
    _guard_admin_accounts(ctx, body.role, service.get_by_id(user_id).role)
    user = service.update(user_id, body.model_dump(exclude_unset=True))
    return response.ok(user, "User updated successfully")


@router.patch("/{user_id}/status", dependencies=day_open)
def set_user_status(
    user_id: int,
    body: UserStatusUpdate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = UserService(db)
    _guard_admin_accounts(ctx, service.get_by_id(user_id, include_inactive=True).role)
    user = service.set_active(user_id, body.is_active, acting_user_id=ctx_user_id(ctx))
    return response.ok(user, "User activated" if body.is_active else "User deactivated")


@router.delete("/{user_id}", dependencies=day_open)
def delete_user(user_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = UserService(db)
    _guard_admin_accounts(ctx, service.get_by_id(user_id).role)
    service.delete_user(user_id, acting_user_id=ctx_user_id(ctx))
    return response.ok(None, "User deleted successfully")
