"""
Table endpoints.

Status changes are broadcast to waiters and management after commit.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from rest_api.core.dependencies import require_day_open
from rest_api.routers._common.pagination import Pagination, get_pagination
from rest_api.services.domain import TableService
from shared.config.constants import ALL_STAFF_ROLES, MANAGEMENT_ROLES, STAFF_ROLES, DayCloseCategory
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, require_roles
from shared.utils import response
from shared.utils.schemas import TableCreate, TableStatusUpdate, TableUpdate


router = APIRouter(prefix="/api/tables", tags=["tables"])

day_open = [Depends(require_day_open(DayCloseCategory.GENERAL))]


@router.get("")
def list_tables(
    status: str | None = None,
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    tables, total = TableService(db).list_tables(pagination, status=status)
    return response.paginated(tables, **pagination.to_dict(total))


@router.get("/available")
def list_available_tables(ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    return response.ok(TableService(db).list_available())


@router.get("/number/{number}")
def get_table_by_number(number: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    return response.ok(TableService(db).get_by_number(number))


@router.get("/{table_id}")
def get_table(table_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    return response.ok(TableService(db).get_by_id(table_id))


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=day_open)
def create_table(body: TableCreate, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    return response.created(TableService(db).create(body.model_dump()), "Table created successfully")


@router.put("/{table_id}", dependencies=day_open)
async def update_table(
    table_id: int,
    body: TableUpdate,
    request: Request,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = TableService(db)
    previous_status = service.get_by_id(table_id).status
    table = service.update(table_id, body.model_dump(exclude_unset=True))

    if table.status != previous_status:
        await request.app.state.broadcaster.notify_table_status(table.id, table.status, table.number)
    return response.ok(table, "Table updated successfully")


@router.patch("/{table_id}/status", dependencies=day_open)
async def update_table_status(
    table_id: int,
    body: TableStatusUpdate,
    request: Request,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, STAFF_ROLES)
    table, changed = TableService(db).set_status(table_id, body.status)

    if changed:
        await request.app.state.broadcaster.notify_table_status(table.id, table.status, table.number)
    return response.ok(table, "Table status updated")


@router.post("/{table_id}/qr", dependencies=day_open)
def generate_table_qr(table_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    return response.ok(TableService(db).generate_qr(table_id), "QR code generated")


@router.delete("/{table_id}", dependencies=day_open)
def delete_table(table_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    TableService(db).delete(table_id)
    return response.ok(None, "Table deleted successfully")
