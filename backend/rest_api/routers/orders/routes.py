"""
Order endpoints.

Writes run in one transaction: the handler commits, reloads the order and
then broadcasts. Nothing is broadcast when the transaction fails.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from rest_api.core.dependencies import get_broadcaster, require_day_open
from rest_api.routers._common.pagination import Pagination, get_pagination
from rest_api.services.domain import OrderChange, OrderService, order_output, order_payload
from shared.config.constants import (
    ALL_STAFF_ROLES,
    KITCHEN_ACCESS_ROLES,
    MANAGEMENT_ROLES,
    STAFF_ROLES,
    DayCloseCategory,
)
from shared.infrastructure.db import get_db, safe_commit
from shared.security.auth import ctx_user_id, current_user_context, require_roles
from shared.utils import response
from shared.utils.schemas import OrderCreate, OrderStatusUpdate, PaymentCreate, PaymentOutput
from ws_gateway.broadcaster import EventBroadcaster


router = APIRouter(prefix="/api/orders", tags=["orders"])


async def _broadcast_status_change(
    broadcaster: EventBroadcaster,
    change: OrderChange,
    estimated_time: int | None = None,
) -> None:
    order = change.order
    await broadcaster.notify_order_status(order.id, order.status, estimated_time)
    if change.table_status is not None:
        await broadcaster.notify_table_status(order.table_id, change.table_status, order.table.number)
    for item in change.low_stock:
        await broadcaster.notify_low_stock(item)


@router.get("")
def list_orders(
    status: str | None = None,
    table_id: int | None = Query(default=None, alias="tableId"),
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    orders, total = OrderService(db).list_orders(pagination, status=status, table_id=table_id)
    return response.paginated([order_output(o) for o in orders], **pagination.to_dict(total))


@router.get("/kitchen")
def list_kitchen_orders(ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    """CONFIRMED and PREPARING orders, oldest first."""
    require_roles(ctx, KITCHEN_ACCESS_ROLES)
    return response.ok([order_output(o) for o in OrderService(db).kitchen_orders()])


@router.get("/table/{table_id}")
def list_table_orders(
    table_id: int,
    status: str | None = None,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    return response.ok([order_output(o) for o in OrderService(db).table_orders(table_id, status=status)])


@router.get("/{order_id}")
def get_order(order_id: int, ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    return response.ok(order_output(OrderService(db).get_order(order_id)))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_day_open(DayCloseCategory.ORDERS))],
)
async def create_order(
    body: OrderCreate,
    request: Request,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, STAFF_ROLES)
    service = OrderService(db)
    change = service.create_order(body.table_id, body.items, body.notes, ctx_user_id(ctx))
    safe_commit(db)

    order = service.get_order(change.order.id)
    broadcaster = get_broadcaster(request)
    await broadcaster.notify_new_order(order_payload(order))
    if change.table_status is not None:
        await broadcaster.notify_table_status(order.table_id, change.table_status, order.table.number)

    return response.created(order_output(order), "Order created successfully")


@router.put(
    "/{order_id}/status",
    dependencies=[Depends(require_day_open(DayCloseCategory.ORDERS))],
)
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    request: Request,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, ALL_STAFF_ROLES)
    service = OrderService(db)
    change = service.update_status(order_id, body.status, body.notes, ctx_user_id(ctx))
    safe_commit(db)

    change.order = service.get_order(order_id)
    await _broadcast_status_change(get_broadcaster(request), change, body.estimated_time)
    return response.ok(order_output(change.order), "Order status updated")


@router.delete(
    "/{order_id}",
    dependencies=[Depends(require_day_open(DayCloseCategory.ORDERS))],
)
async def cancel_order(
    order_id: int,
    request: Request,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    service = OrderService(db)
    change = service.cancel_order(order_id, ctx_user_id(ctx))
    safe_commit(db)

    change.order = service.get_order(order_id)
    await _broadcast_status_change(get_broadcaster(request), change)
    return response.ok(order_output(change.order), "Order cancelled")


@router.post(
    "/{order_id}/payments",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_day_open(DayCloseCategory.PAYMENTS))],
)
def add_payment(
    order_id: int,
    body: PaymentCreate,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, STAFF_ROLES)
    payment = OrderService(db).add_payment(order_id, body.amount_cents, body.method)
    safe_commit(db)
    db.refresh(payment)
    return response.created(PaymentOutput.model_validate(payment), "Payment registered")
