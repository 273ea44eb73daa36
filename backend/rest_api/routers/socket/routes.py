"""
Socket management endpoints.

Manual notifications go through the same broadcaster as the domain
events; the response carries the delivery result.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request

from rest_api.core.dependencies import get_broadcaster
from shared.config.constants import MANAGEMENT_ROLES, Roles
from shared.security.auth import current_user_context, require_roles
from shared.utils import response
from shared.utils.exceptions import ValidationError
from shared.utils.schemas import EmergencyNotifyRequest, LowStockNotifyRequest, TableNotifyRequest


router = APIRouter(prefix="/api/socket", tags=["socket"])

TABLE_NOTIFY_ROLES = frozenset({Roles.WAITER, Roles.ADMIN, Roles.MANAGER})


@router.get("/stats")
def socket_stats(request: Request, ctx: dict = Depends(current_user_context)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    return response.ok(request.app.state.registry.stats())


@router.get("/users/{role}")
def users_by_role(role: str, request: Request, ctx: dict = Depends(current_user_context)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    role = role.upper()
    if role not in Roles.ALL:
        raise ValidationError(f"Unknown role: {role}")
    users = request.app.state.registry.list_by_role(role)
    return response.ok([u.to_dict() for u in users])


@router.post("/notify/emergency")
async def notify_emergency(
    body: EmergencyNotifyRequest,
    request: Request,
    ctx: dict = Depends(current_user_context),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    result = await get_broadcaster(request).notify_emergency(body.message, body.data)
    return response.ok(asdict(result), "Emergency notification sent")


@router.post("/notify/table/{table_id}")
async def notify_table(
    table_id: int,
    body: TableNotifyRequest,
    request: Request,
    ctx: dict = Depends(current_user_context),
) -> dict:
    require_roles(ctx, TABLE_NOTIFY_ROLES)
    result = await get_broadcaster(request).notify_table(table_id, body.message, body.data)
    return response.ok(asdict(result), "Table notification sent")


@router.post("/notify/low-stock")
async def notify_low_stock(
    body: LowStockNotifyRequest,
    request: Request,
    ctx: dict = Depends(current_user_context),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    result = await get_broadcaster(request).notify_low_stock(
        {
            "name": body.product_name,
            "stock": body.stock,
            "unit": body.unit,
            "alertType": body.alert_type,
        }
    )
    return response.ok(asdict(result), "Low stock notification sent")
