"""
Sales reports, analytics and CSV export (ADMIN/MANAGER).

`status` defaults to DELIVERED; pass status=ALL to include every order.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from rest_api.services.domain import ReportService
from shared.config.constants import MANAGEMENT_ROLES, OrderStatus
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, require_roles
from shared.utils import response


router = APIRouter(prefix="/api/reports", tags=["reports"])


def _status_filter(value: str | None) -> str | None:
    if value is None:
        return OrderStatus.DELIVERED
    return None if value.upper() == "ALL" else value.upper()


@router.get("/sales")
def sales_report(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    group_by: str = Query(default="day", alias="groupBy"),
    order_status: str | None = Query(default=None, alias="status"),
    user_id: int | None = Query(default=None, alias="userId"),
    table_id: int | None = Query(default=None, alias="tableId"),
    category_id: int | None = Query(default=None, alias="categoryId"),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    report = ReportService(db).sales_report(
        start_date,
        end_date,
        group_by=group_by,
        status=_status_filter(order_status),
        user_id=user_id,
        table_id=table_id,
        category_id=category_id,
    )
    return response.ok(report)


@router.get("/analytics")
def analytics(
    period: int = Query(default=30, ge=1, le=366),
    compare_with: str = Query(default="previous", alias="compareWith"),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    return response.ok(ReportService(db).analytics(period_days=period, compare_with=compare_with))


@router.get("/dashboard")
def dashboard(ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    return response.ok(ReportService(db).dashboard())


@router.get("/export/csv")
def export_csv(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    order_status: str | None = Query(default=None, alias="status"),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
):
    require_roles(ctx, MANAGEMENT_ROLES)
    content = ReportService(db).export_csv(start_date, end_date, status=_status_filter(order_status))
    filename = f"sales_{start_date.isoformat()}_{end_date.isoformat()}.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
