"""
Daily close endpoints.

Closing the day locks order, payment and inventory writes until an ADMIN
reopens it. The status reads are never locked.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.models import DailyClose
from rest_api.routers._common.pagination import Pagination, get_pagination
from rest_api.services.domain import DailyCloseService
from shared.config.constants import MANAGEMENT_ROLES, Roles
from shared.infrastructure.db import get_db, safe_commit
from shared.security.auth import ctx_user_id, current_user_context, require_roles
from shared.utils import response
from shared.utils.schemas import DailyCloseOutput, DailyCloseRequest, ReopenRequest


router = APIRouter(prefix="/api/daily-close", tags=["daily-close"])


def close_output(close: DailyClose) -> DailyCloseOutput:
    return DailyCloseOutput.model_validate(close)


@router.get("/status")
def close_status(ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    return response.ok(DailyCloseService(db).status())


@router.get("/pre-validation")
def pre_validation(ctx: dict = Depends(current_user_context), db: Session = Depends(get_db)) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    return response.ok(DailyCloseService(db).pre_validation())


@router.post("", status_code=status.HTTP_201_CREATED)
def execute_close(
    body: DailyCloseRequest | None = None,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    close = DailyCloseService(db).execute(
        user_id=ctx_user_id(ctx),
        user_name=ctx.get("name"),
        notes=body.notes if body else None,
    )
    safe_commit(db)
    return response.created(close_output(close), "Day closed successfully")


@router.get("/history")
def close_history(
    pagination: Pagination = Depends(get_pagination),
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, MANAGEMENT_ROLES)
    closes, total = DailyCloseService(db).history(pagination)
    return response.paginated([close_output(c) for c in closes], **pagination.to_dict(total))


@router.post("/reopen")
def reopen_day(
    body: ReopenRequest,
    ctx: dict = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> dict:
    require_roles(ctx, [Roles.ADMIN])
    close = DailyCloseService(db).reopen(ctx_user_id(ctx), body.reason)
    safe_commit(db)
    return response.ok(close_output(close), "Day reopened successfully")
