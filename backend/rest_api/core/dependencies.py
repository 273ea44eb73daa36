"""
Shared FastAPI dependencies.

Usage:
    from rest_api.core.dependencies import require_day_open, get_broadcaster

    @router.post("", dependencies=[Depends(require_day_open(DayCloseCategory.ORDERS))])
    async def create_order(...):
        ...
"""

from typing import Any, Callable

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rest_api.services.domain.daily_close_service import business_today, is_day_closed
from shared.config.constants import DAY_CLOSE_BYPASS, DayCloseCategory
from shared.config.logging import daily_close_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.utils.exceptions import LockedError, ServiceUnavailableError
from ws_gateway.broadcaster import EventBroadcaster

CATEGORY_LABELS = {
    DayCloseCategory.ORDERS: "orders",
    DayCloseCategory.PAYMENTS: "payments",
    DayCloseCategory.INVENTORY: "inventory changes",
    DayCloseCategory.GENERAL: "changes",
}


def require_day_open(category: DayCloseCategory) -> Callable[..., None]:
    """
    Dependency factory refusing writes while the business day is closed.

    Raises:
        LockedError: Today has an active close (423).
        ServiceUnavailableError: The lookup failed and fail-open is off.
    """

    def dependency(
        db: Session = Depends(get_db),
        ctx: dict[str, Any] = Depends(current_user_context),
    ) -> None:
        if ctx.get("role") in DAY_CLOSE_BYPASS.get(category, frozenset()):
            return

        try:
            closed = is_day_closed(db)
        except SQLAlchemyError as e:
            if settings.daily_close_fail_open:
                logger.warning("Daily close check failed, allowing request", category=category.value, error=str(e))
                # The handler reuses this session
                db.rollback()
                return
            raise ServiceUnavailableError("daily close check")

        if closed:
            raise LockedError(
                f"The business day is closed: {CATEGORY_LABELS[category]} are not allowed until it is reopened",
                category=category.value,
                business_date=business_today().isoformat(),
                role=ctx.get("role"),
            )

    return dependency


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster
