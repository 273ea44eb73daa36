"""
Daily Close Service.

Closing the business day stores the day's totals and locks order, payment
and inventory writes (see rest_api.core.dependencies.require_day_open)
until an ADMIN reopens it. Days are computed in settings.business_timezone.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from rest_api.models import DailyClose, Ingredient, Order, OrderItem, Payment
from rest_api.routers._common.pagination import Pagination
from shared.config.constants import TOP_PRODUCTS_LIMIT, OrderStatus, PaymentStatus
from shared.config.logging import daily_close_logger as logger
from shared.config.settings import settings
from shared.utils.exceptions import NotFoundError, ValidationError


def business_zone() -> ZoneInfo:
    return ZoneInfo(settings.business_timezone)


def business_today(now: datetime | None = None) -> date:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(business_zone()).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC [start, end) of a business day."""
    zone = business_zone()
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def active_close_for(db: Session, day: date) -> DailyClose | None:
    """The close of `day` that has not been reopened, if any."""
    return db.scalar(
        select(DailyClose)
        .where(DailyClose.business_date == day, DailyClose.reopened_at.is_(None))
        .order_by(DailyClose.closed_at.desc())
        .limit(1)
    )


def is_day_closed(db: Session, day: date | None = None) -> bool:
    return active_close_for(db, day or business_today()) is not None


class DailyCloseService:
    def __init__(self, db: Session):
        self._db = db

    def status(self) -> dict[str, Any]:
        close = active_close_for(self._db, business_today())
        return {
            "isClosed": close is not None,
            "canClose": close is None,
            "closeDate": close.closed_at if close else None,
            "closedBy": close.closed_by_name if close else None,
            "totalSales": close.total_sales_cents if close else 0,
            "totalOrders": close.total_orders if close else 0,
        }

    def pre_validation(self) -> dict[str, Any]:
        """
        Checks run before closing.

        Issues block the close; warnings are informational.
        """
        issues: list[str] = []
        warnings: list[str] = []

        unfinished = self._db.scalar(
            select(func.count(Order.id)).where(Order.status.in_(OrderStatus.UNFINISHED))
        ) or 0
        if unfinished:
            issues.append(f"{unfinished} orders must be completed before closing")

        pending_payments = self._db.scalar(
            select(func.count(Payment.id)).where(Payment.status == PaymentStatus.PENDING)
        ) or 0
        if pending_payments:
            warnings.append(f"{pending_payments} payments are pending")

        low_stock = self._db.scalar(
            select(func.count(Ingredient.id)).where(
                Ingredient.is_active.is_(True),
                Ingredient.current_stock <= Ingredient.min_stock,
            )
        ) or 0
        if low_stock:
            warnings.append(f"{low_stock} ingredients are low on stock")

        if is_day_closed(self._db):
            issues.append("The day has already been closed")

        return {"canClose": not issues, "issues": issues, "warnings": warnings}

    def day_summary(self, day: date) -> dict[str, Any]:
        """Totals of the DELIVERED orders created during `day`."""
        start, end = day_bounds(day)
        orders = list(
            self._db.scalars(
                select(Order)
                .options(selectinload(Order.items).selectinload(OrderItem.product))
                .where(
                    Order.status == OrderStatus.DELIVERED,
                    Order.created_at >= start,
                    Order.created_at < end,
                )
            )
        )
        quantities: Counter[str] = Counter()
        for order in orders:
            for item in order.items:
                quantities[item.product.name] += item.quantity

        return {
            "totalSales": sum(o.total_cents for o in orders),
            "totalOrders": len(orders),
            "topProducts": [
                {"name": name, "quantity": quantity}
                for name, quantity in quantities.most_common(TOP_PRODUCTS_LIMIT)
            ],
        }

    def execute(self, user_id: int | None, user_name: str | None, notes: str | None = None) -> DailyClose:
        """
        Close today.

        Raises:
            ValidationError: A pre-validation issue blocks the close.
        """
        check = self.pre_validation()
        if not check["canClose"]:
            raise ValidationError(
                "Cannot close day: " + ", ".join(check["issues"]),
                data={"issues": check["issues"]},
            )

        today = business_today()
        summary = self.day_summary(today)
        close = DailyClose(
            business_date=today,
            closed_by_id=user_id,
            closed_by_name=user_name,
            total_sales_cents=summary["totalSales"],
            total_orders=summary["totalOrders"],
            top_products=summary["topProducts"],
            notes=notes,
        )
        self._db.add(close)
        self._db.flush()
        logger.info(
            "Day closed",
            business_date=today.isoformat(),
            close_id=close.id,
            total_sales_cents=close.total_sales_cents,
            total_orders=close.total_orders,
            user_id=user_id,
        )
        return close

    def history(self, pagination: Pagination) -> tuple[list[DailyClose], int]:
        stmt = select(DailyClose).order_by(DailyClose.business_date.desc(), DailyClose.closed_at.desc())
        return pagination.apply(self._db, stmt)

    def reopen(self, user_id: int | None, reason: str) -> DailyClose:
        """
        Raises:
            NotFoundError: Today has no active close.
        """
        today = business_today()
        close = active_close_for(self._db, today)
        if close is None:
            raise NotFoundError("Daily close for today")
        close.reopened_at = datetime.now(timezone.utc)
        close.reopened_by_id = user_id
        close.reopen_reason = reason
        self._db.flush()
        logger.warning("Day reopened", business_date=today.isoformat(), close_id=close.id, user_id=user_id, reason=reason)
        return close
