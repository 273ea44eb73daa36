"""
Report Service: sales reports, analytics and CSV export.

All amounts are integer cents. Dates are business days in
settings.business_timezone; grouping keys are ISO strings.
"""

from __future__ import annotations

import csv
import io
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from rest_api.models import Order, OrderItem, Product, Table
from rest_api.services.domain.daily_close_service import business_today, business_zone, day_bounds
from shared.config.constants import OrderStatus, PaymentStatus, TOP_PRODUCTS_LIMIT
from shared.utils.exceptions import ValidationError

GROUP_BY_OPTIONS = ("day", "week", "month")
COMPARE_OPTIONS = ("previous", "last_year")
SALES_TOP_PRODUCTS = 10

CSV_COLUMNS = [
    "orderId",
    "createdAt",
    "tableNumber",
    "status",
    "product",
    "category",
    "quantity",
    "unitPriceCents",
    "subtotalCents",
    "orderTotalCents",
]


def as_local(dt: datetime) -> datetime:
    # SQLite returns naive datetimes; they are stored in UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(business_zone())


def period_key(dt: datetime, group_by: str) -> str:
    day = as_local(dt).date()
    if group_by == "week":
        # Weeks start on Sunday
        return (day - timedelta(days=(day.weekday() + 1) % 7)).isoformat()
    if group_by == "month":
        return f"{day.year}-{day.month:02d}"
    return day.isoformat()


def percentage_change(old: float, new: float) -> float:
    if old == 0:
        return 100.0 if new > 0 else 0.0
    return round((new - old) / old * 100, 2)


def period_metrics(orders: list[Order]) -> dict[str, Any]:
    total_sales = sum(o.total_cents for o in orders)
    total_orders = len(orders)
    return {
        "totalSales": total_sales,
        "totalOrders": total_orders,
        "averageOrderValue": round(total_sales / total_orders, 2) if total_orders else 0,
    }


class ReportService:
    def __init__(self, db: Session):
        self._db = db

    def _orders_between(
        self,
        start: datetime,
        end: datetime,
        status: str | None = OrderStatus.DELIVERED,
        user_id: int | None = None,
        table_id: int | None = None,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .options(
                selectinload(Order.items).selectinload(OrderItem.product).selectinload(Product.category),
                selectinload(Order.payments),
                selectinload(Order.table),
            )
            .where(Order.created_at >= start, Order.created_at < end)
            .order_by(Order.created_at.asc(), Order.id.asc())
        )
        if status:
            stmt = stmt.where(Order.status == status)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if table_id is not None:
            stmt = stmt.where(Order.table_id == table_id)
        return list(self._db.scalars(stmt))

    @staticmethod
    def _range(start_date: date, end_date: date) -> tuple[datetime, datetime]:
        if start_date > end_date:
            raise ValidationError("startDate must not be after endDate")
        return day_bounds(start_date)[0], day_bounds(end_date)[1]

    # =========================================================================
    # Sales
    # =========================================================================

    def sales_report(
        self,
        start_date: date,
        end_date: date,
        group_by: str = "day",
        status: str | None = OrderStatus.DELIVERED,
        user_id: int | None = None,
        table_id: int | None = None,
        category_id: int | None = None,
    ) -> dict[str, Any]:
        """
        Raises:
            ValidationError: Bad range or grouping.
        """
        if group_by not in GROUP_BY_OPTIONS:
            raise ValidationError(f"groupBy must be one of: {', '.join(GROUP_BY_OPTIONS)}")
        start, end = self._range(start_date, end_date)
        orders = self._orders_between(start, end, status=status, user_id=user_id, table_id=table_id)
        if category_id is not None:
            orders = [o for o in orders if any(i.product.category_id == category_id for i in o.items)]

        grouped: dict[str, dict[str, int]] = defaultdict(lambda: {"sales": 0, "orders": 0})
        products: dict[str, dict[str, int]] = defaultdict(lambda: {"quantity": 0, "revenue": 0})
        categories: dict[str, int] = defaultdict(int)
        methods: dict[str, int] = defaultdict(int)

        for order in orders:
            bucket = grouped[period_key(order.created_at, group_by)]
            bucket["sales"] += order.total_cents
            bucket["orders"] += 1
            for item in order.items:
                products[item.product.name]["quantity"] += item.quantity
                products[item.product.name]["revenue"] += item.subtotal_cents
                categories[item.product.category.name] += item.subtotal_cents
            for payment in order.payments:
                if payment.status == PaymentStatus.COMPLETED:
                    methods[payment.method] += payment.amount_cents

        summary = period_metrics(orders)
        summary["period"] = {"startDate": start_date.isoformat(), "endDate": end_date.isoformat()}
        top = sorted(
            ({"name": name, **data} for name, data in products.items()),
            key=lambda p: p["revenue"],
            reverse=True,
        )
        return {
            "summary": summary,
            "groupedData": [{"period": key, **grouped[key]} for key in sorted(grouped)],
            "topProducts": top[:SALES_TOP_PRODUCTS],
            "salesByCategory": sorted(
                ({"category": name, "revenue": revenue} for name, revenue in categories.items()),
                key=lambda c: c["revenue"],
                reverse=True,
            ),
            "paymentMethodStats": [{"method": m, "amount": amount} for m, amount in sorted(methods.items())],
        }

    # =========================================================================
    # Analytics
    # =========================================================================

    def analytics(self, period_days: int = 30, compare_with: str = "previous") -> dict[str, Any]:
        """Compare the last `period_days` days against the previous period or the same period last year."""
        if period_days < 1:
            raise ValidationError("period must be at least 1 day")
        if compare_with not in COMPARE_OPTIONS:
            raise ValidationError(f"compareWith must be one of: {', '.join(COMPARE_OPTIONS)}")

        today = business_today()
        first_day = today - timedelta(days=period_days - 1)
        start, end = day_bounds(first_day)[0], day_bounds(today)[1]
        if compare_with == "previous":
            cmp_start, cmp_end = start - timedelta(days=period_days), start
        else:
            cmp_start, cmp_end = start - timedelta(days=365), end - timedelta(days=365)

        current = self._orders_between(start, end)
        comparison = self._orders_between(cmp_start, cmp_end)
        current_metrics = period_metrics(current)
        comparison_metrics = period_metrics(comparison)

        daily = {(first_day + timedelta(days=i)).isoformat(): {"sales": 0, "orders": 0} for i in range(period_days)}
        hourly = [{"hour": hour, "orders": 0, "sales": 0} for hour in range(24)]
        for order in current:
            local = as_local(order.created_at)
            key = local.date().isoformat()
            if key in daily:
                daily[key]["sales"] += order.total_cents
                daily[key]["orders"] += 1
            hourly[local.hour]["orders"] += 1
            hourly[local.hour]["sales"] += order.total_cents

        return {
            "currentPeriod": current_metrics,
            "comparisonPeriod": comparison_metrics,
            "changes": {
                "salesChange": percentage_change(comparison_metrics["totalSales"], current_metrics["totalSales"]),
                "ordersChange": percentage_change(comparison_metrics["totalOrders"], current_metrics["totalOrders"]),
                "avgOrderValueChange": percentage_change(
                    comparison_metrics["averageOrderValue"], current_metrics["averageOrderValue"]
                ),
            },
            "dailyTrends": [{"date": key, **value} for key, value in daily.items()],
            "hourlyAnalysis": hourly,
            "trendingProducts": self._trending(current, comparison),
        }

    @staticmethod
    def _trending(current: list[Order], comparison: list[Order]) -> list[dict[str, Any]]:
        def quantities(orders: list[Order]) -> dict[str, int]:
            counts: dict[str, int] = defaultdict(int)
            for order in orders:
                for item in order.items:
                    counts[item.product.name] += item.quantity
            return counts

        now, before = quantities(current), quantities(comparison)
        trends = [
            {
                "product": name,
                "currentQuantity": qty,
                "comparisonQuantity": before.get(name, 0),
                "change": percentage_change(before.get(name, 0), qty),
            }
            for name, qty in now.items()
        ]
        trends.sort(key=lambda t: t["change"], reverse=True)
        return trends[:SALES_TOP_PRODUCTS]

    # =========================================================================
    # Dashboard
    # =========================================================================

    def dashboard(self) -> dict[str, Any]:
        """Today at a glance plus the last 7 days."""
        today = business_today()
        start, end = day_bounds(today)

        today_orders = self._db.scalar(
            select(func.count(Order.id)).where(Order.created_at >= start, Order.created_at < end)
        ) or 0
        delivered_today = self._orders_between(start, end)
        active_orders = self._db.scalar(
            select(func.count(Order.id)).where(Order.status.in_(OrderStatus.ACTIVE))
        ) or 0
        total_tables = self._db.scalar(
            select(func.count(Table.id)).where(Table.is_active.is_(True))
        ) or 0
        occupied = self._db.scalar(
            select(func.count(Table.id)).where(Table.is_active.is_(True), Table.status == "OCCUPIED")
        ) or 0

        week_start = day_bounds(today - timedelta(days=6))[0]
        week_orders = self._orders_between(week_start, end)
        last_7_days = {(today - timedelta(days=i)).isoformat(): {"sales": 0, "orders": 0} for i in range(6, -1, -1)}
        for order in week_orders:
            key = as_local(order.created_at).date().isoformat()
            if key in last_7_days:
                last_7_days[key]["sales"] += order.total_cents
                last_7_days[key]["orders"] += 1

        top: dict[str, int] = defaultdict(int)
        for order in delivered_today:
            for item in order.items:
                top[item.product.name] += item.quantity

        return {
            "today": {
                "orders": today_orders,
                "sales": sum(o.total_cents for o in delivered_today),
                "activeOrders": active_orders,
                "tableOccupancy": {
                    "total": total_tables,
                    "occupied": occupied,
                    "percentage": round(occupied / total_tables * 100, 2) if total_tables else 0,
                },
            },
            "weekly": period_metrics(week_orders),
            "topProductsToday": [
                {"name": name, "quantity": qty}
                for name, qty in sorted(top.items(), key=lambda kv: kv[1], reverse=True)[:TOP_PRODUCTS_LIMIT]
            ],
            "last7Days": [{"date": key, **value} for key, value in last_7_days.items()],
        }

    # =========================================================================
    # Export
    # =========================================================================

    def export_csv(self, start_date: date, end_date: date, status: str | None = OrderStatus.DELIVERED) -> str:
        """One row per order line."""
        start, end = self._range(start_date, end_date)
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for order in self._orders_between(start, end, status=status):
            created = as_local(order.created_at).isoformat(timespec="seconds")
            for item in order.items:
                writer.writerow(
                    {
                        "orderId": order.id,
                        "createdAt": created,
                        "tableNumber": order.table.number if order.table else "",
                        "status": order.status,
                        "product": item.product.name,
                        "category": item.product.category.name,
                        "quantity": item.quantity,
                        "unitPriceCents": item.unit_price_cents,
                        "subtotalCents": item.subtotal_cents,
                        "orderTotalCents": order.total_cents,
                    }
                )
        return output.getvalue()
