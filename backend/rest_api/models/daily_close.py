"""
Daily Close Model: end-of-day lock and summary.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, PKType, utcnow


class DailyClose(Base):
    """
    Closing of a business day.

    While a row for today has reopened_at IS NULL, order, payment and
    inventory writes are refused. At most one such row exists per day;
    reopening keeps the row as history.
    """

    __tablename__ = "daily_close"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    business_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    closed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    closed_by_id: Mapped[Optional[int]] = mapped_column(
        PKType, ForeignKey("app_user.id"), nullable=True
    )
    closed_by_name: Mapped[Optional[str]] = mapped_column(Text)
    total_sales_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_orders: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    top_products: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    reopened_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    reopened_by_id: Mapped[Optional[int]] = mapped_column(
        PKType, ForeignKey("app_user.id"), nullable=True
    )
    reopen_reason: Mapped[Optional[str]] = mapped_column(Text)

    @property
    def is_open(self) -> bool:
        """True once the close has been reopened."""
        return self.reopened_at is not None
