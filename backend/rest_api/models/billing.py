"""
Billing Models: Payment.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, PKType, utcnow

if TYPE_CHECKING:
    from .order import Order


class Payment(Base):
    """Payment registered against an order."""

    __tablename__ = "payment"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("restaurant_order.id"), nullable=False, index=True
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[str] = mapped_column(Text, nullable=False)  # CASH, CARD, WEBPAY
    status: Mapped[str] = mapped_column(
        Text, default="COMPLETED", nullable=False
    )  # PENDING, COMPLETED, FAILED, REFUNDED
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    order: Mapped["Order"] = relationship(back_populates="payments")
