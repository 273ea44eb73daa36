"""
Order Models: Order, OrderItem.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, PKType, utcnow

if TYPE_CHECKING:
    from .billing import Payment
    from .catalog import Product
    from .table import Table
    from .user import User


class Order(Base):
    """
    An order placed for a table.
    Orders are never deleted: CANCELLED is a terminal status.
    total_cents is fixed at creation from the captured unit prices.
    """

    __tablename__ = "restaurant_order"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    table_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("restaurant_table.id"), nullable=False, index=True
    )
    # Null for orders placed with a demo identity
    user_id: Mapped[Optional[int]] = mapped_column(
        PKType, ForeignKey("app_user.id"), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(
        Text, default="PENDING", nullable=False, index=True
    )  # PENDING, CONFIRMED, PREPARING, READY, DELIVERED, CANCELLED
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow, nullable=True
    )

    __table_args__ = (
        Index("ix_order_table_status", "table_id", "status"),
    )

    table: Mapped["Table"] = relationship(back_populates="orders")
    user: Mapped[Optional["User"]] = relationship()
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan"
    )
    payments: Mapped[list["Payment"]] = relationship(back_populates="order")


class OrderItem(Base):
    """Line of an order. unit_price_cents is the product price when ordered."""

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("restaurant_order.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("product.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped["Product"] = relationship()

    @property
    def subtotal_cents(self) -> int:
        return self.unit_price_cents * self.quantity
