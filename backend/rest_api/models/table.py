"""
Table Model: dining tables and their occupancy status.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, PKType

if TYPE_CHECKING:
    from .order import Order


class Table(AuditMixin, Base):
    """
    Physical table in the dining room.
    Status flips to OCCUPIED with the first order and back to AVAILABLE
    when its last active order is delivered or cancelled.
    """

    # "table" is a reserved SQL keyword
    __tablename__ = "restaurant_table"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    status: Mapped[str] = mapped_column(
        Text, default="AVAILABLE", nullable=False, index=True
    )  # AVAILABLE, OCCUPIED, RESERVED, OUT_OF_SERVICE
    qr_payload: Mapped[Optional[str]] = mapped_column(Text)  # URL encoded in the table QR

    __table_args__ = (
        Index("ix_table_number_active", "number", "is_active"),
    )

    orders: Mapped[list["Order"]] = relationship(back_populates="table")
