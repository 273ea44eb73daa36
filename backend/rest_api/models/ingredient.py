"""
Inventory Models: Ingredient, StockMovement, StockAlert.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import StockLevel

from .base import AuditMixin, Base, PKType, utcnow

if TYPE_CHECKING:
    from .recipe import RecipeIngredient


class Ingredient(AuditMixin, Base):
    """
    Stocked raw material.
    current_stock is kept in `unit` and only changes through StockMovement rows.
    """

    __tablename__ = "ingredient"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    unit: Mapped[str] = mapped_column(Text, nullable=False)  # UNIT, KG, LITER, PIECE
    current_stock: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    min_stock: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    max_stock: Mapped[Optional[float]] = mapped_column(Float)
    unit_cost_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    supplier: Mapped[Optional[str]] = mapped_column(Text)

    recipe_lines: Mapped[list["RecipeIngredient"]] = relationship(back_populates="ingredient")
    movements: Mapped[list["StockMovement"]] = relationship(back_populates="ingredient")
    alerts: Mapped[list["StockAlert"]] = relationship(back_populates="ingredient")

    @property
    def stock_status(self) -> str:
        if self.current_stock <= 0:
            return StockLevel.OUT
        if self.current_stock <= self.min_stock:
            return StockLevel.LOW
        return StockLevel.OK

    @property
    def stock_value_cents(self) -> int:
        return round(self.current_stock * self.unit_cost_cents)


class StockMovement(Base):
    """Append-only stock ledger entry."""

    __tablename__ = "stock_movement"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    ingredient_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("ingredient.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)  # IN, OUT, ADJUSTMENT, WASTE
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    previous_stock: Mapped[float] = mapped_column(Float, nullable=False)
    new_stock: Mapped[float] = mapped_column(Float, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    reference: Mapped[Optional[str]] = mapped_column(Text)  # e.g. "order:12"
    user_id: Mapped[Optional[int]] = mapped_column(
        PKType, ForeignKey("app_user.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    ingredient: Mapped["Ingredient"] = relationship(back_populates="movements")


class StockAlert(Base):
    """Low / out of stock notice raised by a movement, or created manually."""

    __tablename__ = "stock_alert"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    ingredient_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("ingredient.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)  # LOW_STOCK, OUT_OF_STOCK, EXPIRED
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    ingredient: Mapped["Ingredient"] = relationship(back_populates="alerts")
