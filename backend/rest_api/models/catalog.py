"""
Catalog Models: Category, Product.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, PKType

if TYPE_CHECKING:
    from .recipe import Recipe


class Category(AuditMixin, Base):
    """Menu category (Starters, Mains, Drinks...)."""

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    products: Mapped[list["Product"]] = relationship(back_populates="category")


class Product(AuditMixin, Base):
    """
    Menu item.
    Prices are stored in cents. `is_available` toggles it off the menu
    without deleting it.
    """

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    category_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("category.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    category: Mapped["Category"] = relationship(back_populates="products")
    recipe: Mapped[Optional["Recipe"]] = relationship(back_populates="product", uselist=False)

    @property
    def orderable(self) -> bool:
        return self.is_active and self.is_available
