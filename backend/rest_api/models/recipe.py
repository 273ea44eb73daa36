"""
Recipe Models: Recipe, RecipeIngredient.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, PKType

if TYPE_CHECKING:
    from .catalog import Product
    from .ingredient import Ingredient


class Recipe(AuditMixin, Base):
    """
    Bill of materials for one product.
    Quantities are per single unit of the product sold.
    """

    __tablename__ = "recipe"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("product.id"), nullable=False, unique=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    instructions: Mapped[Optional[str]] = mapped_column(Text)
    portions: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    prep_minutes: Mapped[Optional[int]] = mapped_column(Integer)

    product: Mapped["Product"] = relationship(back_populates="recipe")
    ingredients: Mapped[list["RecipeIngredient"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan"
    )

    @property
    def max_portions(self) -> int:
        """How many units the current stock can produce (0 with no ingredients)."""
        if not self.ingredients:
            return 0
        return min(
            math.floor(line.ingredient.current_stock / line.quantity)
            for line in self.ingredients
        )

    @property
    def can_prepare(self) -> bool:
        return self.max_portions > 0

    @property
    def total_cost_cents(self) -> int:
        return round(
            sum(line.quantity * line.ingredient.unit_cost_cents for line in self.ingredients)
        )


class RecipeIngredient(Base):
    """Quantity of one ingredient used by a recipe."""

    __tablename__ = "recipe_ingredient"

    id: Mapped[int] = mapped_column(PKType, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("recipe.id"), nullable=False, index=True
    )
    ingredient_id: Mapped[int] = mapped_column(
        PKType, ForeignKey("ingredient.id"), nullable=False, index=True
    )
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_ingredient"),
    )

    recipe: Mapped["Recipe"] = relationship(back_populates="ingredients")
    ingredient: Mapped["Ingredient"] = relationship(back_populates="recipe_lines")
