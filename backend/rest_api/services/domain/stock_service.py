"""
Stock Domain Service.

Ingredients, stock movements and stock alerts. Every stock change goes
through apply_movement(), which writes the ledger row, updates the
ingredient and raises an alert when the new level is low or out.
Nothing here commits: callers own the transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import AlertType, MovementType, OrderStatus
from shared.config.logging import inventory_logger as logger
from shared.config.settings import settings
from shared.utils.exceptions import (
    ConflictError,
    DuplicateEntityError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from shared.utils.schemas import IngredientCreate, IngredientUpdate
from rest_api.models import (
    Ingredient,
    Order,
    OrderItem,
    Product,
    Recipe,
    RecipeIngredient,
    StockAlert,
    StockMovement,
)
from rest_api.models.base import utcnow
from rest_api.routers._common.pagination import Pagination

ORDER_PROCESSING_REASON = "Order processing"


def order_reference(order_id: int) -> str:
    return f"order:{order_id}"


@dataclass
class StockChange:
    """Result of one movement. `alert` is set when the change raised one."""

    ingredient: Ingredient
    movement: StockMovement
    alert: StockAlert | None = None

    def low_stock_payload(self) -> dict[str, Any] | None:
        """Data for the low-stock broadcast, or None without an alert."""
        if self.alert is None:
            return None
        return {
            "ingredientId": self.ingredient.id,
            "name": self.ingredient.name,
            "stock": self.ingredient.current_stock,
            "minStock": self.ingredient.min_stock,
            "unit": self.ingredient.unit,
            "alertType": self.alert.type,
        }


@dataclass
class OrderDeduction:
    order_id: int
    changes: list[StockChange] = field(default_factory=list)

    @property
    def alerts(self) -> list[dict[str, Any]]:
        return [p for p in (c.low_stock_payload() for c in self.changes) if p is not None]


class StockService:
    """Domain service for ingredients and stock levels."""

    def __init__(self, db: Session):
        self._db = db

    # =========================================================================
    # Ingredients
    # =========================================================================

    def get_ingredient(self, ingredient_id: int, include_inactive: bool = False) -> Ingredient:
        ingredient = self._db.get(Ingredient, ingredient_id)
        if ingredient is None or (not ingredient.is_active and not include_inactive):
            raise NotFoundError("Ingredient", ingredient_id)
        return ingredient

    def list_ingredients(
        self,
        pagination: Pagination,
        search: str | None = None,
        low_stock: bool = False,
    ) -> tuple[list[Ingredient], int]:
        stmt = select(Ingredient).where(Ingredient.is_active.is_(True))
        if search:
            stmt = stmt.where(Ingredient.name.ilike(f"%{search}%"))
        if low_stock:
            stmt = stmt.where(Ingredient.current_stock <= Ingredient.min_stock)
        return pagination.apply(self._db, stmt.order_by(Ingredient.name))

    def _ensure_unique_name(self, name: str, exclude_id: int | None = None) -> None:
        stmt = select(Ingredient.id).where(
            func.lower(Ingredient.name) == name.lower(),
            Ingredient.is_active.is_(True),
        )
        if exclude_id is not None:
            stmt = stmt.where(Ingredient.id != exclude_id)
        if self._db.scalar(stmt) is not None:
            raise DuplicateEntityError("Ingredient", name)

    @staticmethod
    def _check_bounds(min_stock: float, max_stock: float | None) -> None:
        if max_stock is not None and max_stock < min_stock:
            raise ValidationError("maxStock must be greater than or equal to minStock")

    def create_ingredient(self, data: IngredientCreate) -> Ingredient:
        self._ensure_unique_name(data.name)
        min_stock = data.min_stock if data.min_stock is not None else settings.low_stock_threshold_default
        self._check_bounds(min_stock, data.max_stock)

        ingredient = Ingredient(
            name=data.name,
            description=data.description,
            unit=data.unit,
            current_stock=data.current_stock,
            min_stock=min_stock,
            max_stock=data.max_stock,
            unit_cost_cents=data.unit_cost_cents,
            supplier=data.supplier,
        )
        self._db.add(ingredient)
        self._db.flush()
        logger.info("Ingredient created", ingredient_id=ingredient.id, name=ingredient.name)
        return ingredient

    def update_ingredient(self, ingredient_id: int, data: IngredientUpdate) -> Ingredient:
        ingredient = self.get_ingredient(ingredient_id)
        changes = data.model_dump(exclude_unset=True)

        if "name" in changes and changes["name"] != ingredient.name:
            self._ensure_unique_name(changes["name"], exclude_id=ingredient.id)

        self._check_bounds(
            changes.get("min_stock", ingredient.min_stock),
            changes.get("max_stock", ingredient.max_stock),
        )
        for key, value in changes.items():
            setattr(ingredient, key, value)
        self._db.flush()
        return ingredient

    def delete_ingredient(self, ingredient_id: int) -> Ingredient:
        """Soft delete. Refused while any recipe uses the ingredient."""
        ingredient = self.get_ingredient(ingredient_id)
        used = self._db.scalar(
            select(func.count(RecipeIngredient.id)).where(RecipeIngredient.ingredient_id == ingredient.id)
        )
        if used:
            raise ConflictError("Cannot delete ingredient that is used in recipes")
        ingredient.soft_delete()
        self._db.flush()
        return ingredient

    # =========================================================================
    # Movements
    # =========================================================================

    def apply_movement(
        self,
        ingredient_id: int,
        movement_type: str,
        quantity: float,
        reason: str | None = None,
        reference: str | None = None,
        user_id: int | None = None,
    ) -> StockChange:
        """
        Record a movement and update the ingredient.

        IN adds, OUT and WASTE subtract, ADJUSTMENT sets the stock to
        `quantity`.

        Raises:
            NotFoundError: Unknown or deleted ingredient.
            ValidationError: Unknown type or negative quantity.
            InsufficientStockError: OUT/WASTE would leave negative stock.
        """
        if movement_type not in MovementType.ALL:
            raise ValidationError(f"Invalid movement type: {movement_type}")
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative")

        ingredient = self._db.scalar(
            select(Ingredient)
            .where(Ingredient.id == ingredient_id, Ingredient.is_active.is_(True))
            .with_for_update()
        )
        if ingredient is None:
            raise NotFoundError("Ingredient", ingredient_id)

        previous = ingredient.current_stock
        if movement_type == MovementType.IN:
            new_stock = previous + quantity
        elif movement_type in MovementType.DECREASING:
            new_stock = previous - quantity
            if new_stock < 0:
                raise InsufficientStockError(
                    [
                        {
                            "ingredient": ingredient.name,
                            "required": quantity,
                            "available": previous,
                            "unit": ingredient.unit,
                        }
                    ]
                )
        else:
            new_stock = quantity

        movement = StockMovement(
            ingredient_id=ingredient.id,
            type=movement_type,
            quantity=quantity,
            previous_stock=previous,
            new_stock=new_stock,
            reason=reason,
            reference=reference,
            user_id=user_id,
        )
        ingredient.current_stock = new_stock
        self._db.add(movement)

        alert = self._alert_for_level(ingredient)
        self._db.flush()

        logger.info(
            "Stock movement recorded",
            ingredient_id=ingredient.id,
            type=movement_type,
            quantity=quantity,
            previous_stock=previous,
            new_stock=new_stock,
        )
        return StockChange(ingredient=ingredient, movement=movement, alert=alert)

    def _alert_for_level(self, ingredient: Ingredient) -> StockAlert | None:
        stock = ingredient.current_stock
        if stock <= 0:
            alert_type = AlertType.OUT_OF_STOCK
            message = f"{ingredient.name} is out of stock"
        elif stock <= ingredient.min_stock:
            alert_type = AlertType.LOW_STOCK
            message = f"{ingredient.name} is running low ({stock:g} {ingredient.unit} remaining)"
        else:
            return None

        alert = StockAlert(ingredient_id=ingredient.id, type=alert_type, message=message)
        self._db.add(alert)
        logger.warning("Stock alert raised", ingredient_id=ingredient.id, type=alert_type)
        return alert

    def list_movements(
        self,
        pagination: Pagination,
        ingredient_id: int | None = None,
        movement_type: str | None = None,
    ) -> tuple[list[StockMovement], int]:
        stmt = select(StockMovement).options(selectinload(StockMovement.ingredient))
        if ingredient_id is not None:
            stmt = stmt.where(StockMovement.ingredient_id == ingredient_id)
        if movement_type:
            stmt = stmt.where(StockMovement.type == movement_type)
        return pagination.apply(self._db, stmt.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()))

    # =========================================================================
    # Order deduction
    # =========================================================================

    def requirements_for_order(self, order: Order) -> dict[int, float]:
        """Ingredient id -> total quantity for every item with a recipe."""
        rows = self._db.execute(
            select(RecipeIngredient.ingredient_id, RecipeIngredient.quantity, OrderItem.quantity)
            .join(Recipe, Recipe.id == RecipeIngredient.recipe_id)
            .join(OrderItem, OrderItem.product_id == Recipe.product_id)
            .where(OrderItem.order_id == order.id, Recipe.is_active.is_(True))
        ).all()

        requirements: dict[int, float] = {}
        for ingredient_id, per_unit, item_quantity in rows:
            requirements[ingredient_id] = requirements.get(ingredient_id, 0.0) + per_unit * item_quantity
        return requirements

    def deduct_for_order(self, order: Order, user_id: int | None = None) -> OrderDeduction:
        """
        Take the recipe ingredients of an order out of stock.

        All requirements are checked before the first write, so a shortfall
        leaves stock untouched.

        Raises:
            InsufficientStockError: Listing every short ingredient.
        """
        requirements = self.requirements_for_order(order)
        deduction = OrderDeduction(order_id=order.id)
        if not requirements:
            return deduction

        ingredients = {
            ing.id: ing
            for ing in self._db.scalars(
                select(Ingredient).where(Ingredient.id.in_(list(requirements))).with_for_update()
            )
        }

        shortages = []
        for ingredient_id, required in requirements.items():
            ingredient = ingredients.get(ingredient_id)
            available = ingredient.current_stock if ingredient and ingredient.is_active else 0.0
            if available < required:
                shortages.append(
                    {
                        "ingredient": ingredient.name if ingredient else str(ingredient_id),
                        "required": required,
                        "available": available,
                        "unit": ingredient.unit if ingredient else None,
                    }
                )
        if shortages:
            raise InsufficientStockError(shortages, order_id=order.id)

        for ingredient_id, required in requirements.items():
            deduction.changes.append(
                self.apply_movement(
                    ingredient_id,
                    MovementType.OUT,
                    required,
                    reason=ORDER_PROCESSING_REASON,
                    reference=order_reference(order.id),
                    user_id=user_id,
                )
            )

        logger.info("Order ingredients deducted", order_id=order.id, ingredients=len(requirements))
        return deduction

    def is_order_processed(self, order_id: int) -> bool:
        return (
            self._db.scalar(
                select(StockMovement.id)
                .where(StockMovement.reference == order_reference(order_id))
                .limit(1)
            )
            is not None
        )

    def process_order(self, order_id: int, user_id: int | None = None) -> OrderDeduction:
        """
        Manual deduction for a CONFIRMED order.

        Raises:
            NotFoundError: Unknown order.
            InvalidStateError: Order is not CONFIRMED.
            ConflictError: The order's ingredients were already deducted.
        """
        order = self._db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        if order.status != OrderStatus.CONFIRMED:
            raise InvalidStateError("Order", order.status, [OrderStatus.CONFIRMED])
        if self.is_order_processed(order.id):
            raise ConflictError("Order ingredients already processed", data={"orderId": order.id})
        return self.deduct_for_order(order, user_id)

    # =========================================================================
    # Alerts
    # =========================================================================

    def create_alert(self, ingredient_id: int, alert_type: str, message: str) -> StockAlert:
        ingredient = self.get_ingredient(ingredient_id)
        alert = StockAlert(ingredient_id=ingredient.id, type=alert_type, message=message)
        self._db.add(alert)
        self._db.flush()
        return alert

    def list_alerts(
        self,
        pagination: Pagination,
        alert_type: str | None = None,
        is_read: bool | None = None,
        ingredient_id: int | None = None,
    ) -> tuple[list[StockAlert], int]:
        stmt = select(StockAlert).options(selectinload(StockAlert.ingredient))
        if alert_type:
            stmt = stmt.where(StockAlert.type == alert_type)
        if is_read is not None:
            stmt = stmt.where(StockAlert.is_read.is_(is_read))
        if ingredient_id is not None:
            stmt = stmt.where(StockAlert.ingredient_id == ingredient_id)
        return pagination.apply(self._db, stmt.order_by(StockAlert.created_at.desc(), StockAlert.id.desc()))

    def mark_alert_read(self, alert_id: int) -> StockAlert:
        alert = self._db.get(StockAlert, alert_id)
        if alert is None:
            raise NotFoundError("Stock alert", alert_id)
        if not alert.is_read:
            alert.is_read = True
            alert.read_at = utcnow()
            self._db.flush()
        return alert

    def mark_all_alerts_read(self, ingredient_id: int | None = None) -> int:
        stmt = select(StockAlert).where(StockAlert.is_read.is_(False))
        if ingredient_id is not None:
            stmt = stmt.where(StockAlert.ingredient_id == ingredient_id)
        now = utcnow()
        count = 0
        for alert in self._db.scalars(stmt):
            alert.is_read = True
            alert.read_at = now
            count += 1
        self._db.flush()
        return count

    # =========================================================================
    # Reporting
    # =========================================================================

    def critical_stock(self) -> dict[str, Any]:
        active = select(Ingredient).where(Ingredient.is_active.is_(True)).order_by(Ingredient.name)
        out_of_stock = list(self._db.scalars(active.where(Ingredient.current_stock <= 0)))
        low_stock = list(
            self._db.scalars(
                active.where(
                    Ingredient.current_stock > 0,
                    Ingredient.current_stock <= Ingredient.min_stock,
                )
            )
        )
        return {
            "outOfStock": out_of_stock,
            "lowStock": low_stock,
            "totalCritical": len(out_of_stock) + len(low_stock),
        }

    def stats(self) -> dict[str, Any]:
        ingredients = list(self._db.scalars(select(Ingredient).where(Ingredient.is_active.is_(True))))
        since = utcnow() - timedelta(hours=24)

        return {
            "totalIngredients": len(ingredients),
            "lowStockIngredients": sum(
                1 for i in ingredients if 0 < i.current_stock <= i.min_stock
            ),
            "outOfStockIngredients": sum(1 for i in ingredients if i.current_stock <= 0),
            "totalValueCents": sum(i.stock_value_cents for i in ingredients),
            "recentMovements": self._db.scalar(
                select(func.count(StockMovement.id)).where(StockMovement.created_at >= since)
            )
            or 0,
            "activeAlerts": self._db.scalar(
                select(func.count(StockAlert.id)).where(StockAlert.is_read.is_(False))
            )
            or 0,
            "totalRecipes": self._db.scalar(
                select(func.count(Recipe.id)).where(Recipe.is_active.is_(True))
            )
            or 0,
            "productsWithoutRecipe": self._db.scalar(
                select(func.count(Product.id)).where(
                    Product.is_active.is_(True),
                    ~Product.id.in_(select(Recipe.product_id).where(Recipe.is_active.is_(True))),
                )
            )
            or 0,
        }
