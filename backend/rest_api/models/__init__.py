"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class and AuditMixin
- user: User
- table: Table
- catalog: Category, Product
- order: Order, OrderItem
- billing: Payment
- ingredient: Ingredient, StockMovement, StockAlert
- recipe: Recipe, RecipeIngredient
- daily_close: DailyClose
"""

# Base classes
from .base import Base, AuditMixin

# Staff
from .user import User

# Dining room
from .table import Table

# Catalog (menu structure)
from .catalog import Category, Product

# Orders and payments
from .order import Order, OrderItem
from .billing import Payment

# Inventory
from .ingredient import Ingredient, StockMovement, StockAlert
from .recipe import Recipe, RecipeIngredient

# End of day
from .daily_close import DailyClose

__all__ = [
    "Base",
    "AuditMixin",
    "User",
    "Table",
    "Category",
    "Product",
    "Order",
    "OrderItem",
    "Payment",
    "Ingredient",
    "StockMovement",
    "StockAlert",
    "Recipe",
    "RecipeIngredient",
    "DailyClose",
]
