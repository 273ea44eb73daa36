"""
Domain Services.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import OrderService

    # In router
    service = OrderService(db)
    change = service.create_order(table_id, items, notes, user_id)
"""

from .category_service import CategoryService
from .product_service import ProductService
from .table_service import TableService
from .user_service import UserService
from .order_service import OrderService, OrderChange, order_output, order_payload
from .stock_service import StockService, StockChange
from .recipe_service import RecipeService, recipe_output
from .daily_close_service import DailyCloseService, business_today, is_day_closed
from .report_service import ReportService

__all__ = [
    # Catalog and staff
    "CategoryService",
    "ProductService",
    "TableService",
    "UserService",
    # Orders
    "OrderService",
    "OrderChange",
    "order_output",
    "order_payload",
    # Inventory
    "StockService",
    "StockChange",
    "RecipeService",
    "recipe_output",
    # End of day
    "DailyCloseService",
    "business_today",
    "is_day_closed",
    "ReportService",
]
