"""
Services module for business logic.

- base_service: BaseCRUDService for catalog-style entities
- domain/: Application services (business logic) - USE THESE

Usage:
    from rest_api.services.domain import CategoryService
    service = CategoryService(db)
    categories, total = service.list_categories(pagination)
"""

from .base_service import BaseCRUDService
from .domain import (
    CategoryService,
    DailyCloseService,
    OrderService,
    ProductService,
    RecipeService,
    ReportService,
    StockService,
    TableService,
    UserService,
)

__all__ = [
    "BaseCRUDService",
    "CategoryService",
    "DailyCloseService",
    "OrderService",
    "ProductService",
    "RecipeService",
    "ReportService",
    "StockService",
    "TableService",
    "UserService",
]
