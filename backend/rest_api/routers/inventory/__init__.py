"""
Inventory routers - /api/inventory/*
Ingredients, recipes, stock movements and alerts.
"""

from .routes import router

__all__ = ["router"]
