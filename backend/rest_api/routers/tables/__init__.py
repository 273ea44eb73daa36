"""
Dining table routers - /api/tables/*
"""

from .routes import router

__all__ = ["router"]
