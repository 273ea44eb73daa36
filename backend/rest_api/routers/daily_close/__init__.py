"""
Daily close router - /api/daily-close/*
"""

from .routes import router

__all__ = ["router"]
