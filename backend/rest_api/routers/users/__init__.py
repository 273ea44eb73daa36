"""
Staff user management - /api/users/*
"""

from .routes import router

__all__ = ["router"]
