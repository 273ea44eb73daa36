"""
Authentication routers - /api/auth/*
Handles login, logout, password changes and user info.
"""

from .routes import router

__all__ = ["router"]
