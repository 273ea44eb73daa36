"""
Socket management router - /api/socket/*
Connection stats and manual notifications.
"""

from .routes import router

__all__ = ["router"]
