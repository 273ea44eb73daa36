"""
Reports router - /api/reports/*
"""

from .routes import router

__all__ = ["router"]
