"""
Authentication routers - /api/restaurants/{restaurant_id}/auth/*
Handles employee login, session validation and logout.
"""

from .routes import router

__all__ = ["router"]
