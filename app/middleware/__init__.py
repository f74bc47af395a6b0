"""
Middleware package for FastAPI application.
"""
from app.middleware.auth import APIKeyMiddleware, get_current_user_id
from app.middleware.error_handling import setup_error_handling

__all__ = ['APIKeyMiddleware', 'get_current_user_id', 'setup_error_handling']
