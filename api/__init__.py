"""API routers"""
from .auth import router as auth_router
from .analysis import router as analysis_router
from .history import router as history_router
from .admin import router as admin_router

__all__ = [
    'auth_router',
    'analysis_router',
    'history_router',
    'admin_router'
]
