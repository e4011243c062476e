"""
API Routers package.

Each module contains a FastAPI router for a specific domain.
"""

from .name_match import router as name_match_router

__all__ = [
    "name_match_router",
]
