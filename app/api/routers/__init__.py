"""
app/api/routers package marker.
"""

from app.api.routers.migrations import router as migrations_router

__all__ = [
    "migrations_router",
]
