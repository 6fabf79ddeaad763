"""API Routes Package."""

from api.routes import catalog, health

__all__ = [
    "catalog",
    "health",
]
