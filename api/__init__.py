"""API Package.

FastAPI server exposing the canonical catalog view.
"""

from api.server import create_app, app

__all__ = [
    "create_app",
    "app",
]
