"""API Routes Package."""

from api.routes import health, reports

__all__ = [
    "health",
    "reports",
]
