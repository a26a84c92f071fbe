"""API Package.

FastAPI server for the KiotViet monitor.
"""

from api.server import create_app

__all__ = [
    "create_app",
]
