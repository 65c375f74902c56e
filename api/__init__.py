"""API Package.

FastAPI server for the Self-Service Portal.
"""

from api.server import create_app

__all__ = [
    "create_app",
]
