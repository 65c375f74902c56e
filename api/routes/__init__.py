"""API Routes Package."""

from api.routes import dashboard, health, leave, resources

__all__ = [
    "dashboard",
    "health",
    "leave",
    "resources",
]
