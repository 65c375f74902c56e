"""Portal resources: one module per business area, built on core.resources."""

from services.registry import PortalServices, UnknownResourceError

__all__ = ["PortalServices", "UnknownResourceError"]
