"""Core module - ERP-neutral portal building blocks.

This module contains configuration, observability, structured result types
and the generic resource layer (query-driven CRUD plus status workflows).
It is intentionally ERP-agnostic.

ERP-specific logic (Business Central OData, Basic auth) belongs in /connectors/.
"""

__version__ = "1.0.0"
