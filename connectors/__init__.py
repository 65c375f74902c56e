"""ERP Connectors - Pluggable ERP system integrations.

This package contains the abstract ERP client interface, the OData query
builder and concrete implementations for specific ERP systems.

The resource layer is ERP-neutral. This package handles:
- ERP-specific authentication
- URL and query construction
- HTTP communication and error-body parsing
- Entity models mirroring ERP columns

Key Design Principle:
- Resource services and API routes depend ONLY on the ERPClient interface
- Non-2xx responses are data, not exceptions

To add a new ERP:
1. Create a new folder (e.g., sap/)
2. Implement the ERPClient interface
3. Register using @register_connector decorator
"""

from connectors.erp_base import (
    # Core interface
    ERPClient,
    ERPConnectionStatus,
    ERPResponse,
    ERPTransportError,

    # Factory functions
    create_connector,
    register_connector,
    list_available_connectors,
)
from connectors.odata import (
    ODataEnvelope,
    ODataFilter,
    ODataQuery,
    build_query,
    entity_path,
    quote_literal,
)

# Registers the "business_central" connector type
from connectors import business_central  # noqa: F401

__all__ = [
    # Core interface
    "ERPClient",
    "ERPConnectionStatus",
    "ERPResponse",
    "ERPTransportError",

    # Query building
    "ODataEnvelope",
    "ODataFilter",
    "ODataQuery",
    "build_query",
    "entity_path",
    "quote_literal",

    # Factory
    "create_connector",
    "register_connector",
    "list_available_connectors",
]
