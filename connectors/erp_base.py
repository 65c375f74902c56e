"""Abstract ERP Client Interface.

This module defines the abstract interface that every ERP client must implement.
It is intentionally ERP-agnostic - no Business Central specifics here.

Clients implement this interface to:
1. Hold connection settings and an HTTP session
2. Issue authenticated GET/POST/PATCH/DELETE calls against entity sets
3. Hand back raw responses (status, body, concurrency token)
4. Extract a human-readable message from an ERP error body

Key Design Principles:
- Non-2xx responses are RETURNED, not raised; callers inspect the status
- Transport failures (timeout, DNS, refused) raise ERPTransportError only
- Concurrency tokens are opaque; they are replayed exactly as received
- The resource layer and API routes depend ONLY on this interface
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, Union

from connectors.odata import ODataQuery
from core.config import ERPSettings


# =============================================================================
# Enums
# =============================================================================

class ERPConnectionStatus(str, Enum):
    """Connection status to the ERP system."""
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"
    FAILED = "FAILED"


# =============================================================================
# Responses and Errors
# =============================================================================

@dataclass(frozen=True)
class ERPResponse:
    """Raw outcome of one HTTP call to the ERP."""
    status: int
    body: str = ""
    etag: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def not_found(self) -> bool:
        return self.status == 404

    @property
    def conflict(self) -> bool:
        return self.status == 412

    def json(self) -> Any:
        """Decode the body; an empty body decodes to an empty dict.

        Raises:
            ValueError: If the body is not valid JSON
        """
        if not self.body:
            return {}
        return json.loads(self.body)


class ERPTransportError(Exception):
    """The ERP could not be reached (timeout, DNS, connection refused)."""
    def __init__(self, message: str, method: str = "", path: str = ""):
        super().__init__(message)
        self.method = method
        self.path = path


# =============================================================================
# Abstract Client Interface
# =============================================================================

class ERPClient(ABC):
    """Abstract base class for ERP clients.

    Paths are relative to the company root, for example
    ``Leave_Applications_List`` or ``Appraisals('APR25.00001')``.
    """

    def __init__(self, settings: ERPSettings):
        self.settings = settings
        self._status = ERPConnectionStatus.DISCONNECTED

    @property
    def status(self) -> ERPConnectionStatus:
        return self._status

    @property
    def default_top(self) -> int:
        return self.settings.default_top

    @abstractmethod
    async def connect(self) -> None:
        """Open the HTTP session."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the HTTP session."""
        pass

    @abstractmethod
    async def get(
        self, path: str, query: Optional[Union[ODataQuery, Mapping[str, str]]] = None
    ) -> ERPResponse:
        """GET an entity or collection with optional query options."""
        pass

    @abstractmethod
    async def post(self, path: str, payload: Dict[str, Any]) -> ERPResponse:
        """Create an entity."""
        pass

    @abstractmethod
    async def patch(
        self, path: str, payload: Dict[str, Any], if_match: Optional[str] = None
    ) -> ERPResponse:
        """Update an entity, guarded by ``If-Match`` when a token is given."""
        pass

    @abstractmethod
    async def delete(self, path: str, if_match: Optional[str] = None) -> ERPResponse:
        """Delete an entity, guarded by ``If-Match`` when a token is given."""
        pass

    @abstractmethod
    def error_message(self, response: ERPResponse) -> str:
        """Extract a user-facing message from a failed response."""
        pass

    async def __aenter__(self) -> "ERPClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()


# =============================================================================
# Client Factory
# =============================================================================

_connector_registry: Dict[str, Type[ERPClient]] = {}


def register_connector(connector_type: str) -> Callable[[Type[ERPClient]], Type[ERPClient]]:
    """Decorator to register a client implementation."""
    def decorator(cls):
        _connector_registry[connector_type] = cls
        return cls
    return decorator


def create_connector(settings: ERPSettings) -> ERPClient:
    """Create a client instance from settings.

    Args:
        settings: ERPSettings with connector_type specified

    Returns:
        Configured (not yet connected) client

    Raises:
        ValueError: If connector_type is not registered
    """
    connector_type = settings.connector_type.lower()

    if connector_type not in _connector_registry:
        available = list(_connector_registry.keys())
        raise ValueError(
            f"Unknown connector type: {connector_type}. "
            f"Available: {available}"
        )

    connector_class = _connector_registry[connector_type]
    return connector_class(settings)


def list_available_connectors() -> List[str]:
    """List all registered connector types."""
    return list(_connector_registry.keys())
