"""Business Central HTTP Client.

Low-level HTTP client for Business Central OData V4 web services.
Handles Basic authentication headers, company scoping, ETag capture and
error-body parsing. Non-2xx responses are returned to the caller as-is;
only transport failures raise.
"""

from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import quote
import asyncio
import json
import time

import aiohttp
from yarl import URL

from connectors.erp_base import (
    ERPClient,
    ERPConnectionStatus,
    ERPResponse,
    ERPTransportError,
    register_connector,
)
from connectors.odata import ODataQuery, escape_string
from connectors.business_central.bc_auth import BCBasicCredentials
from core.config import ERPSettings
from core.observability.logging import get_logger, log_erp_call
from core.observability.metrics import record_erp_call, record_transport_error

logger = get_logger(__name__)


UNKNOWN_ERROR = "Unknown error from Business Central"
MAX_ERROR_BODY = 500
QUERY_SAFE = "'(),:"


def parse_bc_error(body: str) -> str:
    """Extract the message from a Business Central error body.

    BC errors look like ``{"error": {"code": "...", "message": "...
    CorrelationId: <guid>."}}``. The correlation suffix is dropped. Bodies
    that are not JSON are returned truncated.
    """
    if not body or not body.strip():
        return UNKNOWN_ERROR

    if body.strip().startswith("{"):
        try:
            data = json.loads(body)
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            message = data["error"].get("message")
            if message:
                correlation_index = message.find("CorrelationId:")
                if correlation_index > 0:
                    return message[:correlation_index].strip()
                return message

    if len(body) > MAX_ERROR_BODY:
        return body[:MAX_ERROR_BODY] + "..."
    return body


@register_connector("business_central")
class BCApiClient(ERPClient):
    """HTTP client for Business Central OData web services.

    Provides:
    - Basic-auth calls scoped to one company
    - Per-request headers (the shared session is never mutated)
    - ETag capture and If-Match replay
    - Structured logging and call metrics

    Usage:
        client = BCApiClient(settings)
        await client.connect()
        response = await client.get("Leave_Applications_List", {"$top": "10"})
        await client.disconnect()
    """

    def __init__(
        self,
        settings: ERPSettings,
        credentials: Optional[BCBasicCredentials] = None,
    ):
        """Initialize API client.

        Args:
            settings: Connection settings
            credentials: Override credentials (defaults to those in settings)
        """
        super().__init__(settings)
        self.credentials = credentials or BCBasicCredentials.from_settings(settings)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def company_url(self) -> str:
        company = quote(escape_string(self.settings.company), safe="")
        return f"{self.settings.base_url}/Company('{company}')"

    async def connect(self) -> None:
        """Initialize the HTTP session."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._status = ERPConnectionStatus.CONNECTED
            logger.info(f"Business Central client ready for company {self.settings.company}")

    async def disconnect(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
        self._status = ERPConnectionStatus.DISCONNECTED

    def _get_headers(self, if_match: Optional[str] = None, has_body: bool = False) -> Dict[str, str]:
        """Build a fresh header set for one request."""
        headers = {
            "Authorization": self.credentials.authorization_header,
            "Accept": "application/json",
        }
        if has_body:
            headers["Content-Type"] = "application/json"
        if if_match:
            headers["If-Match"] = if_match
        return headers

    def _build_url(self, path: str, params: Optional[Mapping[str, str]] = None) -> URL:
        """Build full URL for a company-relative path (already encoded).

        Query options are percent-encoded with spaces as %20, never "+".
        """
        url = f"{self.company_url}/{path.lstrip('/')}"
        if params:
            query = "&".join(
                f"{quote(name, safe='$')}={quote(str(value), safe=QUERY_SAFE)}"
                for name, value in params.items()
            )
            url = f"{url}?{query}"
        return URL(url, encoded=True)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
        if_match: Optional[str] = None,
    ) -> ERPResponse:
        """Make one authenticated request.

        Args:
            method: HTTP method
            path: Company-relative path, e.g. "Appraisals('APR25.00001')"
            params: Query options
            payload: JSON body
            if_match: Concurrency token replayed verbatim

        Returns:
            ERPResponse for any HTTP status

        Raises:
            ERPTransportError: Timeout, DNS or connection failure
        """
        if self._session is None:
            await self.connect()

        url = self._build_url(path, params)
        entity_set = path.split("(", 1)[0].split("?", 1)[0]
        started = time.perf_counter()

        try:
            async with self._session.request(
                method,
                url,
                headers=self._get_headers(if_match, has_body=payload is not None),
                json=payload,
            ) as response:
                body = await response.text(errors="replace")
                status = response.status
                etag = response.headers.get("ETag")
        except asyncio.TimeoutError as e:
            record_transport_error(method, entity_set)
            logger.warning(
                f"{method} {entity_set} timed out after {self.settings.timeout_seconds}s",
                extra_fields={"entity_set": entity_set, "method": method},
            )
            raise ERPTransportError(
                f"Business Central did not respond within {self.settings.timeout_seconds}s",
                method,
                path,
            ) from e
        except aiohttp.ClientError as e:
            record_transport_error(method, entity_set)
            logger.warning(
                f"{method} {entity_set} failed: {type(e).__name__}: {e}",
                extra_fields={"entity_set": entity_set, "method": method},
            )
            raise ERPTransportError(f"Could not reach Business Central: {e}", method, path) from e

        duration_ms = (time.perf_counter() - started) * 1000
        record_erp_call(method, entity_set, status, duration_ms)
        log_erp_call(method, entity_set, status, duration_ms)

        return ERPResponse(status=status, body=body, etag=etag)

    async def get(
        self,
        path: str,
        query: Optional[Union[ODataQuery, Mapping[str, str]]] = None,
    ) -> ERPResponse:
        """GET an entity or a collection.

        Args:
            path: Entity set, or entity path with key
            query: ODataQuery or raw query options
        """
        params = query.to_params() if isinstance(query, ODataQuery) else query
        return await self._request("GET", path, params=params)

    async def post(self, path: str, payload: Dict[str, Any]) -> ERPResponse:
        """Create a new entity."""
        return await self._request("POST", path, payload=payload)

    async def patch(
        self, path: str, payload: Dict[str, Any], if_match: Optional[str] = None
    ) -> ERPResponse:
        """Update an entity (BC uses PATCH for updates)."""
        return await self._request("PATCH", path, payload=payload, if_match=if_match)

    async def delete(self, path: str, if_match: Optional[str] = None) -> ERPResponse:
        """Delete an entity."""
        return await self._request("DELETE", path, if_match=if_match)

    def error_message(self, response: ERPResponse) -> str:
        return parse_bc_error(response.body)
