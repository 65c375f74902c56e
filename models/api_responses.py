"""
API Response Models for the Self-Service Portal.

These Pydantic models define the shared data contracts between the backend API
and the portal UI. They are designed to prevent drift and enable OpenAPI generation.

Hierarchy:
- ResultResponse: Outcome of any write or workflow action
- ListResponse: Records from a list query, with the ERP failure if any
- SummaryResponse: Dashboard counters for one resource
- ResourceInfo: Catalogue entry describing a resource and its actions
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.models.results import ErrorKind, ListResult, OperationResult
from core.resources.summary import Summary


# =============================================================================
# RESULTS
# =============================================================================

class ResultResponse(BaseModel):
    """Structured outcome of a create/update/delete/action."""
    ok: bool
    message: str
    kind: Optional[ErrorKind] = None
    key: Optional[str] = None
    etag: Optional[str] = None
    data: Optional[Any] = None

    @classmethod
    def from_result(cls, result: OperationResult) -> "ResultResponse":
        return cls.model_validate(result.to_dict())


class ErrorDetail(BaseModel):
    """Why a list could not be read."""
    kind: Optional[ErrorKind] = None
    message: str


class ListResponse(BaseModel):
    """Records from one list query.

    ``error`` is set when the ERP could not be read; ``items`` is then empty.
    """
    items: List[Dict[str, Any]] = Field(default_factory=list)
    count: int = 0
    error: Optional[ErrorDetail] = None

    @classmethod
    def from_result(cls, result: ListResult) -> "ListResponse":
        items = [item.model_dump(mode="json") for item in result.items]
        error = None
        if result.error is not None:
            error = ErrorDetail(kind=result.error.kind, message=result.error.message)
        return cls(items=items, count=len(items), error=error)


# =============================================================================
# DASHBOARD
# =============================================================================

class SummaryResponse(BaseModel):
    """Counters for one resource."""
    resource: str
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
    totals: Dict[str, float] = Field(default_factory=dict)
    extra: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def from_summary(cls, resource: str, summary: Summary) -> "SummaryResponse":
        return cls(resource=resource, **summary.model_dump(mode="json"))


# =============================================================================
# CATALOGUE
# =============================================================================

class ResourceInfo(BaseModel):
    """One resource exposed under /resources."""
    name: str
    label: str
    entity_set: str
    key_field: str
    read_only: bool
    filters: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)
    statuses: List[str] = Field(default_factory=list)


# =============================================================================
# REQUESTS
# =============================================================================

class ActionRequest(BaseModel):
    """Body of POST /resources/{resource}/{key}/actions/{action}.

    Besides ``changes`` (field values written with the status change), some
    actions read their own inputs: ``technician``, ``vehicle_no``, ``driver``,
    ``remarks``, ``lines`` and ``comments``.
    """
    model_config = ConfigDict(extra="allow")

    changes: Optional[Dict[str, Any]] = None


class LeaveEndDateResponse(BaseModel):
    start_date: date
    days: int
    leave_code: Optional[str] = None
    end_date: date
    resumption_date: date
