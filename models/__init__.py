"""Models Package.

API request and response models for the Self-Service Portal. ERP entity
models live in connectors.business_central.bc_models.
"""

from models.api_responses import (
    ActionRequest,
    ErrorDetail,
    LeaveEndDateResponse,
    ListResponse,
    ResourceInfo,
    ResultResponse,
    SummaryResponse,
)

__all__ = [
    "ActionRequest",
    "ErrorDetail",
    "LeaveEndDateResponse",
    "ListResponse",
    "ResourceInfo",
    "ResultResponse",
    "SummaryResponse",
]
