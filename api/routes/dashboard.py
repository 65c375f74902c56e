"""Dashboard endpoints.

Counters are computed from a fresh list of the resource's records, narrowed
by the same query parameters the list endpoint accepts. Resource-specific
counters (for example ``awaiting_my_review`` for appraisals) read the
caller's ``employee_no`` / ``appraiser_no`` from the query string.
"""

from typing import List

from fastapi import APIRouter, Request

from api.deps import get_service, get_services, parse_filter
from core.observability.logging import with_correlation
from models.api_responses import SummaryResponse


router = APIRouter()


@router.get("/summary", response_model=List[SummaryResponse])
async def all_summaries(request: Request) -> List[SummaryResponse]:
    """Counters for every resource that has a workflow."""
    summaries = []
    for service in get_services(request):
        if service.schema.workflow is None:
            continue
        summary = await service.summary()
        summaries.append(SummaryResponse.from_summary(service.name, summary))
    return summaries


@router.get("/{resource}/summary", response_model=SummaryResponse)
async def resource_summary(resource: str, request: Request) -> SummaryResponse:
    service = get_service(resource, request)
    params = dict(request.query_params)
    filter = parse_filter(service.schema.filter_model, params)
    with with_correlation(resource=resource, employee_no=params.get("employee_no")):
        summary = await service.summary(filter, **params)
    return SummaryResponse.from_summary(resource, summary)
