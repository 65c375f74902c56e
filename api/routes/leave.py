"""Leave endpoints beyond the generic resource routes."""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Header, Query, Request

from api.deps import get_services, pick_etag, result_response
from core.observability.logging import with_correlation
from models.api_responses import LeaveEndDateResponse
from services.leave import LeaveApplicationRequest, LeaveBalance, calculate_end_date, calculate_resumption_date


router = APIRouter()


@router.get("/end-date", response_model=LeaveEndDateResponse)
async def end_date(
    request: Request,
    start_date: date = Query(..., description="First day of leave"),
    days: int = Query(..., ge=1, description="Days applied for"),
    leave_code: Optional[str] = Query(None, description="Leave type; weekends are skipped if unknown"),
) -> LeaveEndDateResponse:
    """Preview the end and resumption dates for an application."""
    leave = get_services(request).leave
    leave_type = await leave.leave_type(leave_code)
    end = calculate_end_date(start_date, days, leave_type)
    return LeaveEndDateResponse(
        start_date=start_date,
        days=days,
        leave_code=leave_code,
        end_date=end,
        resumption_date=calculate_resumption_date(end, leave_type),
    )


@router.get("/types")
async def leave_types(request: Request) -> List[Dict[str, Any]]:
    types = await get_services(request).leave.leave_types()
    return [t.model_dump(mode="json") for t in types]


@router.get("/balance/{employee_no}/{leave_code}", response_model=LeaveBalance)
async def leave_balance(employee_no: str, leave_code: str, request: Request) -> LeaveBalance:
    with with_correlation(employee_no=employee_no):
        return await get_services(request).leave.leave_balance(employee_no, leave_code)


@router.post("/applications")
async def apply_for_leave(application: LeaveApplicationRequest, request: Request):
    with with_correlation(resource="leave_applications", employee_no=application.employee_no):
        result = await get_services(request).leave.create_application(application)
    return result_response(result, success_status=201)


@router.put("/applications/{key}")
async def update_application(
    key: str,
    request: Request,
    body: Dict[str, Any] = Body(...),
    if_match: Optional[str] = Header(None),
):
    """Save edits to an application, recomputing its end and resumption dates."""
    changes = {k: v for k, v in body.items() if k not in ("etag", "@odata.etag")}
    with with_correlation(resource="leave_applications", entity_key=key):
        result = await get_services(request).leave.update_application(key, changes, pick_etag(body, if_match))
    return result_response(result)
