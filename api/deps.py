"""Request-scoped dependencies and result-to-HTTP mapping."""

from typing import Any, Dict, Mapping, Optional, Type

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from connectors.odata import ODataFilter
from core.models.results import ErrorKind, OperationResult
from core.resources import ResourceService
from models.api_responses import ResultResponse
from services.registry import PortalServices, UnknownResourceError


STATUS_FOR_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 412,
    ErrorKind.ERP_REJECTION: 502,
    ErrorKind.TRANSPORT: 503,
}


def get_services(request: Request) -> PortalServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="ERP connection is not initialised")
    return services


def get_service(resource: str, request: Request) -> ResourceService:
    try:
        return get_services(request).get(resource)
    except UnknownResourceError:
        raise HTTPException(status_code=404, detail=f"Unknown resource '{resource}'")


def result_response(result: OperationResult, success_status: int = 200) -> JSONResponse:
    """Render a result with the HTTP status its outcome maps to."""
    status = success_status if result.ok else STATUS_FOR_KIND.get(result.kind, 500)
    body = ResultResponse.from_result(result).model_dump(mode="json")
    return JSONResponse(status_code=status, content=body)


def parse_filter(filter_model: Type[ODataFilter], params: Mapping[str, Any]) -> ODataFilter:
    """Query parameters (snake_case or ERP column names) as a typed filter."""
    try:
        return filter_model.model_validate(dict(params))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


def parse_entity(model: Type[BaseModel], body: Mapping[str, Any], **overrides: Any) -> BaseModel:
    try:
        return model.model_validate({**body, **overrides})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


def pick_etag(body: Mapping[str, Any], if_match: Optional[str]) -> Optional[str]:
    """Concurrency token from the body or the If-Match header, body first."""
    return body.get("etag") or body.get("@odata.etag") or if_match
