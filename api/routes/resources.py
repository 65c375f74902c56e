"""Generic resource endpoints.

Every portal resource is served by the same handlers; the resource name in
the path selects the service. Keys may contain slashes (``MT2025/0001``), so
key segments use the ``path`` converter.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Header, HTTPException, Request

from api.deps import (
    STATUS_FOR_KIND,
    get_service,
    get_services,
    parse_entity,
    parse_filter,
    pick_etag,
    result_response,
)
from connectors.odata import ODataFilter
from core.observability.logging import with_correlation
from models.api_responses import ActionRequest, ListResponse, ResourceInfo


router = APIRouter()


@router.get("", response_model=List[ResourceInfo])
async def list_resources(request: Request) -> List[ResourceInfo]:
    """Catalogue of resources with their filters and workflow actions."""
    catalogue = []
    for service in get_services(request):
        schema = service.schema
        workflow = schema.workflow
        catalogue.append(ResourceInfo(
            name=schema.name,
            label=schema.label,
            entity_set=schema.entity_set,
            key_field=schema.key_field,
            read_only=schema.read_only,
            filters=[name for name in schema.filter_model.model_fields if name not in ODataFilter.model_fields],
            actions=workflow.actions if workflow and not schema.read_only else [],
            statuses=workflow.statuses if workflow else [],
        ))
    return sorted(catalogue, key=lambda info: info.name)


@router.post("/{resource}/{key:path}/actions/{action}")
async def run_action(
    resource: str,
    key: str,
    action: str,
    request: Request,
    body: Optional[ActionRequest] = Body(None),
):
    """Run a workflow action such as submit, approve or complete."""
    service = get_service(resource, request)
    payload = body.model_dump(exclude_none=True) if body else {}
    with with_correlation(resource=resource, entity_key=key, action=action):
        result = await service.perform(key, action, payload)
    return result_response(result)


@router.get("/{resource}", response_model=ListResponse)
async def list_records(resource: str, request: Request) -> ListResponse:
    """List records; query parameters are the resource's filter fields."""
    service = get_service(resource, request)
    params = request.query_params
    filter = parse_filter(service.schema.filter_model, params)
    with with_correlation(resource=resource, employee_no=params.get("employee_no")):
        result = await service.list(filter)
    return ListResponse.from_result(result)


@router.get("/{resource}/{key:path}")
async def get_record(resource: str, key: str, request: Request) -> Dict[str, Any]:
    service = get_service(resource, request)
    entity, failure = await service.read(key)
    if failure is not None:
        raise HTTPException(status_code=STATUS_FOR_KIND.get(failure.kind, 500), detail=failure.message)
    return entity.model_dump(mode="json")


@router.post("/{resource}")
async def create_record(resource: str, request: Request, body: Dict[str, Any] = Body(...)):
    service = get_service(resource, request)
    entity = parse_entity(service.schema.model, body)
    result = await service.create(entity)
    return result_response(result, success_status=201)


@router.patch("/{resource}/{key:path}")
async def update_record(
    resource: str,
    key: str,
    request: Request,
    body: Dict[str, Any] = Body(...),
    if_match: Optional[str] = Header(None),
):
    """Partial update; only the fields sent are written.

    The concurrency token comes from ``etag`` in the body or the If-Match header.
    """
    service = get_service(resource, request)
    schema = service.schema
    if schema.status_field and (schema.status_field in body or schema.column(schema.status_field) in body):
        raise HTTPException(status_code=422, detail="Status changes go through the workflow actions")
    entity = parse_entity(schema.model, body, **{schema.key_field: key, "etag": pick_etag(body, if_match)})
    result = await service.update(entity)
    return result_response(result)


@router.delete("/{resource}/{key:path}")
async def delete_record(resource: str, key: str, request: Request, if_match: Optional[str] = Header(None)):
    service = get_service(resource, request)
    result = await service.delete(key, if_match)
    return result_response(result)
