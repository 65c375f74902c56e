"""Workplace incident reports."""

from typing import Optional

from pydantic import Field

from connectors.business_central.bc_models import Incident
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import OperationResult
from core.resources import ResourceSchema, ResourceService, Workflow, transition


class IncidentFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    status: Optional[str] = Field(None, alias="Incident_Status")
    incident_type: Optional[str] = Field(None, alias="Incident_Type")
    department: Optional[str] = Field(None, alias="Department")


INCIDENT_WORKFLOW = Workflow.of(
    transition("start", ["Open"], "In Progress"),
    transition("resolve", ["Open", "In Progress"], "Resolved"),
    transition("close", ["Resolved"], "Closed"),
    transition("reopen", ["Resolved", "Closed"], "Open"),
)

INCIDENT_SCHEMA = ResourceSchema(
    name="incidents",
    label="Incident",
    entity_set="Incident_Management_List",
    write_entity_set="Incident_Management_Application",
    model=Incident,
    key_field="incident_reference",
    filter_model=IncidentFilter,
    search_fields=("Incident_Reference", "Incident_Description", "Employee_Name"),
    date_field="Incident_Date",
    default_order_by="Incident_Date desc",
    status_field="incident_status",
    default_status="Open",
    read_only_fields=frozenset({"employee_name", "job_title", "department"}),
    workflow=INCIDENT_WORKFLOW,
)


class IncidentService(ResourceService[Incident]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, INCIDENT_SCHEMA, **kwargs)

    def validate_create(self, entity: Incident) -> Optional[str]:
        if not entity.employee_no:
            return "Employee number is required"
        if not entity.incident_description:
            return "Please describe the incident"
        if entity.incident_date and entity.incident_date > self.today():
            return "Incident date cannot be in the future"
        return None

    async def create(self, entity: Incident) -> OperationResult:
        if not entity.incident_date:
            entity.incident_date = self.today()
        return await super().create(entity)
