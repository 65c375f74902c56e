"""Staff requisitions raised by departments."""

from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from pydantic import Field

from connectors.business_central.bc_models import JobRequisition
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import OperationResult
from core.resources import ResourceSchema, ResourceService, Summary, Workflow, transition
from core.resources.summary import to_decimal


class JobRequisitionFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    status: Optional[str] = Field(None, alias="Status")
    department_code: Optional[str] = Field(None, alias="Department_Code")
    employment_type: Optional[str] = Field(None, alias="Employment_Type")
    job_id: Optional[str] = Field(None, alias="Job_ID")


JOB_REQUISITION_WORKFLOW = Workflow.of(
    transition("approve", ["Pending"], "Approved"),
    transition("reject", ["Pending"], "Rejected"),
    transition("post", ["Approved"], "Posted"),
)

JOB_REQUISITION_SCHEMA = ResourceSchema(
    name="job_requisitions",
    label="Job requisition",
    entity_set="Job_Requisition_List",
    write_entity_set="Job_Requisition_Application",
    model=JobRequisition,
    key_field="application_no",
    filter_model=JobRequisitionFilter,
    search_fields=("Application_No", "Job_Position", "Job_ID"),
    date_field="Document_Date",
    default_order_by="Document_Date desc",
    status_field="status",
    default_status="Pending",
    sum_fields=("positions",),
    read_only_fields=frozenset({"job_position", "directorate_name", "raised_by"}),
    workflow=JOB_REQUISITION_WORKFLOW,
)


class JobRequisitionService(ResourceService[JobRequisition]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, JOB_REQUISITION_SCHEMA, **kwargs)

    def validate_create(self, entity: JobRequisition) -> Optional[str]:
        if not entity.job_id:
            return "Job is required"
        if not entity.positions or entity.positions <= 0:
            return "Positions must be greater than 0"
        if (
            entity.application_start_date
            and entity.application_deadline
            and entity.application_deadline < entity.application_start_date
        ):
            return "Application deadline cannot be before the start date"
        return None

    async def create(self, entity: JobRequisition) -> OperationResult:
        if not entity.document_date:
            entity.document_date = self.today()
        return await super().create(entity)

    async def perform(self, key: str, action: str, payload: Optional[Mapping[str, Any]] = None) -> OperationResult:
        if action == "post":
            return await self.transition(key, "post", changes={"posted": True})
        return await super().perform(key, action, payload)

    def summarize_items(self, items: Sequence[JobRequisition], context: Mapping[str, Any]) -> Summary:
        """Adds ``open_positions`` and ``total_budget`` over approved requisitions."""
        summary = super().summarize_items(items, context)
        approved = [r for r in items if r.status == "Approved"]
        summary.extra["open_positions"] = sum(r.positions or 0 for r in approved)
        summary.extra["total_budget"] = float(sum(
            (to_decimal(r.gross_salary) * (r.positions or 0) for r in approved), Decimal(0)
        ))
        return summary
