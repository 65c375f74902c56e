"""Training requests and post-training evaluations.

Both read from a list page and write through a separate card page, so the
schemas set ``write_entity_set``.
"""

from typing import Optional

from pydantic import Field

from connectors.business_central.bc_models import TrainingEvaluation, TrainingRequest
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import OperationResult
from core.resources import ResourceSchema, ResourceService, Workflow, transition


class TrainingRequestFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    status: Optional[str] = Field(None, alias="Status")
    training_type: Optional[str] = Field(None, alias="Training_Type")
    department_code: Optional[str] = Field(None, alias="Department_Code")


class TrainingEvaluationFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    status: Optional[str] = Field(None, alias="Status")
    training_code: Optional[str] = Field(None, alias="Training_Code")


TRAINING_REQUEST_WORKFLOW = Workflow.of(
    transition("approve", ["Pending"], "Approved"),
    transition("reject", ["Pending"], "Rejected"),
    transition("complete", ["Approved"], "Completed"),
)

TRAINING_REQUEST_SCHEMA = ResourceSchema(
    name="training_requests",
    label="Training request",
    entity_set="Training_Request_List",
    write_entity_set="Training_Request_Application",
    model=TrainingRequest,
    key_field="request_no",
    filter_model=TrainingRequestFilter,
    search_fields=("Request_No", "Course_Title", "Training_Institution"),
    date_field="Start_Date",
    default_order_by="Request_Date desc",
    status_field="status",
    default_status="Pending",
    sum_fields=("estimated_cost",),
    read_only_fields=frozenset({"requested_by", "job_position", "department_name", "converted_to_plan"}),
    workflow=TRAINING_REQUEST_WORKFLOW,
)

TRAINING_EVALUATION_WORKFLOW = Workflow.of(
    transition("submit", ["Open", "Pending"], "Submitted", verb="submitted"),
    transition("approve", ["Submitted"], "Approved"),
    transition("reject", ["Submitted"], "Rejected"),
)

TRAINING_EVALUATION_SCHEMA = ResourceSchema(
    name="training_evaluations",
    label="Training evaluation",
    entity_set="Training_Evaluation_List",
    write_entity_set="Training_Evaluation_Application",
    model=TrainingEvaluation,
    key_field="evaluation_no",
    filter_model=TrainingEvaluationFilter,
    search_fields=("Evaluation_No", "Course_Title", "Venue"),
    date_field="Evaluation_Date",
    default_order_by="Evaluation_Date desc",
    status_field="status",
    default_status="Open",
    read_only_fields=frozenset({"employee_name", "course_title", "planned_start_date", "planned_end_date"}),
    workflow=TRAINING_EVALUATION_WORKFLOW,
)


class TrainingRequestService(ResourceService[TrainingRequest]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, TRAINING_REQUEST_SCHEMA, **kwargs)

    def validate_create(self, entity: TrainingRequest) -> Optional[str]:
        if not entity.employee_no:
            return "Employee number is required"
        if not entity.course_title:
            return "Course title is required"
        if entity.start_date and entity.end_date and entity.end_date < entity.start_date:
            return "End date cannot be before the start date"
        return None

    async def create(self, entity: TrainingRequest) -> OperationResult:
        if not entity.request_date:
            entity.request_date = self.today()
        return await super().create(entity)


class TrainingEvaluationService(ResourceService[TrainingEvaluation]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, TRAINING_EVALUATION_SCHEMA, **kwargs)

    def validate_create(self, entity: TrainingEvaluation) -> Optional[str]:
        if not entity.employee_no:
            return "Employee number is required"
        if not entity.training_code:
            return "Training is required"
        if entity.overall_rating is not None and not 1 <= entity.overall_rating <= 5:
            return "Overall rating must be between 1 and 5"
        return None

    async def create(self, entity: TrainingEvaluation) -> OperationResult:
        if not entity.evaluation_date:
            entity.evaluation_date = self.today()
        return await super().create(entity)
