"""Performance targets: objectives agreed before an appraisal period starts.

A target is drafted by the appraisee, submitted to the appraiser once its
objective lines are weighted to 100%, then approved or rejected. Only drafts
may be deleted.

Usage:
    service = PerformanceTargetService(client)
    await service.submit("APR25.00003")
    await service.reject("APR25.00003", "Weightings do not reflect the role")
"""

from datetime import date
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import Field

from connectors.business_central.bc_models import PerformanceTarget
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import OperationResult
from core.resources import ReferenceFormat, ResourceSchema, ResourceService, Summary, Workflow, transition
from core.resources.summary import to_decimal


DRAFT = "DRAFT"
PENDING_APPROVAL = "PENDING_APPROVAL"
APPROVED = "APPROVED"
REJECTED = "REJECTED"

LINES_ENTITY_SET = "PerformanceTargetLines"
FULL_WEIGHTING = Decimal(100)

APPRAISAL_CATEGORIES = {
    "TARGETSET": "Target Setting",
    "MIDYEAR": "Mid-Year Review",
    "ANNUAL": "Annual Review",
    "PROBATION": "Probation Review",
    "PROMOTION": "Promotion Review",
}


class PerformanceTargetFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    appraiser_no: Optional[str] = Field(None, alias="Appraiser_No")
    status: Optional[str] = Field(None, alias="Status")
    appraisal_category: Optional[str] = Field(None, alias="Appraisal_Category")
    appraisal_period: Optional[str] = Field(None, alias="Appraisal_Period")
    department_code: Optional[str] = Field(None, alias="Department_Code")


PERFORMANCE_TARGET_WORKFLOW = Workflow.of(
    transition("submit", [DRAFT], PENDING_APPROVAL, stamps=["submitted_date"], verb="submitted"),
    transition("approve", [PENDING_APPROVAL], APPROVED, stamps=["approved_date"]),
    transition("reject", [PENDING_APPROVAL], REJECTED),
)

PERFORMANCE_TARGET_SCHEMA = ResourceSchema(
    name="performance_targets",
    label="Performance target",
    entity_set="PerformanceTargets",
    model=PerformanceTarget,
    key_field="objective_no",
    filter_model=PerformanceTargetFilter,
    search_fields=("Objective_No", "Appraisee_Name", "Appraiser_Name"),
    date_field="Created_Date",
    default_order_by="Created_Date desc",
    status_field="status",
    default_status=DRAFT,
    read_only_fields=frozenset({
        "appraisee_name", "appraisee_job_title", "department_name", "appraiser_name", "appraiser_job_title",
    }),
    collections=frozenset({"lines"}),
    expand=LINES_ENTITY_SET,
    reference_format=ReferenceFormat("APR", "%y", ".", 5),
    workflow=PERFORMANCE_TARGET_WORKFLOW,
)


def total_weighting(target: PerformanceTarget) -> Decimal:
    return sum((to_decimal(line.weighting) for line in target.lines), Decimal(0))


def appraisal_periods(today: date) -> List[str]:
    """``2026/2027`` style periods from two years back to next year, newest first."""
    return [f"{year}/{year + 1}" for year in range(today.year + 1, today.year - 3, -1)]


class PerformanceTargetService(ResourceService[PerformanceTarget]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, PERFORMANCE_TARGET_SCHEMA, **kwargs)

    def validate_create(self, entity: PerformanceTarget) -> Optional[str]:
        if not entity.employee_no:
            return "Appraisee employee number is required"
        if not entity.appraiser_no:
            return "Appraiser employee number is required"
        if entity.appraiser_no == entity.employee_no:
            return "An employee cannot appraise their own targets"
        if not entity.appraisal_category:
            return "Appraisal category is required"
        if not entity.appraisal_period:
            return "Appraisal period is required"
        return None

    async def create(self, entity: PerformanceTarget) -> OperationResult:
        entity.created_date = self.today()
        entity.status = DRAFT
        entity.approved = False
        return await super().create(entity)

    async def delete(self, key: str, etag: Optional[str]) -> OperationResult:
        """Delete a draft; any other status is refused before the DELETE."""
        if not etag:
            return self._invalid(
                f"{self.label} {key} has no concurrency token. Reload it before deleting.", "delete", key
            )
        target, failure = await self.read(key)
        if failure is not None:
            return failure
        if target.status != DRAFT:
            return self._invalid(
                f"Cannot delete performance target with status '{target.status}'. Only draft targets can be deleted.",
                "delete",
                key,
            )
        return await super().delete(key, etag)

    async def submit(self, key: str) -> OperationResult:
        async def check_lines(target: PerformanceTarget) -> Optional[OperationResult]:
            if not target.appraiser_no:
                return self._invalid("Appraiser must be assigned before submission", "submit", key)
            if not target.lines:
                return self._invalid("At least one target line is required before submission", "submit", key)
            total = total_weighting(target)
            if total != FULL_WEIGHTING:
                return self._invalid(f"Total weighting must be 100%. Current total is {total:f}%", "submit", key)
            return None

        return await self.transition(key, "submit", prepare=check_lines)

    async def approve(self, key: str, comments: Optional[str] = None) -> OperationResult:
        changes = {"approved": True}
        if comments:
            changes["remarks"] = comments
        return await self.transition(key, "approve", changes=changes)

    async def reject(self, key: str, reason: Optional[str]) -> OperationResult:
        if not reason:
            return self._invalid("Rejection reason is required", "reject", key)
        return await self.transition(key, "reject", changes={"remarks": reason, "approved": False})

    async def perform(self, key: str, action: str, payload: Optional[Mapping[str, Any]] = None) -> OperationResult:
        payload = payload or {}
        if action == "submit":
            return await self.submit(key)
        if action == "approve":
            return await self.approve(key, payload.get("comments"))
        if action == "reject":
            return await self.reject(key, payload.get("reason"))
        return await super().perform(key, action, payload)

    def summarize_items(self, items: Sequence[PerformanceTarget], context: Mapping[str, Any]) -> Summary:
        """Adds the caller's drafts and pending targets, and those awaiting their approval."""
        summary = super().summarize_items(items, context)
        employee_no = context.get("employee_no")
        appraiser_no = context.get("appraiser_no")
        mine = [t for t in items if employee_no and t.employee_no == employee_no]
        summary.extra["my_drafts"] = sum(1 for t in mine if t.status == DRAFT)
        summary.extra["my_pending_approval"] = sum(1 for t in mine if t.status == PENDING_APPROVAL)
        summary.extra["awaiting_my_approval"] = sum(
            1 for t in items if appraiser_no and t.appraiser_no == appraiser_no and t.status == PENDING_APPROVAL
        )
        return summary
