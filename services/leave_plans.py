"""Annual leave plans.

Plans are read from the ERP's list page and written through its application
page, which numbers new plans itself. The ERP fills in the employee details,
earned days and balance.
"""

from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import Field

from connectors.business_central.bc_models import LeavePlan
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import OperationResult
from core.observability.logging import get_logger
from core.resources import ResourceSchema, ResourceService, Summary, Workflow, transition
from core.resources.summary import to_decimal

logger = get_logger(__name__)

ACTIVE = "Active"
INACTIVE = "Inactive"


class LeavePlanFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    leave_code: Optional[str] = Field(None, alias="Leave_Code")
    status: Optional[str] = Field(None, alias="Status")


LEAVE_PLAN_WORKFLOW = Workflow.of(
    transition("deactivate", [ACTIVE], INACTIVE),
    transition("activate", [INACTIVE], ACTIVE),
)

LEAVE_PLAN_SCHEMA = ResourceSchema(
    name="leave_plans",
    label="Leave plan",
    entity_set="Leave_Plan_List",
    write_entity_set="Leave_Plan_Application",
    model=LeavePlan,
    key_field="application_no",
    filter_model=LeavePlanFilter,
    search_fields=("Application_No", "Employee_Name", "Leave_Code"),
    date_field="Application_Date",
    default_order_by="Application_Date desc",
    status_field="status",
    default_status=ACTIVE,
    sum_fields=("leave_entitlement", "leave_balance", "days_in_plan"),
    read_only_fields=frozenset({
        "employee_name",
        "designation",
        "department_code",
        "date_of_joining_company",
        "leave_earned_to_date",
        "leave_balance",
        "off_days",
        "user_id",
        "application_date",
        "no_series",
    }),
    workflow=LEAVE_PLAN_WORKFLOW,
)


def plan_errors(plan: LeavePlan) -> List[str]:
    errors = []
    if not plan.employee_no:
        errors.append("Employee number is required")
    if not plan.leave_code:
        errors.append("Leave type is required")
    if not plan.days_in_plan or plan.days_in_plan <= 0:
        errors.append("Days in plan must be greater than 0")
    if plan.leave_entitlement is not None and plan.leave_entitlement < 0:
        errors.append("Leave entitlement cannot be negative")
    if not plan.fiscal_start_date:
        errors.append("Fiscal start date is required")
    if not plan.maturity_date:
        errors.append("Maturity date is required")
    if plan.fiscal_start_date and plan.maturity_date and plan.maturity_date <= plan.fiscal_start_date:
        errors.append("Maturity date must be after fiscal start date")
    return errors


class LeavePlanService(ResourceService[LeavePlan]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, LEAVE_PLAN_SCHEMA, **kwargs)

    def validate_create(self, entity: LeavePlan) -> Optional[str]:
        errors = plan_errors(entity)
        if (
            not errors
            and entity.leave_entitlement is not None
            and entity.days_in_plan > entity.leave_entitlement
        ):
            errors.append(f"Days in plan cannot exceed the entitlement of {entity.leave_entitlement:f}")
        return "; ".join(errors) or None

    def validate_update(self, entity: LeavePlan) -> Optional[str]:
        if entity.days_in_plan is not None and entity.days_in_plan <= 0:
            return "Days in plan must be greater than 0"
        if entity.fiscal_start_date and entity.maturity_date and entity.maturity_date <= entity.fiscal_start_date:
            return "Maturity date must be after fiscal start date"
        return None

    async def create(self, entity: LeavePlan) -> OperationResult:
        logger.info(
            f"Creating leave plan: employee={entity.employee_no} type={entity.leave_code} "
            f"days={entity.days_in_plan}"
        )
        return await super().create(entity)

    def summarize_items(self, items: Sequence[LeavePlan], context: Mapping[str, Any]) -> Summary:
        """Adds active/inactive plan counts."""
        summary = super().summarize_items(items, context)
        summary.extra["active_plans"] = sum(1 for p in items if p.status == ACTIVE)
        summary.extra["inactive_plans"] = sum(1 for p in items if p.status != ACTIVE)
        summary.extra["unplanned_days"] = float(sum(
            (to_decimal(p.leave_entitlement) - to_decimal(p.days_in_plan) for p in items if p.status == ACTIVE),
            Decimal(0),
        ))
        return summary
