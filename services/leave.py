"""Leave applications and leave types.

End dates are computed here rather than trusted from the caller: the working
days between start and end skip weekends unless the leave type counts them.

Usage:
    service = LeaveService(client)
    result = await service.create_application(LeaveApplicationRequest(
        employee_no="E001", leave_code="ANNUAL", days_applied=5,
        start_date=date(2025, 1, 6), duties_taken_over_by="E002",
    ))
    balance = await service.leave_balance("E001", "ANNUAL")
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from connectors.business_central.bc_models import ERPDecimal, LeaveApplication, LeaveType
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import OperationResult
from core.observability.logging import get_logger
from core.resources import ResourceSchema, ResourceService, Workflow, transition

logger = get_logger(__name__)


# =============================================================================
# Schemas
# =============================================================================

class LeaveFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    leave_code: Optional[str] = Field(None, alias="Leave_Code")
    status: Optional[str] = Field(None, alias="Status")


class LeaveTypeFilter(ODataFilter):
    code: Optional[str] = Field(None, alias="Code")
    gender: Optional[str] = Field(None, alias="Gender")


LEAVE_WORKFLOW = Workflow.of(
    transition("submit", ["Open"], "Pending Approval", verb="submitted"),
    transition("approve", ["Pending Approval"], "Approved"),
    transition("reject", ["Pending Approval"], "Rejected"),
    transition("cancel", ["Open", "Pending Approval"], "Cancelled", verb="cancelled"),
)

LEAVE_SCHEMA = ResourceSchema(
    name="leave_applications",
    label="Leave application",
    entity_set="Leave_Applications_List",
    model=LeaveApplication,
    key_field="application_no",
    filter_model=LeaveFilter,
    search_fields=("Application_No", "Employee_Name", "Leave_Code"),
    date_field="Start_Date",
    default_order_by="Application_Date desc",
    status_field="status",
    read_only_fields=frozenset({
        "employee_name", "balance_brought_forward", "leave_entitlement",
        "total_leave_days_taken", "leave_balance", "reliever_name",
        "department_name", "pending_approver",
    }),
    workflow=LEAVE_WORKFLOW,
)

LEAVE_TYPE_SCHEMA = ResourceSchema(
    name="leave_types",
    label="Leave type",
    entity_set="LeaveTypes",
    model=LeaveType,
    key_field="code",
    filter_model=LeaveTypeFilter,
    search_fields=("Code", "Description"),
    read_only=True,
)


# =============================================================================
# Date Arithmetic
# =============================================================================

SATURDAY = 5
SUNDAY = 6


def counts_as_leave_day(day: date, leave_type: Optional[LeaveType]) -> bool:
    """Whether ``day`` consumes leave under ``leave_type``.

    Weekends are skipped unless the leave type includes them; with no leave
    type known, weekends are skipped.
    """
    weekday = day.weekday()
    if weekday == SATURDAY:
        return bool(leave_type and leave_type.inclusive_of_saturday)
    if weekday == SUNDAY:
        return bool(leave_type and leave_type.inclusive_of_sunday)
    return True


def calculate_end_date(start: date, days: int, leave_type: Optional[LeaveType] = None) -> date:
    """Last day of leave for ``days`` counted days beginning on ``start``.

    >>> calculate_end_date(date(2025, 1, 6), 5)  # Monday
    datetime.date(2025, 1, 10)
    """
    end = start
    remaining = int(days) - 1
    while remaining > 0:
        end += timedelta(days=1)
        if counts_as_leave_day(end, leave_type):
            remaining -= 1
    return end


def calculate_resumption_date(end: date, leave_type: Optional[LeaveType] = None) -> date:
    """First counted day after the leave ends."""
    resumption = end + timedelta(days=1)
    while not counts_as_leave_day(resumption, leave_type):
        resumption += timedelta(days=1)
    return resumption


# =============================================================================
# Request and Result Models
# =============================================================================

class LeaveApplicationRequest(BaseModel):
    """New leave application as submitted by an employee."""
    employee_no: Optional[str] = None
    leave_code: Optional[str] = None
    days_applied: int = 0
    start_date: Optional[date] = None
    duties_taken_over_by: Optional[str] = None
    reason: Optional[str] = None
    telephone_no: Optional[str] = None
    alternate_phone_no: Optional[str] = None


class LeaveBalance(BaseModel):
    employee_no: str
    leave_code: str
    balance: Optional[ERPDecimal] = None
    unlimited: bool = False
    source: Optional[str] = None  # "application" or "leave_type"


# =============================================================================
# Service
# =============================================================================

class LeaveService(ResourceService[LeaveApplication]):
    """Leave applications, with date calculation and balances."""

    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, LEAVE_SCHEMA, **kwargs)
        self.types = ResourceService(client, LEAVE_TYPE_SCHEMA, **kwargs)

    async def leave_types(self) -> List[LeaveType]:
        result = await self.types.list()
        return result.items

    async def leave_type(self, code: Optional[str]) -> Optional[LeaveType]:
        if not code:
            return None
        for leave_type in await self.leave_types():
            if leave_type.code == code:
                return leave_type
        return None

    async def end_date(self, start: date, days: int, leave_code: Optional[str]) -> date:
        return calculate_end_date(start, days, await self.leave_type(leave_code))

    def validate_create(self, entity: LeaveApplication) -> Optional[str]:
        if not entity.employee_no:
            return "Employee number is required"
        if not entity.leave_code:
            return "Leave type is required"
        if not entity.days_applied or entity.days_applied <= 0:
            return "Days applied must be greater than 0"
        if not entity.start_date:
            return "Start date is required"
        if not entity.duties_taken_over_by:
            return "Please select who will take over your duties"
        return None

    async def _apply_dates(self, entity: LeaveApplication) -> None:
        """Fill End_Date and Resumption_Date from the start date and leave type."""
        if not entity.start_date or not entity.days_applied:
            return
        leave_type = await self.leave_type(entity.leave_code)
        entity.end_date = calculate_end_date(entity.start_date, int(entity.days_applied), leave_type)
        entity.resumption_date = calculate_resumption_date(entity.end_date, leave_type)

    async def create(self, entity: LeaveApplication) -> OperationResult:
        error = self.validate_create(entity)
        if error:
            return self._invalid(error, "create")

        today = self.today()
        if entity.start_date < today:
            entity.start_date = today
        if not entity.application_date:
            entity.application_date = today
        await self._apply_dates(entity)

        logger.info(
            f"Creating leave: type={entity.leave_code} days={entity.days_applied} "
            f"start={entity.start_date} end={entity.end_date}"
        )
        return await super().create(entity)

    async def create_application(self, request: LeaveApplicationRequest) -> OperationResult:
        """Create an application, then write the contact fields in a follow-up PATCH.

        The contact fields (reason and phone numbers) are not accepted on
        insert by the ERP page. If the follow-up write fails, the application
        still exists and the result says so.
        """
        entity = LeaveApplication(
            employee_no=request.employee_no,
            leave_code=request.leave_code,
            days_applied=Decimal(request.days_applied),
            start_date=request.start_date,
            duties_taken_over_by=request.duties_taken_over_by,
        )
        result = await self.create(entity)
        if not result.ok:
            return result

        extras = {
            "reason": request.reason,
            "telephone_no": request.telephone_no,
            "alternate_phone_no": request.alternate_phone_no,
        }
        extras = {k: v for k, v in extras.items() if v}
        if not extras or result.data is None or not result.data.etag:
            return result

        created: LeaveApplication = result.data
        for name, value in extras.items():
            setattr(created, name, value)
        follow_up = await self.update(created)
        if not follow_up.ok:
            logger.warning(f"Leave application {result.key} created without contact details: {follow_up.message}")
            return OperationResult.success(
                f"{result.message}, but contact details were not saved: {follow_up.message}",
                key=result.key,
                etag=result.etag,
                data=created,
            )
        return OperationResult.success(result.message, key=result.key, etag=follow_up.etag, data=follow_up.data)

    async def update_application(
        self, key: str, changes: Mapping[str, Any], etag: Optional[str]
    ) -> OperationResult:
        """Save edits to an existing application.

        ``changes`` holds only the fields the caller sent. They are merged
        over the stored record before the end and resumption dates are
        recomputed, so a partial edit still uses the stored leave type and
        days. Status moves only through the workflow actions.
        """
        if not key:
            return self._invalid("Application number is required", "update")
        if not etag:
            return self._invalid(
                f"{self.label} {key} has no concurrency token. Reload it before saving.", "update", key
            )

        try:
            sent = self.schema.model.model_validate(dict(changes)).model_dump(exclude_unset=True)
        except ValidationError as e:
            return self._invalid(f"Invalid {self.label.lower()}: {e.errors(include_url=False)[0]['msg']}", "update", key)
        sent.pop("etag", None)
        sent.pop("application_no", None)
        if "status" in sent:
            return self._invalid(
                "Status changes go through the workflow actions (submit, cancel, approve, reject)", "update", key
            )

        current, failure = await self.read(key)
        if failure:
            return failure

        merged = current.model_copy(update=sent)
        await self._apply_dates(merged)
        return await self.update(LeaveApplication(
            application_no=key,
            etag=etag,
            end_date=merged.end_date,
            resumption_date=merged.resumption_date,
            **sent,
        ))

    async def leave_balance(self, employee_no: str, leave_code: str) -> LeaveBalance:
        """Remaining days for one employee and leave type.

        The latest application's running balance wins when positive;
        otherwise the leave type's entitlement is reported.
        """
        balance = LeaveBalance(employee_no=employee_no, leave_code=leave_code)
        latest = await self.list(LeaveFilter(
            employee_no=employee_no, leave_code=leave_code, order_by="Application_Date desc", top=1
        ))
        application = latest.first()
        if application is not None and application.leave_balance and application.leave_balance > 0:
            balance.balance = application.leave_balance
            balance.source = "application"
            return balance

        leave_type = await self.leave_type(leave_code)
        if leave_type is None:
            return balance
        balance.source = "leave_type"
        if leave_type.unlimited_days:
            balance.unlimited = True
        else:
            balance.balance = leave_type.days
        return balance
