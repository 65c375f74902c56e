"""Help desk tickets raised by employees."""

from typing import Any, List, Mapping, Optional, Sequence

from pydantic import Field

from connectors.business_central.bc_models import HelpDeskTicket
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import OperationResult
from core.resources import ResourceSchema, ResourceService, Summary, Workflow, transition


TICKET_CATEGORIES = [
    "IT Support",
    "HR Inquiry",
    "Finance",
    "Facilities",
    "Payroll",
    "Benefits",
    "Equipment",
    "Access",
    "General",
    "Other",
]
TICKET_PRIORITIES = ["Low", "Medium", "High", "Urgent"]


class HelpDeskFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="EmployeeNo")
    status: Optional[str] = Field(None, alias="Status")
    category: Optional[str] = Field(None, alias="Category")
    priority: Optional[str] = Field(None, alias="Priority")
    assigned_to: Optional[str] = Field(None, alias="AssignedTo")


HELPDESK_WORKFLOW = Workflow.of(
    transition("start", ["Open", "Pending"], "In Progress"),
    transition("hold", ["In Progress"], "Pending", verb="put on hold"),
    transition("resolve", ["Open", "In Progress", "Pending"], "Resolved", stamps=["resolution_date"]),
    transition("close", ["Resolved"], "Closed"),
    transition("reopen", ["Resolved", "Closed"], "Open"),
    transition("cancel", ["Open", "Pending"], "Cancelled", verb="cancelled"),
)

HELPDESK_SCHEMA = ResourceSchema(
    name="helpdesk_tickets",
    label="Ticket",
    entity_set="HelpDeskTickets",
    model=HelpDeskTicket,
    key_field="ticket_no",
    filter_model=HelpDeskFilter,
    search_fields=("TicketNo", "Description", "EmployeeName"),
    date_field="CreatedDate",
    default_order_by="CreatedDate desc",
    status_field="status",
    default_status="Open",
    priority_field="priority",
    read_only_fields=frozenset({
        "employee_name", "assigned_to_name", "last_modified_date", "last_modified_time",
    }),
    workflow=HELPDESK_WORKFLOW,
)


class HelpDeskService(ResourceService[HelpDeskTicket]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, HELPDESK_SCHEMA, **kwargs)

    def categories(self) -> List[str]:
        return list(TICKET_CATEGORIES)

    def validate_create(self, entity: HelpDeskTicket) -> Optional[str]:
        if not entity.employee_no:
            return "Employee number is required"
        if not entity.description:
            return "Please describe the problem"
        if entity.category and entity.category not in TICKET_CATEGORIES:
            return f"Unknown category '{entity.category}'"
        if entity.priority and entity.priority not in TICKET_PRIORITIES:
            return f"Priority must be one of {', '.join(TICKET_PRIORITIES)}"
        return None

    async def create(self, entity: HelpDeskTicket) -> OperationResult:
        if not entity.created_date:
            entity.created_date = self.today()
        entity.category = entity.category or "General"
        entity.priority = entity.priority or "Medium"
        return await super().create(entity)

    async def resolve(self, key: str, notes: Optional[str] = None) -> OperationResult:
        changes = {"resolution_notes": notes} if notes else None
        return await self.transition(key, "resolve", changes=changes)

    async def perform(self, key: str, action: str, payload: Optional[Mapping[str, Any]] = None) -> OperationResult:
        payload = payload or {}
        if action == "resolve":
            return await self.resolve(key, payload.get("notes"))
        return await super().perform(key, action, payload)

    def summarize_items(self, items: Sequence[HelpDeskTicket], context: Mapping[str, Any]) -> Summary:
        """Adds ``high_priority``: open work marked High or Urgent."""
        summary = super().summarize_items(items, context)
        summary.extra["high_priority"] = sum(
            1 for t in items
            if t.priority in ("High", "Urgent") and t.status not in ("Resolved", "Closed", "Cancelled")
        )
        return summary
