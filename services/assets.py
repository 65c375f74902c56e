"""Fixed assets (read-only) and asset repair requests."""

from typing import Any, Mapping, Optional, Sequence

from pydantic import Field

from connectors.business_central.bc_models import AssetRepair, FixedAsset
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import OperationResult
from core.resources import ReferenceFormat, ResourceSchema, ResourceService, Summary, Workflow, transition


REPAIR_PRIORITIES = ("Low", "Medium", "High", "Critical")


class FixedAssetFilter(ODataFilter):
    responsible_employee: Optional[str] = Field(None, alias="ResponsibleEmployee")
    fixed_asset_class_code: Optional[str] = Field(None, alias="FixedAssetClassCode")
    location: Optional[str] = Field(None, alias="Location")
    department_code: Optional[str] = Field(None, alias="DepartmentCode")
    active: Optional[bool] = Field(None, alias="Active")


class AssetRepairFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="EmployeeNo")
    asset_no: Optional[str] = Field(None, alias="AssetNo")
    status: Optional[str] = Field(None, alias="MaintenanceStatus")
    priority: Optional[str] = Field(None, alias="RepairPriority")
    assigned_technician: Optional[str] = Field(None, alias="AssignedTechnician")


FIXED_ASSET_SCHEMA = ResourceSchema(
    name="fixed_assets",
    label="Fixed asset",
    entity_set="FixedAssets",
    model=FixedAsset,
    key_field="no",
    filter_model=FixedAssetFilter,
    search_fields=("No", "Description", "SerialNo", "TagNo"),
    date_field="AcqDate",
    sum_fields=("acquisition_cost", "book_value"),
    read_only=True,
)

ASSET_REPAIR_WORKFLOW = Workflow.of(
    transition("assign", ["Open"], "In Progress"),
    transition("hold", ["In Progress"], "On Hold", verb="put on hold"),
    transition("resume", ["On Hold"], "In Progress"),
    transition("complete", ["In Progress"], "Completed", stamps=["completed_date"]),
    transition("cancel", ["Open", "In Progress", "On Hold"], "Cancelled", verb="cancelled"),
)

ASSET_REPAIR_SCHEMA = ResourceSchema(
    name="asset_repairs",
    label="Repair request",
    entity_set="AssetRepairs",
    model=AssetRepair,
    key_field="maintenance_ref_no",
    filter_model=AssetRepairFilter,
    search_fields=("MaintenanceRefNo", "AssetName", "MaintenanceIssue", "EmployeeName"),
    date_field="ReportedDate",
    default_order_by="ReportedDate desc",
    status_field="maintenance_status",
    default_status="Open",
    priority_field="repair_priority",
    sum_fields=("estimated_cost", "actual_cost"),
    read_only_fields=frozenset({"employee_name", "job_title", "asset_name"}),
    reference_format=ReferenceFormat("MT", "%Y", "/", 4),
    workflow=ASSET_REPAIR_WORKFLOW,
)


class AssetRepairService(ResourceService[AssetRepair]):
    """Repair requests raised against fixed assets.

    Usage:
        service = AssetRepairService(client)
        await service.create(AssetRepair(employee_no="E001", asset_no="FA0001",
                                         maintenance_issue="Screen flicker", repair_priority="High"))
        await service.assign_technician("MT2025/0001", "Jane Tech")
    """

    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, ASSET_REPAIR_SCHEMA, **kwargs)

    def _check_priority(self, entity: AssetRepair) -> Optional[str]:
        if entity.repair_priority and entity.repair_priority not in REPAIR_PRIORITIES:
            return (
                f"Invalid priority '{entity.repair_priority}'. "
                f"Expected one of: {', '.join(REPAIR_PRIORITIES)}"
            )
        return None

    def validate_create(self, entity: AssetRepair) -> Optional[str]:
        if not entity.asset_no:
            return "Asset number is required"
        if not entity.maintenance_issue:
            return "Please describe the issue"
        return self._check_priority(entity)

    def validate_update(self, entity: AssetRepair) -> Optional[str]:
        return self._check_priority(entity)

    async def create(self, entity: AssetRepair) -> OperationResult:
        if not entity.reported_date:
            entity.reported_date = self.today()
        if not entity.repair_priority:
            entity.repair_priority = "Medium"
        return await super().create(entity)

    async def assign_technician(self, key: str, technician: str) -> OperationResult:
        """Assign a technician and start work on an open request."""
        if not technician:
            return self._invalid("Technician is required", "assign", key)
        return await self.transition(key, "assign", changes={"assigned_technician": technician})

    async def perform(self, key: str, action: str, payload: Optional[Mapping[str, Any]] = None) -> OperationResult:
        payload = payload or {}
        if action == "assign":
            return await self.assign_technician(key, payload.get("technician") or "")
        return await super().perform(key, action, payload)

    def summarize_items(self, items: Sequence[AssetRepair], context: Mapping[str, Any]) -> Summary:
        summary = super().summarize_items(items, context)
        summary.extra["critical_open"] = sum(
            1 for r in items if r.repair_priority == "Critical" and r.maintenance_status in ("Open", "In Progress")
        )
        return summary
