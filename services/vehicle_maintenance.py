"""Vehicle maintenance documents."""

from typing import Any, Mapping, Optional

from pydantic import Field

from connectors.business_central.bc_models import VehicleMaintenance
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import OperationResult
from core.resources import ResourceSchema, ResourceService, Workflow, transition


class VehicleMaintenanceFilter(ODataFilter):
    fa_code_no: Optional[str] = Field(None, alias="FA_Code_No")
    vehicle_registration_no: Optional[str] = Field(None, alias="Vehicle_Registration_No")
    status: Optional[str] = Field(None, alias="Status")
    maintenance_type: Optional[str] = Field(None, alias="Maintenance_Type")
    maintenance_vendor_no: Optional[str] = Field(None, alias="Maintenance_Vendor_No")


VEHICLE_MAINTENANCE_WORKFLOW = Workflow.of(
    transition("submit", ["New"], "Pending Approval", verb="submitted"),
    transition("approve", ["Pending Approval"], "Approved"),
    transition("reject", ["Pending Approval"], "Rejected"),
    transition("start", ["Approved"], "In Progress"),
    transition("complete", ["In Progress"], "Completed", stamps=["completion_date"]),
    transition("cancel", ["New", "Pending Approval", "Approved"], "Cancelled", verb="cancelled"),
)

VEHICLE_MAINTENANCE_SCHEMA = ResourceSchema(
    name="vehicle_maintenance",
    label="Maintenance record",
    entity_set="VehicleMaintenance",
    model=VehicleMaintenance,
    key_field="no",
    filter_model=VehicleMaintenanceFilter,
    search_fields=("No", "Vehicle_Registration_No", "Description", "Vendor_Name"),
    date_field="Maintenance_Date",
    default_order_by="Maintenance_Date desc",
    status_field="status",
    default_status="New",
    sum_fields=("total_cost",),
    read_only_fields=frozenset({
        "vendor_name", "total_repair_cost", "total_maintenance_cost", "total_cost", "created_by",
    }),
    workflow=VEHICLE_MAINTENANCE_WORKFLOW,
)


def append_status_remarks(existing: Optional[str], remarks: str) -> str:
    if not existing:
        return remarks
    return f"{existing}\nStatus Update: {remarks}"


class VehicleMaintenanceService(ResourceService[VehicleMaintenance]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, VEHICLE_MAINTENANCE_SCHEMA, **kwargs)

    def validate_create(self, entity: VehicleMaintenance) -> Optional[str]:
        if not entity.fa_code_no and not entity.vehicle_registration_no:
            return "Vehicle is required"
        if (
            entity.pre_service_mileage is not None
            and entity.post_service_mileage is not None
            and entity.post_service_mileage < entity.pre_service_mileage
        ):
            return "Post-service mileage cannot be below pre-service mileage"
        return None

    async def create(self, entity: VehicleMaintenance) -> OperationResult:
        if not entity.maintenance_date:
            entity.maintenance_date = self.today()
        return await super().create(entity)

    async def change_status(self, key: str, action: str, remarks: Optional[str] = None) -> OperationResult:
        """Run a transition, appending ``remarks`` to the record's history."""
        if not remarks:
            return await self.transition(key, action)

        async def add_remarks(record: VehicleMaintenance) -> None:
            record.remarks = append_status_remarks(record.remarks, remarks)

        return await self.transition(key, action, prepare=add_remarks)

    async def perform(self, key: str, action: str, payload: Optional[Mapping[str, Any]] = None) -> OperationResult:
        payload = payload or {}
        return await self.change_status(key, action, payload.get("remarks"))
