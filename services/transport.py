"""Fleet vehicles (read-only) and transport requests.

A request is approved, then a vehicle and a driver are allocated before the
trip starts. A vehicle cannot be allocated to two live requests whose planned
dates overlap.
"""

from datetime import date
from typing import Any, Mapping, Optional

from pydantic import Field

from connectors.business_central.bc_models import FleetVehicle, TransportRequest
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter, ge, le
from core.models.results import OperationResult
from core.resources import ResourceSchema, ResourceService, Workflow, transition
from services.room_booking import INACTIVE_STATUSES, Availability


class FleetVehicleFilter(ODataFilter):
    status: Optional[str] = Field(None, alias="Status")
    vehicle_type: Optional[str] = Field(None, alias="Vehicle_Type")


class TransportFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    status: Optional[str] = Field(None, alias="Status")
    vehicle_allocated: Optional[str] = Field(None, alias="Vehicle_Allocated")
    driver: Optional[str] = Field(None, alias="Driver")


FLEET_VEHICLE_SCHEMA = ResourceSchema(
    name="fleet_vehicles",
    label="Vehicle",
    entity_set="Fleet_List",
    model=FleetVehicle,
    key_field="no",
    filter_model=FleetVehicleFilter,
    search_fields=("No", "Description", "Registration_No"),
    status_field="status",
    read_only=True,
)

TRANSPORT_WORKFLOW = Workflow.of(
    transition("approve", ["Pending Approval"], "Approved"),
    transition("reject", ["Pending Approval"], "Rejected"),
    transition("allocate_vehicle", ["Approved"], "Vehicle Allocated", verb="allocated"),
    transition("assign_driver", ["Vehicle Allocated"], "Driver Assigned", verb="assigned"),
    transition("start", ["Driver Assigned"], "In Progress"),
    transition("complete", ["In Progress"], "Completed"),
    transition(
        "cancel",
        ["Pending Approval", "Approved", "Vehicle Allocated", "Driver Assigned", "In Progress"],
        "Cancelled",
        verb="cancelled",
    ),
)

TRANSPORT_SCHEMA = ResourceSchema(
    name="transport_requests",
    label="Transport request",
    entity_set="Transport_Requests",
    model=TransportRequest,
    key_field="request_no",
    filter_model=TransportFilter,
    search_fields=("Request_No", "Destination_Itinerary", "Purpose_of_Travel", "Employee_Name"),
    date_field="Trip_Planned_Start_Date",
    default_order_by="Request_Date desc",
    status_field="status",
    default_status="Pending Approval",
    read_only_fields=frozenset({"employee_name", "vehicle_description", "driver_name"}),
    workflow=TRANSPORT_WORKFLOW,
)


class TransportService(ResourceService[TransportRequest]):
    """Transport requests.

    Usage:
        service = TransportService(client)
        await service.transition("TR0001", "approve")
        await service.allocate_vehicle("TR0001", "V001")
    """

    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, TRANSPORT_SCHEMA, **kwargs)

    def validate_create(self, entity: TransportRequest) -> Optional[str]:
        if not entity.employee_no:
            return "Employee number is required"
        if not entity.destination_itinerary:
            return "Destination is required"
        if not entity.trip_planned_start_date or not entity.trip_planned_end_date:
            return "Trip start and end dates are required"
        if entity.trip_planned_end_date < entity.trip_planned_start_date:
            return "Trip end date cannot be before the start date"
        return None

    async def create(self, entity: TransportRequest) -> OperationResult:
        if not entity.request_date:
            entity.request_date = self.today()
        return await super().create(entity)

    async def check_vehicle_availability(
        self,
        vehicle_no: str,
        start_date: date,
        end_date: date,
        exclude: Optional[str] = None,
    ) -> Availability:
        """Whether ``vehicle_no`` is free between the dates, ignoring request ``exclude``."""
        result = await self.list(
            TransportFilter(vehicle_allocated=vehicle_no),
            extra_clauses=[le("Trip_Planned_Start_Date", end_date), ge("Trip_Planned_End_Date", start_date)],
        )
        if result.error is not None:
            return Availability(available=False, error=result.error.message, error_kind=result.error.kind)

        conflicts = [
            r.request_no for r in result.items
            if r.request_no != exclude and r.status not in INACTIVE_STATUSES
        ]
        return Availability(available=not conflicts, conflicts=conflicts)

    async def allocate_vehicle(self, key: str, vehicle_no: str) -> OperationResult:
        if not vehicle_no:
            return self._invalid("Vehicle is required", "allocate_vehicle", key)

        async def ensure_free(request: TransportRequest) -> Optional[OperationResult]:
            if not request.trip_planned_start_date or not request.trip_planned_end_date:
                return self._invalid("Trip dates are missing on the request", "allocate_vehicle", key)
            check = await self.check_vehicle_availability(
                vehicle_no, request.trip_planned_start_date, request.trip_planned_end_date, exclude=key
            )
            if check.error:
                return self._fail(
                    check.error_kind, f"Could not confirm vehicle availability: {check.error}", "allocate_vehicle", key
                )
            if not check.available:
                return self._invalid(
                    f"Vehicle {vehicle_no} is already allocated for those dates ({', '.join(check.conflicts)})",
                    "allocate_vehicle",
                    key,
                )
            return None

        return await self.transition(
            key, "allocate_vehicle", changes={"vehicle_allocated": vehicle_no}, prepare=ensure_free
        )

    async def assign_driver(self, key: str, driver: str) -> OperationResult:
        if not driver:
            return self._invalid("Driver is required", "assign_driver", key)
        return await self.transition(key, "assign_driver", changes={"driver": driver})

    async def perform(self, key: str, action: str, payload: Optional[Mapping[str, Any]] = None) -> OperationResult:
        payload = payload or {}
        if action == "allocate_vehicle":
            return await self.allocate_vehicle(key, payload.get("vehicle_no") or "")
        if action == "assign_driver":
            return await self.assign_driver(key, payload.get("driver") or "")
        return await super().perform(key, action, payload)


class FleetVehicleService(ResourceService[FleetVehicle]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, FLEET_VEHICLE_SCHEMA, **kwargs)
