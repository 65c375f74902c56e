"""All portal resources behind one ERP client.

Usage:
    async with create_connector(settings.erp) as client:
        services = PortalServices(client)
        leave = services.leave
        incidents = services.get("incidents")
"""

from datetime import date
from typing import Callable, Dict, Iterator, List

from connectors.erp_base import ERPClient
from core.resources import ResourceService
from services.appraisal import AppraisalService
from services.assets import FIXED_ASSET_SCHEMA, AssetRepairService
from services.employees import EmployeeService
from services.helpdesk import HelpDeskService
from services.incidents import IncidentService
from services.job_requisitions import JobRequisitionService
from services.leave import LeaveService
from services.leave_plans import LeavePlanService
from services.performance_targets import PerformanceTargetService
from services.room_booking import MeetingRoomService, RoomBookingService
from services.training import TrainingEvaluationService, TrainingRequestService
from services.transport import FleetVehicleService, TransportService
from services.vehicle_maintenance import VehicleMaintenanceService


class UnknownResourceError(KeyError):
    """No resource is registered under the requested name."""


class PortalServices:
    """Holds one service per resource, keyed by resource name."""

    def __init__(self, client: ERPClient, today: Callable[[], date] = date.today):
        self.client = client
        self.leave = LeaveService(client, today=today)
        self.leave_plans = LeavePlanService(client, today=today)
        self.appraisals = AppraisalService(client, today=today)
        self.performance_targets = PerformanceTargetService(client, today=today)
        self.asset_repairs = AssetRepairService(client, today=today)
        self.room_bookings = RoomBookingService(client, today=today)
        self.transport = TransportService(client, today=today)
        self.training_requests = TrainingRequestService(client, today=today)
        self.training_evaluations = TrainingEvaluationService(client, today=today)
        self.incidents = IncidentService(client, today=today)
        self.helpdesk_tickets = HelpDeskService(client, today=today)
        self.job_requisitions = JobRequisitionService(client, today=today)
        self.vehicle_maintenance = VehicleMaintenanceService(client, today=today)
        self.employees = EmployeeService(client, today=today)
        self.fixed_assets = ResourceService(client, FIXED_ASSET_SCHEMA, today=today)
        self.meeting_rooms = MeetingRoomService(client, today=today)
        self.fleet_vehicles = FleetVehicleService(client, today=today)

        self._by_name: Dict[str, ResourceService] = {
            service.name: service
            for service in (
                self.leave,
                self.leave.types,
                self.leave_plans,
                self.appraisals,
                self.performance_targets,
                self.asset_repairs,
                self.room_bookings,
                self.transport,
                self.training_requests,
                self.training_evaluations,
                self.incidents,
                self.helpdesk_tickets,
                self.job_requisitions,
                self.vehicle_maintenance,
                self.employees,
                self.fixed_assets,
                self.meeting_rooms,
                self.fleet_vehicles,
            )
        }

    def get(self, name: str) -> ResourceService:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownResourceError(name) from None

    @property
    def names(self) -> List[str]:
        return sorted(self._by_name)

    def __iter__(self) -> Iterator[ResourceService]:
        return iter(self._by_name.values())

    def __contains__(self, name: str) -> bool:
        return name in self._by_name
