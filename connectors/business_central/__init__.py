"""Business Central Connector Package.

Implements the ERPClient interface for Microsoft Dynamics 365 Business Central
OData V4 web services.
"""

from connectors.business_central.bc_client import BCApiClient, parse_bc_error
from connectors.business_central.bc_auth import BCBasicCredentials
from connectors.business_central.bc_models import (
    BCBaseModel,
    ERPEntity,
    Employee,
    LeaveType,
    LeaveApplication,
    LeavePlan,
    Appraisal,
    AppraisalLine,
    PerformanceTarget,
    PerformanceTargetLine,
    FixedAsset,
    AssetRepair,
    MeetingRoom,
    RoomBooking,
    FleetVehicle,
    TransportRequest,
    VehicleMaintenance,
    TrainingRequest,
    TrainingEvaluation,
    Incident,
    JobRequisition,
    HelpDeskTicket,
)

__all__ = [
    # Client
    "BCApiClient",
    "parse_bc_error",
    # Basic auth
    "BCBasicCredentials",
    # Models
    "BCBaseModel",
    "ERPEntity",
    "Employee",
    "LeaveType",
    "LeaveApplication",
    "LeavePlan",
    "Appraisal",
    "AppraisalLine",
    "PerformanceTarget",
    "PerformanceTargetLine",
    "FixedAsset",
    "AssetRepair",
    "MeetingRoom",
    "RoomBooking",
    "FleetVehicle",
    "TransportRequest",
    "VehicleMaintenance",
    "TrainingRequest",
    "TrainingEvaluation",
    "Incident",
    "JobRequisition",
    "HelpDeskTicket",
]
