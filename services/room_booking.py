"""Meeting rooms (read-only) and room bookings with clash detection."""

from datetime import date, time
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field

from connectors.business_central.bc_models import MeetingRoom, RoomBooking
from connectors.erp_base import ERPClient
from connectors.odata import ODataFilter
from core.models.results import ErrorKind, OperationResult
from core.observability.logging import get_logger
from core.resources import ResourceSchema, ResourceService, Workflow, transition

logger = get_logger(__name__)


# Bookings in these states no longer hold the room
INACTIVE_STATUSES = frozenset({"Cancelled", "Rejected"})


class MeetingRoomFilter(ODataFilter):
    room_status: Optional[str] = Field(None, alias="Room_Status")
    location: Optional[str] = Field(None, alias="Location")


class RoomBookingFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="Employee_No")
    room_no: Optional[str] = Field(None, alias="Room_No")
    status: Optional[str] = Field(None, alias="Status")


MEETING_ROOM_SCHEMA = ResourceSchema(
    name="meeting_rooms",
    label="Meeting room",
    entity_set="Available_Meeting_Rooms",
    model=MeetingRoom,
    key_field="room_no",
    filter_model=MeetingRoomFilter,
    search_fields=("Room_No", "Room_Name", "Location"),
    status_field="room_status",
    read_only=True,
)

ROOM_BOOKING_WORKFLOW = Workflow.of(
    transition("approve", ["Pending Approval"], "Approved"),
    transition("reject", ["Pending Approval"], "Rejected"),
    transition("start", ["Approved"], "In Progress"),
    transition("complete", ["Approved", "In Progress"], "Completed"),
    transition("cancel", ["Pending Approval", "Approved", "In Progress"], "Cancelled", verb="cancelled"),
)

ROOM_BOOKING_SCHEMA = ResourceSchema(
    name="room_bookings",
    label="Booking",
    entity_set="Meeting_Room_Bookings",
    model=RoomBooking,
    key_field="booking_no",
    filter_model=RoomBookingFilter,
    search_fields=("Booking_No", "Room_Name", "Purpose", "Employee_Name"),
    date_field="Booking_Date",
    default_order_by="Booking_Date desc",
    status_field="status",
    default_status="Pending Approval",
    read_only_fields=frozenset({"room_name", "room_capacity", "employee_name", "duration"}),
    workflow=ROOM_BOOKING_WORKFLOW,
)


class Availability(BaseModel):
    """Outcome of a clash check."""
    available: bool
    conflicts: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    error_kind: ErrorKind = ErrorKind.VALIDATION


def parse_time(value: Optional[str]) -> Optional[time]:
    """ERP time strings (``09:30``, ``09:30:00``, ``09:30:00.000``); None if blank or malformed."""
    if not value:
        return None
    try:
        return time.fromisoformat(value.strip()[:8])
    except ValueError:
        return None


def times_overlap(start: time, end: time, other_start: time, other_end: time) -> bool:
    return start < other_end and other_start < end


class RoomBookingService(ResourceService[RoomBooking]):
    """Room bookings.

    Usage:
        service = RoomBookingService(client)
        check = await service.check_room_availability("R01", date(2025, 3, 3), "09:00", "10:00")
    """

    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, ROOM_BOOKING_SCHEMA, **kwargs)

    def validate_create(self, entity: RoomBooking) -> Optional[str]:
        if not entity.room_no:
            return "Room is required"
        if not entity.booking_date:
            return "Booking date is required"
        start, end = parse_time(entity.start_time), parse_time(entity.end_time)
        if start is None or end is None:
            return "Start and end times are required (HH:MM)"
        if end <= start:
            return "End time must be after start time"
        if entity.room_capacity and entity.no_of_participants and entity.no_of_participants > entity.room_capacity:
            return f"Room capacity is {entity.room_capacity}"
        return None

    async def check_room_availability(
        self,
        room_no: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude: Optional[str] = None,
    ) -> Availability:
        """Whether ``room_no`` is free for the slot, ignoring booking ``exclude``."""
        start, end = parse_time(start_time), parse_time(end_time)
        if start is None or end is None:
            return Availability(available=False, error="Start and end times are required (HH:MM)")

        result = await self.list(RoomBookingFilter(room_no=room_no, from_date=booking_date, to_date=booking_date))
        if result.error is not None:
            return Availability(available=False, error=result.error.message, error_kind=result.error.kind)

        conflicts = []
        for booking in result.items:
            if booking.booking_no == exclude or booking.status in INACTIVE_STATUSES:
                continue
            other_start, other_end = parse_time(booking.start_time), parse_time(booking.end_time)
            if other_start is None or other_end is None:
                continue
            if times_overlap(start, end, other_start, other_end):
                conflicts.append(booking.booking_no)
        return Availability(available=not conflicts, conflicts=conflicts)

    async def create(self, entity: RoomBooking) -> OperationResult:
        error = self.validate_create(entity)
        if error:
            return self._invalid(error, "create")

        check = await self.check_room_availability(
            entity.room_no, entity.booking_date, entity.start_time, entity.end_time
        )
        if check.error:
            return self._fail(check.error_kind, f"Could not confirm room availability: {check.error}", "create")
        if not check.available:
            return self._invalid(
                f"Room {entity.room_no} is already booked at that time ({', '.join(check.conflicts)})", "create"
            )
        return await super().create(entity)

    async def cancel(self, key: str, remarks: Optional[str] = None) -> OperationResult:
        changes = {"remarks": f"Cancelled: {remarks}"} if remarks else None
        return await self.transition(key, "cancel", changes=changes)

    async def perform(self, key: str, action: str, payload: Optional[Mapping[str, Any]] = None) -> OperationResult:
        payload = payload or {}
        if action == "cancel":
            return await self.cancel(key, payload.get("remarks"))
        return await super().perform(key, action, payload)


class MeetingRoomService(ResourceService[MeetingRoom]):
    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, MEETING_ROOM_SCHEMA, **kwargs)
