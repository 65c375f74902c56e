"""
Resource Service Tests

Validates the generic CRUD + workflow layer against the simulated ERP:
1. Lists carry a structured error instead of raising when the ERP is down
2. Creates apply defaults, refuse invalid input before any ERP call, and
   strip read-only fields from the payload
3. Updates and deletes require the concurrency token and surface 412 as CONFLICT
4. Transitions are guarded: a refused action never writes to the ERP
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from connectors.business_central.bc_models import AssetRepair, Employee, Incident
from connectors.erp_base import ERPClient, ERPResponse, ERPTransportError
from core.models.results import ErrorKind
from core.observability.metrics import get_metrics
from services.incidents import IncidentFilter, IncidentService


INCIDENTS = [
    {
        "Incident_Reference": "IC00001",
        "Employee_No": "E001",
        "Employee_Name": "Ada Obi",
        "Incident_Status": "Open",
        "Incident_Description": "Wet floor near the lifts",
        "Incident_Date": "2025-02-20",
    },
    {
        "Incident_Reference": "IC00002",
        "Employee_No": "E002",
        "Employee_Name": "Ben Kamau",
        "Incident_Status": "Resolved",
        "Incident_Description": "Broken chair",
        "Incident_Date": "2025-02-21",
    },
]

LIST = "Incident_Management_List"
CARD = "Incident_Management_Application"


@pytest.fixture
def incidents(erp, services):
    erp.seed(LIST, *INCIDENTS)
    return services.incidents


class TestList:
    """Reads never raise for ERP trouble."""

    async def test_list_parses_records_with_tokens(self, erp, incidents):
        result = await incidents.list()

        assert result.ok
        assert {i.incident_reference for i in result} == {"IC00001", "IC00002"}
        assert all(i.etag for i in result)

    async def test_filter_and_defaults_reach_erp(self, erp, incidents):
        result = await incidents.list(IncidentFilter(employee_no="E001"))

        assert [i.incident_reference for i in result] == ["IC00001"]
        sent = erp.calls("GET", LIST)[-1].query
        assert sent["$filter"] == "Employee_No eq 'E001'"
        assert sent["$orderby"] == "Incident_Date desc"
        assert sent["$top"] == "1000"

    async def test_empty_result_is_not_an_error(self, erp, incidents):
        result = await incidents.list(IncidentFilter(employee_no="E999"))

        assert result.ok
        assert result.items == []

    async def test_erp_outage_is_reported(self, offline_services):
        result = await offline_services.incidents.list()

        assert result.items == []
        assert not result.ok
        assert result.error.kind == ErrorKind.TRANSPORT

    async def test_erp_error_is_reported(self, erp, incidents):
        erp.fail("GET", LIST, status=500, message="Database is locked")

        result = await incidents.list()

        assert result.items == []
        assert result.error.kind == ErrorKind.ERP_REJECTION
        assert result.error.message == "Database is locked"
        assert result.error.status_code == 500


class TestGet:
    async def test_get_captures_etag(self, erp, incidents):
        incident = await incidents.get("IC00001")

        assert incident.incident_description == "Wet floor near the lifts"
        assert incident.etag == erp.row(LIST, "IC00001")["@odata.etag"]

    async def test_missing_record_is_none(self, incidents):
        assert await incidents.get("IC09999") is None

    async def test_outage_is_none(self, offline_services):
        assert await offline_services.incidents.get("IC00001") is None

    async def test_key_with_slash(self, erp, services):
        erp.seed("AssetRepairs", {"MaintenanceRefNo": "MT2025/0001", "MaintenanceStatus": "Open"})

        repair = await services.asset_repairs.get("MT2025/0001")

        assert repair.maintenance_ref_no == "MT2025/0001"
        assert erp.calls("GET", "AssetRepairs")[-1].path == "AssetRepairs('MT2025%2F0001')"


class TestCreate:
    async def test_defaults_and_erp_numbering(self, erp, services, today):
        result = await services.incidents.create(Incident(
            employee_no="E001",
            employee_name="Should not be sent",
            incident_description="Loose cable in the corridor",
        ))

        assert result.ok
        assert result.key == "IC00001"
        assert result.message == "Incident IC00001 created successfully"
        assert result.etag == erp.row(LIST, "IC00001")["@odata.etag"]

        [post] = erp.calls("POST")
        assert post.path == CARD
        assert post.body["Incident_Status"] == "Open"
        assert post.body["Incident_Date"] == today.isoformat()
        assert "Employee_Name" not in post.body
        assert "@odata.etag" not in post.body

    async def test_validation_happens_before_any_call(self, erp, services):
        result = await services.incidents.create(Incident(employee_no="E001"))

        assert not result.ok
        assert result.kind == ErrorKind.VALIDATION
        assert result.message == "Please describe the incident"
        assert erp.calls("POST") == []

    async def test_future_incident_date_is_refused(self, erp, services, today):
        result = await services.incidents.create(Incident(
            employee_no="E001",
            incident_description="Not yet",
            incident_date=today.replace(day=today.day + 1),
        ))

        assert result.kind == ErrorKind.VALIDATION
        assert erp.calls("POST") == []

    async def test_read_only_resource(self, erp, services):
        result = await services.employees.create(Employee(no="E100"))

        assert result.kind == ErrorKind.VALIDATION
        assert result.message == "Employee records are read-only"
        assert erp.requests == []

    async def test_erp_rejection_message(self, erp, services):
        erp.fail("POST", CARD, status=400, message="Employee No. E404 does not exist.")

        result = await services.incidents.create(Incident(employee_no="E404", incident_description="x"))

        assert result.kind == ErrorKind.ERP_REJECTION
        assert result.message == "Employee No. E404 does not exist."
        assert result.status_code == 400

    async def test_outage(self, offline_services):
        result = await offline_services.incidents.create(Incident(employee_no="E001", incident_description="x"))

        assert result.kind == ErrorKind.TRANSPORT


class TestUpdate:
    async def test_token_is_required(self, erp, incidents):
        result = await incidents.update(Incident(incident_reference="IC00001", incident_type="Safety"))

        assert result.kind == ErrorKind.VALIDATION
        assert "no concurrency token" in result.message
        assert erp.calls("PATCH") == []

    async def test_update_replays_token_and_refreshes_it(self, erp, incidents):
        incident = await incidents.get("IC00001")
        read_etag = incident.etag
        incident.incident_type = "Safety"

        result = await incidents.update(incident)

        assert result.ok
        assert result.message == "Incident IC00001 updated successfully"
        [patch] = erp.calls("PATCH")
        assert patch.path == f"{CARD}('IC00001')"
        assert patch.headers["If-Match"] == read_etag
        assert "Incident_Reference" not in patch.body
        assert incident.etag == erp.row(LIST, "IC00001")["@odata.etag"] != read_etag

    async def test_update_never_writes_status(self, erp, incidents):
        incident = await incidents.get("IC00001")
        incident.incident_status = "Resolved"
        incident.incident_description = "Wet floor near the lifts, mopped"

        result = await incidents.update(incident)

        assert result.ok
        [patch] = erp.calls("PATCH")
        assert "Incident_Status" not in patch.body
        assert patch.body["Incident_Description"] == "Wet floor near the lifts, mopped"
        assert erp.row(LIST, "IC00001")["Incident_Status"] == "Open"

    async def test_second_write_with_refreshed_token(self, erp, incidents):
        incident = await incidents.get("IC00001")
        incident.incident_type = "Safety"
        assert (await incidents.update(incident)).ok

        incident.incident_type = "Security"
        result = await incidents.update(incident)

        assert result.ok
        assert erp.row(LIST, "IC00001")["Incident_Type"] == "Security"

    async def test_stale_token_is_a_conflict(self, erp, incidents):
        incident = await incidents.get("IC00001")
        erp.touch(LIST, "IC00001", Incident_Type="Changed elsewhere")
        incident.incident_type = "Mine"

        result = await incidents.update(incident)

        assert result.kind == ErrorKind.CONFLICT
        assert result.message == "Incident IC00001 was modified by another user. Refresh and try again."
        assert result.status_code == 412
        assert erp.row(LIST, "IC00001")["Incident_Type"] == "Changed elsewhere"
        assert get_metrics().get_summary()["operations"]["conflicts"] == 1

    async def test_deleted_meanwhile_is_not_found(self, erp, incidents):
        incident = await incidents.get("IC00001")
        erp.tables[LIST].clear()

        result = await incidents.update(incident)

        assert result.kind == ErrorKind.NOT_FOUND
        assert result.message == "Incident IC00001 not found"


class TestDelete:
    async def test_delete(self, erp, incidents):
        incident = await incidents.get("IC00002")

        result = await incidents.delete("IC00002", incident.etag)

        assert result.ok
        assert result.message == "Incident IC00002 deleted successfully"
        assert erp.row(LIST, "IC00002") is None

    async def test_delete_requires_token(self, erp, incidents):
        result = await incidents.delete("IC00002", None)

        assert result.kind == ErrorKind.VALIDATION
        assert erp.calls("DELETE") == []

    async def test_stale_delete(self, erp, incidents):
        stale = erp.row(LIST, "IC00002")["@odata.etag"]
        erp.touch(LIST, "IC00002", Incident_Type="Other")

        result = await incidents.delete("IC00002", stale)

        assert result.kind == ErrorKind.CONFLICT
        assert erp.row(LIST, "IC00002") is not None


class TestTransition:
    """Guard-then-update status changes."""

    async def test_allowed_transition(self, erp, incidents):
        result = await incidents.transition("IC00001", "resolve")

        assert result.ok
        assert result.message == "Incident IC00001 resolved successfully"
        assert erp.row(LIST, "IC00001")["Incident_Status"] == "Resolved"
        assert result.data.incident_status == "Resolved"

    async def test_refused_transition_never_writes(self, erp, incidents):
        result = await incidents.transition("IC00001", "close")

        assert result.kind == ErrorKind.VALIDATION
        assert result.message == "Cannot close: status is 'Open', expected 'Resolved'"
        assert erp.calls("PATCH") == []

    async def test_unknown_action(self, erp, incidents):
        result = await incidents.transition("IC00001", "approve")

        assert result.kind == ErrorKind.VALIDATION
        assert result.message == "Unknown action 'approve'. Allowed actions: start, resolve, close, reopen"
        assert erp.requests == []

    async def test_missing_record(self, incidents):
        result = await incidents.transition("IC09999", "resolve")

        assert result.kind == ErrorKind.NOT_FOUND
        assert result.message == "Incident IC09999 not found"

    async def test_outage_is_not_reported_as_missing(self, offline_services):
        result = await offline_services.incidents.transition("IC00001", "resolve")

        assert result.kind == ErrorKind.TRANSPORT

    async def test_read_distinguishes_missing_from_rejected(self, erp, incidents):
        erp.fail("GET", LIST, status=500, message="Database timeout")

        rejected, failure = await incidents.read("IC00001")
        assert rejected is None
        assert failure.kind == ErrorKind.ERP_REJECTION

        missing, failure = await incidents.read("IC09999")
        assert missing is None
        assert failure.kind == ErrorKind.NOT_FOUND

    async def test_changes_written_with_status(self, erp, incidents):
        result = await incidents.transition("IC00002", "reopen", changes={"incident_type": "Safety"})

        assert result.ok
        row = erp.row(LIST, "IC00002")
        assert row["Incident_Status"] == "Open"
        assert row["Incident_Type"] == "Safety"

    async def test_unknown_change_field(self, erp, incidents):
        result = await incidents.transition("IC00001", "resolve", changes={"colour": "red"})

        assert result.kind == ErrorKind.VALIDATION
        assert result.message == "Unknown Incident fields: colour"
        assert erp.calls("PATCH") == []

    async def test_dates_are_stamped(self, erp, services, today):
        erp.seed("AssetRepairs", {"MaintenanceRefNo": "MT2025/0001", "MaintenanceStatus": "In Progress"})

        result = await services.asset_repairs.transition("MT2025/0001", "complete")

        assert result.ok
        row = erp.row("AssetRepairs", "MT2025/0001")
        assert row["MaintenanceStatus"] == "Completed"
        assert row["CompletedDate"] == today.isoformat()

    async def test_concurrent_change_between_read_and_write(self, erp, incidents):
        async def someone_else_edits(incident):
            erp.touch(LIST, "IC00001", Incident_Description="Edited elsewhere")
            return None

        result = await incidents.transition("IC00001", "start", prepare=someone_else_edits)

        assert result.kind == ErrorKind.CONFLICT
        assert erp.row(LIST, "IC00001")["Incident_Status"] == "Open"

    async def test_prepare_can_abort(self, erp, incidents):
        async def refuse(incident):
            return incidents._invalid("Not today", "start", "IC00001")

        result = await incidents.transition("IC00001", "start", prepare=refuse)

        assert result.message == "Not today"
        assert erp.calls("PATCH") == []

    async def test_read_only_resource_has_no_actions(self, erp, services):
        result = await services.employees.transition("E001", "approve")

        assert result.kind == ErrorKind.VALIDATION
        assert erp.requests == []

    async def test_perform_passes_changes(self, erp, incidents):
        result = await incidents.perform("IC00001", "start", {"changes": {"incident_type": "Fire"}})

        assert result.ok
        assert erp.row(LIST, "IC00001")["Incident_Type"] == "Fire"


class TestSummary:
    async def test_outage_sets_error(self, offline_services):
        summary = await offline_services.incidents.summary()

        assert summary.total == 0
        assert summary.error

    async def test_counts(self, incidents):
        summary = await incidents.summary()

        assert summary.total == 2
        assert summary.by_status == {"Open": 1, "Resolved": 1}
        assert summary.error is None


class TestWithMockedClient:
    """Outcome mapping against a mocked ERPClient (no HTTP at all)."""

    @pytest.fixture
    def client(self):
        client = MagicMock(spec=ERPClient)
        client.patch = AsyncMock()
        client.delete = AsyncMock()
        client.error_message.return_value = "Incident Type must have a value."
        return client

    @pytest.fixture
    def service(self, client):
        return IncidentService(client)

    async def test_missing_token_never_calls_erp(self, client, service):
        result = await service.update(Incident(incident_reference="IC00001"))

        assert result.kind is ErrorKind.VALIDATION
        client.patch.assert_not_awaited()

    async def test_transport_error(self, client, service):
        client.patch.side_effect = ERPTransportError("Connection refused", "PATCH", "Incident_Management_Application")

        result = await service.update(Incident(incident_reference="IC00001", etag='W/"1"'))

        assert result.kind is ErrorKind.TRANSPORT
        assert "Connection refused" in result.message

    async def test_rejection_uses_parsed_message(self, client, service):
        client.patch.return_value = ERPResponse(400, '{"error": {"message": "ignored"}}')

        result = await service.update(Incident(incident_reference="IC00001", etag='W/"1"'))

        assert result.kind is ErrorKind.ERP_REJECTION
        assert result.message == "Incident Type must have a value."

    async def test_delete_replays_token(self, client, service):
        client.delete.return_value = ERPResponse(204)

        with patch("core.resources.service.record_operation_success") as recorded:
            result = await service.delete("IC00001", 'W/"7"')

        assert result.ok
        recorded.assert_called_once()
        assert client.delete.await_args.kwargs["if_match"] == 'W/"7"'


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
