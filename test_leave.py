"""
Leave Application Tests

1. End and resumption dates skip weekends unless the leave type counts them
2. Applications start no earlier than today and get computed dates
3. Contact details go in a follow-up write; its failure does not lose the application
4. Balances prefer the latest application's running balance over the entitlement
"""

from datetime import date
from decimal import Decimal

import pytest

from connectors.business_central.bc_models import LeaveApplication, LeaveType
from core.models.results import ErrorKind
from services.leave import (
    LeaveApplicationRequest,
    calculate_end_date,
    calculate_resumption_date,
    counts_as_leave_day,
)


LEAVE_TYPES = [
    {"Code": "ANNUAL", "Description": "Annual Leave", "Days": 21},
    {
        "Code": "MATERNITY",
        "Description": "Maternity Leave",
        "Days": 90,
        "Inclusive_of_Saturday": True,
        "Inclusive_of_Sunday": True,
    },
    {"Code": "STUDY", "Description": "Study Leave", "Unlimited_Days": True},
]

APPLICATIONS = "Leave_Applications_List"

MONDAY = date(2025, 1, 6)
FRIDAY = date(2025, 1, 10)
WEEKENDS_COUNT = LeaveType(code="X", inclusive_of_saturday=True, inclusive_of_sunday=True)


@pytest.fixture
def leave(erp, services):
    erp.seed("LeaveTypes", *LEAVE_TYPES)
    return services.leave


def request(**overrides) -> LeaveApplicationRequest:
    values = dict(
        employee_no="E001",
        leave_code="ANNUAL",
        days_applied=5,
        start_date=date(2025, 3, 5),
        duties_taken_over_by="E002",
    )
    values.update(overrides)
    return LeaveApplicationRequest(**values)


class TestDateArithmetic:
    def test_five_days_from_monday(self):
        assert calculate_end_date(MONDAY, 5) == date(2025, 1, 10)

    def test_weekend_is_skipped(self):
        assert calculate_end_date(MONDAY, 7) == date(2025, 1, 14)
        assert calculate_end_date(FRIDAY, 2) == date(2025, 1, 13)

    def test_single_day(self):
        assert calculate_end_date(MONDAY, 1) == MONDAY

    def test_weekends_counted_when_leave_type_says_so(self):
        assert calculate_end_date(FRIDAY, 5, WEEKENDS_COUNT) == date(2025, 1, 14)

    def test_saturday_only(self):
        saturdays = LeaveType(code="X", inclusive_of_saturday=True)
        assert calculate_end_date(FRIDAY, 3, saturdays) == date(2025, 1, 13)

    def test_resumption_after_weekend(self):
        assert calculate_resumption_date(FRIDAY) == date(2025, 1, 13)
        assert calculate_resumption_date(FRIDAY, WEEKENDS_COUNT) == date(2025, 1, 11)

    def test_counts_as_leave_day(self):
        assert counts_as_leave_day(MONDAY, None)
        assert not counts_as_leave_day(date(2025, 1, 11), None)
        assert not counts_as_leave_day(date(2025, 1, 12), LeaveType(code="X", inclusive_of_saturday=True))


class TestCreateApplication:
    async def test_dates_are_computed(self, erp, leave, today):
        result = await leave.create_application(request())

        assert result.ok
        assert result.message == "Leave application LV00001 created successfully"
        [post] = erp.calls("POST", APPLICATIONS)
        assert post.body["Start_Date"] == "2025-03-05"
        assert post.body["End_Date"] == "2025-03-11"
        assert post.body["Resumption_Date"] == "2025-03-12"
        assert post.body["Application_Date"] == today.isoformat()
        assert post.body["Days_Applied"] == 5
        assert erp.calls("PATCH") == []

    async def test_past_start_is_moved_to_today(self, erp, leave, today):
        result = await leave.create_application(request(start_date=date(2025, 2, 20), days_applied=1))

        assert result.ok
        [post] = erp.calls("POST", APPLICATIONS)
        assert post.body["Start_Date"] == today.isoformat()
        assert post.body["End_Date"] == today.isoformat()

    async def test_leave_type_from_erp_counts_weekends(self, erp, leave):
        await leave.create_application(request(leave_code="MATERNITY", start_date=date(2025, 3, 7), days_applied=3))

        [post] = erp.calls("POST", APPLICATIONS)
        assert post.body["End_Date"] == "2025-03-09"
        assert post.body["Resumption_Date"] == "2025-03-10"

    async def test_contact_details_follow_up(self, erp, leave):
        result = await leave.create_application(request(reason="Family visit", telephone_no="0712 000 111"))

        assert result.ok
        [post] = erp.calls("POST", APPLICATIONS)
        assert "Reason" not in post.body
        [patch] = erp.calls("PATCH", APPLICATIONS)
        assert patch.path == "Leave_Applications_List('LV00001')"
        assert patch.headers["If-Match"].startswith('W/"')
        row = erp.row(APPLICATIONS, "LV00001")
        assert row["Reason"] == "Family visit"
        assert row["Telephone_No"] == "0712 000 111"
        assert result.etag == row["@odata.etag"]

    async def test_follow_up_failure_keeps_application(self, erp, leave):
        erp.fail("PATCH", APPLICATIONS, status=400, message="Telephone No. is too long.")

        result = await leave.create_application(request(telephone_no="0" * 40))

        assert result.ok
        assert result.key == "LV00001"
        assert result.message == (
            "Leave application LV00001 created successfully, "
            "but contact details were not saved: Telephone No. is too long."
        )
        assert erp.row(APPLICATIONS, "LV00001") is not None

    @pytest.mark.parametrize("overrides,message", [
        ({"employee_no": None}, "Employee number is required"),
        ({"leave_code": ""}, "Leave type is required"),
        ({"days_applied": 0}, "Days applied must be greater than 0"),
        ({"start_date": None}, "Start date is required"),
        ({"duties_taken_over_by": None}, "Please select who will take over your duties"),
    ])
    async def test_validation(self, erp, leave, overrides, message):
        result = await leave.create_application(request(**overrides))

        assert result.kind == ErrorKind.VALIDATION
        assert result.message == message
        assert erp.calls("POST") == []

    async def test_unknown_leave_code_skips_weekends(self, erp, leave):
        await leave.create_application(request(leave_code="UNPAID", start_date=date(2025, 3, 7), days_applied=2))

        [post] = erp.calls("POST", APPLICATIONS)
        assert post.body["End_Date"] == "2025-03-10"


class TestUpdateAndWorkflow:
    async def test_update_recomputes_dates(self, erp, leave):
        await leave.create_application(request())
        application = await leave.get("LV00001")

        result = await leave.update_application("LV00001", {"days_applied": 2}, application.etag)

        assert result.ok
        assert erp.row(APPLICATIONS, "LV00001")["End_Date"] == "2025-03-06"

    async def test_update_requires_number(self, erp, leave):
        result = await leave.update_application("", {"days_applied": 2}, "W/\"1\"")
        assert result.kind == ErrorKind.VALIDATION
        assert erp.requests == []

    async def test_update_requires_token(self, erp, leave):
        result = await leave.update_application("LV00001", {"days_applied": 2}, None)
        assert result.kind == ErrorKind.VALIDATION
        assert erp.requests == []

    async def test_status_cannot_be_edited(self, erp, leave):
        [row] = erp.seed(APPLICATIONS, {"Application_No": "LV00001", "Leave_Code": "ANNUAL", "Status": "Open"})

        result = await leave.update_application(
            "LV00001", {"Status": "Approved", "Reason": "Wedding"}, row["@odata.etag"]
        )

        assert result.kind == ErrorKind.VALIDATION
        assert "workflow" in result.message
        assert erp.calls("PATCH") == []
        assert erp.row(APPLICATIONS, "LV00001")["Status"] == "Open"

    async def test_start_date_only_uses_stored_days(self, erp, leave):
        await leave.create_application(request())
        application = await leave.get("LV00001")

        result = await leave.update_application("LV00001", {"Start_Date": "2025-03-10"}, application.etag)

        assert result.ok
        row = erp.row(APPLICATIONS, "LV00001")
        assert row["Start_Date"] == "2025-03-10"
        assert row["End_Date"] == "2025-03-14"
        assert row["Resumption_Date"] == "2025-03-17"
        [patch] = erp.calls("PATCH", APPLICATIONS)
        assert set(patch.body) == {"Start_Date", "End_Date", "Resumption_Date"}

    async def test_stored_leave_type_keeps_weekends(self, erp, leave):
        await leave.create_application(request(leave_code="MATERNITY", start_date=date(2025, 3, 7), days_applied=3))
        application = await leave.get("LV00001")

        await leave.update_application("LV00001", {"days_applied": 4}, application.etag)

        assert erp.row(APPLICATIONS, "LV00001")["End_Date"] == "2025-03-10"

    async def test_stale_token_is_rejected(self, erp, leave):
        await leave.create_application(request())
        application = await leave.get("LV00001")
        erp.touch(APPLICATIONS, "LV00001", Reason="Changed elsewhere")

        result = await leave.update_application("LV00001", {"days_applied": 2}, application.etag)

        assert result.kind == ErrorKind.CONFLICT
        assert erp.row(APPLICATIONS, "LV00001")["Days_Applied"] == 5

    async def test_submit_and_approve(self, erp, leave):
        erp.seed(APPLICATIONS, {"Application_No": "LV00042", "Employee_No": "E001", "Status": "Open"})

        submitted = await leave.transition("LV00042", "submit")
        approved = await leave.transition("LV00042", "approve")

        assert submitted.message == "Leave application LV00042 submitted successfully"
        assert approved.ok
        assert erp.row(APPLICATIONS, "LV00042")["Status"] == "Approved"

    async def test_cannot_cancel_approved(self, erp, leave):
        erp.seed(APPLICATIONS, {"Application_No": "LV00043", "Status": "Approved"})

        result = await leave.transition("LV00043", "cancel")

        assert result.kind == ErrorKind.VALIDATION
        assert erp.calls("PATCH") == []


class TestBalance:
    async def test_latest_application_balance(self, erp, leave):
        erp.seed(
            APPLICATIONS,
            {"Application_No": "LV00001", "Employee_No": "E001", "Leave_Code": "ANNUAL",
             "Application_Date": "2024-11-10", "Leave_balance": 20},
            {"Application_No": "LV00002", "Employee_No": "E001", "Leave_Code": "ANNUAL",
             "Application_Date": "2025-02-01", "Leave_balance": 12.5},
            {"Application_No": "LV00003", "Employee_No": "E002", "Leave_Code": "ANNUAL",
             "Application_Date": "2025-02-15", "Leave_balance": 3},
        )

        balance = await leave.leave_balance("E001", "ANNUAL")

        assert balance.balance == Decimal("12.5")
        assert balance.source == "application"
        query = erp.calls("GET", APPLICATIONS)[-1].query
        assert query["$filter"] == "Employee_No eq 'E001' and Leave_Code eq 'ANNUAL'"
        assert query["$top"] == "1"

    async def test_exhausted_balance_falls_back_to_entitlement(self, erp, leave):
        erp.seed(APPLICATIONS, {"Application_No": "LV00001", "Employee_No": "E001", "Leave_Code": "ANNUAL",
                                "Application_Date": "2025-02-01", "Leave_balance": 0})

        balance = await leave.leave_balance("E001", "ANNUAL")

        assert balance.balance == Decimal(21)
        assert balance.source == "leave_type"

    async def test_unlimited_leave(self, leave):
        balance = await leave.leave_balance("E001", "STUDY")

        assert balance.unlimited
        assert balance.balance is None

    async def test_unknown_leave_code(self, leave):
        balance = await leave.leave_balance("E001", "NOPE")

        assert balance.balance is None
        assert balance.source is None


class TestLeaveTypes:
    async def test_lookup(self, leave):
        leave_type = await leave.leave_type("MATERNITY")
        assert leave_type.inclusive_of_saturday

    async def test_end_date_preview(self, leave):
        assert await leave.end_date(FRIDAY, 3, "ANNUAL") == date(2025, 1, 14)
        assert await leave.end_date(FRIDAY, 3, "MATERNITY") == date(2025, 1, 12)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
