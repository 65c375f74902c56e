"""
Observability Validation Test

This test validates the observability stack:
1. Metrics collection works (ERP calls, operation outcomes, timings)
2. Structured logging with correlation IDs works
3. Correlation context follows one request through nested scopes
4. Failed operations are logged with their error kind

Pass criteria: From one failed portal request you can find the ERP calls it
made and why it failed.
"""

import json
import logging

import pytest


def test_observability_imports():
    """Verify all observability modules import correctly."""
    from core.observability import (
        MetricsCollector, get_metrics,
        record_erp_call, record_transport_error,
        record_operation_success, record_operation_failure,
        get_logger, configure_logging, CorrelationContext, with_correlation,
        log_erp_call, log_erp_failure,
    )
    assert MetricsCollector is not None
    assert get_metrics is not None
    assert CorrelationContext is not None


class TestMetricsCollector:
    """Test the metrics collection system."""

    def test_singleton_instance(self):
        """MetricsCollector returns same instance."""
        from core.observability.metrics import MetricsCollector
        m1 = MetricsCollector.instance()
        m2 = MetricsCollector.instance()
        assert m1 is m2

    def test_reset_starts_from_zero(self):
        from core.observability.metrics import MetricsCollector
        MetricsCollector.instance().record_success()
        MetricsCollector.reset()
        assert MetricsCollector.instance().get_summary()["operations"]["succeeded"] == 0

    def test_erp_call_tracking(self):
        """Track ERP calls by endpoint and status class."""
        from core.observability.metrics import get_metrics
        mc = get_metrics()

        mc.record_erp_call("GET", "Appraisals", 200, duration_ms=40)
        mc.record_erp_call("PATCH", "Appraisals", 412, duration_ms=55)
        mc.record_erp_call("PATCH", "Appraisals", 500, duration_ms=90)
        mc.record_transport_error("GET", "Employees")

        calls = mc.get_summary()["erp_calls"]
        assert calls["total"] == 4
        assert calls["succeeded"] == 1
        assert calls["failed"] == 3
        assert calls["transport_errors"] == 1
        assert calls["by_endpoint"]["PATCH Appraisals"] == {"total": 2, "2xx": 0, "4xx": 1, "5xx": 1}
        assert calls["by_endpoint"]["GET Employees"]["total"] == 1

    def test_outcome_tracking(self):
        """Conflicts are counted both as failures and separately."""
        from core.observability.metrics import (
            get_metrics, record_operation_failure, record_operation_success,
        )

        record_operation_success()
        record_operation_failure("CONFLICT")
        record_operation_failure("VALIDATION")
        record_operation_failure("VALIDATION")

        ops = get_metrics().get_summary()["operations"]
        assert ops["succeeded"] == 1
        assert ops["failed"] == 3
        assert ops["conflicts"] == 1
        assert ops["by_kind"] == {"CONFLICT": 1, "VALIDATION": 2}

    def test_timing_percentile_calculation(self):
        """Calculate p95 timing correctly."""
        from core.observability.metrics import get_metrics
        mc = get_metrics()

        # Add 100 samples: 1-100ms to one entity set
        for i in range(1, 101):
            mc.record_erp_call("GET", "Leave_Applications_List", 200, duration_ms=i)

        stats = mc.get_timing_stats("Leave_Applications_List")

        # Average should be ~50.5
        assert 49 <= stats["average_ms"] <= 52
        # P95 should be ~95
        assert 93 <= stats["p95_ms"] <= 97
        assert stats["sample_count"] == 100

    def test_empty_timings(self):
        from core.observability.metrics import get_metrics
        stats = get_metrics().get_timing_stats("Nothing")
        assert stats == {"average_ms": 0.0, "p95_ms": 0.0, "sample_count": 0}


class TestCorrelatedLogging:
    """Test structured logging with correlation IDs."""

    def test_correlation_context_creation(self):
        """Create correlation context with all fields."""
        from core.observability.logging import CorrelationContext

        ctx = CorrelationContext(
            request_id="req-1",
            resource="appraisals",
            entity_key="APR25.00001",
            action="submit",
            employee_no="E001",
        )

        assert ctx.resource == "appraisals"
        assert ctx.to_dict()["entity_key"] == "APR25.00001"

    def test_merge_ignores_none(self):
        from core.observability.logging import CorrelationContext

        ctx = CorrelationContext(request_id="req-1").merge(resource="leave", action=None)

        assert ctx.to_dict() == {"request_id": "req-1", "resource": "leave"}

    def test_context_var_isolation(self):
        """Nested scopes add fields and restore the outer context on exit."""
        from core.observability.logging import get_correlation_context, with_correlation

        assert get_correlation_context().resource is None

        with with_correlation(request_id="req-9"):
            with with_correlation(resource="incidents", entity_key="IC00001"):
                inner = get_correlation_context()
                assert inner.request_id == "req-9"
                assert inner.entity_key == "IC00001"
            assert get_correlation_context().resource is None

        assert get_correlation_context().request_id is None

    async def test_context_is_per_task(self):
        import asyncio
        from core.observability.logging import get_correlation_context, with_correlation

        async def worker(key):
            with with_correlation(entity_key=key):
                await asyncio.sleep(0)
                return get_correlation_context().entity_key

        assert await asyncio.gather(worker("A"), worker("B")) == ["A", "B"]

    def test_structured_formatter_json_output(self):
        """StructuredFormatter outputs valid JSON."""
        from core.observability.logging import StructuredFormatter, with_correlation

        formatter = StructuredFormatter()

        with with_correlation(request_id="req-1", resource="appraisals"):
            record = logging.LogRecord(
                name="test",
                level=logging.INFO,
                pathname="test.py",
                lineno=10,
                msg="Test message",
                args=(),
                exc_info=None,
            )
            record.extra_fields = {"duration_ms": 12.5}

            output = formatter.format(record)
            data = json.loads(output)

            assert data["message"] == "Test message"
            assert data["request_id"] == "req-1"
            assert data["resource"] == "appraisals"
            assert data["duration_ms"] == 12.5

    def test_human_readable_formatter(self):
        from core.observability.logging import HumanReadableFormatter, with_correlation

        record = logging.LogRecord("core.resources.service", logging.INFO, "x.py", 1, "Updated", (), None)
        with with_correlation(request_id="0123456789ab", resource="appraisals", action="submit"):
            line = HumanReadableFormatter().format(record)

        assert "[01234567/appraisals/action:submit]: Updated" in line

    def test_log_erp_failure(self, caplog):
        from core.observability.logging import log_erp_failure, with_correlation

        with caplog.at_level(logging.WARNING, logger="connectors.erp"):
            with with_correlation(entity_key="IC00001"):
                log_erp_failure("incidents.update", "CONFLICT", "stale token", status_code=412)

        [record] = [r for r in caplog.records if r.name == "connectors.erp"]
        assert record.getMessage() == "incidents.update failed (CONFLICT): stale token"
        assert record.extra_fields == {"operation": "incidents.update", "error_kind": "CONFLICT", "status_code": 412}

    def test_configure_logging_replaces_handler(self):
        from core.observability.logging import configure_logging

        root = logging.getLogger()
        before = len(root.handlers)
        configure_logging("DEBUG", json_format=True)
        configure_logging("INFO")
        assert len(root.handlers) <= before + 1
        assert root.level == logging.INFO


class TestOperationsAreObservable:
    """A failed portal operation leaves metrics and a log line behind."""

    async def test_conflict_recorded(self, erp, services, caplog):
        from core.observability.metrics import get_metrics

        erp.seed("Incident_Management_List", {"Incident_Reference": "IC00001", "Incident_Status": "Open"})
        incident = await services.incidents.get("IC00001")
        erp.touch("Incident_Management_List", "IC00001", Incident_Type="Fire")

        with caplog.at_level(logging.WARNING, logger="connectors.erp"):
            result = await services.incidents.update(incident)

        assert not result.ok
        summary = get_metrics().get_summary()
        assert summary["operations"]["conflicts"] == 1
        assert summary["erp_calls"]["by_endpoint"]["PATCH Incident_Management_Application"]["4xx"] == 1
        assert any("incidents.update failed (CONFLICT)" in r.getMessage() for r in caplog.records)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
