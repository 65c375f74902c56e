"""
Observability Module for the Self-Service Portal

Provides:
- Structured logging with correlation IDs
- Metrics collection (ERP calls, operation outcomes, latency)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_erp_call,
    record_transport_error,
    record_operation_success,
    record_operation_failure,
)

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    with_correlation,
    log_erp_call,
    log_erp_failure,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_erp_call",
    "record_transport_error",
    "record_operation_success",
    "record_operation_failure",
    # Logging
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
    "log_erp_call",
    "log_erp_failure",
]
