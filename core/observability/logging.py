"""
Correlated Logging for Portal Requests

Every log line carries whatever is known about the request it belongs to:
- request_id: Set by the API middleware (or taken from X-Request-ID)
- resource: Portal resource being accessed (e.g. "appraisals")
- entity_key: Natural key of the record (e.g. "APR25.00001")
- action: Workflow action being performed (e.g. "submit")
- employee_no: Employee the request acts on behalf of

The context lives in a ContextVar, so concurrent requests served by the same
event loop never see each other's identifiers.

Usage:
    from core.observability.logging import get_logger, with_correlation

    logger = get_logger(__name__)

    with with_correlation(resource="leave_applications", entity_key="LV00012"):
        logger.info("Submitting", extra_fields={"days": 5})
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Union


PORTAL_LOGGERS = ("api", "connectors", "core", "services")
NOISY_LOGGERS = ("aiohttp", "httpx", "uvicorn.access")
ERP_LOGGER = "connectors.erp"


# =============================================================================
# Correlation Context
# =============================================================================

@dataclass(frozen=True)
class CorrelationContext:
    """Identifiers of the portal request being served."""
    request_id: Optional[str] = None
    resource: Optional[str] = None
    entity_key: Optional[str] = None
    action: Optional[str] = None
    employee_no: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **ids: Optional[str]) -> "CorrelationContext":
        """Copy with the given identifiers set; ``None`` keeps the current value."""
        return replace(self, **{k: v for k, v in ids.items() if v is not None})

    def label(self) -> str:
        """Short form for console lines: ``3f2a1b9c/appraisals/APR25.00001/action:submit``."""
        parts = []
        if self.request_id:
            parts.append(self.request_id[:8])
        if self.resource:
            parts.append(self.resource)
        if self.entity_key:
            parts.append(self.entity_key)
        if self.action:
            parts.append(f"action:{self.action}")
        return "/".join(parts) or "-"


_correlation: ContextVar[CorrelationContext] = ContextVar("portal_correlation", default=CorrelationContext())


def get_correlation_context() -> CorrelationContext:
    return _correlation.get()


@contextmanager
def with_correlation(**ids: Optional[str]) -> Iterator[CorrelationContext]:
    """Add identifiers for the duration of the block.

    Nested blocks extend the outer context; leaving a block restores it.
    """
    ctx = _correlation.get().merge(**ids)
    token = _correlation.set(ctx)
    try:
        yield ctx
    finally:
        _correlation.reset(token)


# =============================================================================
# Formatters
# =============================================================================

def _timestamp(record: logging.LogRecord, fmt: str) -> str:
    return datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(fmt)


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line, for log shippers.

    {"timestamp": "2025-03-04T09:12:44.120311Z", "level": "WARNING",
     "logger": "connectors.erp", "message": "appraisals.update failed (CONFLICT): ...",
     "request_id": "3f2a1b9c0d4e", "resource": "appraisals", "status_code": 412}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _timestamp(record, "%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(get_correlation_context().to_dict())
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Console format:
    2025-03-04 09:12:44 [INFO ] core.resources.service [3f2a1b9c/appraisals/APR25.00001]: Appraisal APR25.00001 updated successfully
    """

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{_timestamp(record, '%Y-%m-%d %H:%M:%S')} [{record.levelname:5}] {record.name} "
            f"[{get_correlation_context().label()}]: {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Logger with Correlation Support
# =============================================================================

class CorrelatedLogger:
    """
    Thin wrapper over a stdlib logger.

    Accepts ``extra_fields={...}`` on every call; the formatters add the
    correlation context themselves.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def log(self, level: int, msg: str, *args, extra_fields: Optional[Dict[str, Any]] = None, exc_info=None):
        if not self._logger.isEnabledFor(level):
            return
        if exc_info is True:
            exc_info = sys.exc_info()
        record = self._logger.makeRecord(
            self._logger.name, level, "(portal)", 0, msg, args, exc_info or None
        )
        record.extra_fields = extra_fields or {}
        self._logger.handle(record)

    def debug(self, msg: str, *args, **kwargs):
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self.log(logging.ERROR, msg, *args, **kwargs)

    def isEnabledFor(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)


# =============================================================================
# Setup
# =============================================================================

_loggers: Dict[str, CorrelatedLogger] = {}
_handler: Optional[logging.Handler] = None


def configure_logging(level: Union[int, str] = logging.INFO, json_format: bool = False) -> None:
    """Install the portal's stdout handler on the root logger.

    Args:
        level: Level number or name ("DEBUG", "info", ...); unknown names mean INFO
        json_format: StructuredFormatter when True, else HumanReadableFormatter

    Calling again replaces the handler installed by the previous call.
    """
    global _handler

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(level)
    _handler = handler

    for name in PORTAL_LOGGERS:
        logging.getLogger(name).setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> CorrelatedLogger:
    """Correlated logger for ``name`` (typically ``__name__``)."""
    if _handler is None:
        configure_logging()
    if name not in _loggers:
        _loggers[name] = CorrelatedLogger(logging.getLogger(name))
    return _loggers[name]


# =============================================================================
# ERP Call Helpers
# =============================================================================

def log_erp_call(method: str, entity_set: str, status: int, duration_ms: float, **fields: Any) -> None:
    """Debug line for one completed HTTP call to the ERP."""
    get_logger(ERP_LOGGER).debug(
        f"{method} {entity_set} -> {status}",
        extra_fields={
            "method": method,
            "entity_set": entity_set,
            "status": status,
            "duration_ms": round(duration_ms, 1),
            **fields,
        },
    )


def log_erp_failure(operation: str, kind: str, message: str, **fields: Any) -> None:
    """Warning for a portal operation that did not succeed."""
    get_logger(ERP_LOGGER).warning(
        f"{operation} failed ({kind}): {message}",
        extra_fields={"operation": operation, "error_kind": kind, **fields},
    )
