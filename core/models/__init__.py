"""Core result types shared by every portal resource."""

from core.models.results import (
    ErrorKind,
    OperationResult,
    ListResult,
)

__all__ = [
    "ErrorKind",
    "OperationResult",
    "ListResult",
]
