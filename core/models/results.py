"""Structured outcomes for portal operations.

Every public resource operation returns one of these instead of raising, so
callers can branch on ``kind`` rather than parsing message strings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Iterator, List, Optional, TypeVar


class ErrorKind(str, Enum):
    """Why an operation failed."""
    NOT_FOUND = "NOT_FOUND"           # 404, or no record for the key
    CONFLICT = "CONFLICT"             # 412, stale If-Match token
    VALIDATION = "VALIDATION"         # Caller-side precondition, never sent to the ERP
    ERP_REJECTION = "ERP_REJECTION"   # Any other non-2xx from the ERP
    TRANSPORT = "TRANSPORT"           # Timeout, DNS, connection refused


@dataclass
class OperationResult:
    """Outcome of a create/update/delete/transition."""
    ok: bool
    message: str
    kind: Optional[ErrorKind] = None
    key: Optional[str] = None
    etag: Optional[str] = None
    data: Any = None
    status_code: Optional[int] = None

    @classmethod
    def success(
        cls,
        message: str,
        key: Optional[str] = None,
        etag: Optional[str] = None,
        data: Any = None,
    ) -> "OperationResult":
        return cls(ok=True, message=message, key=key, etag=etag, data=data)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        key: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> "OperationResult":
        return cls(ok=False, message=message, kind=kind, key=key, status_code=status_code)

    def is_success(self) -> bool:
        return self.ok

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = self.data
        if hasattr(data, "model_dump"):
            data = data.model_dump(mode="json", by_alias=False)
        return {
            "ok": self.ok,
            "message": self.message,
            "kind": self.kind.value if self.kind else None,
            "key": self.key,
            "etag": self.etag,
            "data": data,
        }


T = TypeVar("T")


@dataclass
class ListResult(Generic[T]):
    """Items from a list query plus the failure, if any.

    ``items`` is always a list. An ERP outage yields an empty list with
    ``error`` set, which distinguishes it from a genuinely empty result.
    """
    items: List[T] = field(default_factory=list)
    error: Optional[OperationResult] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def first(self) -> Optional[T]:
        return self.items[0] if self.items else None
