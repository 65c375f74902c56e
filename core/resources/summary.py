"""Dashboard aggregates computed from already-fetched records."""

from collections import Counter
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Dict, Iterable, Optional, Sequence

from pydantic import BaseModel, Field, PlainSerializer


Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Summary(BaseModel):
    """Counts by status and priority plus numeric totals."""
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
    totals: Dict[str, Amount] = Field(default_factory=dict)
    extra: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None

    def count(self, status: str) -> int:
        return self.by_status.get(status, 0)


def field_value(item: Any, name: str) -> Any:
    """Read a field from a model or a plain dict."""
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def summarize(
    items: Iterable[Any],
    status_field: Optional[str] = "status",
    priority_field: Optional[str] = None,
    sum_fields: Sequence[str] = (),
) -> Summary:
    """Aggregate a list of records.

    Args:
        items: Models or dicts
        status_field: Field counted into ``by_status`` (blank counts as "")
        priority_field: Field counted into ``by_priority``
        sum_fields: Numeric fields summed into ``totals``
    """
    items = list(items)
    by_status: Counter = Counter()
    by_priority: Counter = Counter()
    totals: Dict[str, Decimal] = {name: Decimal("0") for name in sum_fields}

    for item in items:
        if status_field:
            by_status[field_value(item, status_field) or ""] += 1
        if priority_field:
            by_priority[field_value(item, priority_field) or ""] += 1
        for name in sum_fields:
            totals[name] += to_decimal(field_value(item, name))

    return Summary(
        total=len(items),
        by_status=dict(by_status),
        by_priority=dict(by_priority),
        totals=totals,
    )
