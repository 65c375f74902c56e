"""OData query construction.

Turns a typed filter into ``$filter``/``$expand``/``$orderby``/``$top`` query
options. Output is deterministic: clause order follows the filter model's
field declaration order, never the order values were assigned.

Usage:
    class IncidentFilter(ODataFilter):
        employee_no: Optional[str] = Field(None, alias="Employee_No")
        status: Optional[str] = Field(None, alias="Incident_Status")

    query = build_query(
        IncidentFilter(employee_no="E001", search="O'Brien"),
        search_fields=("Incident_Description", "Employee_Name"),
    )
    str(query)
    # $filter=Employee_No eq 'E001' and (contains(Incident_Description, 'O''Brien')
    #   or contains(Employee_Name, 'O''Brien'))&$top=1000
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_TOP = 1000


# =============================================================================
# Literals and Clauses
# =============================================================================

def escape_string(value: str) -> str:
    """Double embedded single quotes, the OData string-literal escape."""
    return value.replace("'", "''")


def quote_literal(value: Any) -> str:
    """Render a Python value as an OData literal."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    # datetime is a date subclass, check it first
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%dT%H:%M:%SZ")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return f"'{escape_string(str(value))}'"


def eq(column: str, value: Any) -> str:
    return f"{column} eq {quote_literal(value)}"


def ne(column: str, value: Any) -> str:
    return f"{column} ne {quote_literal(value)}"


def ge(column: str, value: Any) -> str:
    return f"{column} ge {quote_literal(value)}"


def le(column: str, value: Any) -> str:
    return f"{column} le {quote_literal(value)}"


def contains(column: str, term: str) -> str:
    return f"contains({column}, {quote_literal(str(term))})"


def startswith(column: str, prefix: str) -> str:
    return f"startswith({column}, {quote_literal(str(prefix))})"


def any_of(column: str, values: Iterable[Any]) -> str:
    """Equality against any of several values, as one parenthesized clause."""
    parts = [eq(column, v) for v in values]
    if len(parts) == 1:
        return parts[0]
    return "(" + " or ".join(parts) + ")"


def search_clause(fields: Sequence[str], term: str) -> Optional[str]:
    """Free-text search across the given columns."""
    if not fields or not term:
        return None
    parts = [contains(f, term) for f in fields]
    if len(parts) == 1:
        return parts[0]
    return "(" + " or ".join(parts) + ")"


def entity_path(entity_set: str, key: Union[str, Mapping[str, Any]]) -> str:
    """Path of one entity: ``Set('K')`` or ``Set(A='x',B=1)`` for compound keys.

    Key literals are percent-encoded so keys such as ``MT2025/0001`` stay in
    one path segment.
    """
    if isinstance(key, Mapping):
        inner = ",".join(f"{name}={quote_literal(value)}" for name, value in key.items())
    else:
        inner = quote_literal(str(key))
    encoded = quote(inner, safe="'(),=")
    return f"{entity_set}({encoded})"


# =============================================================================
# Filter Model
# =============================================================================

class ODataFilter(BaseModel):
    """Base filter shared by every resource.

    Subclasses declare equality fields with the ERP column as the alias.
    Empty values (None or "") contribute no clause.
    """
    search: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    order_by: Optional[str] = None
    top: Optional[int] = Field(None, ge=1)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def equality_fields(self) -> List[Tuple[str, Any]]:
        """(column, value) pairs for set fields, in declaration order."""
        base_fields = ODataFilter.model_fields
        pairs = []
        for name, info in type(self).model_fields.items():
            if name in base_fields:
                continue
            value = getattr(self, name)
            if value is None or value == "":
                continue
            pairs.append((info.alias or name, value))
        return pairs


class ODataEnvelope(BaseModel):
    """Collection response: ``{"@odata.context": ..., "value": [...]}``."""
    context: Optional[str] = Field(None, alias="@odata.context")
    value: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


@dataclass(frozen=True)
class ODataQuery:
    """Query options for one collection GET."""
    filter: Optional[str] = None
    expand: Optional[str] = None
    order_by: Optional[str] = None
    top: Optional[int] = None

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.filter:
            params["$filter"] = self.filter
        if self.expand:
            params["$expand"] = self.expand
        if self.order_by:
            params["$orderby"] = self.order_by
        if self.top:
            params["$top"] = str(self.top)
        return params

    def to_query_string(self) -> str:
        """Unencoded query string, stable for a given filter."""
        return "&".join(f"{k}={v}" for k, v in self.to_params().items())

    def __str__(self) -> str:
        return self.to_query_string()


def build_query(
    filter: Optional[ODataFilter] = None,
    search_fields: Sequence[str] = (),
    date_field: Optional[str] = None,
    default_top: int = DEFAULT_TOP,
    default_order_by: Optional[str] = None,
    expand: Optional[str] = None,
    extra_clauses: Sequence[str] = (),
) -> ODataQuery:
    """Build query options from a filter.

    Args:
        filter: Typed filter; None behaves like an empty filter
        search_fields: Columns searched by ``filter.search``
        date_field: Column compared against ``from_date``/``to_date``
        default_top: Row cap used unless the filter sets ``top``
        default_order_by: Ordering used unless the filter sets ``order_by``
        expand: Navigation property to expand
        extra_clauses: Raw clauses appended after the filter's own

    Returns:
        ODataQuery; ``str()`` of it is the query string
    """
    clauses: List[str] = []
    order_by = default_order_by
    top = default_top

    if filter is not None:
        clauses.extend(eq(column, value) for column, value in filter.equality_fields())

        term = (filter.search or "").strip()
        searched = search_clause(search_fields, term)
        if searched:
            clauses.append(searched)

        if date_field and filter.from_date:
            clauses.append(ge(date_field, filter.from_date))
        if date_field and filter.to_date:
            clauses.append(le(date_field, filter.to_date))

        if filter.order_by:
            order_by = filter.order_by
        if filter.top:
            top = filter.top

    clauses.extend(c for c in extra_clauses if c)

    return ODataQuery(
        filter=" and ".join(clauses) or None,
        expand=expand,
        order_by=order_by,
        top=top,
    )
