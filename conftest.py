"""
Shared test fixtures: a simulated Business Central OData service.

FakeBusinessCentral keeps entity sets in memory and answers the part of
OData V4 the portal relies on:
1. Collection GETs with $filter (eq/ne/ge/le/gt/lt, contains, and/or), $orderby, $top, $expand
2. Keyed GET/PATCH/DELETE, with PATCH and DELETE guarded by If-Match
3. POST, numbering records for the entity sets the ERP numbers itself
4. BC-shaped error bodies ({"error": {"code", "message"}}) with a CorrelationId suffix
5. Basic auth and company scoping on every request

Tests can queue failures (status codes or delays) for the next matching call
and inspect every request the portal made.
"""

import asyncio
import copy
import dataclasses
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, unquote

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from httpx import ASGITransport, AsyncClient

from api.server import create_app
from connectors.business_central import BCApiClient, BCBasicCredentials
from core.config import ERPSettings
from core.observability.metrics import MetricsCollector
from services.registry import PortalServices


COMPANY = "CRONUS Ltd"
USERNAME = "PORTAL"
PASSWORD = "web-service-key"
TODAY = date(2025, 3, 3)  # A Monday

# Entity set -> (key columns, prefix for numbers the ERP assigns itself)
TABLES: Dict[str, Tuple[Tuple[str, ...], Optional[str]]] = {
    "Employees": (("No",), None),
    "LeaveTypes": (("Code",), None),
    "Leave_Applications_List": (("Application_No",), "LV"),
    "Leave_Plan_List": (("Application_No",), "LVP"),
    "Appraisals": (("AppraisalNo",), None),
    "AppraisalLines": (("Appraisal_No", "Line_No"), None),
    "PerformanceTargets": (("Objective_No",), None),
    "PerformanceTargetLines": (("Objective_No", "Line_No"), None),
    "FixedAssets": (("No",), None),
    "AssetRepairs": (("MaintenanceRefNo",), None),
    "Available_Meeting_Rooms": (("Room_No",), None),
    "Meeting_Room_Bookings": (("Booking_No",), "BK"),
    "Fleet_List": (("No",), None),
    "Transport_Requests": (("Request_No",), "TR"),
    "VehicleMaintenance": (("No",), "VM"),
    "Training_Request_List": (("Request_No",), "TRQ"),
    "Training_Evaluation_List": (("Evaluation_No",), "TEV"),
    "Incident_Management_List": (("Incident_Reference",), "IC"),
    "Job_Requisition_List": (("Application_No",), "JR"),
    "HelpDeskTickets": (("TicketNo",), "HD"),
}

# Card pages that read and write the same table as a list page
WRITE_PAGES = {
    "Training_Request_Application": "Training_Request_List",
    "Training_Evaluation_Application": "Training_Evaluation_List",
    "Incident_Management_Application": "Incident_Management_List",
    "Job_Requisition_Application": "Job_Requisition_List",
    "Leave_Plan_Application": "Leave_Plan_List",
}

# (entity set, navigation property) -> (parent column, child column)
EXPANSIONS = {
    ("Appraisals", "AppraisalLines"): ("AppraisalNo", "Appraisal_No"),
    ("PerformanceTargets", "PerformanceTargetLines"): ("Objective_No", "Objective_No"),
}


# =============================================================================
# $filter evaluation
# =============================================================================

COMPARISON = re.compile(r"^(\w+) (eq|ne|ge|le|gt|lt) (.+)$")
FUNCTION = re.compile(r"^(contains|startswith)\((\w+), '((?:[^']|'')*)'\)$")
KEY_PART = re.compile(r"(\w+)=('(?:[^']|'')*'|[^,]+)")


def split_top_level(expr: str, separator: str) -> List[str]:
    """Split on ``separator`` outside parentheses and string literals."""
    parts = []
    depth = 0
    in_literal = False
    start = 0
    i = 0
    while i < len(expr):
        ch = expr[i]
        if ch == "'":
            in_literal = not in_literal
        elif not in_literal:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
            elif depth == 0 and expr.startswith(separator, i):
                parts.append(expr[start:i])
                i += len(separator)
                start = i
                continue
        i += 1
    parts.append(expr[start:])
    return [p.strip() for p in parts]


def parse_literal(text: str) -> Any:
    text = text.strip()
    if len(text) >= 2 and text.startswith("'") and text.endswith("'"):
        return text[1:-1].replace("''", "'")
    if text in ("true", "false"):
        return text == "true"
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            pass
    # Dates and datetimes compare as ISO strings
    return text


def matches(row: Dict[str, Any], expr: str) -> bool:
    expr = expr.strip()
    conjuncts = split_top_level(expr, " and ")
    if len(conjuncts) > 1:
        return all(matches(row, part) for part in conjuncts)
    disjuncts = split_top_level(expr, " or ")
    if len(disjuncts) > 1:
        return any(matches(row, part) for part in disjuncts)
    if expr.startswith("(") and expr.endswith(")"):
        return matches(row, expr[1:-1])

    function = FUNCTION.match(expr)
    if function:
        name, column, term = function.groups()
        term = term.replace("''", "'").lower()
        value = str(row.get(column) or "").lower()
        return term in value if name == "contains" else value.startswith(term)

    comparison = COMPARISON.match(expr)
    if not comparison:
        raise ValueError(f"Unsupported filter clause: {expr}")
    column, op, literal = comparison.groups()
    expected = parse_literal(literal)
    actual = row.get(column)
    if op == "eq":
        return actual == expected
    if op == "ne":
        return actual != expected
    if actual is None:
        return False
    if op == "ge":
        return actual >= expected
    if op == "le":
        return actual <= expected
    if op == "gt":
        return actual > expected
    return actual < expected


def parse_key(raw: str, columns: Tuple[str, ...]) -> Tuple[str, ...]:
    """Key tuple from the raw text between the parentheses of an entity path."""
    text = unquote(raw)
    if "=" in text and not text.startswith("'"):
        named = {name: str(parse_literal(value)) for name, value in KEY_PART.findall(text)}
        return tuple(named.get(c, "") for c in columns)
    return (str(parse_literal(text)),)


# =============================================================================
# Simulated service
# =============================================================================

@dataclass
class RecordedRequest:
    method: str
    path: str
    query: Dict[str, str]
    headers: Dict[str, str]
    body: Optional[Dict[str, Any]] = None


@dataclass
class Injection:
    method: Optional[str]
    entity_set: Optional[str]
    status: int = 500
    message: str = "An unexpected error occurred"
    code: str = "Internal_ServerError"
    delay: float = 0.0
    collection_only: bool = False
    raw_body: Optional[bytes] = None


@dataclass
class FakeBusinessCentral:
    company: str = COMPANY
    username: str = USERNAME
    password: str = PASSWORD
    tables: Dict[str, Dict[Tuple[str, ...], Dict[str, Any]]] = field(default_factory=dict)
    requests: List[RecordedRequest] = field(default_factory=list)
    injections: List[Injection] = field(default_factory=list)
    _version: int = 0
    _numbers: Dict[str, int] = field(default_factory=dict)

    @property
    def prefix(self) -> str:
        return f"/ODataV4/Company('{quote(self.company, safe='')}')/"

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def next_etag(self) -> str:
        self._version += 1
        return f'W/"JzE5OzEyNzM0{self._version:04d}MTswMDsn"'

    def seed(self, entity_set: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        table = self.tables.setdefault(entity_set, {})
        columns = TABLES[entity_set][0]
        stored = []
        for row in rows:
            row = dict(row)
            row["@odata.etag"] = self.next_etag()
            table[tuple(str(row[c]) for c in columns)] = row
            stored.append(row)
        return stored

    def rows(self, entity_set: str) -> List[Dict[str, Any]]:
        return list(self.tables.get(entity_set, {}).values())

    def row(self, entity_set: str, *key: Any) -> Optional[Dict[str, Any]]:
        return self.tables.get(entity_set, {}).get(tuple(str(k) for k in key))

    def touch(self, entity_set: str, *key: Any, **changes: Any) -> Dict[str, Any]:
        """Change a row behind the portal's back, as another user would."""
        row = self.row(entity_set, *key)
        row.update(changes)
        row["@odata.etag"] = self.next_etag()
        return row

    def fail(
        self,
        method: Optional[str] = None,
        entity_set: Optional[str] = None,
        status: int = 500,
        message: str = "An unexpected error occurred",
        code: str = "Internal_ServerError",
        delay: float = 0.0,
        collection_only: bool = False,
        raw_body: Optional[bytes] = None,
    ) -> None:
        """Make the next matching request fail (or stall for ``delay`` seconds).

        With ``collection_only`` keyed requests to the entity set pass through.
        ``raw_body`` replaces the BC error JSON with those bytes, sent as UTF-8 text.
        """
        self.injections.append(
            Injection(method, entity_set, status, message, code, delay, collection_only, raw_body)
        )

    def calls(self, method: Optional[str] = None, entity_set: Optional[str] = None) -> List[RecordedRequest]:
        return [
            r for r in self.requests
            if (method is None or r.method == method)
            and (entity_set is None or r.path.split("(", 1)[0] == entity_set)
        ]

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self.handle)
        return app

    def error(self, status: int, code: str, message: str) -> web.Response:
        body = {"error": {"code": code, "message": f"{message}  CorrelationId:  5f1c2b9e-0d41-4c55-9a63-3a8e0c1f7d20."}}
        return web.json_response(body, status=status)

    def entity(self, row: Dict[str, Any], status: int = 200) -> web.Response:
        return web.json_response(row, status=status, headers={"ETag": row["@odata.etag"]})

    def _take_injection(self, method: str, entity_set: str, keyed: bool) -> Optional[Injection]:
        for injection in self.injections:
            if injection.collection_only and keyed:
                continue
            if injection.method not in (None, method):
                continue
            if injection.entity_set not in (None, entity_set):
                continue
            self.injections.remove(injection)
            return injection
        return None

    async def handle(self, request: web.Request) -> web.Response:
        raw_path = request.rel_url.raw_path
        body = await request.json() if request.body_exists else None
        path = raw_path[len(self.prefix):] if raw_path.startswith(self.prefix) else raw_path
        self.requests.append(RecordedRequest(
            method=request.method,
            path=path,
            query=dict(request.rel_url.query),
            headers=dict(request.headers),
            body=body,
        ))

        expected = BCBasicCredentials(self.username, self.password).authorization_header
        if request.headers.get("Authorization") != expected:
            return self.error(401, "Unauthorized", "The server has rejected the client credentials.")
        if not raw_path.startswith(self.prefix):
            return self.error(404, "Internal_CompanyNotFound", "Cannot process the request because the company does not exist.")

        match = re.fullmatch(r"(\w+)(?:\((.*)\))?", path)
        if not match:
            return self.error(404, "BadRequest_NotFound", f"No HTTP resource was found that matches '{path}'.")
        entity_set, raw_key = match.groups()

        injection = self._take_injection(request.method, entity_set, raw_key is not None)
        if injection is not None:
            if injection.delay:
                await asyncio.sleep(injection.delay)
            if injection.raw_body is not None:
                return web.Response(
                    body=injection.raw_body,
                    status=injection.status,
                    headers={"Content-Type": "text/plain; charset=utf-8"},
                )
            return self.error(injection.status, injection.code, injection.message)

        table_name = WRITE_PAGES.get(entity_set, entity_set)
        if table_name not in TABLES:
            return self.error(404, "BadRequest_NotFound", f"No HTTP resource was found that matches '{entity_set}'.")
        table = self.tables.setdefault(table_name, {})
        columns, number_prefix = TABLES[table_name]

        if raw_key is None:
            if request.method == "GET":
                return self.list_rows(table_name, table, dict(request.rel_url.query))
            if request.method == "POST":
                return self.insert(table_name, table, columns, number_prefix, body or {})
            return self.error(405, "BadRequest_MethodNotAllowed", f"'{request.method}' requests are not allowed on a collection.")

        key = parse_key(raw_key, columns)
        row = table.get(key)
        if row is None:
            return self.error(
                404,
                "Internal_RecordNotFound",
                f"The {table_name} does not exist. Identification fields and values: {', '.join(key)}",
            )

        if request.method == "GET":
            expand = request.rel_url.query.get("$expand")
            return self.entity(self.expand(table_name, row, expand))

        if_match = request.headers.get("If-Match")
        if not if_match:
            return self.error(400, "Internal_RequestFailed", "Could not find a value for the If-Match header.")
        if if_match != "*" and if_match != row["@odata.etag"]:
            return self.error(
                412,
                "Internal_EntityChanged",
                "Another user has already changed the record.",
            )

        if request.method == "PATCH":
            for name, value in (body or {}).items():
                if name not in columns:
                    row[name] = value
            row["@odata.etag"] = self.next_etag()
            return self.entity(row)
        if request.method == "DELETE":
            del table[key]
            return web.Response(status=204)
        return self.error(405, "BadRequest_MethodNotAllowed", f"'{request.method}' is not allowed on an entity.")

    def list_rows(self, table_name: str, table: Dict, query: Dict[str, str]) -> web.Response:
        rows = list(table.values())
        expr = query.get("$filter")
        if expr:
            try:
                rows = [r for r in rows if matches(r, expr)]
            except ValueError as e:
                return self.error(400, "BadRequest", str(e))
        order_by = query.get("$orderby")
        if order_by:
            for term in reversed([t.strip() for t in order_by.split(",")]):
                column, _, direction = term.partition(" ")
                rows.sort(
                    key=lambda r: (r.get(column) is not None, r.get(column) if r.get(column) is not None else ""),
                    reverse=direction.strip().lower() == "desc",
                )
        top = query.get("$top")
        if top:
            rows = rows[:int(top)]
        expand = query.get("$expand")
        return web.json_response({
            "@odata.context": f"{self.prefix}$metadata#{table_name}",
            "value": [self.expand(table_name, r, expand) for r in rows],
        })

    def expand(self, table_name: str, row: Dict[str, Any], navigation: Optional[str]) -> Dict[str, Any]:
        row = copy.deepcopy(row)
        if navigation and (table_name, navigation) in EXPANSIONS:
            parent_column, child_column = EXPANSIONS[(table_name, navigation)]
            children = [
                copy.deepcopy(child) for child in self.rows(navigation)
                if str(child.get(child_column)) == str(row.get(parent_column))
            ]
            row[navigation] = sorted(children, key=lambda c: c.get("Line_No") or 0)
        return row

    def insert(
        self,
        table_name: str,
        table: Dict,
        columns: Tuple[str, ...],
        number_prefix: Optional[str],
        body: Dict[str, Any],
    ) -> web.Response:
        row = dict(body)
        if not all(row.get(c) not in (None, "") for c in columns):
            if number_prefix is None or len(columns) != 1:
                return self.error(400, "Internal_FieldMustHaveValue", f"{', '.join(columns)} must have a value.")
            self._numbers[table_name] = self._numbers.get(table_name, 0) + 1
            row[columns[0]] = f"{number_prefix}{self._numbers[table_name]:05d}"
        key = tuple(str(row[c]) for c in columns)
        if key in table:
            return self.error(
                400,
                "Internal_EntityWithSameKeyExists",
                f"The record in table {table_name} already exists. Identification fields and values: {', '.join(key)}",
            )
        row["@odata.etag"] = self.next_etag()
        table[key] = row
        return self.entity(row, status=201)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_metrics():
    """Each test starts from empty metrics."""
    MetricsCollector.reset()
    yield
    MetricsCollector.reset()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def erp() -> FakeBusinessCentral:
    return FakeBusinessCentral()


@pytest.fixture
async def erp_server(erp):
    server = TestServer(erp.make_app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def erp_settings(erp_server) -> ERPSettings:
    return ERPSettings(
        base_url=str(erp_server.make_url("/ODataV4")),
        company=COMPANY,
        username=USERNAME,
        password=PASSWORD,
        timeout_seconds=5.0,
        default_top=1000,
    )


@pytest.fixture
async def bc_client(erp_settings):
    client = BCApiClient(erp_settings)
    await client.connect()
    yield client
    await client.disconnect()


@pytest.fixture
def services(bc_client) -> PortalServices:
    return PortalServices(bc_client, today=lambda: TODAY)


@pytest.fixture
async def api(services):
    """HTTP client for the portal API, wired to the simulated ERP."""
    app = create_app(services=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://portal.test") as client:
        yield client


@pytest.fixture
async def offline_services(erp_settings):
    """Services whose ERP address refuses connections."""
    client = BCApiClient(dataclasses.replace(erp_settings, base_url="http://127.0.0.1:1/ODataV4"))
    yield PortalServices(client, today=lambda: TODAY)
    await client.disconnect()
