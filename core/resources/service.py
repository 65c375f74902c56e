"""Generic ERP-backed resource service.

One class serves every portal resource; a ResourceSchema supplies the
differences. Public operations never raise for ERP or network failures:
reads return empty/None plus a logged, structured error and writes return an
OperationResult whose ``kind`` says what went wrong.

Flow for a status transition:
1. GET the current record (captures its ETag)
2. Check the transition table; refuse without calling the ERP if not allowed
3. Set the target status, stamp dates, apply caller changes
4. PATCH with If-Match; 412 means someone else changed it first
"""

from datetime import date, datetime
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from connectors.erp_base import ERPClient, ERPResponse, ERPTransportError
from connectors.odata import ODataEnvelope, ODataFilter, ODataQuery, build_query, startswith
from core.models.results import ErrorKind, ListResult, OperationResult
from core.observability.logging import get_logger, log_erp_failure, with_correlation
from core.observability.metrics import record_operation_failure, record_operation_success
from core.resources.refno import increment_reference
from core.resources.schema import E, ResourceSchema
from core.resources.summary import Summary, summarize

logger = get_logger(__name__)


Prepare = Callable[[Any], Awaitable[Optional[OperationResult]]]


class ResourceService(Generic[E]):
    """CRUD plus workflow over one ERP entity set.

    Usage:
        service = ResourceService(client, INCIDENT_SCHEMA)
        result = await service.list(IncidentFilter(employee_no="E001"))
        incident = await service.get("IC0001")
        outcome = await service.transition("IC0001", "resolve")
    """

    def __init__(
        self,
        client: ERPClient,
        schema: ResourceSchema[E],
        today: Callable[[], date] = date.today,
    ):
        self.client = client
        self.schema = schema
        self._today = today

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def label(self) -> str:
        return self.schema.label

    def today(self) -> date:
        return self._today()

    # =========================================================================
    # Outcome helpers
    # =========================================================================

    def _kind_for(self, response: ERPResponse) -> ErrorKind:
        if response.not_found:
            return ErrorKind.NOT_FOUND
        if response.conflict:
            return ErrorKind.CONFLICT
        return ErrorKind.ERP_REJECTION

    def _fail(
        self,
        kind: ErrorKind,
        message: str,
        operation: str,
        key: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> OperationResult:
        log_erp_failure(f"{self.name}.{operation}", kind.value, message, status_code=status_code)
        record_operation_failure(kind.value)
        return OperationResult.failure(kind, message, key=key, status_code=status_code)

    def _invalid(self, message: str, operation: str, key: Optional[str] = None) -> OperationResult:
        return self._fail(ErrorKind.VALIDATION, message, operation, key=key)

    def _rejected(self, response: ERPResponse, operation: str, key: Optional[str]) -> OperationResult:
        kind = self._kind_for(response)
        if kind is ErrorKind.CONFLICT:
            message = f"{self.label} {key} was modified by another user. Refresh and try again."
        elif kind is ErrorKind.NOT_FOUND:
            message = f"{self.label} {key} not found"
        else:
            message = self.client.error_message(response)
        return self._fail(kind, message, operation, key=key, status_code=response.status)

    def _succeeded(self, message: str, key: Optional[str], etag: Optional[str], data: Any) -> OperationResult:
        record_operation_success()
        logger.info(message)
        return OperationResult.success(message, key=key, etag=etag, data=data)

    def _parse(self, row: Mapping[str, Any]) -> E:
        return self.schema.model.model_validate(row)

    def _parse_written(self, response: ERPResponse, fallback: E) -> E:
        """Entity echoed back by a write, or ``fallback`` if there is none."""
        if not response.body:
            entity = fallback
        else:
            try:
                entity = self._parse(response.json())
            except ValueError as e:
                logger.warning(f"Unreadable {self.label} in write response: {e}")
                entity = fallback
        if response.etag:
            entity.etag = response.etag
        return entity

    # =========================================================================
    # Reads
    # =========================================================================

    def build_query(self, filter: Optional[ODataFilter] = None, extra_clauses: Sequence[str] = ()) -> ODataQuery:
        return build_query(
            filter,
            search_fields=self.schema.search_fields,
            date_field=self.schema.date_field,
            default_top=self.client.default_top,
            default_order_by=self.schema.default_order_by,
            expand=self.schema.expand,
            extra_clauses=extra_clauses,
        )

    async def list(
        self,
        filter: Optional[ODataFilter] = None,
        extra_clauses: Sequence[str] = (),
    ) -> ListResult[E]:
        """List records matching ``filter``.

        Never raises for ERP trouble: the result carries ``error`` instead.
        """
        query = self.build_query(filter, extra_clauses)
        with with_correlation(resource=self.name):
            try:
                response = await self.client.get(self.schema.entity_set, query)
            except ERPTransportError as e:
                return ListResult(error=self._fail(ErrorKind.TRANSPORT, str(e), "list"))

            if not response.ok:
                return ListResult(error=self._rejected(response, "list", None))

            try:
                envelope = ODataEnvelope.model_validate(response.json())
                items = [self._parse(row) for row in envelope.value]
            except ValueError as e:
                return ListResult(error=self._fail(
                    ErrorKind.ERP_REJECTION, f"Unreadable {self.label} list from ERP: {e}", "list"
                ))

            logger.debug(f"Listed {len(items)} {self.name}")
            return ListResult(items=items)

    async def get(self, key: str) -> Optional[E]:
        """Fetch one record by natural key; None if absent or unreadable."""
        entity, _ = await self.read(key)
        return entity

    async def read(self, key: str) -> Tuple[Optional[E], Optional[OperationResult]]:
        """Fetch one record, or the failure that prevented it.

        Exactly one of the pair is set.
        """
        query = ODataQuery(expand=self.schema.expand) if self.schema.expand else None
        with with_correlation(resource=self.name, entity_key=key):
            try:
                response = await self.client.get(self.schema.path(key), query)
            except ERPTransportError as e:
                return None, self._fail(ErrorKind.TRANSPORT, str(e), "get", key=key)

            if not response.ok:
                if response.not_found:
                    return None, OperationResult.failure(
                        ErrorKind.NOT_FOUND, f"{self.label} {key} not found", key=key, status_code=404
                    )
                return None, self._rejected(response, "get", key)

            try:
                entity = self._parse(response.json())
            except ValueError as e:
                return None, self._fail(
                    ErrorKind.ERP_REJECTION, f"Unreadable {self.label} {key} from ERP: {e}", "get", key=key
                )

            if response.etag:
                entity.etag = response.etag
            return entity, None

    # =========================================================================
    # Writes
    # =========================================================================

    def validate_create(self, entity: E) -> Optional[str]:
        """Resource-specific create checks; return a message to refuse."""
        return None

    def validate_update(self, entity: E) -> Optional[str]:
        """Resource-specific update checks; return a message to refuse."""
        return None

    async def create(self, entity: E) -> OperationResult:
        """Create a record, numbering it first if the ERP does not."""
        if self.schema.read_only:
            return self._invalid(f"{self.label} records are read-only", "create")

        error = self.validate_create(entity)
        if error:
            return self._invalid(error, "create")

        status_field = self.schema.status_field
        if status_field and self.schema.default_status and not getattr(entity, status_field, None):
            setattr(entity, status_field, self.schema.default_status)

        key = self.schema.key_of(entity)
        if not key and self.schema.reference_format:
            key = await self.next_reference()
            setattr(entity, self.schema.key_field, key)

        with with_correlation(resource=self.name, entity_key=key, action="create"):
            try:
                response = await self.client.post(self.schema.writes_to, self.schema.payload(entity, for_create=True))
            except ERPTransportError as e:
                return self._fail(ErrorKind.TRANSPORT, str(e), "create", key=key)

            if not response.ok:
                return self._rejected(response, "create", key)

            created = self._parse_written(response, entity)
            key = self.schema.key_of(created) or key
            return self._succeeded(f"{self.label} {key} created successfully", key, created.etag, created)

    async def update(self, entity: E, verb: str = "updated") -> OperationResult:
        """PATCH a record, guarded by the ETag it was read with.

        The status column is never written here; status changes go through
        ``transition``. On success the entity's ``etag`` is refreshed so it
        can be written again.
        """
        return await self._write(entity, verb, with_status=False)

    async def _write(self, entity: E, verb: str, with_status: bool) -> OperationResult:
        if self.schema.read_only:
            return self._invalid(f"{self.label} records are read-only", "update")

        key = self.schema.key_of(entity)
        if not key:
            return self._invalid(f"{self.label} number is required", "update")
        if not entity.etag:
            return self._invalid(
                f"{self.label} {key} has no concurrency token. Reload it before saving.", "update", key
            )

        error = self.validate_update(entity)
        if error:
            return self._invalid(error, "update", key)

        with with_correlation(resource=self.name, entity_key=key):
            try:
                response = await self.client.patch(
                    self.schema.write_path(key),
                    self.schema.payload(entity, with_status=with_status),
                    if_match=entity.etag,
                )
            except ERPTransportError as e:
                return self._fail(ErrorKind.TRANSPORT, str(e), "update", key=key)

            if not response.ok:
                return self._rejected(response, "update", key)

            updated = self._parse_written(response, entity)
            entity.etag = updated.etag
            return self._succeeded(f"{self.label} {key} {verb} successfully", key, updated.etag, updated)

    async def delete(self, key: str, etag: Optional[str]) -> OperationResult:
        """DELETE a record, guarded by its ETag."""
        if self.schema.read_only:
            return self._invalid(f"{self.label} records are read-only", "delete", key)
        if not key:
            return self._invalid(f"{self.label} number is required", "delete")
        if not etag:
            return self._invalid(
                f"{self.label} {key} has no concurrency token. Reload it before deleting.", "delete", key
            )

        with with_correlation(resource=self.name, entity_key=key, action="delete"):
            try:
                response = await self.client.delete(self.schema.write_path(key), if_match=etag)
            except ERPTransportError as e:
                return self._fail(ErrorKind.TRANSPORT, str(e), "delete", key=key)

            if not response.ok:
                return self._rejected(response, "delete", key)

            return self._succeeded(f"{self.label} {key} deleted successfully", key, None, None)

    # =========================================================================
    # Workflow
    # =========================================================================

    async def transition(
        self,
        key: str,
        action: str,
        changes: Optional[Mapping[str, Any]] = None,
        prepare: Optional[Prepare] = None,
    ) -> OperationResult:
        """Guard-then-update status change.

        Args:
            key: Natural key of the record
            action: Transition name from the schema's workflow
            changes: Extra field values (Python attribute names) to write
            prepare: Hook run on the mutated entity before the PATCH; may
                return an OperationResult to abort

        Returns:
            OperationResult; VALIDATION if the current status does not allow
            the action, without any write
        """
        workflow = self.schema.workflow
        if workflow is None or self.schema.read_only:
            return self._invalid(f"{self.label} records have no workflow actions", action, key)
        step = workflow.get(action)
        if step is None:
            return self._invalid(workflow.check(None, action), action, key)

        with with_correlation(resource=self.name, entity_key=key, action=action):
            entity, failure = await self.read(key)
            if failure is not None:
                if failure.kind is ErrorKind.NOT_FOUND:
                    return self._fail(ErrorKind.NOT_FOUND, failure.message, action, key=key)
                return failure

            current = self.schema.status_of(entity)
            refusal = workflow.check(current, action)
            if refusal:
                return self._invalid(refusal, action, key)

            if changes:
                unknown = [name for name in changes if name not in self.schema.model.model_fields]
                if unknown:
                    return self._invalid(f"Unknown {self.label} fields: {', '.join(unknown)}", action, key)
                try:
                    entity = self.schema.model.model_validate({**entity.model_dump(), **dict(changes)})
                except ValidationError as e:
                    return self._invalid(f"Invalid {self.label} values: {e.errors()[0]['msg']}", action, key)

            setattr(entity, self.schema.status_field, step.target)
            stamp = self.today()
            for field_name in step.stamps:
                setattr(entity, field_name, stamp)

            if prepare is not None:
                aborted = await prepare(entity)
                if aborted is not None:
                    return aborted

            logger.info(f"{self.label} {key}: {current or '-'} -> {step.target}")
            return await self._write(entity, step.past_tense, with_status=True)

    async def perform(self, key: str, action: str, payload: Optional[Mapping[str, Any]] = None) -> OperationResult:
        """Dispatch an API action. Subclasses route actions that need input."""
        payload = payload or {}
        return await self.transition(key, action, changes=payload.get("changes"))

    # =========================================================================
    # Numbering and Summaries
    # =========================================================================

    async def next_reference(self, now: Optional[datetime] = None) -> str:
        """Next key after the highest one of the current period.

        Only keys starting with this year's prefix are read, so earlier
        years and timestamp fallbacks never hide the sequence. An empty
        period starts at 1; the timestamp is used only when the ERP cannot
        be read.
        """
        fmt = self.schema.reference_format
        if fmt is None:
            raise ValueError(f"{self.label} keys are assigned by the ERP")

        now = now or datetime.combine(self.today(), datetime.now().time())
        key_column = self.schema.key_column
        query = ODataQuery(
            filter=startswith(key_column, fmt.period(now)),
            order_by=f"{key_column} desc",
            top=1,
        )
        try:
            response = await self.client.get(self.schema.entity_set, query)
        except ERPTransportError as e:
            logger.warning(f"Could not read last {self.label} number: {e}")
            return fmt.fallback(now)
        if not response.ok:
            logger.warning(f"Could not read last {self.label} number: HTTP {response.status}")
            return fmt.fallback(now)
        try:
            rows = ODataEnvelope.model_validate(response.json()).value
        except ValueError as e:
            logger.warning(f"Unreadable last {self.label} number: {e}")
            return fmt.fallback(now)

        last = rows[0].get(key_column) if rows else None
        reference = increment_reference(last, fmt, now)
        logger.debug(f"Next {self.label} number {reference} (last {last})")
        return reference

    def summarize_items(self, items: Sequence[E], context: Mapping[str, Any]) -> Summary:
        """Aggregate fetched records. Subclasses add resource-specific counters."""
        return summarize(
            items,
            status_field=self.schema.status_field,
            priority_field=self.schema.priority_field,
            sum_fields=self.schema.sum_fields,
        )

    async def summary(self, filter: Optional[ODataFilter] = None, **context: Any) -> Summary:
        """List then aggregate; an ERP failure is reported in ``error``."""
        result = await self.list(filter)
        summary = self.summarize_items(result.items, context)
        if result.error is not None:
            summary.error = result.error.message
        return summary
