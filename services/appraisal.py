"""Performance appraisals and their scored lines.

An appraisal moves through employee self-scoring, supervisor appraisal and a
final agreed score. Each scoring step writes the lines first (each line has
its own ETag in the ``AppraisalLines`` entity set) and then the header with
the recomputed total and the new status.

Lines and header are separate ERP writes. The first line failure aborts the
step before the header is touched, and the result names the lines already
written; nothing is rolled back.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from connectors.business_central.bc_models import Appraisal, AppraisalLine
from connectors.erp_base import ERPClient, ERPTransportError
from connectors.odata import ODataFilter, entity_path
from core.models.results import ErrorKind, OperationResult
from core.observability.logging import get_logger
from core.resources import ReferenceFormat, ResourceSchema, ResourceService, Summary, Workflow, transition

logger = get_logger(__name__)


APPRAISAL_TYPES = ("MID-YEAR", "ANNUAL", "PROBATION", "PROMOTION", "SPECIAL")

LINES_ENTITY_SET = "AppraisalLines"
DISAGREEMENT_THRESHOLD = Decimal("10")


# =============================================================================
# Scoring
# =============================================================================

def weighted_score(score: Optional[Decimal], max_weight: Optional[Decimal]) -> Decimal:
    """Score scaled to the line's weighting; the raw score when unweighted."""
    score = Decimal(score or 0)
    if max_weight and max_weight > 0:
        return score / Decimal(100) * Decimal(max_weight)
    return score


def overall_rating(total_agreed: Optional[Decimal], total_maximum: Optional[Decimal]) -> Decimal:
    maximum = Decimal(total_maximum) if total_maximum else Decimal(100)
    return Decimal(total_agreed or 0) / maximum * Decimal(100)


def performance_category(rating: Decimal) -> str:
    if rating >= 90:
        return "EXCELLENT"
    if rating >= 80:
        return "VERY GOOD"
    if rating >= 70:
        return "GOOD"
    if rating >= 60:
        return "FAIR"
    return "POOR"


def has_disagreement(line: AppraisalLine) -> bool:
    """Employee and supervisor scores differ by 10 points or more."""
    if line.employee_score is None or line.supervisor_score is None:
        return False
    return abs(line.employee_score - line.supervisor_score) >= DISAGREEMENT_THRESHOLD


# Which line fields each scoring step writes, and the header total it feeds
SCORING_STEPS = {
    "submit": ("employee_score", "employee_remarks", "total_score_employee", "employee_comments"),
    "appraise": ("supervisor_score", "supervisor_remarks", "total_score_supervisor", "appraiser_comments"),
    "agree": ("agreed_score", "agreed_remarks", "total_score_agreed", "agreed_comments"),
}


class LineScore(BaseModel):
    """A caller-supplied score for one line."""
    line_no: int
    score: Optional[Decimal] = None
    remarks: Optional[str] = None


# =============================================================================
# Schema
# =============================================================================

class AppraisalFilter(ODataFilter):
    employee_no: Optional[str] = Field(None, alias="EmployeeNo")
    appraiser_no: Optional[str] = Field(None, alias="AppraiserNo")
    status: Optional[str] = Field(None, alias="Status")
    appraisal_type: Optional[str] = Field(None, alias="AppraisalType")
    appraisal_period: Optional[str] = Field(None, alias="AppraisalPeriod")


APPRAISAL_WORKFLOW = Workflow.of(
    transition("submit", ["OPEN", "IN_PROGRESS"], "SUBMITTED", stamps=["submitted_date"], verb="submitted"),
    transition("start_appraisal", ["SUBMITTED"], "APPRAISAL_IN_PROGRESS",
               stamps=["appraisal_start_date"], verb="moved to appraisal"),
    transition("appraise", ["APPRAISAL_IN_PROGRESS"], "APPRAISED", stamps=["appraised_date"]),
    transition("start_agreement", ["APPRAISED"], "AGREEMENT_IN_PROGRESS",
               stamps=["agreement_start_date"], verb="moved to agreement"),
    transition("agree", ["AGREEMENT_IN_PROGRESS"], "AGREED", stamps=["agreed_date"]),
    transition("complete", ["AGREED"], "COMPLETED", stamps=["completed_date", "effective_date"]),
    transition("reject", ["SUBMITTED", "APPRAISAL_IN_PROGRESS", "APPRAISED", "AGREEMENT_IN_PROGRESS"],
               "REJECTED", verb="rejected"),
    transition("cancel", ["OPEN", "IN_PROGRESS", "SUBMITTED"], "CANCELLED", verb="cancelled"),
)

APPRAISAL_SCHEMA = ResourceSchema(
    name="appraisals",
    label="Appraisal",
    entity_set="Appraisals",
    model=Appraisal,
    key_field="appraisal_no",
    filter_model=AppraisalFilter,
    search_fields=("AppraisalNo", "AppraiseeName", "AppraiserName"),
    date_field="CreatedDate",
    default_order_by="CreatedDate desc",
    status_field="status",
    default_status="OPEN",
    sum_fields=("total_score_agreed",),
    read_only_fields=frozenset({"appraisee_name", "appraisee_job_title", "appraiser_name", "total_maximum_score"}),
    collections=frozenset({"lines"}),
    expand=LINES_ENTITY_SET,
    reference_format=ReferenceFormat("APR", "%y", ".", 5),
    workflow=APPRAISAL_WORKFLOW,
)


def line_path(appraisal_no: str, line_no: int) -> str:
    return entity_path(LINES_ENTITY_SET, {"Appraisal_No": appraisal_no, "Line_No": line_no})


def line_payload(line: AppraisalLine, for_create: bool = False) -> Dict[str, Any]:
    exclude = {"etag"}
    if not for_create:
        exclude |= {"appraisal_no", "line_no"}
    return line.model_dump(by_alias=True, exclude_none=True, mode="json", exclude=exclude)


# =============================================================================
# Service
# =============================================================================

class AppraisalService(ResourceService[Appraisal]):
    """Appraisals with line-level scoring.

    Usage:
        service = AppraisalService(client)
        await service.submit("APR25.00001", [LineScore(line_no=10000, score=85)], "Good year")
    """

    def __init__(self, client: ERPClient, **kwargs):
        super().__init__(client, APPRAISAL_SCHEMA, **kwargs)

    def validate_create(self, entity: Appraisal) -> Optional[str]:
        if not entity.employee_no:
            return "Employee number is required"
        if entity.appraisal_type and entity.appraisal_type not in APPRAISAL_TYPES:
            return f"Invalid appraisal type '{entity.appraisal_type}'. Expected one of: {', '.join(APPRAISAL_TYPES)}"
        return None

    # -------------------------------------------------------------------------
    # Line writes
    # -------------------------------------------------------------------------

    async def _write_lines(
        self,
        appraisal_no: str,
        lines: Sequence[AppraisalLine],
        create: bool = False,
    ) -> Optional[OperationResult]:
        """Write lines in order; stop at the first failure and report it."""
        written: List[int] = []
        for line in lines:
            try:
                if create:
                    response = await self.client.post(LINES_ENTITY_SET, line_payload(line, for_create=True))
                else:
                    response = await self.client.patch(
                        line_path(appraisal_no, line.line_no), line_payload(line), if_match=line.etag
                    )
            except ERPTransportError as e:
                return self._line_failure(ErrorKind.TRANSPORT, str(e), appraisal_no, line.line_no, written, None)

            if not response.ok:
                failed = self._rejected(response, "write_line", appraisal_no)
                return self._line_failure(
                    failed.kind, failed.message, appraisal_no, line.line_no, written, response.status
                )

            if response.etag:
                line.etag = response.etag
            written.append(line.line_no)
        return None

    def _line_failure(
        self,
        kind: ErrorKind,
        message: str,
        appraisal_no: str,
        line_no: Optional[int],
        written: List[int],
        status_code: Optional[int],
    ) -> OperationResult:
        done = ", ".join(str(n) for n in written) or "none"
        return self._fail(
            kind,
            f"Appraisal {appraisal_no} line {line_no} could not be saved: {message} (lines already saved: {done})",
            "write_line",
            key=appraisal_no,
            status_code=status_code,
        )

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def create(self, entity: Appraisal) -> OperationResult:
        """Create the header, then its lines."""
        lines = list(entity.lines)
        if not entity.created_date:
            entity.created_date = self.today()
        result = await super().create(entity)
        if not result.ok or not lines:
            return result

        appraisal_no = result.key
        for index, line in enumerate(lines, start=1):
            line.appraisal_no = appraisal_no
            if line.line_no is None:
                line.line_no = index * 10000
        failure = await self._write_lines(appraisal_no, lines, create=True)
        if failure is not None:
            return failure

        created: Appraisal = result.data
        created.lines = lines
        return OperationResult.success(result.message, key=appraisal_no, etag=result.etag, data=created)

    async def delete(self, key: str, etag: Optional[str]) -> OperationResult:
        """Delete the lines, then the header.

        The header's token is checked against a fresh read before any line
        is touched.
        """
        if not etag:
            return self._invalid(
                f"{self.label} {key} has no concurrency token. Reload it before deleting.", "delete", key
            )
        appraisal, failure = await self.read(key)
        if failure is not None:
            return failure
        if appraisal.etag != etag:
            return self._fail(
                ErrorKind.CONFLICT,
                f"{self.label} {key} was modified by another user. Refresh and try again.",
                "delete",
                key=key,
                status_code=412,
            )

        deleted: List[int] = []
        for line in appraisal.lines:
            try:
                response = await self.client.delete(line_path(key, line.line_no), if_match=line.etag)
            except ERPTransportError as e:
                return self._line_failure(ErrorKind.TRANSPORT, str(e), key, line.line_no, deleted, None)
            if not response.ok and not response.not_found:
                failed = self._rejected(response, "delete_line", key)
                return self._line_failure(failed.kind, failed.message, key, line.line_no, deleted, response.status)
            deleted.append(line.line_no)

        return await super().delete(key, etag)

    # -------------------------------------------------------------------------
    # Scoring steps
    # -------------------------------------------------------------------------

    async def _score(
        self,
        key: str,
        action: str,
        scores: Iterable[LineScore],
        comments: Optional[str],
    ) -> OperationResult:
        score_field, remarks_field, total_field, comments_field = SCORING_STEPS[action]
        by_line = {s.line_no: s for s in scores}

        async def write_scores(appraisal: Appraisal) -> Optional[OperationResult]:
            unknown = set(by_line) - {line.line_no for line in appraisal.lines}
            if unknown:
                return self._invalid(
                    f"Appraisal {key} has no line(s) {', '.join(str(n) for n in sorted(unknown))}", action, key
                )

            changed = []
            for line in appraisal.lines:
                entry = by_line.get(line.line_no)
                if entry is None:
                    continue
                if entry.score is not None:
                    setattr(line, score_field, entry.score)
                if entry.remarks is not None:
                    setattr(line, remarks_field, entry.remarks)
                changed.append(line)

            failure = await self._write_lines(key, changed)
            if failure is not None:
                return failure

            total = sum(
                (weighted_score(getattr(line, score_field), line.maximum_weighting) for line in appraisal.lines),
                Decimal(0),
            )
            setattr(appraisal, total_field, total)
            if comments is not None:
                setattr(appraisal, comments_field, comments)
            if action == "agree":
                appraisal.overall_rating = overall_rating(total, appraisal.total_maximum_score)
                appraisal.performance_category = performance_category(appraisal.overall_rating)
            return None

        return await self.transition(key, action, prepare=write_scores)

    async def submit(self, key: str, scores: Iterable[LineScore] = (), comments: Optional[str] = None) -> OperationResult:
        """Employee self-assessment."""
        return await self._score(key, "submit", scores, comments)

    async def appraise(self, key: str, scores: Iterable[LineScore] = (), comments: Optional[str] = None) -> OperationResult:
        """Supervisor assessment."""
        return await self._score(key, "appraise", scores, comments)

    async def agree(self, key: str, scores: Iterable[LineScore] = (), comments: Optional[str] = None) -> OperationResult:
        """Agreed scores; also sets the overall rating and category."""
        return await self._score(key, "agree", scores, comments)

    async def perform(self, key: str, action: str, payload: Optional[Mapping[str, Any]] = None) -> OperationResult:
        payload = payload or {}
        if action in SCORING_STEPS:
            scores = [LineScore.model_validate(entry) for entry in payload.get("lines") or []]
            return await self._score(key, action, scores, payload.get("comments"))
        return await super().perform(key, action, payload)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def by_employee(self, employee_no: str) -> List[Appraisal]:
        return (await self.list(AppraisalFilter(employee_no=employee_no))).items

    async def by_appraiser(self, appraiser_no: str) -> List[Appraisal]:
        return (await self.list(AppraisalFilter(appraiser_no=appraiser_no))).items

    def disagreements(self, appraisal: Appraisal) -> List[AppraisalLine]:
        return [line for line in appraisal.lines if has_disagreement(line)]

    def summarize_items(self, items: Sequence[Appraisal], context: Mapping[str, Any]) -> Summary:
        summary = super().summarize_items(items, context)
        employee_no = context.get("employee_no")
        appraiser_no = context.get("appraiser_no")
        summary.extra["my_appraisals"] = sum(
            1 for a in items if employee_no and a.employee_no == employee_no and a.status == "OPEN"
        )
        summary.extra["awaiting_my_review"] = sum(
            1 for a in items if appraiser_no and a.appraiser_no == appraiser_no and a.status == "SUBMITTED"
        )
        return summary

    async def summary(self, filter: Optional[ODataFilter] = None, **context: Any) -> Summary:
        """Counts over the caller's own appraisals and those they appraise.

        With ``employee_no`` and/or ``appraiser_no`` in the context, both
        lists are fetched and merged, each appraisal counted once.
        """
        employee_no = context.get("employee_no")
        appraiser_no = context.get("appraiser_no")
        if not employee_no and not appraiser_no:
            return await super().summary(filter, **context)

        base = filter or AppraisalFilter()
        base = base.model_copy(update={"employee_no": None, "appraiser_no": None})
        merged: Dict[str, Appraisal] = {}
        errors = []
        for update in ({"employee_no": employee_no}, {"appraiser_no": appraiser_no}):
            if not any(update.values()):
                continue
            result = await self.list(base.model_copy(update=update))
            if result.error is not None:
                errors.append(result.error.message)
            for appraisal in result.items:
                merged.setdefault(appraisal.appraisal_no or id(appraisal), appraisal)

        summary = self.summarize_items(list(merged.values()), context)
        if errors:
            summary.error = "; ".join(errors)
        return summary
