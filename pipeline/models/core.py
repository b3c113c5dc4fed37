"""Core data models for the email-rule processing pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, List, Tuple
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogLevel(str, Enum):
    """Severity of a structured pipeline log entry."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class RuleOutcomeStatus(str, Enum):
    """Final decision recorded for each rule of a run."""
    SENT = "sent"
    NOT_MATCHED = "not_matched"
    NO_CONDITIONS = "no_conditions"
    INVALID_CONDITIONS = "invalid_conditions"
    NO_RECIPIENT = "no_recipient"
    NO_TEMPLATE = "no_template"
    SEND_FAILED = "send_failed"


# ===================================================================
# BOUNDARY RECORDS (returned by the persistence collaborator)
# ===================================================================

@dataclass(frozen=True)
class FieldRecord:
    """
    One form field as seen by the pipeline.

    stable_id may be None for legacy rows; the field resolver synthesizes one.
    """

    ephemeral_id: str
    label: str = ""
    field_type: str = "text"
    stable_id: Optional[str] = None
    options: List[Dict[str, Any]] = field(default_factory=list)
    mapping: Optional[str] = None
    name: Optional[str] = None
    section_title: Optional[str] = None


@dataclass(frozen=True)
class TemplateRecord:
    """Template summary attached to a rule."""

    id: str
    name: str
    subject: str
    html_content: str
    text_content: Optional[str] = None
    cc_emails: Optional[str] = None
    bcc_emails: Optional[str] = None


@dataclass(frozen=True)
class RuleRecord:
    """An email rule as stored; conditions is the raw JSON text."""

    id: str
    name: str
    form_id: str
    template_id: Optional[str]
    active: bool = True
    conditions: Optional[str] = None
    recipient_type: str = "form"
    recipient_email: Optional[str] = None
    recipient_field: Optional[str] = None
    cc_emails: Optional[str] = None
    bcc_emails: Optional[str] = None
    created_at: Optional[datetime] = None
    template: Optional[TemplateRecord] = None


@dataclass(frozen=True)
class SubmissionRecord:
    id: str
    data: Dict[str, Any] = field(default_factory=dict)
    lead_id: Optional[str] = None
    time_stamp: Optional[datetime] = None


@dataclass(frozen=True)
class LeadRecord:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class EmailLogRecord:
    """Row written for every dispatch attempt, sent or failed."""

    correlation_id: str
    status: str
    form_id: Optional[str] = None
    submission_id: Optional[str] = None
    rule_id: Optional[str] = None
    template_id: Optional[str] = None
    recipient: Optional[str] = None
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    subject: Optional[str] = None
    error: Optional[str] = None
    provider_message_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


# ===================================================================
# PARSED RULE STATE
# ===================================================================

@dataclass(frozen=True)
class Condition:
    """
    A single field/operator/value clause. Conditions of a rule are ANDed.

    The operator is kept as written so that unknown operators can be
    evaluated (to False) instead of rejected at parse time.
    """

    field: str
    operator: str
    value: str = ""
    label: Optional[str] = None
    alternates: Tuple[str, ...] = ()
    """Other identifiers stored for the same field (older rule formats)"""

    @property
    def references(self) -> Tuple[str, ...]:
        """Every identifier to try, primary first, label last."""
        refs = [self.field, *self.alternates]
        if self.label:
            refs.append(self.label)
        return tuple(dict.fromkeys(r for r in refs if r))


@dataclass
class SelectedRule:
    """A rule together with its parsed condition list."""

    rule: RuleRecord
    conditions: List[Condition] = field(default_factory=list)
    parse_error: Optional[str] = None
    matched: Optional[bool] = None

    @property
    def has_conditions(self) -> bool:
        return bool(self.conditions)


# ===================================================================
# RUN STATE
# ===================================================================

@dataclass
class RuleLogEntry:
    """One structured diagnostic entry, threaded through the run and returned."""

    level: LogLevel
    message: str
    step: Optional[str] = None
    rule_id: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "message": self.message,
            "step": self.step,
            "rule_id": self.rule_id,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }


@dataclass
class RuleOutcome:
    """Per-rule result of a run."""

    rule_id: str
    rule_name: str
    status: RuleOutcomeStatus
    matched: bool = False
    recipient: Optional[str] = None
    error: Optional[str] = None
    message_id: Optional[str] = None
    unresolved_placeholders: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "status": self.status.value,
            "matched": self.matched,
            "recipient": self.recipient,
            "error": self.error,
            "message_id": self.message_id,
            "unresolved_placeholders": self.unresolved_placeholders,
        }


@dataclass
class RuleProcessingData:
    """
    In-memory state passed between pipeline steps. Not persisted to database.

    Only email-log rows are written, by the EmailDispatcher step.
    """

    # Input data (set by the entry point / Celery task)
    correlation_id: str
    """Shared by every log entry and email-log row of this run"""

    form_id: str
    """Form the submission belongs to"""

    submission_id: Optional[str] = None
    """Absent for dry runs and preview tooling"""

    raw_payload: Dict[str, Any] = field(default_factory=dict)
    """Caller-supplied key/value payload"""

    # Step 1 outputs (FieldResolver)
    fields: List[FieldRecord] = field(default_factory=list)
    field_index: Any = None
    """pipeline.fields.FieldIndex over `fields`"""

    # Step 2 outputs (DataEnricher)
    context: Dict[str, Any] = field(default_factory=dict)
    """
    Enriched data context. Read-only once the enricher has built it.
    """

    # Step 3 outputs (RuleSelector)
    rules: List[SelectedRule] = field(default_factory=list)

    # Step 4 outputs (ConditionEvaluator)
    matched_rules: List[SelectedRule] = field(default_factory=list)

    # Step 5 outputs (EmailDispatcher)
    outcomes: Dict[str, RuleOutcome] = field(default_factory=dict)
    """Keyed by rule id, in rule order"""

    queued_email_count: int = 0

    # Transient data
    started_at: datetime = field(default_factory=_utcnow)

    step_timings: Dict[str, float] = field(default_factory=dict)

    logs: List[RuleLogEntry] = field(default_factory=list)

    errors: List[str] = field(default_factory=list)
    """
    Non-fatal errors encountered during execution.
    Fatal errors raise exceptions and terminate the run.
    """

    # ===================================================================
    # HELPER METHODS
    # ===================================================================

    def total_duration(self) -> float:
        """Calculate total run time in seconds"""
        return (_utcnow() - self.started_at).total_seconds()

    def add_timing(self, step_name: str, duration: float) -> None:
        self.step_timings[step_name] = duration

    def add_error(self, step_name: str, error_message: str) -> None:
        self.errors.append(f"{step_name}: {error_message}")

    def add_log(
        self,
        level: LogLevel,
        message: str,
        step: Optional[str] = None,
        rule_id: Optional[str] = None,
        **details: Any,
    ) -> RuleLogEntry:
        """Append a structured entry to the run's log list"""
        entry = RuleLogEntry(level=level, message=message, step=step, rule_id=rule_id, details=details)
        self.logs.append(entry)
        return entry

    def record_outcome(self, outcome: RuleOutcome) -> None:
        self.outcomes[outcome.rule_id] = outcome


@dataclass
class RuleProcessingResult:
    """What process_email_rules() returns to the intake flow."""

    correlation_id: str
    processed_rule_count: int
    queued_email_count: int
    rule_outcomes: List[RuleOutcome] = field(default_factory=list)
    logs: List[RuleLogEntry] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        """JSON-safe summary stored on the rule job record."""
        return {
            "correlation_id": self.correlation_id,
            "processed_rule_count": self.processed_rule_count,
            "queued_email_count": self.queued_email_count,
            "rule_outcomes": [o.to_dict() for o in self.rule_outcomes],
            "errors": self.errors,
        }


# ===================================================================
# STEP RESULT
# ===================================================================

@dataclass
class StepResult:
    """
    Result of a pipeline step execution.

    Returned by BasePipelineStep.execute() to indicate success/failure.
    """

    success: bool
    """Whether the step completed successfully"""

    step_name: str
    """Name of the step that produced this result"""

    error: Optional[str] = None
    """Error message if success=False"""

    metadata: Optional[Dict[str, Any]] = None
    """Optional metadata about execution (duration, counts)"""

    warnings: List[str] = field(default_factory=list)
    """Non-fatal warnings (e.g., 'lead lookup timed out')"""

    def __post_init__(self):
        """Validation: if success=False, error must be set"""
        if not self.success and not self.error:
            raise ValueError("StepResult with success=False must have error message")
