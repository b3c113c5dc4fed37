"""
Persistence collaborator for the rule pipeline.

The pipeline only sees the plain records from pipeline.models.core; the ORM
stays behind this module. All methods are synchronous and are run in a
worker thread with a timeout by the pipeline steps.
"""

from typing import Callable, ContextManager, List, Optional, Protocol

import logfire
from sqlalchemy.orm import Session, joinedload

from database.retry_utils import retry_on_db_error
from database.session import get_db_context
from models import EmailLog, EmailRule, FormField, FormSection, FormSubmission, Lead
from pipeline.models.core import (
    EmailLogRecord,
    FieldRecord,
    LeadRecord,
    RuleRecord,
    SubmissionRecord,
    TemplateRecord,
)
from utils.uuid_helpers import ensure_uuid, id_str, optional_uuid


class RuleRepository(Protocol):
    """What the pipeline needs from persistence."""

    def get_active_rules_for_form(self, form_id: str) -> List[RuleRecord]:
        ...

    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        ...

    def get_lead(self, lead_id: str) -> Optional[LeadRecord]:
        ...

    def get_form_fields(self, form_id: str) -> List[FieldRecord]:
        ...

    def record_email_log(self, record: EmailLogRecord) -> str:
        ...


def rule_to_record(rule: EmailRule) -> RuleRecord:
    template = rule.template
    return RuleRecord(
        id=str(rule.id),
        name=rule.name,
        form_id=str(rule.form_id),
        template_id=id_str(rule.template_id),
        active=bool(rule.active),
        conditions=rule.conditions,
        recipient_type=rule.recipient_type or "form",
        recipient_email=rule.recipient_email,
        recipient_field=rule.recipient_field,
        cc_emails=rule.cc_emails,
        bcc_emails=rule.bcc_emails,
        created_at=rule.created_at,
        template=TemplateRecord(
            id=str(template.id),
            name=template.name,
            subject=template.subject,
            html_content=template.html_content,
            text_content=template.text_content,
            cc_emails=template.cc_emails,
            bcc_emails=template.bcc_emails,
        ) if template is not None else None,
    )


def field_to_record(form_field: FormField, section: FormSection) -> FieldRecord:
    return FieldRecord(
        ephemeral_id=str(form_field.id),
        label=form_field.label or "",
        field_type=form_field.field_type or "text",
        stable_id=form_field.stable_id,
        options=list(form_field.options or []),
        mapping=form_field.mapping,
        name=form_field.name,
        section_title=section.title,
    )


def query_form_fields(db: Session, form_id) -> List[FieldRecord]:
    """Every field of every section, in section then field order."""
    rows = (
        db.query(FormField, FormSection)
        .join(FormSection, FormField.section_id == FormSection.id)
        .filter(FormSection.form_id == ensure_uuid(form_id))
        .order_by(FormSection.order.asc(), FormField.order.asc())
        .all()
    )
    return [field_to_record(form_field, section) for form_field, section in rows]


class SqlAlchemyRuleRepository:
    """RuleRepository over the SQLAlchemy models."""

    def __init__(self, session_factory: Callable[..., ContextManager[Session]] = get_db_context):
        self.session_factory = session_factory

    @retry_on_db_error
    def get_active_rules_for_form(self, form_id: str) -> List[RuleRecord]:
        """Active rules with their templates, oldest first."""
        with self.session_factory() as db:
            rules = (
                db.query(EmailRule)
                .options(joinedload(EmailRule.template))
                .filter(EmailRule.form_id == ensure_uuid(form_id), EmailRule.active.is_(True))
                .order_by(EmailRule.created_at.asc())
                .all()
            )
            return [rule_to_record(rule) for rule in rules]

    @retry_on_db_error
    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        submission_uuid = optional_uuid(submission_id)
        if submission_uuid is None:
            return None
        with self.session_factory() as db:
            submission = db.get(FormSubmission, submission_uuid)
            if submission is None:
                return None
            return SubmissionRecord(
                id=str(submission.id),
                data=dict(submission.data or {}),
                lead_id=id_str(submission.lead_id),
                time_stamp=submission.time_stamp,
            )

    @retry_on_db_error
    def get_lead(self, lead_id: str) -> Optional[LeadRecord]:
        lead_uuid = optional_uuid(lead_id)
        if lead_uuid is None:
            return None
        with self.session_factory() as db:
            lead = db.get(Lead, lead_uuid)
            if lead is None:
                return None
            return LeadRecord(id=str(lead.id), name=lead.name, email=lead.email, phone=lead.phone)

    @retry_on_db_error
    def get_form_fields(self, form_id: str) -> List[FieldRecord]:
        with self.session_factory() as db:
            return query_form_fields(db, form_id)

    @retry_on_db_error
    def record_email_log(self, record: EmailLogRecord) -> str:
        with self.session_factory(commit=True) as db:
            log = EmailLog(
                correlation_id=record.correlation_id,
                form_id=optional_uuid(record.form_id),
                submission_id=optional_uuid(record.submission_id),
                rule_id=optional_uuid(record.rule_id),
                template_id=optional_uuid(record.template_id),
                recipient=record.recipient,
                cc_recipients=", ".join(record.cc) or None,
                bcc_recipients=", ".join(record.bcc) or None,
                subject=record.subject,
                status=record.status,
                error=record.error,
                provider_message_id=record.provider_message_id,
                details=record.details or None,
            )
            db.add(log)
            db.flush()
            log_id = str(log.id)

        logfire.info(
            "Email log recorded",
            email_log_id=log_id,
            rule_id=record.rule_id,
            status=record.status,
        )
        return log_id
