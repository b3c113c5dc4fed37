"""EmailRuleJob model tracking background rule-processing runs."""

from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.sql import func

from database.base import Base, JSONType


class RuleJobStatus(str, Enum):
    """Rule job status enum. Inherits from str for JSON serialization."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class EmailRuleJob(Base):
    """One fire-and-forget rule-processing run for a submission. Written by the intake API and the Celery task."""

    __tablename__ = "email_rule_jobs"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
        nullable=False,
        comment="Unique job ID, also used as the pipeline correlation id"
    )

    form_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
    )

    submission_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("form_submissions.id", ondelete="CASCADE"),
        nullable=True,
        comment="Submission that triggered the run"
    )

    status = Column(
        String(20),
        nullable=False,
        default=RuleJobStatus.PENDING,
        comment="Current status: pending, processing, completed, failed"
    )

    celery_task_id = Column(
        String(255),
        nullable=True,
        comment="Celery task ID for status polling fallback"
    )

    current_step = Column(
        String(50),
        nullable=True,
        comment="Current pipeline step: field_resolver, data_enricher, rule_selector, condition_evaluator, email_dispatcher"
    )

    processed_rule_count = Column(Integer, nullable=True)

    queued_email_count = Column(Integer, nullable=True)

    rule_outcomes = Column(JSONType, nullable=True, comment="Per-rule outcome summary of the run")

    error_message = Column(
        Text,
        nullable=True,
        comment="Error details if status is failed"
    )

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    started_at = Column(DateTime(timezone=True), nullable=True)

    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_email_rule_jobs_status', 'status'),
        Index('ix_email_rule_jobs_submission_id', 'submission_id'),
    )

    def __repr__(self) -> str:
        return (
            f"<EmailRuleJob(id={self.id}, submission_id={self.submission_id}, "
            f"status='{self.status}')>"
        )
