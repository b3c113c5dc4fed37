"""
Email log model for SQLAlchemy ORM.

One row per dispatch attempt made by the rule pipeline, written whether the
transport accepted the message or not.
"""

from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String, Text, Uuid
from sqlalchemy.sql import func

from database.base import Base, JSONType


class EmailLogStatus(str, Enum):
    """Outcome of a dispatch attempt."""
    SENT = "sent"
    FAILED = "failed"


class EmailLog(Base):
    """Durable record of a rule-driven email attempt (the operational diagnostic view)."""

    __tablename__ = "email_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, nullable=False)

    correlation_id = Column(String(64), nullable=False, comment="Shared by every record of one pipeline run")

    form_id = Column(Uuid(as_uuid=True), nullable=True)

    submission_id = Column(Uuid(as_uuid=True), nullable=True)

    rule_id = Column(Uuid(as_uuid=True), nullable=True)

    template_id = Column(Uuid(as_uuid=True), nullable=True)

    recipient = Column(String(255), nullable=True, comment="Null when no recipient could be resolved")

    cc_recipients = Column(Text, nullable=True)

    bcc_recipients = Column(Text, nullable=True)

    subject = Column(String(500), nullable=True)

    status = Column(String(20), nullable=False)

    error = Column(Text, nullable=True)

    provider_message_id = Column(String(255), nullable=True)

    details = Column(JSONType, nullable=True, comment="Unresolved placeholders and other diagnostics")

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_email_logs_form_id", "form_id"),
        Index("ix_email_logs_submission_id", "submission_id"),
        Index("ix_email_logs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<EmailLog(id={self.id}, rule_id={self.rule_id}, recipient='{self.recipient}', status='{self.status}')>"
