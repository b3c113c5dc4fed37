"""
Email rule model for SQLAlchemy ORM.
Represents the email_rules table in the database.
"""

from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database.base import Base


class RecipientType(str, Enum):
    """Where a matched rule sends its email. Inherits from str for JSON serialization."""
    FORM = "form"
    CUSTOM = "custom"
    FIELD = "field"


class EmailRule(Base):
    """
    Notification rule bound to one form and one template.

    Attributes:
        conditions (str): JSON text, a list of {field, operator, value}. An empty
            list, "{}", "null", "" or NULL all mean "no conditions" and such a
            rule never fires.
        recipient_type (str): form (submitter), custom (recipient_email) or
            field (value of recipient_field)
        cc_emails / bcc_emails (str): Comma-separated; override the template's defaults
    """

    __tablename__ = "email_rules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, nullable=False)

    name = Column(String(255), nullable=False)

    description = Column(Text, nullable=True)

    form_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
    )

    template_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("email_templates.id", ondelete="CASCADE"),
        nullable=False,
    )

    active = Column(Boolean, nullable=False, default=True)

    conditions = Column(Text, nullable=False, default="[]", comment="JSON list of conditions (implicit AND)")

    recipient_type = Column(String(20), nullable=False, default=RecipientType.FORM.value)

    recipient_email = Column(String(255), nullable=True)

    recipient_field = Column(String(255), nullable=True, comment="Stable id (or legacy id) of the recipient field")

    cc_emails = Column(Text, nullable=True)

    bcc_emails = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    template = relationship("EmailTemplate", back_populates="rules")

    __table_args__ = (
        Index("ix_email_rules_form_active", "form_id", "active"),
    )

    def __repr__(self) -> str:
        return f"<EmailRule(id={self.id}, name='{self.name}', form_id={self.form_id}, active={self.active})>"

    def to_dict(self) -> dict:
        """Convert rule to a dictionary for API responses."""
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "form_id": str(self.form_id),
            "template_id": str(self.template_id),
            "active": self.active,
            "conditions": self.conditions,
            "recipient_type": self.recipient_type,
            "recipient_email": self.recipient_email,
            "recipient_field": self.recipient_field,
            "cc_emails": self.cc_emails,
            "bcc_emails": self.bcc_emails,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
