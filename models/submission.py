"""
Form submission model for SQLAlchemy ORM.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database.base import Base, JSONType


class FormSubmission(Base):
    """
    One submission of a form.

    Attributes:
        data (dict): Flat key/value payload keyed by field id (or semantic key)
        lead_id (UUID): Lead this submission was linked to, if any
        time_stamp (datetime): Submission time exposed to templates as {{timeStamp}}
    """

    __tablename__ = "form_submissions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, nullable=False)

    form_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
    )

    lead_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("leads.id", ondelete="SET NULL"),
        nullable=True,
    )

    data = Column(JSONType, nullable=False, default=dict)

    status = Column(String(20), nullable=False, default="submitted")

    time_stamp = Column(DateTime(timezone=True), nullable=True, server_default=func.now())

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    lead = relationship("Lead", back_populates="submissions")

    __table_args__ = (
        Index("ix_form_submissions_form_id", "form_id"),
        Index("ix_form_submissions_lead_id", "lead_id"),
    )

    def __repr__(self) -> str:
        return f"<FormSubmission(id={self.id}, form_id={self.form_id}, lead_id={self.lead_id})>"
