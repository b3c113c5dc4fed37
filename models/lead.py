"""
Lead model for SQLAlchemy ORM.
Represents a prospective client; submissions link to the lead they came from.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy import Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database.base import Base


class Lead(Base):
    """Lead (contact) record. Name/email/phone overlay the submission payload during enrichment."""

    __tablename__ = "leads"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, nullable=False)

    name = Column(String(255), nullable=True)

    email = Column(String(255), nullable=True)

    phone = Column(String(50), nullable=True)

    status = Column(String(30), nullable=False, default="new", comment="new, contacted, booked, ...")

    source = Column(String(100), nullable=True, comment="Where the lead came from, e.g. form:<id>")

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    submissions = relationship("FormSubmission", back_populates="lead")

    __table_args__ = (
        Index("ix_leads_email", "email"),
    )

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, name='{self.name}', email='{self.email}')>"
