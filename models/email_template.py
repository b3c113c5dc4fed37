"""
Email template model for SQLAlchemy ORM.
Represents the email_templates table in the database.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database.base import Base


class EmailTemplate(Base):
    """
    Email template with {{placeholder}} variables.

    Attributes:
        subject (str): Subject line (may contain placeholders)
        html_content (str): HTML body (may contain placeholders)
        text_content (str): Optional plain-text body
        cc_emails / bcc_emails (str): Comma-separated default cc/bcc addresses
    """

    __tablename__ = "email_templates"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, nullable=False)

    name = Column(String(255), nullable=False)

    description = Column(Text, nullable=True)

    template_type = Column(String(50), nullable=False, default="notification")

    subject = Column(String(500), nullable=False)

    html_content = Column(Text, nullable=False)

    text_content = Column(Text, nullable=True)

    cc_emails = Column(Text, nullable=True)

    bcc_emails = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    rules = relationship("EmailRule", back_populates="template")

    def __repr__(self) -> str:
        return f"<EmailTemplate(id={self.id}, name='{self.name}')>"
