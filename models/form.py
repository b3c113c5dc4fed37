"""
Form definition models for SQLAlchemy ORM.

Forms are authored in the form builder (an external collaborator); the rule
pipeline only reads them to resolve field identifiers.
"""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database.base import Base, JSONType


class Form(Base):
    """A published form. Owns ordered sections, receives submissions and email rules."""

    __tablename__ = "forms"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, nullable=False, comment="Unique form ID")

    title = Column(String(255), nullable=False, comment="Form title shown to submitters")

    description = Column(Text, nullable=True)

    form_type = Column(String(50), nullable=False, default="inquiry", comment="inquiry, booking, ...")

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    sections = relationship(
        "FormSection",
        back_populates="form",
        order_by="FormSection.order",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Form(id={self.id}, title='{self.title}')>"


class FormSection(Base):
    """An ordered group of fields. The section title prefixes synthesized stable ids."""

    __tablename__ = "form_sections"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, nullable=False)

    form_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(String(255), nullable=False)

    order = Column(Integer, nullable=False, default=0)

    form = relationship("Form", back_populates="sections")

    fields = relationship(
        "FormField",
        back_populates="section",
        order_by="FormField.order",
        cascade="all, delete-orphan",
    )


class FormField(Base):
    """
    A single form field.

    Attributes:
        id (UUID): Ephemeral id; changes whenever the builder recreates the field set
        stable_id (str): Rename-proof identifier referenced by email rules. Nullable
            only for rows created before stable ids existed.
        field_type (str): Semantic type (text, email, tel, date, select, checkbox, radio, ...)
        options (list): [{"value": ..., "label": ...}] for choice fields
        mapping (str): Optional semantic key such as email, phone or name
    """

    __tablename__ = "form_fields"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, nullable=False)

    section_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("form_sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    field_type = Column("type", String(50), nullable=False, default="text")

    label = Column(String(255), nullable=False)

    name = Column(String(255), nullable=True)

    order = Column(Integer, nullable=False, default=0)

    required = Column(Boolean, nullable=False, default=False)

    options = Column(JSONType, nullable=True)

    mapping = Column(String(100), nullable=True)

    stable_id = Column(String(255), nullable=True, comment="Rename-proof identifier used by email rules")

    in_use_by_rules = Column(Boolean, nullable=False, default=False)

    section = relationship("FormSection", back_populates="fields")

    __table_args__ = (
        Index("ix_form_fields_stable_id", "stable_id"),
    )

    def __repr__(self) -> str:
        return f"<FormField(id={self.id}, stable_id='{self.stable_id}', label='{self.label}')>"
