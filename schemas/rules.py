"""
Pydantic schemas for the email rule API endpoints.
"""

import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from pipeline.core.exceptions import ConditionParseError
from pipeline.steps.rule_selector.utils import parse_conditions, serialize_conditions

RecipientTypeLiteral = Literal["form", "custom", "field"]


def normalize_conditions(value: Any) -> str:
    """
    Validate conditions (list or JSON text) and return canonical JSON text.

    Raises:
        ValueError: Conditions cannot be parsed
    """
    if value is None:
        return "[]"
    raw = value if isinstance(value, str) else json.dumps(value)
    try:
        conditions = parse_conditions(raw)
    except ConditionParseError as e:
        raise ValueError(str(e)) from e
    return serialize_conditions(conditions)


def _split_emails(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.replace(";", ",").split(",") if part.strip()]


# ===================================================================
# REQUEST SCHEMAS
# ===================================================================

class EmailRuleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    template_id: uuid.UUID
    active: bool = True
    conditions: Any = Field(
        default="[]",
        description="List of {field, operator, value} or its JSON text. Empty means the rule never fires.",
    )
    recipient_type: RecipientTypeLiteral = "form"
    recipient_email: Optional[EmailStr] = None
    recipient_field: Optional[str] = None
    cc_emails: Optional[str] = None
    bcc_emails: Optional[str] = None

    @field_validator("conditions", mode="before")
    @classmethod
    def validate_conditions(cls, v: Any) -> str:
        if isinstance(v, list):
            v = [c.model_dump() if isinstance(c, BaseModel) else c for c in v]
        return normalize_conditions(v)

    @field_validator("cc_emails", "bcc_emails")
    @classmethod
    def validate_email_lists(cls, v: Optional[str]) -> Optional[str]:
        addresses = _split_emails(v)
        bad = [a for a in addresses if "@" not in a]
        if bad:
            raise ValueError(f"Invalid email address(es): {', '.join(bad)}")
        return ", ".join(addresses) or None

    @model_validator(mode="after")
    def validate_recipient(self) -> "EmailRuleBase":
        if self.recipient_type == "custom" and not self.recipient_email:
            raise ValueError("recipient_email is required when recipient_type is 'custom'")
        if self.recipient_type == "field" and not self.recipient_field:
            raise ValueError("recipient_field is required when recipient_type is 'field'")
        return self


class EmailRuleCreate(EmailRuleBase):
    """Request body for POST /api/email-rules"""

    form_id: uuid.UUID

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Confirmed booking notice",
                "form_id": "550e8400-e29b-41d4-a716-446655440000",
                "template_id": "6ba7b810-9dad-11d1-80b4-00c04fd430c8",
                "conditions": [{"field": "status", "operator": "equals", "value": "confirmed"}],
                "recipient_type": "form",
            }
        }
    )


class EmailRuleUpdate(BaseModel):
    """Request body for PUT /api/email-rules/{rule_id}; every field optional."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    template_id: Optional[uuid.UUID] = None
    active: Optional[bool] = None
    conditions: Any = None
    recipient_type: Optional[RecipientTypeLiteral] = None
    recipient_email: Optional[EmailStr] = None
    recipient_field: Optional[str] = None
    cc_emails: Optional[str] = None
    bcc_emails: Optional[str] = None

    @field_validator("conditions", mode="before")
    @classmethod
    def validate_conditions(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return normalize_conditions(v)

    @field_validator("cc_emails", "bcc_emails")
    @classmethod
    def validate_email_lists(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return ", ".join(_split_emails(v))


class RuleConditionsUpdate(BaseModel):
    rule_id: uuid.UUID
    conditions: Any


class UpdateConditionsRequest(BaseModel):
    """Request body for POST /api/email-rules/update-conditions"""

    rules: List[RuleConditionsUpdate] = Field(..., min_length=1)


class RemapFieldRequest(BaseModel):
    """Request body for POST /api/email-rules/remap-field"""

    form_id: uuid.UUID
    old_field: str = Field(..., min_length=1, description="Identifier currently stored in conditions")
    new_stable_id: str = Field(..., min_length=1)
    dry_run: bool = False


class RuleTestRequest(BaseModel):
    """Request body for POST /api/email-rules/{rule_id}/test"""

    sample_data: Dict[str, Any] = Field(default_factory=dict)


# ===================================================================
# RESPONSE SCHEMAS
# ===================================================================

class EmailRuleResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str]
    form_id: uuid.UUID
    template_id: uuid.UUID
    active: bool
    conditions: List[Dict[str, Any]] = Field(default_factory=list)
    conditions_valid: bool = True
    recipient_type: str
    recipient_email: Optional[str]
    recipient_field: Optional[str]
    cc_emails: Optional[str]
    bcc_emails: Optional[str]
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def decode_conditions(cls, data: Any) -> Any:
        """Stored JSON text -> list; unparseable conditions are flagged rather than hidden."""
        if hasattr(data, "__table__"):
            data = {attr.key: getattr(data, attr.key) for attr in data.__mapper__.column_attrs}
        if isinstance(data, dict) and not isinstance(data.get("conditions"), list):
            raw = data.get("conditions")
            data = dict(data)
            try:
                parsed = parse_conditions(raw)
                data["conditions"] = json.loads(serialize_conditions(parsed))
                data["conditions_valid"] = True
            except ConditionParseError:
                data["conditions"] = []
                data["conditions_valid"] = False
        return data


class RuleConditionsResult(BaseModel):
    rule_id: uuid.UUID
    success: bool
    error: Optional[str] = None


class UpdateConditionsResponse(BaseModel):
    results: List[RuleConditionsResult]
    updated: int
    failed: int


class RemapFieldResponse(BaseModel):
    form_id: uuid.UUID
    rules_checked: int
    rules_updated: int
    conditions_updated: int
    recipient_fields_updated: int
    dry_run: bool


class ConditionCheck(BaseModel):
    field: str
    operator: str
    expected: str
    actual: Any = None
    field_found: bool
    known_operator: bool
    passed: bool


class RuleTestResponse(BaseModel):
    rule_id: uuid.UUID
    matched: bool
    error: Optional[str] = None
    conditions: List[ConditionCheck] = Field(default_factory=list)
    recipient: Optional[str] = None
    cc: List[str] = Field(default_factory=list)
    bcc: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    html: Optional[str] = None
    unresolved_placeholders: List[str] = Field(default_factory=list)
