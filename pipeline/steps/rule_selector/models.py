"""
Rule Selector Step Models

Pydantic model for the loosely-typed condition objects stored on rules.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from pipeline.models.core import Condition
from pipeline.steps.condition_evaluator.utils import to_js_string

FIELD_REFERENCE_KEYS = ("stableId", "fieldStableId", "field", "fieldId")
LABEL_KEYS = ("label", "fieldLabel")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class StoredCondition(BaseModel):
    """
    One condition as found in the conditions JSON column.

    The field reference may be stored under any of stableId, fieldStableId,
    field or fieldId depending on when the rule was written. Editors save
    blank placeholders (fieldStableId: "" for fields without a stable id),
    so null or blank keys are skipped and the first usable one wins.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "stableId": "weddingDetails_venueName",
                "operator": "equals",
                "value": "Grand Hotel",
                "label": "Venue name",
            }
        },
    )

    field: str = Field(
        validation_alias=AliasChoices(*FIELD_REFERENCE_KEYS),
        min_length=1,
        description="Field reference (stable id preferred)",
    )

    operator: str = Field(min_length=1)

    value: Any = Field(default="", description="Expected value; coerced to string")

    label: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(*LABEL_KEYS),
    )

    @model_validator(mode="before")
    @classmethod
    def drop_blank_references(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {
            key: value
            for key, value in data.items()
            if not (key in FIELD_REFERENCE_KEYS + LABEL_KEYS and _is_blank(value))
        }

    @field_validator("field", "operator", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    def to_condition(self, raw: dict) -> Condition:
        """Strict internal form. Other references in the raw dict become alternates."""
        alternates = tuple(
            str(raw[key]).strip()
            for key in FIELD_REFERENCE_KEYS
            if not _is_blank(raw.get(key)) and str(raw[key]).strip() != self.field
        )
        return Condition(
            field=self.field,
            operator=self.operator,
            value=to_js_string(self.value),
            label=self.label or None,
            alternates=alternates,
        )
