"""
Recipient resolution for matched rules.

custom -> the stored address; field -> the named field's value, falling back
to the submitter's email; form (and anything unrecognised) -> the
submitter's email. Never invents an address: None means "no recipient".
"""

from typing import Any, Mapping, Optional

from pipeline.fields import MISSING, FieldIndex, lookup_value
from pipeline.models.core import RuleRecord
from pipeline.steps.condition_evaluator.utils import to_js_string


def _as_address(value: Any) -> Optional[str]:
    if value is MISSING or value is None:
        return None
    text = to_js_string(value).strip()
    return text or None


def submitter_email(context: Mapping[str, Any]) -> Optional[str]:
    return _as_address(context.get("email"))


def resolve_recipient(
    rule: RuleRecord,
    context: Mapping[str, Any],
    field_index: Optional[FieldIndex] = None,
) -> Optional[str]:
    recipient_type = (rule.recipient_type or "form").lower()

    if recipient_type == "custom":
        if rule.recipient_email and rule.recipient_email.strip():
            return rule.recipient_email
        return None

    if recipient_type == "field":
        if rule.recipient_field:
            address = _as_address(lookup_value(rule.recipient_field, context, field_index))
            if address:
                return address
        return submitter_email(context)

    return submitter_email(context)
