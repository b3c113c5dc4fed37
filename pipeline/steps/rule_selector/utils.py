"""
Rule Selector Utilities

Parse-once boundary for stored conditions, and rule ordering.
"""

import json
from datetime import datetime, timezone
from typing import Any, Iterable, List

from pydantic import ValidationError as PydanticValidationError

from pipeline.core.exceptions import ConditionParseError
from pipeline.models.core import Condition, RuleRecord, SelectedRule

from .models import StoredCondition

_EMPTY_MARKERS = ("", "null", "[]", "{}")


def is_empty_conditions(raw: Any) -> bool:
    """
    True for every stored shape that means "no conditions".

    None, "", "null", "[]", "{}" and empty lists/dicts.
    """
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw.strip() in _EMPTY_MARKERS
    if isinstance(raw, (list, dict)):
        return len(raw) == 0
    return False


def parse_conditions(raw: Any) -> List[Condition]:
    """
    Parse stored conditions (JSON text or already-decoded list).

    Returns [] for the empty shapes.

    Raises:
        ConditionParseError: Malformed JSON, a non-list document, or an
            entry without a field reference or operator
    """
    if is_empty_conditions(raw):
        return []

    data = raw
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConditionParseError(f"Invalid conditions JSON: {e.msg} at position {e.pos}") from e
        if is_empty_conditions(data):
            return []

    if not isinstance(data, list):
        raise ConditionParseError(f"Conditions must be a JSON list, got {type(data).__name__}")

    conditions = []
    for position, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ConditionParseError(f"Condition {position} is not an object")
        try:
            stored = StoredCondition.model_validate(entry)
        except PydanticValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ConditionParseError(f"Condition {position} is invalid ({fields})") from e
        conditions.append(stored.to_condition(entry))
    return conditions


def serialize_conditions(conditions: Iterable[Condition]) -> str:
    """
    Canonical JSON text for storage (stable id under both field and stableId).

    Alternate references (fieldId, older ids) are not written back. After a
    remap or an edit the condition resolves through its current reference
    only, and the old field no longer counts as used by the rule.
    """
    payload = []
    for c in conditions:
        item = {"field": c.field, "stableId": c.field, "operator": c.operator, "value": c.value}
        if c.label:
            item["label"] = c.label
        payload.append(item)
    return json.dumps(payload)


def select_rule(rule: RuleRecord) -> SelectedRule:
    """Parse one rule's conditions; a parse failure is recorded, not raised."""
    try:
        return SelectedRule(rule=rule, conditions=parse_conditions(rule.conditions))
    except ConditionParseError as e:
        return SelectedRule(rule=rule, parse_error=str(e))


_EPOCH_FLOOR = datetime.min.replace(tzinfo=timezone.utc)


def _created_key(rule: RuleRecord) -> datetime:
    created = rule.created_at
    if created is None:
        return _EPOCH_FLOOR
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def order_rules(rules: Iterable[SelectedRule]) -> List[SelectedRule]:
    """
    Rules with stored conditions first, then oldest first.

    Rules without a creation time sort ahead of dated ones and otherwise
    keep the order they were given in.
    """
    return sorted(
        rules,
        key=lambda selected: (
            is_empty_conditions(selected.rule.conditions),
            _created_key(selected.rule),
        ),
    )
