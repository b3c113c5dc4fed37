"""
Condition Evaluator Utilities

Pure evaluation of a rule's condition list against an enriched data context.
Operands are coerced the way the form front end coerces them: string
comparison for equality and substring operators, leading-number parsing for
greaterThan / lessThan (anything unparseable is NaN and compares False).
"""

import json
import math
import re
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from pipeline.fields import MISSING, FieldIndex, lookup_value
from pipeline.models.core import Condition

_LEADING_NUMBER = re.compile(r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def to_js_string(value: Any) -> str:
    """
    String form of a context value.

    None -> "", True -> "true", 3.0 -> "3", ["a", "b"] -> "a,b",
    option dicts -> their value.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(to_js_string(v) for v in value)
    if isinstance(value, dict):
        if "value" in value:
            return to_js_string(value["value"])
        return json.dumps(value, default=str)
    return str(value)


def parse_float(value: Any) -> float:
    """
    Leading-number parse; NaN when the text does not start with a number.

    >>> parse_float("10px")
    10.0
    >>> math.isnan(parse_float("abc"))
    True
    """
    if isinstance(value, bool):
        value = to_js_string(value)
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER.match(to_js_string(value).strip())
    if not match:
        return math.nan
    return float(match.group(0).replace("Infinity", "inf"))


def _is_empty(actual: Any) -> bool:
    return to_js_string(actual).strip() == ""


OPERATORS: Dict[str, Callable[[Any, str], bool]] = {
    "equals": lambda actual, expected: to_js_string(actual) == expected,
    "notEquals": lambda actual, expected: to_js_string(actual) != expected,
    "contains": lambda actual, expected: expected in to_js_string(actual),
    "notContains": lambda actual, expected: expected not in to_js_string(actual),
    "startsWith": lambda actual, expected: to_js_string(actual).startswith(expected),
    "endsWith": lambda actual, expected: to_js_string(actual).endswith(expected),
    "greaterThan": lambda actual, expected: parse_float(actual) > parse_float(expected),
    "lessThan": lambda actual, expected: parse_float(actual) < parse_float(expected),
    "isEmpty": lambda actual, expected: _is_empty(actual),
    "isNotEmpty": lambda actual, expected: not _is_empty(actual),
}


def find_condition_value(
    condition: Condition,
    context: Mapping[str, Any],
    field_index: Optional[FieldIndex] = None,
) -> Any:
    """Value a condition tests, or MISSING. Every stored reference is tried in order."""
    for reference in condition.references:
        value = lookup_value(reference, context, field_index)
        if value is not MISSING:
            return value
    return MISSING


def evaluate_condition(
    condition: Condition,
    context: Mapping[str, Any],
    field_index: Optional[FieldIndex] = None,
) -> bool:
    """A single clause. Missing field and unknown operator are both False."""
    actual = find_condition_value(condition, context, field_index)
    if actual is MISSING:
        return False
    operator = OPERATORS.get(condition.operator)
    if operator is None:
        return False
    return bool(operator(actual, condition.value))


def evaluate(
    conditions: Optional[Sequence[Condition]],
    context: Mapping[str, Any],
    field_index: Optional[FieldIndex] = None,
) -> bool:
    """
    AND-fold of a rule's conditions.

    An empty list is False: a rule needs at least one condition to fire.
    Stops at the first clause that fails.
    """
    if not conditions:
        return False
    for condition in conditions:
        if not evaluate_condition(condition, context, field_index):
            return False
    return True


def explain(
    conditions: Sequence[Condition],
    context: Mapping[str, Any],
    field_index: Optional[FieldIndex] = None,
) -> list[dict]:
    """
    Per-clause breakdown for dry runs and diagnostics. Does not short-circuit.
    """
    results = []
    for condition in conditions:
        actual = find_condition_value(condition, context, field_index)
        found = actual is not MISSING
        results.append({
            "field": condition.field,
            "operator": condition.operator,
            "expected": condition.value,
            "actual": actual if found else None,
            "field_found": found,
            "known_operator": condition.operator in OPERATORS,
            "passed": evaluate_condition(condition, context, field_index),
        })
    return results
