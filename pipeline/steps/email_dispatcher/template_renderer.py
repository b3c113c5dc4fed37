"""
Template rendering: {{placeholder}} substitution over the enriched data context.

Each placeholder is resolved by the first strategy that finds a non-None
value:

1. exact key
2. case-insensitive key
3. dotted path into nested objects (weddingDetails.venueName)
4. section-prefix decomposition (weddingDetailsVenueName or
   weddingDetails_venueName -> context["weddingDetails"]["venueName"])

Unresolved placeholders are left in the output verbatim so a missing value
is visible in the sent email rather than silently blank.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Callable, List, Mapping, Optional

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

_UNRESOLVED = object()


@dataclass
class RenderResult:
    """Rendered text plus the placeholders that could not be resolved."""

    text: str
    unresolved: List[str] = field(default_factory=list)


def _get_key(mapping: Mapping[str, Any], key: str) -> Any:
    """Exact key, then case-insensitive key. None values count as absent."""
    value = mapping.get(key)
    if value is not None:
        return value
    lowered = key.lower()
    for candidate, candidate_value in mapping.items():
        if isinstance(candidate, str) and candidate.lower() == lowered and candidate_value is not None:
            return candidate_value
    return _UNRESOLVED


def _exact(identifier: str, context: Mapping[str, Any]) -> Any:
    value = context.get(identifier)
    return value if value is not None else _UNRESOLVED


def _case_insensitive(identifier: str, context: Mapping[str, Any]) -> Any:
    return _get_key(context, identifier)


def _dotted_path(identifier: str, context: Mapping[str, Any]) -> Any:
    if "." not in identifier:
        return _UNRESOLVED
    current: Any = context
    for part in identifier.split("."):
        if isinstance(current, Mapping):
            current = _get_key(current, part)
        elif isinstance(current, (list, tuple)) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _UNRESOLVED
        if current is _UNRESOLVED or current is None:
            return _UNRESOLVED
    return current


def _section_prefix(identifier: str, context: Mapping[str, Any]) -> Any:
    sections = sorted(
        (key for key, value in context.items() if isinstance(key, str) and isinstance(value, Mapping)),
        key=len,
        reverse=True,
    )
    lowered = identifier.lower()
    for section in sections:
        if len(identifier) <= len(section) or not lowered.startswith(section.lower()):
            continue
        boundary = identifier[len(section)]
        rest = identifier[len(section):]
        if boundary == "_":
            rest = rest.lstrip("_")
        elif not boundary.isupper():
            continue
        if not rest:
            continue
        field_key = rest[0].lower() + rest[1:]
        value = _get_key(context[section], field_key)
        if value is _UNRESOLVED:
            value = _get_key(context[section], rest)
        if value is not _UNRESOLVED:
            return value
    return _UNRESOLVED


STRATEGIES: List[Callable[[str, Mapping[str, Any]], Any]] = [
    _exact,
    _case_insensitive,
    _dotted_path,
    _section_prefix,
]


def resolve_placeholder(identifier: str, context: Mapping[str, Any]) -> Any:
    """Raw value for a placeholder identifier, or None when nothing resolves."""
    for strategy in STRATEGIES:
        value = strategy(identifier, context)
        if value is not _UNRESOLVED:
            return value
    return None


def format_value(value: Any) -> str:
    """
    Human-readable string for a context value.

    Booleans as Yes/No, dates ISO-8601, lists comma-joined, integral floats
    without ".0", option dicts by their label.
    """
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, (list, tuple, set)):
        return ", ".join(format_value(item) for item in value if item is not None)
    if isinstance(value, Mapping):
        if value.get("label") is not None:
            return format_value(value["label"])
        if value.get("value") is not None:
            return format_value(value["value"])
        return json.dumps(value, default=str)
    return str(value)


def render_with_report(template: Optional[str], context: Mapping[str, Any]) -> RenderResult:
    """Render and collect the identifiers that stayed unresolved (in order, unique)."""
    if not template:
        return RenderResult(text="")

    unresolved: List[str] = []

    def _replace(match: "re.Match[str]") -> str:
        identifier = match.group(1)
        value = resolve_placeholder(identifier, context)
        if value is None:
            if identifier not in unresolved:
                unresolved.append(identifier)
            return match.group(0)
        return format_value(value)

    text = PLACEHOLDER_PATTERN.sub(_replace, template)
    return RenderResult(text=text, unresolved=unresolved)


def render(template: Optional[str], context: Mapping[str, Any]) -> str:
    """
    Replace {{placeholders}} with context values.

    >>> render("Hi {{ firstName }}", {"firstName": "Ada"})
    'Hi Ada'
    >>> render("{{missing}}", {})
    '{{missing}}'
    """
    return render_with_report(template, context).text


def extract_variables(template: Optional[str]) -> List[str]:
    """
    Unique placeholder identifiers in order of appearance.

    >>> extract_variables("Hi {{name}}, re {{ eventDate }} / {{name}}")
    ['name', 'eventDate']
    """
    if not template:
        return []
    seen = []
    for match in PLACEHOLDER_PATTERN.finditer(template):
        identifier = match.group(1)
        if identifier not in seen:
            seen.append(identifier)
    return seen
