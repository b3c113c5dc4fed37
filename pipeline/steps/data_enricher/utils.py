"""
Data Enricher Utilities

Pure helpers that build the enriched data context.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Optional

from pipeline.fields import ResolvedField
from pipeline.models.core import LeadRecord, SubmissionRecord


def iso_timestamp(value: Any) -> str:
    """ISO-8601 string for a stored timestamp; the current UTC time when absent."""
    if value is None or value == "":
        return datetime.now(timezone.utc).isoformat()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def merge_submission(
    raw_payload: Dict[str, Any],
    submission: SubmissionRecord,
    form_id: str,
) -> Dict[str, Any]:
    """
    Stored submission data merged over the caller payload, plus metadata keys.
    """
    context: Dict[str, Any] = dict(raw_payload)
    context.update(submission.data or {})
    context["submissionId"] = str(submission.id)
    context["formId"] = str(form_id)
    context["timeStamp"] = iso_timestamp(submission.time_stamp)
    return context


def add_field_aliases(context: Dict[str, Any], fields: Iterable[ResolvedField]) -> list[str]:
    """
    Expose values stored under a field's ephemeral id under its other keys.

    Keys already present are never overwritten. Returns the alias keys added.
    """
    added = []
    for field in fields:
        if field.ephemeral_id not in context:
            continue
        value = context[field.ephemeral_id]
        for alias in (field.stable_id, field.mapping, field.camel_label):
            if alias and alias not in context:
                context[alias] = value
                added.append(alias)
    return added


def first_name(full_name: Optional[str]) -> Optional[str]:
    if not full_name:
        return None
    parts = full_name.strip().split()
    return parts[0] if parts else None


def apply_lead(context: Dict[str, Any], lead: LeadRecord) -> None:
    """
    Overlay lead data onto the context. Lead values win over payload values.

    Empty lead attributes do not erase what the submission provided: a
    lead without an email keeps the submitted email instead of blanking it.
    """
    context["leadId"] = str(lead.id)
    overlay = {
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "firstName": first_name(lead.name),
    }
    for key, value in overlay.items():
        if value:
            context[key] = value
