"""
Side-effect free entry points for admin tooling: template preview and
rule dry runs. Nothing here touches persistence or the email transport.
"""

from typing import Any, Dict, Iterable, Mapping, Optional

from pipeline.core.exceptions import ConditionParseError
from pipeline.fields import FieldIndex
from pipeline.models.core import FieldRecord, RuleRecord
from pipeline.steps.condition_evaluator.utils import evaluate, explain
from pipeline.steps.email_dispatcher.recipient_resolver import resolve_recipient
from pipeline.steps.email_dispatcher.template_renderer import render, render_with_report
from pipeline.steps.email_dispatcher.utils import effective_copies
from pipeline.steps.rule_selector.utils import parse_conditions


def render_preview(template: str, sample_context: Mapping[str, Any]) -> str:
    """Render a template against a sample context, exactly as a real send would."""
    return render(template, sample_context)


def dry_run_rule(
    rule: RuleRecord,
    sample_payload: Mapping[str, Any],
    fields: Optional[Iterable[FieldRecord]] = None,
) -> Dict[str, Any]:
    """
    Evaluate one rule against a sample payload and render what it would send.

    The context is the payload plus formId, as for any run without a
    submission id.
    """
    context = dict(sample_payload)
    context["formId"] = str(rule.form_id)
    field_index = FieldIndex.from_records(fields or [])

    try:
        conditions = parse_conditions(rule.conditions)
    except ConditionParseError as e:
        return {
            "matched": False,
            "error": str(e),
            "conditions": [],
            "recipient": None,
            "cc": [],
            "bcc": [],
            "subject": None,
            "html": None,
            "unresolved_placeholders": [],
        }

    matched = evaluate(conditions, context, field_index)
    recipient = resolve_recipient(rule, context, field_index)
    cc, bcc = effective_copies(rule)

    subject = html = None
    unresolved: list = []
    if rule.template is not None:
        subject_report = render_with_report(rule.template.subject, context)
        html_report = render_with_report(rule.template.html_content, context)
        subject, html = subject_report.text, html_report.text
        unresolved = list(dict.fromkeys(subject_report.unresolved + html_report.unresolved))

    return {
        "matched": matched,
        "error": None if conditions else "Rule has no conditions and will never fire",
        "conditions": explain(conditions, context, field_index),
        "recipient": recipient,
        "cc": cc,
        "bcc": bcc,
        "subject": subject,
        "html": html,
        "unresolved_placeholders": unresolved,
    }
