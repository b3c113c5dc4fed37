"""
Maintenance operations over stored rules: field remapping and stable id backfill.

Both rewrite the conditions JSON of existing rules so that they reference
fields by stable id. Used by the admin API and scripts/backfill_stable_ids.py.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Sequence, Tuple
from uuid import UUID

import logfire
from sqlalchemy.orm import Session

from models import EmailRule, FormField, FormSection
from pipeline.core.exceptions import ConditionParseError
from pipeline.fields import generate_stable_id
from pipeline.models.core import Condition
from pipeline.steps.rule_selector.utils import parse_conditions, serialize_conditions
from services.rule_repository import field_to_record


@dataclass
class RemapStats:
    rules_checked: int = 0
    rules_updated: int = 0
    conditions_updated: int = 0
    recipient_fields_updated: int = 0
    unparseable_rules: List[str] = field(default_factory=list)


def remap_conditions(
    conditions: Sequence[Condition],
    old_reference: str,
    new_stable_id: str,
) -> Tuple[List[Condition], int]:
    """
    Point every condition that references old_reference at new_stable_id.

    A condition matches when any of its references (primary, alternates or
    label) equals old_reference. Returns the new list and the change count.
    """
    changed = 0
    remapped = []
    for condition in conditions:
        if old_reference in condition.references and condition.field != new_stable_id:
            condition = replace(condition, field=new_stable_id, alternates=())
            changed += 1
        remapped.append(condition)
    return remapped, changed


def remap_rule_field(rule: EmailRule, old_reference: str, new_stable_id: str, stats: RemapStats) -> bool:
    """Rewrite one rule in place. Returns True when anything changed."""
    stats.rules_checked += 1
    touched = False

    try:
        conditions = parse_conditions(rule.conditions)
    except ConditionParseError as e:
        stats.unparseable_rules.append(str(rule.id))
        logfire.warning("Skipping rule with unparseable conditions", rule_id=str(rule.id), error=str(e))
        conditions = None

    if conditions:
        remapped, changed = remap_conditions(conditions, old_reference, new_stable_id)
        if changed:
            rule.conditions = serialize_conditions(remapped)
            stats.conditions_updated += changed
            touched = True

    if rule.recipient_field and rule.recipient_field == old_reference:
        rule.recipient_field = new_stable_id
        stats.recipient_fields_updated += 1
        touched = True

    if touched:
        stats.rules_updated += 1
    return touched


def remap_form_field(
    db: Session,
    form_id: UUID,
    old_reference: str,
    new_stable_id: str,
    dry_run: bool = False,
) -> RemapStats:
    """Apply remap_rule_field to every rule (active or not) of a form. Commits unless dry_run."""
    stats = RemapStats()
    rules = db.query(EmailRule).filter(EmailRule.form_id == form_id).all()
    for rule in rules:
        remap_rule_field(rule, old_reference, new_stable_id, stats)

    if dry_run:
        db.rollback()
    else:
        mark_fields_in_use(db, form_id)
        db.commit()
    logfire.info(
        "Field remapped in rules",
        form_id=str(form_id),
        old_reference=old_reference,
        new_stable_id=new_stable_id,
        rules_updated=stats.rules_updated,
        dry_run=dry_run,
    )
    return stats


def assign_missing_stable_ids(db: Session, form_id: UUID) -> Dict[str, str]:
    """
    Give every field of the form without a stable id a synthesized one.

    Returns {ephemeral_id: stable_id} for the fields that changed.
    """
    assigned: Dict[str, str] = {}
    rows = (
        db.query(FormField, FormSection)
        .join(FormSection, FormField.section_id == FormSection.id)
        .filter(FormSection.form_id == form_id)
        .order_by(FormSection.order.asc(), FormField.order.asc())
        .all()
    )
    for form_field, section in rows:
        if form_field.stable_id:
            continue
        stable_id = generate_stable_id(field_to_record(form_field, section))
        form_field.stable_id = stable_id
        assigned[str(form_field.id)] = stable_id
    return assigned


def backfill_form(db: Session, form_id: UUID, dry_run: bool = False) -> Tuple[Dict[str, str], RemapStats]:
    """
    Assign missing stable ids, then rewrite rules that still reference the
    ephemeral ids of those fields. Commits unless dry_run.
    """
    assigned = assign_missing_stable_ids(db, form_id)
    stats = RemapStats()
    rules = db.query(EmailRule).filter(EmailRule.form_id == form_id).all()
    for rule in rules:
        stats.rules_checked += 1
        rule_changed = False
        for ephemeral_id, stable_id in assigned.items():
            per_field = RemapStats()
            rule_changed |= remap_rule_field(rule, ephemeral_id, stable_id, per_field)
            stats.conditions_updated += per_field.conditions_updated
            stats.recipient_fields_updated += per_field.recipient_fields_updated
            if per_field.unparseable_rules and str(rule.id) not in stats.unparseable_rules:
                stats.unparseable_rules.append(str(rule.id))
        if rule_changed:
            stats.rules_updated += 1

    if dry_run:
        db.rollback()
    else:
        mark_fields_in_use(db, form_id)
        db.commit()
    return assigned, stats


def mark_fields_in_use(db: Session, form_id: UUID) -> int:
    """
    Refresh FormField.in_use_by_rules for a form from its rules.

    The form builder uses this flag to warn before deleting a field.
    """
    refs = set()
    for rule in db.query(EmailRule).filter(EmailRule.form_id == form_id).all():
        if rule.recipient_field:
            refs.add(rule.recipient_field)
        try:
            for condition in parse_conditions(rule.conditions):
                refs.update(condition.references)
        except ConditionParseError:
            continue

    count = 0
    rows = (
        db.query(FormField)
        .join(FormSection, FormField.section_id == FormSection.id)
        .filter(FormSection.form_id == form_id)
        .all()
    )
    for form_field in rows:
        in_use = bool({form_field.stable_id, str(form_field.id)} & refs)
        form_field.in_use_by_rules = in_use
        count += int(in_use)
    return count
