"""
Email rule management endpoints.

CRUD for rules plus the maintenance operations the form builder calls after
a save (bulk condition updates, field remapping) and a dry-run test.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logfire

from database import get_db
from models import EmailRule, EmailRuleJob, EmailTemplate, Form
from pipeline import dry_run_rule
from pipeline.core.exceptions import ConditionParseError
from pipeline.fields import FieldIndex
from pipeline.steps.rule_selector.utils import parse_conditions, serialize_conditions
from schemas.rules import (
    EmailRuleCreate,
    EmailRuleResponse,
    EmailRuleUpdate,
    RemapFieldRequest,
    RemapFieldResponse,
    RuleConditionsResult,
    RuleTestRequest,
    RuleTestResponse,
    UpdateConditionsRequest,
    UpdateConditionsResponse,
)
from schemas.submissions import RuleJobResponse
from services.rule_maintenance import mark_fields_in_use, remap_form_field
from services.rule_repository import query_form_fields, rule_to_record
from utils.validators import get_or_404, parse_uuid_or_400


router = APIRouter(prefix="/api/email-rules", tags=["Email Rules"])


def _validate_recipient_field(db: Session, form_id, recipient_type: str, recipient_field: Optional[str]) -> None:
    """A field recipient must point at a field of the rule's form."""
    if recipient_type != "field" or not recipient_field:
        return
    index = FieldIndex.from_records(query_form_fields(db, form_id))
    if len(index) and index.resolve(recipient_field) is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"recipient_field '{recipient_field}' does not match any field of this form",
        )


@router.get("/", response_model=List[EmailRuleResponse])
def list_rules(
    form_id: Optional[str] = Query(default=None),
    active: Optional[bool] = Query(default=None),
    db: Session = Depends(get_db),
):
    """List rules, optionally for one form and/or by active flag, oldest first."""
    with logfire.span("api.list_email_rules", form_id=form_id):
        query = db.query(EmailRule)
        if form_id:
            query = query.filter(EmailRule.form_id == parse_uuid_or_400(form_id, "form ID"))
        if active is not None:
            query = query.filter(EmailRule.active.is_(active))
        return query.order_by(EmailRule.created_at.asc()).all()


@router.post("/", response_model=EmailRuleResponse, status_code=status.HTTP_201_CREATED)
def create_rule(
    request: EmailRuleCreate,
    db: Session = Depends(get_db),
):
    """
    Create a rule. Conditions are validated and stored in canonical form.

    Raises:
        HTTPException 404: Form or template does not exist
        HTTPException 422: Invalid conditions or recipient settings
    """
    with logfire.span("api.create_email_rule", form_id=str(request.form_id)):
        get_or_404(db, Form, request.form_id, "Form")
        get_or_404(db, EmailTemplate, request.template_id, "Email template")
        _validate_recipient_field(db, request.form_id, request.recipient_type, request.recipient_field)

        rule = EmailRule(**request.model_dump())
        db.add(rule)
        db.flush()
        mark_fields_in_use(db, request.form_id)
        db.commit()
        db.refresh(rule)

        logfire.info("Email rule created", rule_id=str(rule.id), form_id=str(rule.form_id))
        return rule


@router.get("/jobs/{job_id}", response_model=RuleJobResponse)
def get_rule_job(
    job_id: str,
    db: Session = Depends(get_db),
):
    """
    Status of the rule processing job created for a submission.

    Once completed, rule_outcomes lists one entry per evaluated rule.
    """
    job_uuid = parse_uuid_or_400(job_id, "job ID")
    with logfire.span("api.get_rule_job", job_id=job_id):
        return get_or_404(db, EmailRuleJob, job_uuid, "Rule job")


@router.post("/update-conditions", response_model=UpdateConditionsResponse)
def update_conditions(
    request: UpdateConditionsRequest,
    db: Session = Depends(get_db),
):
    """
    Replace the conditions of several rules in one call.

    Each rule is validated independently. Returns 207 when some updates
    failed and others succeeded.
    """
    results: List[RuleConditionsResult] = []
    touched_forms = set()

    with logfire.span("api.update_rule_conditions", rule_count=len(request.rules)):
        for item in request.rules:
            rule = db.get(EmailRule, item.rule_id)
            if rule is None:
                results.append(RuleConditionsResult(rule_id=item.rule_id, success=False, error="Rule not found"))
                continue

            raw = item.conditions
            try:
                conditions = parse_conditions(raw)
            except ConditionParseError as e:
                results.append(RuleConditionsResult(rule_id=item.rule_id, success=False, error=str(e)))
                continue

            rule.conditions = serialize_conditions(conditions)
            touched_forms.add(rule.form_id)
            results.append(RuleConditionsResult(rule_id=item.rule_id, success=True))

        for form_id in touched_forms:
            mark_fields_in_use(db, form_id)
        db.commit()

        updated = sum(1 for r in results if r.success)
        failed = len(results) - updated
        logfire.info("Rule conditions updated", updated=updated, failed=failed)

        body = UpdateConditionsResponse(results=results, updated=updated, failed=failed)
        if failed and updated:
            return JSONResponse(status_code=status.HTTP_207_MULTI_STATUS, content=body.model_dump(mode="json"))
        if failed:
            return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body.model_dump(mode="json"))
        return body


@router.post("/remap-field", response_model=RemapFieldResponse)
def remap_field(
    request: RemapFieldRequest,
    db: Session = Depends(get_db),
):
    """
    Rewrite every rule of a form that references old_field to use new_stable_id.

    Used after the form builder recreates fields, so that rules written
    against the old ephemeral ids keep working.
    """
    with logfire.span("api.remap_field", form_id=str(request.form_id)):
        get_or_404(db, Form, request.form_id, "Form")
        stats = remap_form_field(
            db,
            request.form_id,
            request.old_field,
            request.new_stable_id,
            dry_run=request.dry_run,
        )
        return RemapFieldResponse(
            form_id=request.form_id,
            rules_checked=stats.rules_checked,
            rules_updated=stats.rules_updated,
            conditions_updated=stats.conditions_updated,
            recipient_fields_updated=stats.recipient_fields_updated,
            dry_run=request.dry_run,
        )


@router.get("/{rule_id}", response_model=EmailRuleResponse)
def get_rule(
    rule_id: str,
    db: Session = Depends(get_db),
):
    rule_uuid = parse_uuid_or_400(rule_id, "rule ID")
    with logfire.span("api.get_email_rule", rule_id=rule_id):
        return get_or_404(db, EmailRule, rule_uuid, "Email rule")


@router.put("/{rule_id}", response_model=EmailRuleResponse)
def update_rule(
    rule_id: str,
    request: EmailRuleUpdate,
    db: Session = Depends(get_db),
):
    """
    Partial update; only fields present in the body change.

    Raises:
        HTTPException 404: Rule (or new template) does not exist
        HTTPException 422: Invalid conditions or recipient settings
    """
    rule_uuid = parse_uuid_or_400(rule_id, "rule ID")
    with logfire.span("api.update_email_rule", rule_id=rule_id):
        rule = get_or_404(db, EmailRule, rule_uuid, "Email rule")
        changes = request.model_dump(exclude_unset=True)

        if changes.get("template_id") is not None:
            get_or_404(db, EmailTemplate, changes["template_id"], "Email template")
        if "conditions" in changes and changes["conditions"] is None:
            changes["conditions"] = "[]"

        for key, value in changes.items():
            setattr(rule, key, value)

        if rule.recipient_type == "custom" and not rule.recipient_email:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="recipient_email is required when recipient_type is 'custom'",
            )
        if rule.recipient_type == "field" and not rule.recipient_field:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="recipient_field is required when recipient_type is 'field'",
            )
        _validate_recipient_field(db, rule.form_id, rule.recipient_type, rule.recipient_field)

        mark_fields_in_use(db, rule.form_id)
        db.commit()
        db.refresh(rule)
        return rule


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(
    rule_id: str,
    db: Session = Depends(get_db),
):
    rule_uuid = parse_uuid_or_400(rule_id, "rule ID")
    with logfire.span("api.delete_email_rule", rule_id=rule_id):
        rule = get_or_404(db, EmailRule, rule_uuid, "Email rule")
        form_id = rule.form_id
        db.delete(rule)
        db.flush()
        mark_fields_in_use(db, form_id)
        db.commit()
        logfire.info("Email rule deleted", rule_id=rule_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{rule_id}/test", response_model=RuleTestResponse)
def test_rule(
    rule_id: str,
    request: RuleTestRequest,
    db: Session = Depends(get_db),
):
    """
    Dry-run a rule against sample data.

    Evaluates the conditions (with a per-clause breakdown), resolves the
    recipient and renders the template. Nothing is sent or logged.
    """
    rule_uuid = parse_uuid_or_400(rule_id, "rule ID")
    with logfire.span("api.test_email_rule", rule_id=rule_id):
        rule = get_or_404(db, EmailRule, rule_uuid, "Email rule")
        fields = query_form_fields(db, rule.form_id)
        report = dry_run_rule(rule_to_record(rule), request.sample_data, fields)
        return RuleTestResponse(rule_id=rule.id, **report)
