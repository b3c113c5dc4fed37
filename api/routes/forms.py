"""Form metadata used by the rule and template editors."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logfire

from database import get_db
from models import Form
from pipeline.fields import FieldIndex
from schemas.templates import FormVariable, FormVariablesResponse
from services.rule_repository import query_form_fields
from utils.validators import get_or_404, parse_uuid_or_400


router = APIRouter(prefix="/api/forms", tags=["Forms"])

# Keys the data enricher adds to every context with a stored submission
ENRICHED_KEYS = ["formId", "submissionId", "timeStamp", "leadId", "name", "firstName", "email", "phone"]


@router.get("/{form_id}/variables", response_model=FormVariablesResponse)
def get_form_variables(
    form_id: str,
    db: Session = Depends(get_db),
):
    """
    Placeholders available to templates of this form.

    One entry per field, keyed by stable id (synthesized for legacy fields),
    plus the keys added by enrichment.
    """
    form_uuid = parse_uuid_or_400(form_id, "form ID")
    with logfire.span("api.form_variables", form_id=form_id):
        form = get_or_404(db, Form, form_uuid, "Form")
        index = FieldIndex.from_records(query_form_fields(db, form.id))

        variables = [
            FormVariable(
                key=resolved.stable_id,
                label=resolved.label,
                field_type=resolved.field_type,
                section=resolved.section_title,
                stable_id_synthesized=resolved.stable_id_synthesized,
            )
            for resolved in index.fields
        ]
        return FormVariablesResponse(form_id=str(form.id), variables=variables, built_in=ENRICHED_KEYS)
