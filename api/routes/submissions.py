"""
Form submission intake.

Stores the submission, links it to a lead and hands rule processing to a
Celery worker. The submitter never waits on email delivery.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import logfire

from database import get_db
from models import Form, FormSubmission
from pipeline.fields import FieldIndex
from schemas.submissions import SubmissionCreate, SubmissionCreatedResponse
from services import rule_jobs
from services.rule_repository import query_form_fields
from services.submission_intake import extract_contact, link_lead
from tasks.rule_tasks import process_submission_rules_task
from utils.validators import get_or_404, parse_uuid_or_400


router = APIRouter(prefix="/api/forms", tags=["Submissions"])


@router.post(
    "/{form_id}/submissions",
    response_model=SubmissionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_submission(
    form_id: str,
    request: SubmissionCreate,
    db: Session = Depends(get_db),
):
    """
    Accept a form submission and enqueue email rule processing.

    The response is returned as soon as the submission and its rule job are
    stored. If the job cannot be enqueued it is marked failed; the
    submission itself is still accepted.

    Raises:
        HTTPException 400: Malformed form id
        HTTPException 404: Form does not exist
    """
    form_uuid = parse_uuid_or_400(form_id, "form ID")

    with logfire.span("api.create_submission", form_id=form_id):
        form = get_or_404(db, Form, form_uuid, "Form")

        field_index = FieldIndex.from_records(query_form_fields(db, form.id))
        contact = extract_contact(request.data, field_index.fields)
        lead = link_lead(db, form.id, contact, request.lead_id)

        submission = FormSubmission(
            form_id=form.id,
            lead_id=lead.id if lead is not None else None,
            data=request.data,
        )
        db.add(submission)
        db.flush()

        job = rule_jobs.create_rule_job(db, form.id, submission.id)
        db.commit()

        job_id = str(job.id)
        logfire.info(
            "Submission stored",
            form_id=form_id,
            submission_id=str(submission.id),
            lead_id=str(lead.id) if lead is not None else None,
            job_id=job_id,
        )

        try:
            task = process_submission_rules_task.apply_async(
                kwargs={
                    "job_id": job_id,
                    "form_id": str(form.id),
                    "submission_id": str(submission.id),
                    "payload": request.data,
                },
                queue="email_rules",
            )
            rule_jobs.attach_celery_task(job_id, task.id)
        except Exception as e:
            logfire.error(
                "Failed to enqueue rule processing",
                job_id=job_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            try:
                rule_jobs.mark_job_failed(job_id, f"Failed to enqueue rule processing: {e}", "enqueue")
            except Exception as mark_error:
                logfire.error(
                    "Failed to mark rule job as failed",
                    job_id=job_id,
                    error=str(mark_error),
                    error_type=type(mark_error).__name__,
                )

        return SubmissionCreatedResponse(
            submission_id=submission.id,
            lead_id=lead.id if lead is not None else None,
            job_id=job.id,
        )
