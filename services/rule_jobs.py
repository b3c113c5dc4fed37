"""
EmailRuleJob bookkeeping.

The intake API creates the job (pending); the Celery task moves it through
processing to completed or failed.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import logfire
from sqlalchemy.orm import Session

from database.retry_utils import retry_on_db_error
from database.session import get_db_context
from models.rule_job import EmailRuleJob, RuleJobStatus
from utils.uuid_helpers import ensure_uuid


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_rule_job(db: Session, form_id: UUID, submission_id: Optional[UUID]) -> EmailRuleJob:
    """Add a pending job to the caller's session (caller commits)."""
    job = EmailRuleJob(
        form_id=form_id,
        submission_id=submission_id,
        status=RuleJobStatus.PENDING.value,
    )
    db.add(job)
    db.flush()
    return job


@retry_on_db_error
def attach_celery_task(job_id: str, celery_task_id: str) -> None:
    with get_db_context(commit=True) as db:
        job = db.get(EmailRuleJob, ensure_uuid(job_id))
        if job is not None:
            job.celery_task_id = celery_task_id


@retry_on_db_error
def mark_job_processing(job_id: str, celery_task_id: Optional[str] = None) -> bool:
    """Returns False if the job row does not exist."""
    with get_db_context(commit=True) as db:
        job = db.get(EmailRuleJob, ensure_uuid(job_id))
        if job is None:
            logfire.warning("Rule job not found", job_id=job_id)
            return False
        job.status = RuleJobStatus.PROCESSING.value
        job.started_at = _now()
        if celery_task_id:
            job.celery_task_id = celery_task_id
        return True


@retry_on_db_error
def update_job_step(job_id: str, step_name: str) -> None:
    with get_db_context(commit=True) as db:
        job = db.get(EmailRuleJob, ensure_uuid(job_id))
        if job is not None:
            job.current_step = step_name


@retry_on_db_error
def mark_job_completed(job_id: str, summary: Dict[str, Any]) -> None:
    with get_db_context(commit=True) as db:
        job = db.get(EmailRuleJob, ensure_uuid(job_id))
        if job is None:
            return
        job.status = RuleJobStatus.COMPLETED.value
        job.current_step = None
        job.processed_rule_count = summary.get("processed_rule_count")
        job.queued_email_count = summary.get("queued_email_count")
        job.rule_outcomes = summary.get("rule_outcomes")
        job.completed_at = _now()


@retry_on_db_error
def mark_job_failed(job_id: str, error_message: str, failed_step: Optional[str] = None) -> None:
    with get_db_context(commit=True) as db:
        job = db.get(EmailRuleJob, ensure_uuid(job_id))
        if job is None:
            return
        job.status = RuleJobStatus.FAILED.value
        if failed_step:
            job.current_step = failed_step
        job.error_message = error_message[:2000]
        job.completed_at = _now()
