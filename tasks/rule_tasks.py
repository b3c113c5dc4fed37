"""
Celery tasks that run the email-rule pipeline after the submission response.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import logfire
from celery.exceptions import Ignore

from celery_config import celery_app
from models.rule_job import RuleJobStatus
from pipeline import process_email_rules
from pipeline.core.exceptions import PipelineExecutionError, StepExecutionError
from services import rule_jobs

# Mapping between rule job statuses and Celery task states.
JOB_STATUS_TO_CELERY_STATE = {
    RuleJobStatus.PENDING: "PENDING",
    RuleJobStatus.PROCESSING: "STARTED",
    RuleJobStatus.COMPLETED: "SUCCESS",
    RuleJobStatus.FAILED: "FAILURE",
}


@celery_app.task(bind=True)
def process_submission_rules_task(
    self,
    *,
    job_id: Optional[str] = None,
    form_id: Optional[str] = None,
    submission_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Celery entrypoint for the 5-step rule pipeline.

    The EmailRuleJob row is the durable record of the run; Celery state is
    kept in sync for polling.
    """

    celery_request_id = getattr(self.request, "id", None)

    required_fields = {"job_id": job_id, "form_id": form_id}
    missing = [field for field, value in required_fields.items() if not value]
    if missing:
        raise ValueError(f"Missing required parameters: {', '.join(missing)}")

    def _update_status(status: RuleJobStatus, extra_meta: Optional[Dict[str, Any]] = None) -> None:
        meta: Dict[str, Any] = {
            "status": status.value,
            "job_id": job_id,
            "celery_id": celery_request_id,
        }
        if extra_meta:
            meta.update(extra_meta)

        celery_state = JOB_STATUS_TO_CELERY_STATE[status]

        # FAILURE meta must carry exc_type/exc_message for Celery to decode it
        if celery_state == "FAILURE" and extra_meta:
            meta = {
                "exc_type": extra_meta.get("error_type", "UnknownError"),
                "exc_message": extra_meta.get("error", "Unknown error occurred"),
                "status": status.value,
                "job_id": job_id,
                "celery_id": celery_request_id,
                "failed_step": extra_meta.get("failed_step"),
            }

        self.update_state(state=celery_state, meta=meta)

    def _fail(exc: Exception, failed_step: Optional[str]) -> None:
        error_message = str(exc)
        try:
            rule_jobs.mark_job_failed(job_id, error_message, failed_step)
        except Exception as db_exc:
            logfire.error("Could not mark rule job failed", job_id=job_id, error=str(db_exc))
        _update_status(
            RuleJobStatus.FAILED,
            {
                "error": error_message,
                "failed_step": failed_step,
                "error_type": type(exc).__name__,
            },
        )

    async def progress_callback(step_name: str, step_status: str) -> None:
        if step_status == "started":
            await asyncio.to_thread(rule_jobs.update_job_step, job_id, step_name)
        _update_status(
            RuleJobStatus.PROCESSING,
            {"current_step": step_name, "step_status": step_status},
        )

    with logfire.span(
        "tasks.process_submission_rules",
        job_id=job_id,
        celery_id=celery_request_id,
        form_id=form_id,
        submission_id=submission_id,
    ):
        logfire.info(
            "Rule processing task started",
            job_id=job_id,
            celery_id=celery_request_id,
            form_id=form_id,
        )

        if not rule_jobs.mark_job_processing(job_id, celery_request_id):
            logfire.warning("Rule job row missing; running without job tracking", job_id=job_id)
        _update_status(RuleJobStatus.PROCESSING, {"current_step": "initializing_pipeline"})

        try:
            result = asyncio.run(process_email_rules(
                form_id,
                submission_id,
                payload or {},
                correlation_id=job_id,
                progress_callback=progress_callback,
            ))
        except (StepExecutionError, PipelineExecutionError) as exc:
            failed_step = getattr(exc, "step_name", None)
            logfire.error(
                "Rule pipeline failed",
                job_id=job_id,
                error=str(exc),
                error_type=type(exc).__name__,
                failed_step=failed_step,
            )
            _fail(exc, failed_step)
            # Raise Ignore to prevent Celery from overwriting FAILURE state with SUCCESS
            raise Ignore()

        except Exception as exc:
            logfire.error(
                "Unhandled exception during rule processing",
                job_id=job_id,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            _fail(exc, None)
            raise Ignore()

        summary = result.summary()
        rule_jobs.mark_job_completed(job_id, summary)
        _update_status(
            RuleJobStatus.COMPLETED,
            {
                "processed_rule_count": result.processed_rule_count,
                "queued_email_count": result.queued_email_count,
            },
        )

        logfire.info(
            "Rule processing task completed",
            job_id=job_id,
            processed_rule_count=result.processed_rule_count,
            queued_email_count=result.queued_email_count,
        )

        return {"job_id": job_id, "status": RuleJobStatus.COMPLETED.value, **summary}
