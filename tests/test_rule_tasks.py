"""
Celery task tests, run eagerly with Task.apply().

update_state is stubbed so no result backend is needed; the pipeline runs
over SQLite with the console transport.
"""

import json

import pytest

from models import EmailLog, EmailRuleJob, FormSubmission
from services.rule_repository import SqlAlchemyRuleRepository
from tasks.rule_tasks import process_submission_rules_task


@pytest.fixture
def states(monkeypatch):
    """Every state the task reports, in order."""
    recorded = []

    def update_state(state=None, meta=None, **kwargs):
        recorded.append((state, meta))

    monkeypatch.setattr(process_submission_rules_task, "update_state", update_state)
    return recorded


@pytest.fixture
def queued_job(db_session, seeded_form):
    submission = FormSubmission(
        form_id=seeded_form["form"].id,
        lead_id=seeded_form["lead"].id,
        data={"status": "confirmed", str(seeded_form["venue_field"].id): "The Barn"},
    )
    db_session.add(submission)
    db_session.flush()
    job = EmailRuleJob(form_id=seeded_form["form"].id, submission_id=submission.id, status="pending")
    db_session.add(job)
    db_session.commit()
    return job, submission


def _run(job, submission, form_id):
    return process_submission_rules_task.apply(kwargs={
        "job_id": str(job.id),
        "form_id": str(form_id),
        "submission_id": str(submission.id),
        "payload": {"status": "confirmed"},
    })


def test_task_completes_job(db_session, seeded_form, add_rule, queued_job, states):
    job, submission = queued_job
    rule = add_rule(conditions=json.dumps([{"field": "status", "operator": "equals", "value": "confirmed"}]))

    result = _run(job, submission, seeded_form["form"].id)

    assert result.successful()
    assert result.result["queued_email_count"] == 1

    db_session.refresh(job)
    assert job.status == "completed"
    assert job.processed_rule_count == 1
    assert job.queued_email_count == 1
    assert job.rule_outcomes[0]["rule_id"] == str(rule.id)
    assert job.rule_outcomes[0]["status"] == "sent"
    assert job.completed_at is not None

    log = db_session.query(EmailLog).filter(EmailLog.correlation_id == str(job.id)).one()
    assert log.recipient == "dana@example.com"
    assert log.subject == "Thanks Dana"

    reported = [state for state, _ in states]
    assert reported[0] == "STARTED"
    assert reported[-1] == "SUCCESS"


def test_task_marks_job_failed_when_rules_cannot_load(
    db_session, seeded_form, queued_job, states, monkeypatch
):
    job, submission = queued_job

    def unavailable(self, form_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(SqlAlchemyRuleRepository, "get_active_rules_for_form", unavailable)

    _run(job, submission, seeded_form["form"].id)

    db_session.refresh(job)
    assert job.status == "failed"
    assert job.current_step == "rule_selector"
    assert "database unavailable" in job.error_message

    state, meta = states[-1]
    assert state == "FAILURE"
    assert meta["exc_type"] == "StepExecutionError"
    assert meta["failed_step"] == "rule_selector"


def test_task_requires_job_and_form():
    result = process_submission_rules_task.apply(kwargs={"form_id": "f"})

    assert result.failed()
    assert isinstance(result.result, ValueError)
