"""
End-to-end tests for the rule pipeline (all five steps, in-memory collaborators).

Run with:
    pytest pipeline/tests/test_rule_pipeline.py -v
"""

import pytest

from pipeline import create_rule_pipeline, dry_run_rule, process_email_rules, render_preview
from pipeline.core.exceptions import StepExecutionError
from pipeline.models.core import FieldRecord, LeadRecord, RuleOutcomeStatus, SubmissionRecord

CONFIRMED = [{"field": "status", "operator": "equals", "value": "confirmed"}]


@pytest.fixture
def repository(fake_repository, make_rule):
    fake_repository.rules["form-1"] = [make_rule(CONFIRMED, recipient_type="form")]
    return fake_repository


# ===================================================================
# TESTS - Entry point
# ===================================================================

@pytest.mark.asyncio
async def test_matching_rule_queues_one_email(repository, fake_transport):
    result = await process_email_rules(
        "form-1",
        None,
        {"status": "confirmed", "email": "c@d.com"},
        repository=repository,
        transport=fake_transport,
    )

    assert result.processed_rule_count == 1
    assert result.queued_email_count == 1
    [outcome] = result.rule_outcomes
    assert outcome.status == RuleOutcomeStatus.SENT
    assert outcome.recipient == "c@d.com"
    assert [m.to for m in fake_transport.sent] == ["c@d.com"]


@pytest.mark.asyncio
async def test_rule_saved_with_blank_stable_id_still_fires(fake_repository, make_rule, fake_transport):
    fake_repository.rules["form-1"] = [make_rule(
        [{
            "field": "status",
            "fieldId": "f-1",
            "fieldStableId": "",
            "fieldLabel": "Status",
            "operator": "equals",
            "value": "confirmed",
        }],
        recipient_type="form",
    )]

    result = await process_email_rules(
        "form-1",
        None,
        {"status": "confirmed", "email": "c@d.com"},
        repository=fake_repository,
        transport=fake_transport,
    )

    [outcome] = result.rule_outcomes
    assert outcome.status == RuleOutcomeStatus.SENT
    assert result.queued_email_count == 1


@pytest.mark.asyncio
async def test_non_matching_rule_queues_nothing(repository, fake_transport):
    result = await process_email_rules(
        "form-1",
        None,
        {"status": "pending", "email": "c@d.com"},
        repository=repository,
        transport=fake_transport,
    )

    assert result.processed_rule_count == 1
    assert result.queued_email_count == 0
    [outcome] = result.rule_outcomes
    assert outcome.status == RuleOutcomeStatus.NOT_MATCHED
    assert outcome.matched is False
    assert any("NO MATCH" in entry.message for entry in result.logs)
    assert fake_transport.sent == []
    assert repository.email_logs == []


@pytest.mark.asyncio
async def test_correlation_id_threads_through_logs(repository, fake_transport):
    result = await process_email_rules(
        "form-1",
        None,
        {"status": "confirmed", "email": "c@d.com"},
        repository=repository,
        transport=fake_transport,
        correlation_id="job-42",
    )

    assert result.correlation_id == "job-42"
    assert repository.email_logs[0].correlation_id == "job-42"
    assert result.summary()["correlation_id"] == "job-42"


@pytest.mark.asyncio
async def test_stored_submission_lead_and_legacy_field_reference(fake_repository, fake_transport, make_rule, make_template):
    # Rule written before the form was re-saved: references the old ephemeral id
    fake_repository.fields["form-1"] = [
        FieldRecord(ephemeral_id="old-guests", label="Guest Count", stable_id="eventDetails_guestCount"),
        FieldRecord(ephemeral_id="f-email", label="Email", field_type="email"),
    ]
    template = make_template(
        subject="Quote for {{firstName}}",
        html_content="<p>{{eventDetailsGuestCount}} guests on {{eventDetails.date}}</p>",
    )
    fake_repository.rules["form-1"] = [
        make_rule([{"fieldId": "old-guests", "operator": "greaterThan", "value": "100"}], template=template),
    ]
    fake_repository.submissions["sub-1"] = SubmissionRecord(
        id="sub-1",
        data={"eventDetails_guestCount": "150", "eventDetails": {"guestCount": "150", "date": "2026-06-20"}},
        lead_id="lead-1",
    )
    fake_repository.leads["lead-1"] = LeadRecord(id="lead-1", name="Dana Lee", email="dana@example.com")

    result = await process_email_rules("form-1", "sub-1", {}, repository=fake_repository, transport=fake_transport)

    assert result.queued_email_count == 1
    [message] = fake_transport.sent
    assert message.to == "dana@example.com"
    assert message.subject == "Quote for Dana"
    assert message.html == "<p>150 guests on 2026-06-20</p>"
    assert fake_repository.email_logs[0].submission_id == "sub-1"


@pytest.mark.asyncio
async def test_outcomes_follow_evaluation_order(fake_repository, fake_transport, make_rule):
    no_conditions = make_rule("[]")
    broken = make_rule("{broken")
    matching = make_rule(CONFIRMED)
    fake_repository.rules["form-1"] = [no_conditions, broken, matching]

    result = await process_email_rules(
        "form-1", None, {"status": "confirmed", "email": "c@d.com"},
        repository=fake_repository, transport=fake_transport,
    )

    assert result.processed_rule_count == 3
    assert [(o.rule_id, o.status) for o in result.rule_outcomes] == [
        (broken.id, RuleOutcomeStatus.INVALID_CONDITIONS),
        (matching.id, RuleOutcomeStatus.SENT),
        (no_conditions.id, RuleOutcomeStatus.NO_CONDITIONS),
    ]


# ===================================================================
# TESTS - Fatal failures
# ===================================================================

@pytest.mark.asyncio
async def test_field_load_failure_is_fatal(repository, fake_transport):
    repository.fail_on = "get_form_fields"

    with pytest.raises(StepExecutionError) as exc_info:
        await process_email_rules("form-1", None, {}, repository=repository, transport=fake_transport)

    assert exc_info.value.step_name == "field_resolver"
    assert fake_transport.sent == []


@pytest.mark.asyncio
async def test_rule_load_failure_is_fatal(repository, fake_transport):
    repository.fail_on = "get_active_rules_for_form"

    with pytest.raises(StepExecutionError) as exc_info:
        await process_email_rules("form-1", None, {}, repository=repository, transport=fake_transport)

    assert exc_info.value.step_name == "rule_selector"


@pytest.mark.asyncio
async def test_progress_callback_sees_every_step(repository, fake_transport):
    seen = []

    async def callback(step_name, status):
        seen.append((step_name, status))

    await process_email_rules(
        "form-1", None, {"status": "confirmed", "email": "c@d.com"},
        repository=repository, transport=fake_transport, progress_callback=callback,
    )

    started = [name for name, status in seen if status == "started"]
    assert started == [
        "field_resolver",
        "data_enricher",
        "rule_selector",
        "condition_evaluator",
        "email_dispatcher",
    ]


def test_factory_registers_steps_in_order(fake_repository, fake_transport):
    runner = create_rule_pipeline(repository=fake_repository, transport=fake_transport)
    assert [step.step_name for step in runner.steps] == [
        "field_resolver",
        "data_enricher",
        "rule_selector",
        "condition_evaluator",
        "email_dispatcher",
    ]


# ===================================================================
# TESTS - Preview and dry run
# ===================================================================

def test_render_preview():
    assert render_preview("Hi {{name}} {{missing}}", {"name": "Ada"}) == "Hi Ada {{missing}}"


def test_dry_run_rule(make_rule):
    rule = make_rule(CONFIRMED, recipient_type="field", recipient_field="notifyEmail")

    report = dry_run_rule(rule, {"status": "confirmed", "email": "a@b.com", "firstName": "Ada"})

    assert report["matched"] is True
    assert report["error"] is None
    assert report["recipient"] == "a@b.com"
    assert report["subject"] == "Thanks Ada"
    assert report["conditions"][0]["passed"] is True


def test_dry_run_invalid_conditions(make_rule):
    report = dry_run_rule(make_rule("{oops"), {"status": "confirmed"})
    assert report["matched"] is False
    assert "Invalid conditions JSON" in report["error"]
