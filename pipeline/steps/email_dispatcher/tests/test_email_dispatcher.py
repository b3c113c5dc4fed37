"""
Test suite for Email Dispatcher Step

Uses the in-memory repository and transport fakes from conftest.py.

Run with:
    pytest pipeline/steps/email_dispatcher/tests/test_email_dispatcher.py -v
"""

import asyncio

import pytest

from pipeline.models.core import LogLevel, RuleOutcomeStatus, RuleProcessingData
from pipeline.steps.email_dispatcher import EmailDispatcherStep
from pipeline.steps.rule_selector.utils import select_rule

CONFIRMED = [{"field": "status", "operator": "equals", "value": "confirmed"}]


def make_data(*selected, context=None):
    return RuleProcessingData(
        correlation_id="run-1",
        form_id="form-1",
        submission_id="sub-1",
        context=context if context is not None else {"status": "confirmed", "email": "c@d.com", "firstName": "Dana"},
        rules=list(selected),
        matched_rules=list(selected),
    )


@pytest.mark.asyncio
async def test_sends_and_records_log(fake_repository, fake_transport, make_rule):
    item = select_rule(make_rule(CONFIRMED))
    data = make_data(item)

    result = await EmailDispatcherStep(fake_repository, fake_transport).execute(data)

    assert result.success is True
    assert data.queued_email_count == 1
    [message] = fake_transport.sent
    assert message.to == "c@d.com"
    assert message.subject == "Thanks Dana"
    assert message.html == "<p>Status: confirmed</p>"

    [log] = fake_repository.email_logs
    assert log.status == "sent"
    assert log.correlation_id == "run-1"
    assert log.provider_message_id == "msg-1"

    outcome = data.outcomes[item.rule.id]
    assert outcome.status == RuleOutcomeStatus.SENT
    assert outcome.recipient == "c@d.com"


@pytest.mark.asyncio
async def test_no_recipient_records_failed_log(fake_repository, fake_transport, make_rule):
    item = select_rule(make_rule(CONFIRMED))
    data = make_data(item, context={"status": "confirmed"})

    await EmailDispatcherStep(fake_repository, fake_transport).execute(data)

    assert fake_transport.sent == []
    assert data.queued_email_count == 0
    [log] = fake_repository.email_logs
    assert log.status == "failed"
    assert log.recipient is None
    assert data.outcomes[item.rule.id].status == RuleOutcomeStatus.NO_RECIPIENT


@pytest.mark.asyncio
async def test_missing_template_is_skipped(fake_repository, fake_transport, make_rule):
    item = select_rule(make_rule(CONFIRMED, template=None))
    data = make_data(item)

    await EmailDispatcherStep(fake_repository, fake_transport).execute(data)

    assert fake_transport.sent == []
    assert fake_repository.email_logs == []
    assert data.outcomes[item.rule.id].status == RuleOutcomeStatus.NO_TEMPLATE


@pytest.mark.asyncio
async def test_transport_rejection_continues_batch(fake_repository, fake_transport, make_rule):
    rejected = select_rule(make_rule(CONFIRMED, recipient_type="custom", recipient_email="bounce@x.com"))
    accepted = select_rule(make_rule(CONFIRMED))
    fake_transport.reject.add("bounce@x.com")
    data = make_data(rejected, accepted)

    await EmailDispatcherStep(fake_repository, fake_transport).execute(data)

    assert data.queued_email_count == 1
    assert [log.status for log in fake_repository.email_logs] == ["failed", "sent"]
    assert data.outcomes[rejected.rule.id].status == RuleOutcomeStatus.SEND_FAILED
    assert "Recipient rejected" in data.outcomes[rejected.rule.id].error
    assert data.outcomes[accepted.rule.id].status == RuleOutcomeStatus.SENT


@pytest.mark.asyncio
async def test_transport_exception_becomes_failed_send(fake_repository, fake_transport, make_rule):
    item = select_rule(make_rule(CONFIRMED))
    fake_transport.raise_error = ConnectionError("network down")
    data = make_data(item)

    result = await EmailDispatcherStep(fake_repository, fake_transport).execute(data)

    assert result.success is True
    assert data.outcomes[item.rule.id].status == RuleOutcomeStatus.SEND_FAILED
    assert "network down" in fake_repository.email_logs[0].error


@pytest.mark.asyncio
async def test_transport_timeout(fake_repository, make_rule):
    class SlowTransport:
        async def send(self, message):
            await asyncio.sleep(1)

    item = select_rule(make_rule(CONFIRMED))
    data = make_data(item)

    await EmailDispatcherStep(fake_repository, SlowTransport(), send_timeout=0.05).execute(data)

    outcome = data.outcomes[item.rule.id]
    assert outcome.status == RuleOutcomeStatus.SEND_FAILED
    assert "timed out" in outcome.error


@pytest.mark.asyncio
async def test_email_log_failure_does_not_abort(fake_repository, fake_transport, make_rule):
    first = select_rule(make_rule(CONFIRMED))
    second = select_rule(make_rule(CONFIRMED))
    fake_repository.fail_on = "record_email_log"
    data = make_data(first, second)

    result = await EmailDispatcherStep(fake_repository, fake_transport).execute(data)

    assert result.success is True
    assert len(fake_transport.sent) == 2
    assert data.queued_email_count == 2
    assert sum("email log not recorded" in err for err in data.errors) == 2


@pytest.mark.asyncio
async def test_duplicate_rules_each_send(fake_repository, fake_transport, make_rule):
    data = make_data(select_rule(make_rule(CONFIRMED)), select_rule(make_rule(CONFIRMED)))

    await EmailDispatcherStep(fake_repository, fake_transport).execute(data)

    assert [m.to for m in fake_transport.sent] == ["c@d.com", "c@d.com"]


@pytest.mark.asyncio
async def test_unresolved_placeholders_are_reported(fake_repository, fake_transport, make_rule, make_template):
    template = make_template(html_content="<p>{{venueName}}</p>", cc_emails="ops@x.com")
    item = select_rule(make_rule(CONFIRMED, template=template))
    data = make_data(item)

    await EmailDispatcherStep(fake_repository, fake_transport).execute(data)

    [message] = fake_transport.sent
    assert message.html == "<p>{{venueName}}</p>"
    assert message.cc == ["ops@x.com"]
    assert data.outcomes[item.rule.id].unresolved_placeholders == ["venueName"]
    assert fake_repository.email_logs[0].details == {"unresolved_placeholders": ["venueName"]}
    assert any(e.level == LogLevel.WARNING and "Unresolved template variables" in e.message for e in data.logs)
