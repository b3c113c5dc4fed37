"""
Email Dispatcher Step - Step 5

For every matched rule: resolve the recipient, render subject and body,
hand the message to the email transport and record an email-log row.
Failures are per rule; the batch always continues.
"""

import asyncio
from typing import List, Optional

import logfire

from config.settings import settings
from pipeline.core.runner import BasePipelineStep
from pipeline.models.core import (
    EmailLogRecord,
    LogLevel,
    RuleOutcome,
    RuleOutcomeStatus,
    RuleProcessingData,
    SelectedRule,
    StepResult,
)
from services.email_transport import EmailMessage, TransportResult
from utils.timeouts import run_blocking

from .recipient_resolver import resolve_recipient
from .template_renderer import render_with_report
from .utils import effective_copies


class EmailDispatcherStep(BasePipelineStep):
    """
    Step 5: Send emails for matched rules.

    Updates RuleProcessingData fields:
    - outcomes: one RuleOutcome per matched rule
    - queued_email_count: messages the transport accepted

    Duplicate matching rules are not deduplicated; each sends its own email.
    """

    def __init__(
        self,
        repository,
        transport,
        send_timeout: float | None = None,
        db_timeout: float | None = None,
    ):
        super().__init__(step_name="email_dispatcher")
        self.repository = repository
        self.transport = transport
        self.send_timeout = send_timeout if send_timeout is not None else settings.email_send_timeout_seconds
        self.db_timeout = db_timeout if db_timeout is not None else settings.db_query_timeout_seconds

    async def _execute_step(self, pipeline_data: RuleProcessingData) -> StepResult:
        warnings: List[str] = []

        for item in pipeline_data.matched_rules:
            outcome = await self._dispatch_rule(pipeline_data, item, warnings)
            pipeline_data.record_outcome(outcome)
            if outcome.status == RuleOutcomeStatus.SENT:
                pipeline_data.queued_email_count += 1

        logfire.info(
            "Email dispatch finished",
            correlation_id=pipeline_data.correlation_id,
            matched=len(pipeline_data.matched_rules),
            queued=pipeline_data.queued_email_count,
        )

        return StepResult(
            success=True,
            step_name=self.step_name,
            metadata={
                "matched_count": len(pipeline_data.matched_rules),
                "queued_email_count": pipeline_data.queued_email_count,
            },
            warnings=warnings,
        )

    async def _dispatch_rule(self, pipeline_data: RuleProcessingData, item: SelectedRule, warnings: List[str]) -> RuleOutcome:
        rule = item.rule
        template = rule.template
        context = pipeline_data.context

        if template is None:
            self.log(pipeline_data, LogLevel.WARNING, f"Rule {rule.id} has no template, skipping", rule_id=rule.id)
            return RuleOutcome(rule_id=rule.id, rule_name=rule.name, status=RuleOutcomeStatus.NO_TEMPLATE, matched=True)

        recipient = resolve_recipient(rule, context, pipeline_data.field_index)
        if not recipient:
            message = f"No recipient found for rule {rule.id} (recipient type: {rule.recipient_type})"
            self.log(pipeline_data, LogLevel.WARNING, message, rule_id=rule.id, recipient_field=rule.recipient_field)
            warnings.append(message)
            await self._record_log(pipeline_data, EmailLogRecord(
                correlation_id=pipeline_data.correlation_id,
                status="failed",
                form_id=pipeline_data.form_id,
                submission_id=pipeline_data.submission_id,
                rule_id=rule.id,
                template_id=template.id,
                error="No recipient resolved",
            ))
            return RuleOutcome(
                rule_id=rule.id,
                rule_name=rule.name,
                status=RuleOutcomeStatus.NO_RECIPIENT,
                matched=True,
                error="No recipient resolved",
            )

        subject = render_with_report(template.subject, context)
        html = render_with_report(template.html_content, context)
        text = render_with_report(template.text_content, context) if template.text_content else None

        unresolved = list(dict.fromkeys(
            subject.unresolved + html.unresolved + (text.unresolved if text else [])
        ))
        if unresolved:
            self.log(
                pipeline_data,
                LogLevel.WARNING,
                f"Unresolved template variables for rule {rule.id}",
                rule_id=rule.id,
                placeholders=unresolved,
            )

        cc, bcc = effective_copies(rule)
        message = EmailMessage(
            to=recipient,
            subject=subject.text,
            html=html.text,
            text=text.text if text else None,
            cc=cc,
            bcc=bcc,
        )

        self.log(
            pipeline_data,
            LogLevel.INFO,
            f"Sending email to: {recipient} using template: {template.name}",
            rule_id=rule.id,
            template_id=template.id,
        )
        result = await self._send(pipeline_data, message, rule.id)

        await self._record_log(pipeline_data, EmailLogRecord(
            correlation_id=pipeline_data.correlation_id,
            status="sent" if result.success else "failed",
            form_id=pipeline_data.form_id,
            submission_id=pipeline_data.submission_id,
            rule_id=rule.id,
            template_id=template.id,
            recipient=recipient,
            cc=cc,
            bcc=bcc,
            subject=subject.text,
            error=result.error,
            provider_message_id=result.message_id,
            details={"unresolved_placeholders": unresolved} if unresolved else {},
        ))

        if result.success:
            self.log(pipeline_data, LogLevel.INFO, f"Email queued successfully: {result.message_id}", rule_id=rule.id)
            status = RuleOutcomeStatus.SENT
        else:
            self.log(pipeline_data, LogLevel.ERROR, f"Failed to queue email: {result.error}", rule_id=rule.id)
            warnings.append(f"rule {rule.id}: {result.error}")
            status = RuleOutcomeStatus.SEND_FAILED

        return RuleOutcome(
            rule_id=rule.id,
            rule_name=rule.name,
            status=status,
            matched=True,
            recipient=recipient,
            error=result.error,
            message_id=result.message_id,
            unresolved_placeholders=unresolved,
        )

    async def _send(self, pipeline_data: RuleProcessingData, message: EmailMessage, rule_id: str) -> TransportResult:
        try:
            return await asyncio.wait_for(self.transport.send(message), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            return TransportResult(success=False, error=f"Email transport timed out after {self.send_timeout}s")
        except Exception as e:
            logfire.error(
                "Email transport raised",
                correlation_id=pipeline_data.correlation_id,
                rule_id=rule_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TransportResult(success=False, error=f"Error processing email: {e}")

    async def _record_log(self, pipeline_data: RuleProcessingData, record: EmailLogRecord) -> Optional[str]:
        """Write the email-log row. A failed write is logged; it never aborts the batch."""
        try:
            return await run_blocking(self.repository.record_email_log, record, timeout=self.db_timeout)
        except asyncio.TimeoutError:
            self.log(pipeline_data, LogLevel.ERROR, "Timed out writing email log", rule_id=record.rule_id)
        except Exception as e:
            self.log(pipeline_data, LogLevel.ERROR, f"Could not write email log: {e}", rule_id=record.rule_id)
        pipeline_data.add_error(self.step_name, f"email log not recorded for rule {record.rule_id}")
        return None
