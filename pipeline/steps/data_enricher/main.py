"""
Data Enricher Step - Step 2

Builds the enriched data context for the run from the caller payload, the
stored submission, computed field aliases and the linked lead.
"""

import asyncio
from typing import Optional

import logfire

from config.settings import settings
from pipeline.core.runner import BasePipelineStep
from pipeline.models.core import LeadRecord, LogLevel, RuleProcessingData, StepResult, SubmissionRecord
from utils.timeouts import run_blocking

from .utils import add_field_aliases, apply_lead, merge_submission


class DataEnricherStep(BasePipelineStep):
    """
    Step 2: Build the enriched data context.

    Updates RuleProcessingData fields:
    - context: Dict[str, Any]

    A missing submission or lead, or a timeout fetching either, is logged
    and skipped. Any other repository error propagates.
    """

    def __init__(self, repository, timeout: float | None = None):
        super().__init__(step_name="data_enricher")
        self.repository = repository
        self.timeout = timeout if timeout is not None else settings.db_query_timeout_seconds

    async def _execute_step(self, pipeline_data: RuleProcessingData) -> StepResult:
        warnings = []
        context = dict(pipeline_data.raw_payload)
        context["formId"] = str(pipeline_data.form_id)

        if not pipeline_data.submission_id:
            # Dry runs and previews: raw payload plus formId only
            pipeline_data.context = context
            return StepResult(
                success=True,
                step_name=self.step_name,
                metadata={"context_keys": len(context), "submission_loaded": False},
            )

        submission = await self._fetch_submission(pipeline_data, warnings)
        lead_loaded = False
        aliases = []

        if submission is not None:
            context = merge_submission(pipeline_data.raw_payload, submission, pipeline_data.form_id)

            if pipeline_data.field_index is not None:
                aliases = add_field_aliases(context, pipeline_data.field_index.fields)

            if submission.lead_id:
                context["leadId"] = str(submission.lead_id)
                lead = await self._fetch_lead(pipeline_data, submission.lead_id, warnings)
                if lead is not None:
                    apply_lead(context, lead)
                    lead_loaded = True

        pipeline_data.context = context

        logfire.info(
            "Data context enriched",
            correlation_id=pipeline_data.correlation_id,
            context_keys=sorted(context.keys()),
            alias_count=len(aliases),
            lead_loaded=lead_loaded,
        )

        return StepResult(
            success=True,
            step_name=self.step_name,
            metadata={
                "context_keys": len(context),
                "submission_loaded": submission is not None,
                "lead_loaded": lead_loaded,
                "alias_count": len(aliases),
            },
            warnings=warnings,
        )

    async def _fetch_submission(self, pipeline_data: RuleProcessingData, warnings: list) -> Optional[SubmissionRecord]:
        self.log(pipeline_data, LogLevel.INFO, "Fetching submission data", submission_id=pipeline_data.submission_id)
        try:
            submission = await run_blocking(
                self.repository.get_submission,
                pipeline_data.submission_id,
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            message = f"Timed out fetching submission {pipeline_data.submission_id}; using caller payload"
            self.log(pipeline_data, LogLevel.WARNING, message)
            pipeline_data.add_error(self.step_name, message)
            warnings.append(message)
            return None

        if submission is None:
            message = f"No submission found with ID: {pipeline_data.submission_id}"
            self.log(pipeline_data, LogLevel.WARNING, message)
            warnings.append(message)
        return submission

    async def _fetch_lead(self, pipeline_data: RuleProcessingData, lead_id: str, warnings: list) -> Optional[LeadRecord]:
        self.log(pipeline_data, LogLevel.INFO, "Fetching lead data", lead_id=str(lead_id))
        try:
            lead = await run_blocking(self.repository.get_lead, lead_id, timeout=self.timeout)
        except asyncio.TimeoutError:
            message = f"Timed out fetching lead {lead_id}; continuing without lead data"
            self.log(pipeline_data, LogLevel.WARNING, message)
            pipeline_data.add_error(self.step_name, message)
            warnings.append(message)
            return None

        if lead is None:
            message = f"No lead found with ID: {lead_id}"
            self.log(pipeline_data, LogLevel.WARNING, message)
            warnings.append(message)
        return lead
