"""
Field Resolver Step - Step 1

Loads the form's fields, assigns stable ids to legacy fields and builds the
FieldIndex used by the later steps.
"""

import asyncio

import logfire

from config.settings import settings
from pipeline.core.exceptions import RuleSetLoadError
from pipeline.core.runner import BasePipelineStep
from pipeline.fields import FieldIndex
from pipeline.models.core import LogLevel, RuleProcessingData, StepResult
from utils.timeouts import run_blocking


class FieldResolverStep(BasePipelineStep):
    """
    Step 1: Resolve form fields.

    Updates RuleProcessingData fields:
    - fields: List[FieldRecord]
    - field_index: FieldIndex

    Failing to load the fields (including a timeout) is fatal for the run.
    """

    def __init__(self, repository, timeout: float | None = None):
        super().__init__(step_name="field_resolver")
        self.repository = repository
        self.timeout = timeout if timeout is not None else settings.rule_fetch_timeout_seconds

    async def _execute_step(self, pipeline_data: RuleProcessingData) -> StepResult:
        try:
            records = await run_blocking(
                self.repository.get_form_fields,
                pipeline_data.form_id,
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise RuleSetLoadError(
                f"Timed out after {self.timeout}s loading fields for form {pipeline_data.form_id}"
            ) from e
        except Exception as e:
            raise RuleSetLoadError(f"Could not load fields for form {pipeline_data.form_id}: {e}") from e

        pipeline_data.fields = list(records)
        index = FieldIndex.from_records(pipeline_data.fields)
        pipeline_data.field_index = index

        synthesized = [f.stable_id for f in index.fields if f.stable_id_synthesized]
        if synthesized:
            self.log(
                pipeline_data,
                LogLevel.WARNING,
                "Synthesized stable ids for legacy fields",
                stable_ids=synthesized,
            )

        logfire.info(
            "Form fields resolved",
            form_id=pipeline_data.form_id,
            field_count=len(index),
            synthesized_count=len(synthesized),
        )

        return StepResult(
            success=True,
            step_name=self.step_name,
            metadata={
                "field_count": len(index),
                "synthesized_count": len(synthesized),
            },
        )
