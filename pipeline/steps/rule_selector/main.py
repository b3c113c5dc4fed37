"""
Rule Selector Step - Step 3

Loads the form's active rules, parses their stored conditions once and
orders them for evaluation.
"""

import asyncio
from typing import Optional

import logfire

from config.settings import settings
from pipeline.core.exceptions import RuleSetLoadError
from pipeline.core.runner import BasePipelineStep
from pipeline.models.core import LogLevel, RuleProcessingData, StepResult
from utils.timeouts import run_blocking

from .utils import order_rules, select_rule


class RuleSelectorStep(BasePipelineStep):
    """
    Step 3: Select and order rules.

    Updates RuleProcessingData fields:
    - rules: List[SelectedRule] (conditioned rules first, creation order otherwise)

    Failing to load the rule set (including a timeout) is fatal for the run.
    """

    def __init__(self, repository, timeout: float | None = None):
        super().__init__(step_name="rule_selector")
        self.repository = repository
        self.timeout = timeout if timeout is not None else settings.rule_fetch_timeout_seconds

    async def _validate_input(self, pipeline_data: RuleProcessingData) -> Optional[str]:
        if not pipeline_data.form_id:
            return "form_id is required"
        return None

    async def _execute_step(self, pipeline_data: RuleProcessingData) -> StepResult:
        self.log(pipeline_data, LogLevel.INFO, f"Fetching email rules for form: {pipeline_data.form_id}")

        try:
            rules = await run_blocking(
                self.repository.get_active_rules_for_form,
                pipeline_data.form_id,
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise RuleSetLoadError(
                f"Timed out after {self.timeout}s loading rules for form {pipeline_data.form_id}"
            ) from e
        except Exception as e:
            raise RuleSetLoadError(f"Could not load rules for form {pipeline_data.form_id}: {e}") from e

        active = [rule for rule in rules if rule.active]
        selected = order_rules(select_rule(rule) for rule in active)
        pipeline_data.rules = selected

        self.log(pipeline_data, LogLevel.INFO, f"Found {len(selected)} active email rules")

        invalid = 0
        for item in selected:
            if item.parse_error:
                invalid += 1
                self.log(
                    pipeline_data,
                    LogLevel.ERROR,
                    f"Failed to parse conditions for rule {item.rule.id}: {item.parse_error}",
                    rule_id=item.rule.id,
                )

        logfire.info(
            "Rules selected",
            form_id=pipeline_data.form_id,
            rule_ids=[item.rule.id for item in selected],
            invalid_count=invalid,
        )

        return StepResult(
            success=True,
            step_name=self.step_name,
            metadata={"rule_count": len(selected), "invalid_count": invalid},
        )
