"""
Condition Evaluator Step - Step 4

Evaluates every selected rule against the enriched data context. A rule
that cannot be evaluated is non-matching; the batch always continues.
"""

import logfire

from pipeline.core.runner import BasePipelineStep
from pipeline.models.core import LogLevel, RuleOutcome, RuleOutcomeStatus, RuleProcessingData, StepResult

from .utils import evaluate


class ConditionEvaluatorStep(BasePipelineStep):
    """
    Step 4: Match rules.

    Updates RuleProcessingData fields:
    - matched_rules: rules whose conditions all hold
    - outcomes: a final outcome for every rule that did not match
    """

    def __init__(self):
        super().__init__(step_name="condition_evaluator")

    async def _execute_step(self, pipeline_data: RuleProcessingData) -> StepResult:
        matched = []
        context = pipeline_data.context

        for item in pipeline_data.rules:
            rule = item.rule

            if item.parse_error:
                item.matched = False
                pipeline_data.record_outcome(RuleOutcome(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    status=RuleOutcomeStatus.INVALID_CONDITIONS,
                    error=item.parse_error,
                ))
                continue

            if not item.has_conditions:
                item.matched = False
                self.log(
                    pipeline_data,
                    LogLevel.WARNING,
                    f"Rule {rule.id} has no conditions, skipping. Rules must have conditions to be processed.",
                    rule_id=rule.id,
                )
                pipeline_data.record_outcome(RuleOutcome(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    status=RuleOutcomeStatus.NO_CONDITIONS,
                ))
                continue

            try:
                is_match = evaluate(item.conditions, context, pipeline_data.field_index)
            except Exception as e:
                # Per-rule failure: record and move on to the next rule
                item.matched = False
                self.log(
                    pipeline_data,
                    LogLevel.ERROR,
                    f"Error evaluating conditions for rule {rule.id}: {e}",
                    rule_id=rule.id,
                )
                pipeline_data.record_outcome(RuleOutcome(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    status=RuleOutcomeStatus.INVALID_CONDITIONS,
                    error=str(e),
                ))
                continue

            item.matched = is_match
            self.log(
                pipeline_data,
                LogLevel.INFO,
                f"Condition evaluation result for rule {rule.id}: {'MATCH' if is_match else 'NO MATCH'}",
                rule_id=rule.id,
                condition_count=len(item.conditions),
            )

            if is_match:
                matched.append(item)
            else:
                pipeline_data.record_outcome(RuleOutcome(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    status=RuleOutcomeStatus.NOT_MATCHED,
                ))

        pipeline_data.matched_rules = matched

        logfire.info(
            "Rules evaluated",
            correlation_id=pipeline_data.correlation_id,
            evaluated=len(pipeline_data.rules),
            matched=len(matched),
        )

        return StepResult(
            success=True,
            step_name=self.step_name,
            metadata={"evaluated_count": len(pipeline_data.rules), "matched_count": len(matched)},
        )
