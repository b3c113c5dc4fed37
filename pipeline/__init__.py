"""
Pipeline factory and entry points.

create_rule_pipeline() instantiates all steps in order; process_email_rules()
runs them for one submission.
"""

from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import uuid4

from pipeline.core.runner import PipelineRunner
from pipeline.models.core import RuleProcessingData, RuleProcessingResult
from pipeline.preview import dry_run_rule, render_preview


def create_rule_pipeline(repository=None, transport=None) -> PipelineRunner:
    """
    Factory function to create a fully configured rule-processing pipeline.

    Steps are registered in execution order:
    1. FieldResolver: Load form fields, assign stable ids, build the field index
    2. DataEnricher: Build the enriched data context (submission, aliases, lead)
    3. RuleSelector: Load active rules, parse conditions, order them
    4. ConditionEvaluator: Match each rule against the context
    5. EmailDispatcher: Resolve recipient, render, send, record email logs

    Args:
        repository: RuleRepository (defaults to SqlAlchemyRuleRepository)
        transport: EmailTransport (defaults to the one selected in settings)

    Example:
        ```python
        from pipeline import create_rule_pipeline
        from pipeline.models.core import RuleProcessingData

        runner = create_rule_pipeline()
        result = await runner.run(RuleProcessingData(
            correlation_id="job-123",
            form_id=form_id,
            submission_id=submission_id,
            raw_payload={"status": "confirmed", "email": "c@d.com"},
        ))
        print(result.queued_email_count)
        ```
    """
    # Import lazily to avoid circular dependencies at package import time
    from services.email_transport import get_email_transport
    from services.rule_repository import SqlAlchemyRuleRepository
    from pipeline.steps.field_resolver.main import FieldResolverStep
    from pipeline.steps.data_enricher.main import DataEnricherStep
    from pipeline.steps.rule_selector.main import RuleSelectorStep
    from pipeline.steps.condition_evaluator.main import ConditionEvaluatorStep
    from pipeline.steps.email_dispatcher.main import EmailDispatcherStep

    repository = repository or SqlAlchemyRuleRepository()
    transport = transport or get_email_transport()

    runner = PipelineRunner()
    runner.register_step(FieldResolverStep(repository))
    runner.register_step(DataEnricherStep(repository))
    runner.register_step(RuleSelectorStep(repository))
    runner.register_step(ConditionEvaluatorStep())
    runner.register_step(EmailDispatcherStep(repository, transport))

    return runner


async def process_email_rules(
    form_id: str,
    submission_id: Optional[str],
    raw_payload: Optional[Dict[str, Any]] = None,
    *,
    repository=None,
    transport=None,
    correlation_id: Optional[str] = None,
    progress_callback: Optional[Callable[[str, str], Awaitable[None]]] = None,
) -> RuleProcessingResult:
    """
    Turn "a form was submitted" into zero or more sent emails.

    Raises:
        StepExecutionError: Only when the rule set or the form fields cannot
            be loaded (or persistence fails outright during enrichment).
            Per-rule problems are reported in the result instead.
    """
    runner = create_rule_pipeline(repository=repository, transport=transport)
    pipeline_data = RuleProcessingData(
        correlation_id=correlation_id or str(uuid4()),
        form_id=str(form_id),
        submission_id=str(submission_id) if submission_id else None,
        raw_payload=dict(raw_payload or {}),
    )
    return await runner.run(pipeline_data, progress_callback=progress_callback)


__all__ = [
    "create_rule_pipeline",
    "dry_run_rule",
    "process_email_rules",
    "render_preview",
]
