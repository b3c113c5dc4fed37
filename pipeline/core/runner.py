"""
Core pipeline infrastructure - base classes for all steps.

BasePipelineStep: Abstract base class for pipeline steps
PipelineRunner: Orchestrates sequential step execution
"""

from abc import ABC, abstractmethod
from typing import Optional, Callable, Awaitable, List
import time
import logfire

from pipeline.models.core import LogLevel, RuleProcessingData, RuleProcessingResult, StepResult
from pipeline.core.exceptions import StepExecutionError, ValidationError


class BasePipelineStep(ABC):
    """
    Abstract base class for all pipeline steps.

    Each step must implement:
    - _execute_step(): Core business logic
    - Optionally: _validate_input(): Input validation

    The execute() method wraps step execution with:
    - Logfire observability spans
    - Error handling and logging
    - Timing metrics
    """

    def __init__(self, step_name: str):
        """
        Initialize pipeline step.

        Args:
            step_name: Unique identifier for this step (used in logs)
        """
        self.step_name = step_name

    def log(self, pipeline_data: RuleProcessingData, level: LogLevel, message: str, rule_id: Optional[str] = None, **details) -> None:
        """
        Record a structured entry on the run and mirror it to Logfire.
        """
        pipeline_data.add_log(level, message, step=self.step_name, rule_id=rule_id, **details)
        log_fn = {
            LogLevel.INFO: logfire.info,
            LogLevel.WARNING: logfire.warning,
            LogLevel.ERROR: logfire.error,
        }[level]
        log_fn(
            message,
            correlation_id=pipeline_data.correlation_id,
            step=self.step_name,
            rule_id=rule_id,
            **details
        )

    async def execute(
        self,
        pipeline_data: RuleProcessingData,
        progress_callback: Optional[Callable[[str, str], Awaitable[None]]] = None
    ) -> StepResult:
        """
        Execute the pipeline step with full observability.

        Args:
            pipeline_data: Shared data object (modified in-place)
            progress_callback: Optional async callback for progress updates
                             Signature: callback(step_name, status)

        Returns:
            StepResult indicating success/failure

        Raises:
            StepExecutionError: If step fails and cannot continue
        """
        start_time = time.perf_counter()

        with logfire.span(
            f"pipeline.{self.step_name}",
            correlation_id=pipeline_data.correlation_id,
            step=self.step_name
        ):
            try:
                logfire.info(
                    f"{self.step_name} started",
                    correlation_id=pipeline_data.correlation_id
                )

                if progress_callback:
                    await progress_callback(self.step_name, "started")

                validation_error = await self._validate_input(pipeline_data)
                if validation_error:
                    raise ValidationError(f"Input validation failed: {validation_error}")

                result = await self._execute_step(pipeline_data)

                duration = time.perf_counter() - start_time
                pipeline_data.add_timing(self.step_name, duration)

                if result.metadata is None:
                    result.metadata = {}
                result.metadata["duration"] = duration

                logfire.info(
                    f"{self.step_name} completed",
                    correlation_id=pipeline_data.correlation_id,
                    duration=duration,
                    success=result.success,
                    warnings=result.warnings
                )

                if progress_callback:
                    status = "completed" if result.success else "failed"
                    await progress_callback(self.step_name, status)

                return result

            except Exception as e:
                duration = time.perf_counter() - start_time

                logfire.error(
                    f"{self.step_name} failed",
                    correlation_id=pipeline_data.correlation_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    duration=duration,
                    exc_info=True
                )

                pipeline_data.add_error(self.step_name, str(e))
                pipeline_data.add_log(LogLevel.ERROR, f"{self.step_name} failed: {e}", step=self.step_name)

                if progress_callback:
                    await progress_callback(self.step_name, "failed")

                raise StepExecutionError(self.step_name, e) from e

    async def _validate_input(self, pipeline_data: RuleProcessingData) -> Optional[str]:
        """
        Validate that prerequisites for this step are met.

        Returns:
            Error message if validation fails, None if valid
        """
        return None

    @abstractmethod
    async def _execute_step(self, pipeline_data: RuleProcessingData) -> StepResult:
        """
        Execute step-specific business logic.

        MUST BE IMPLEMENTED by each step.

        Args:
            pipeline_data: Shared data object (modify in-place)

        Returns:
            StepResult with success=True/False
        """
        pass


class PipelineRunner:
    """
    Orchestrates sequential execution of all pipeline steps.

    Responsibilities:
    - Register steps in execution order
    - Execute steps sequentially
    - Handle step failures
    - Build the RuleProcessingResult from the final run state
    """

    def __init__(self, steps: Optional[List[BasePipelineStep]] = None):
        self.steps = steps or []

    def register_step(self, step: BasePipelineStep) -> None:
        """
        Add a step to the pipeline.

        Steps execute in the order they are registered.
        """
        self.steps.append(step)

    async def run(
        self,
        pipeline_data: RuleProcessingData,
        progress_callback: Optional[Callable[[str, str], Awaitable[None]]] = None
    ) -> RuleProcessingResult:
        """
        Run all pipeline steps sequentially.

        Args:
            pipeline_data: Shared data object
            progress_callback: Optional callback for progress updates

        Returns:
            RuleProcessingResult with counts, per-rule outcomes and the log list

        Raises:
            StepExecutionError: If any step fails (only load failures do)
        """
        with logfire.span(
            "pipeline.full_run",
            correlation_id=pipeline_data.correlation_id,
            form_id=pipeline_data.form_id,
            submission_id=pipeline_data.submission_id
        ):
            logfire.info(
                "Pipeline execution started",
                correlation_id=pipeline_data.correlation_id,
                total_steps=len(self.steps)
            )

            for i, step in enumerate(self.steps):
                progress_pct = int(((i + 1) / len(self.steps)) * 100)
                logfire.info(
                    f"Executing step {i+1}/{len(self.steps)}",
                    step=step.step_name,
                    progress_pct=progress_pct
                )

                result = await step.execute(pipeline_data, progress_callback)

                if not result.success:
                    raise StepExecutionError(
                        step.step_name,
                        Exception(result.error or "Unknown error")
                    )

            outcomes = [
                pipeline_data.outcomes[item.rule.id]
                for item in pipeline_data.rules
                if item.rule.id in pipeline_data.outcomes
            ]
            result = RuleProcessingResult(
                correlation_id=pipeline_data.correlation_id,
                processed_rule_count=len(pipeline_data.rules),
                queued_email_count=pipeline_data.queued_email_count,
                rule_outcomes=outcomes,
                logs=list(pipeline_data.logs),
                errors=list(pipeline_data.errors),
            )

            logfire.info(
                "Pipeline execution completed",
                correlation_id=pipeline_data.correlation_id,
                processed_rule_count=result.processed_rule_count,
                queued_email_count=result.queued_email_count,
                total_duration=pipeline_data.total_duration(),
                step_timings=pipeline_data.step_timings
            )

            return result
